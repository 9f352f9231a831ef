"""Application factory for the FastAPI service."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .errors import VoiceoverError
from .logging_handlers import DateStampedFileHandler, cleanup_old_logs
from .routers.speech import router as speech_router
from .schemas.speech import HealthResponse
from .services.audio_store import AudioStore
from .services.bundler import SessionBundler
from .services.pipeline import SpeechPipeline
from .services.segmenter import ScriptSegmenter
from .services.sessions import SessionIdFactory
from .services.speech_client import ElevenLabsClient

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
_DEFAULT_RETENTION_HOURS = 48


def _retention_hours() -> int:
    raw = os.getenv("LOG_RETENTION_HOURS")
    if raw is None:
        return _DEFAULT_RETENTION_HOURS
    try:
        return max(0, int(raw))
    except ValueError:
        return _DEFAULT_RETENTION_HOURS


def _configure_logging() -> None:
    """Configure logging from LOG_LEVEL, LOG_DIR and LOG_RETENTION_HOURS."""
    # Load .env file first so the LOG_* variables are available
    load_dotenv()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT)
    handlers: list[logging.Handler] = []

    log_dir = os.getenv("LOG_DIR")
    if log_dir:
        file_handler = DateStampedFileHandler(Path(log_dir))
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    logging.getLogger("voiceover").setLevel(log_level)
    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    logging.getLogger("uvicorn.error").setLevel(log_level)

    # Request bodies carry API keys; keep httpx quiet unless debugging
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    if log_dir:
        cleanup_old_logs([log_dir], _retention_hours(), logger)


def create_app(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    _configure_logging()

    settings = settings or get_settings()

    owns_http_client = http_client is None
    if http_client is None:
        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.request_timeout, connect=10.0)
        )

    store = AudioStore(settings.resolved_audio_dir)
    sessions = SessionIdFactory()
    pipeline = SpeechPipeline(
        segmenter=ScriptSegmenter(settings, http_client),
        synthesizer=ElevenLabsClient(settings, http_client),
        store=store,
        sessions=sessions,
    )
    bundler = SessionBundler(store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.ensure_directory()
        logger.info("Audio directory: %s", store.directory)
        logger.info("Voice ID: %s", settings.voice_id)
        logger.info("Model: %s", settings.model_id)
        try:
            yield
        finally:
            if owns_http_client:
                await http_client.aclose()

    app = FastAPI(
        title="Voiceover Backend",
        version="0.1.0",
        description="ElevenLabs speech generation with LLM-based script chunking.",
        lifespan=lifespan,
    )

    app.state.speech_pipeline = pipeline
    app.state.session_bundler = bundler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(VoiceoverError)
    async def voiceover_error_handler(
        request: Request, exc: VoiceoverError
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning("%s %s invalid body", request.method, request.url.path)
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request body",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    app.include_router(speech_router)

    @app.get("/health", tags=["health"], response_model=HealthResponse)
    async def healthcheck() -> HealthResponse:
        return HealthResponse(service=settings.service_name)

    return app


__all__ = ["create_app"]
