"""Routes for single-shot speech, script mode and session ZIP downloads."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response, StreamingResponse

from ..models import AUDIO_MIME_TYPE
from ..schemas.speech import (
    DownloadZipRequest,
    ErrorResponse,
    ScriptResponse,
    TextRequest,
)
from ..services.bundler import SessionBundler, iter_archive
from ..services.pipeline import SpeechPipeline
from ..services.sessions import parse_session_id

router = APIRouter(tags=["speech"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_speech_pipeline(request: Request) -> SpeechPipeline:
    pipeline = getattr(request.app.state, "speech_pipeline", None)
    if pipeline is None:  # pragma: no cover - defensive
        raise RuntimeError("Speech pipeline is not configured")
    return pipeline


def get_session_bundler(request: Request) -> SessionBundler:
    bundler = getattr(request.app.state, "session_bundler", None)
    if bundler is None:  # pragma: no cover - defensive
        raise RuntimeError("Session bundler is not configured")
    return bundler


@router.post(
    "/generate",
    response_class=Response,
    responses={
        200: {"content": {AUDIO_MIME_TYPE: {}}},
        **{code: _ERROR_RESPONSES[code] for code in (400, 401, 429, 500)},
    },
)
async def generate_audio(
    payload: TextRequest,
    pipeline: SpeechPipeline = Depends(get_speech_pipeline),
) -> Response:
    filename, artifact = await pipeline.synthesize_text(payload.text)
    return Response(
        content=artifact.data,
        media_type=artifact.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/generate-script",
    response_model=ScriptResponse,
    response_model_by_alias=True,
    responses={code: _ERROR_RESPONSES[code] for code in (400, 500)},
)
async def generate_script_audio(
    payload: TextRequest,
    pipeline: SpeechPipeline = Depends(get_speech_pipeline),
) -> ScriptResponse:
    result = await pipeline.run_script(payload.text)
    return ScriptResponse.from_result(result)


@router.post(
    "/download-zip",
    response_class=StreamingResponse,
    responses={
        200: {"content": {"application/zip": {}}},
        **{code: _ERROR_RESPONSES[code] for code in (400, 404, 500)},
    },
)
async def download_zip(
    payload: DownloadZipRequest,
    bundler: SessionBundler = Depends(get_session_bundler),
) -> StreamingResponse:
    session_id = parse_session_id(payload.session_id)
    bundle, archive = await asyncio.to_thread(bundler.bundle_session, session_id)
    return StreamingResponse(
        iter_archive(archive),
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{bundle.archive_name}"'
        },
    )


__all__ = ["router", "get_session_bundler", "get_speech_pipeline"]
