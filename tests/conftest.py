from __future__ import annotations

import json
import pathlib
import sys
from collections.abc import Callable, Generator
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from voiceover.app import create_app  # noqa: E402
from voiceover.config import Settings  # noqa: E402


def make_settings(audio_dir: Path, **overrides) -> Settings:
    values = {
        "elevenlabs_api_key": "el-test-key",
        "voice_id": "voice-123",
        "model_id": "eleven_multilingual_v2",
        "anthropic_api_key": "anthropic-test-key",
        "anthropic_base_url": "https://api.anthropic.com",
        "elevenlabs_base_url": "https://api.elevenlabs.io",
        "audio_dir": audio_dir,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # pyright: ignore[reportCallIssue]


_SETTINGS_ENV = (
    "ELEVENLABS_API_KEY",
    "VOICE_ID",
    "MODEL_ID",
    "ELEVENLABS_BASE_URL",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_BASE_URL",
    "SEGMENTATION_MODEL",
    "SEGMENTATION_MAX_TOKENS",
    "AUDIO_DIR",
    "REQUEST_TIMEOUT",
    "SERVICE_NAME",
)


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)


class FakeProviders:
    """Stand-in for the Anthropic and ElevenLabs HTTP APIs."""

    def __init__(self) -> None:
        self.segments: list[str] = []
        self.llm_reply: str | None = None
        self.llm_status = 200
        self.audio: dict[str, bytes] = {}
        self.default_audio = b"ID3-fake-mp3"
        self.tts_failures: dict[str, tuple[int, dict]] = {}
        self.llm_requests: list[dict] = []
        self.tts_requests: list[dict] = []
        self.tts_headers: list[httpx.Headers] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        if request.url.host == "api.anthropic.com":
            self.llm_requests.append(body)
            if self.llm_status >= 400:
                return httpx.Response(
                    self.llm_status,
                    json={"type": "error", "error": {"type": "api_error", "message": "overloaded"}},
                )
            reply = self.llm_reply if self.llm_reply is not None else json.dumps(self.segments)
            return httpx.Response(
                200,
                json={"content": [{"type": "text", "text": reply}], "role": "assistant"},
            )
        if request.url.host == "api.elevenlabs.io":
            self.tts_requests.append(body)
            self.tts_headers.append(request.headers)
            text = body.get("text", "")
            if text in self.tts_failures:
                status, payload = self.tts_failures[text]
                return httpx.Response(status, json=payload)
            return httpx.Response(
                200,
                content=self.audio.get(text, self.default_audio),
                headers={"Content-Type": "audio/mpeg"},
            )
        return httpx.Response(404, json={"detail": "unexpected host"})

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def providers() -> FakeProviders:
    return FakeProviders()


@pytest.fixture
def audio_dir(tmp_path: Path) -> Path:
    return tmp_path / "generated-audio"


@pytest.fixture
def client_factory(
    providers: FakeProviders, audio_dir: Path
) -> Generator[Callable[..., TestClient], None, None]:
    """Build a TestClient; keyword overrides are applied to the settings."""

    clients: list[TestClient] = []

    def _build(**overrides) -> TestClient:
        app = create_app(
            make_settings(audio_dir, **overrides),
            http_client=providers.http_client(),
        )
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _build

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def api_client(client_factory) -> TestClient:
    return client_factory()
