"""ElevenLabs text-to-speech client."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings
from ..errors import AuthError, ConfigurationError, RateLimitError, SynthesisError
from ..models import AUDIO_MIME_TYPE, AudioArtifact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoiceSettings:
    """Prosody parameters sent with every synthesis request."""

    stability: float = 0.4
    similarity_boost: float = 0.8
    style: float = 0.5
    use_speaker_boost: bool = True

    def as_payload(self) -> dict[str, Any]:
        return {
            "stability": self.stability,
            "similarity_boost": self.similarity_boost,
            "style": self.style,
            "use_speaker_boost": self.use_speaker_boost,
        }


DEFAULT_VOICE_SETTINGS = VoiceSettings()


class ElevenLabsClient:
    """Synthesize speech with a fixed voice, model and prosody."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        *,
        voice_settings: VoiceSettings = DEFAULT_VOICE_SETTINGS,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._voice_settings = voice_settings

    @property
    def _base_url(self) -> str:
        return str(self._settings.elevenlabs_base_url).rstrip("/")

    def require_configured(self) -> None:
        """Raise `ConfigurationError` unless key, voice and model are all set."""

        if not (
            self._settings.elevenlabs_api_key
            and self._settings.elevenlabs_api_key.get_secret_value()
        ):
            raise ConfigurationError("11 Labs API key not configured")
        if not self._settings.voice_id:
            raise ConfigurationError("11 Labs voice ID not configured")
        if not self._settings.model_id:
            raise ConfigurationError("11 Labs model ID not configured")

    def _headers(self) -> dict[str, str]:
        api_key = self._settings.elevenlabs_api_key
        return {
            "Accept": AUDIO_MIME_TYPE,
            "Content-Type": "application/json",
            "xi-api-key": api_key.get_secret_value() if api_key else "",
        }

    def build_payload(self, text: str) -> dict[str, Any]:
        return {
            "text": text,
            "model_id": self._settings.model_id,
            "voice_settings": self._voice_settings.as_payload(),
        }

    async def synthesize(self, text: str) -> AudioArtifact:
        """Return MP3 audio for ``text`` from a single provider request."""

        self.require_configured()

        url = f"{self._base_url}/v1/text-to-speech/{self._settings.voice_id}"
        logger.debug("Requesting ElevenLabs synthesis for %d characters", len(text))
        try:
            response = await self._http.post(
                url,
                headers=self._headers(),
                json=self.build_payload(text),
            )
        except httpx.HTTPError as exc:
            logger.error("ElevenLabs transport error: %s", exc)
            raise SynthesisError(details=str(exc) or exc.__class__.__name__) from exc

        if response.status_code == 401:
            raise AuthError(
                details=self._extract_error_detail(response.content),
                provider_status=401,
            )
        if response.status_code == 429:
            raise RateLimitError(
                details=self._extract_error_detail(response.content),
                provider_status=429,
            )
        if response.status_code >= 400:
            detail = self._extract_error_detail(response.content)
            logger.error(
                "ElevenLabs returned HTTP %s: %s", response.status_code, detail
            )
            raise SynthesisError(
                details=detail or f"HTTP {response.status_code}",
                provider_status=response.status_code,
            )

        audio = response.content
        if not audio:
            raise SynthesisError(details="ElevenLabs returned an empty audio body")

        logger.info(
            "ElevenLabs synthesized %d bytes for %d characters", len(audio), len(text)
        )
        return AudioArtifact(data=audio, text_length=len(text))

    @staticmethod
    def _extract_error_detail(raw: bytes) -> str | None:
        """Pull ElevenLabs' ``detail`` field (string or ``{message}``) from a body."""

        if not raw:
            return None
        text = raw.decode("utf-8", errors="ignore").strip()
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return text or None
        if not isinstance(payload, dict):
            return text
        detail = payload.get("detail")
        if isinstance(detail, str):
            return detail
        if isinstance(detail, dict):
            message = detail.get("message")
            if isinstance(message, str) and message:
                return message
            return json.dumps(detail)
        if isinstance(detail, list):
            return json.dumps(detail)
        return None


__all__ = ["DEFAULT_VOICE_SETTINGS", "ElevenLabsClient", "VoiceSettings"]
