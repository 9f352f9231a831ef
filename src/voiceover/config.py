"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ElevenLabs speech synthesis
    elevenlabs_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("ELEVENLABS_API_KEY", "elevenlabs_api_key"),
    )
    voice_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("VOICE_ID", "voice_id"),
    )
    model_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODEL_ID", "model_id"),
    )
    elevenlabs_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://api.elevenlabs.io"),
        validation_alias=AliasChoices("ELEVENLABS_BASE_URL", "elevenlabs_base_url"),
    )

    # Anthropic script segmentation
    anthropic_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("ANTHROPIC_API_KEY", "anthropic_api_key"),
    )
    anthropic_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://api.anthropic.com"),
        validation_alias=AliasChoices("ANTHROPIC_BASE_URL", "anthropic_base_url"),
    )
    segmentation_model: str = Field(
        default="claude-haiku-4-5-20251001",
        validation_alias=AliasChoices("SEGMENTATION_MODEL", "segmentation_model"),
    )
    segmentation_max_tokens: int = Field(
        default=4096,
        ge=1,
        validation_alias=AliasChoices(
            "SEGMENTATION_MAX_TOKENS",
            "segmentation_max_tokens",
        ),
    )

    audio_dir: Path = Field(
        default_factory=lambda: Path("generated-audio"),
        validation_alias=AliasChoices("AUDIO_DIR", "audio_dir"),
    )
    request_timeout: float = Field(
        default=120.0,
        ge=1,
        validation_alias=AliasChoices("REQUEST_TIMEOUT", "request_timeout"),
    )

    service_name: str = Field(
        default="11 Labs TTS",
        validation_alias=AliasChoices("SERVICE_NAME", "service_name"),
    )
    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("HOST", "host"),
    )
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("PORT", "port"),
    )

    @property
    def resolved_audio_dir(self) -> Path:
        """Audio directory, anchored at the project root when relative."""

        if self.audio_dir.is_absolute():
            return self.audio_dir
        return (PROJECT_ROOT / self.audio_dir).resolve()

    @property
    def has_anthropic_credentials(self) -> bool:
        return bool(
            self.anthropic_api_key and self.anthropic_api_key.get_secret_value()
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["PROJECT_ROOT", "Settings", "get_settings"]
