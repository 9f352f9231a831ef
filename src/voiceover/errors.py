"""Error taxonomy translated to JSON responses at the request boundary."""

from __future__ import annotations

from typing import Any


class VoiceoverError(Exception):
    """Base error carrying the HTTP status and user-facing message."""

    status_code: int = 500
    default_error: str = "Internal server error"

    def __init__(
        self,
        error: str | None = None,
        *,
        details: Any = None,
        status_code: int | None = None,
    ) -> None:
        self.error = error or self.default_error
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.error if details is None else f"{self.error}: {details}")

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(VoiceoverError):
    """Raised when request input is missing or malformed."""

    status_code = 400
    default_error = "Text is required"


class ConfigurationError(VoiceoverError):
    """Raised before any outbound call when a credential is missing."""

    status_code = 500
    default_error = "API key not configured"


class UpstreamError(VoiceoverError):
    """Raised when an external provider call fails."""

    status_code = 500
    default_error = "Upstream request failed"

    def __init__(
        self,
        error: str | None = None,
        *,
        details: Any = None,
        provider_status: int | None = None,
    ) -> None:
        super().__init__(error, details=details)
        self.provider_status = provider_status


class AuthError(UpstreamError):
    status_code = 401
    default_error = "Invalid API key"


class RateLimitError(UpstreamError):
    status_code = 429
    default_error = "Rate limit exceeded. Please try again later."


class SynthesisError(UpstreamError):
    status_code = 500
    default_error = "Failed to generate audio"


class ChunkSynthesisError(VoiceoverError):
    """Raised when the script loop aborts on a chunk."""

    status_code = 500
    default_error = "Failed to generate script audio"

    def __init__(
        self,
        *,
        chunk_number: int,
        total_chunks: int,
        cause: VoiceoverError,
    ) -> None:
        self.chunk_number = chunk_number
        self.total_chunks = total_chunks
        self.cause = cause
        cause_detail = cause.error if cause.details is None else f"{cause.error}: {cause.details}"
        super().__init__(
            details=f"Chunk {chunk_number} of {total_chunks} failed: {cause_detail}",
        )


class SegmentationParseError(VoiceoverError):
    """Raised when the segmentation reply is not valid JSON."""

    status_code = 500
    default_error = "Failed to split script"


class SegmentationShapeError(VoiceoverError):
    """Raised when the segmentation reply is JSON but not a list of strings."""

    status_code = 500
    default_error = "Failed to split script"


class SessionNotFoundError(VoiceoverError):
    status_code = 404
    default_error = "No files found for this session"


class StorageError(VoiceoverError):
    """Raised when generated audio cannot be written to the audio directory."""

    status_code = 500
    default_error = "Failed to save audio"


class BundleError(VoiceoverError):
    status_code = 500
    default_error = "Failed to create ZIP file"


__all__ = [
    "AuthError",
    "BundleError",
    "ChunkSynthesisError",
    "ConfigurationError",
    "RateLimitError",
    "SegmentationParseError",
    "SegmentationShapeError",
    "SessionNotFoundError",
    "StorageError",
    "SynthesisError",
    "UpstreamError",
    "ValidationError",
    "VoiceoverError",
]
