"""Domain value types shared by the speech services."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from pathlib import Path

AUDIO_MIME_TYPE = "audio/mpeg"


@dataclass(frozen=True, order=True)
class SessionId:
    """Identifier of one script run; serialized as a plain integer."""

    value: int

    def __post_init__(self) -> None:
        if self.value <= 0:
            raise ValueError("session id must be a positive integer")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Chunk:
    number: int
    text: str
    session_id: SessionId

    @property
    def filename(self) -> str:
        return f"script_{self.session_id}_chunk_{self.number}.mp3"


@dataclass(frozen=True)
class AudioArtifact:
    data: bytes
    text_length: int
    mime_type: str = AUDIO_MIME_TYPE

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


@dataclass(frozen=True)
class ChunkResult:
    filename: str
    text: str
    chunk_number: int
    audio_data: str


@dataclass
class ScriptResult:
    session_id: SessionId
    chunks: list[ChunkResult] = field(default_factory=list)


@dataclass(frozen=True)
class BundleRequest:
    session_id: SessionId
    files: tuple[Path, ...]

    @property
    def filenames(self) -> list[str]:
        return [path.name for path in self.files]

    @property
    def archive_name(self) -> str:
        return f"script_audio_{self.session_id}.zip"


__all__ = [
    "AUDIO_MIME_TYPE",
    "AudioArtifact",
    "BundleRequest",
    "Chunk",
    "ChunkResult",
    "ScriptResult",
    "SessionId",
]
