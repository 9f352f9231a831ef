"""Filesystem store for generated audio, indexed only by file name."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from ..errors import StorageError
from ..models import SessionId

logger = logging.getLogger(__name__)


def simple_filename(timestamp_ms: int) -> str:
    return f"tts_{timestamp_ms}.mp3"


def _session_pattern(session_id: SessionId) -> re.Pattern[str]:
    return re.compile(rf"script_{session_id.value}_chunk_(\d+)\.mp3")


class AudioStore:
    """Append-only directory of MP3 files named by session and chunk."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def ensure_directory(self) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)

    def write(self, filename: str, data: bytes) -> Path:
        """Persist ``data`` under ``filename``; existing files are never replaced."""

        path = self._directory / filename
        try:
            self.ensure_directory()
            with path.open("xb") as handle:
                handle.write(data)
        except FileExistsError as exc:
            raise StorageError(details=f"{filename} already exists") from exc
        except OSError as exc:
            raise StorageError(details=f"{filename}: {exc.strerror or exc}") from exc
        logger.info("Audio saved: %s (%d bytes)", filename, len(data))
        return path

    def session_files(self, session_id: SessionId) -> list[Path]:
        """Return the chunk files for ``session_id`` ordered by chunk number."""

        if not self._directory.is_dir():
            return []
        pattern = _session_pattern(session_id)
        matches: list[tuple[int, Path]] = []
        for entry in self._directory.iterdir():
            match = pattern.fullmatch(entry.name)
            if match and entry.is_file():
                matches.append((int(match.group(1)), entry))
        matches.sort(key=lambda item: item[0])
        return [path for _, path in matches]


__all__ = ["AudioStore", "simple_filename"]
