"""Simple and script-mode speech generation."""

from __future__ import annotations

import asyncio
import logging

from ..errors import ChunkSynthesisError, ValidationError, VoiceoverError
from ..models import AudioArtifact, Chunk, ChunkResult, ScriptResult
from .audio_store import AudioStore, simple_filename
from .segmenter import ScriptSegmenter
from .sessions import SessionIdFactory
from .speech_client import ElevenLabsClient

logger = logging.getLogger(__name__)


def _require_text(text: str | None) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Text is required")
    return text


class SpeechPipeline:
    """Drive segmentation and synthesis one request at a time.

    Outbound calls are awaited strictly in sequence. A failing chunk aborts
    the run; chunk files already written stay on disk.
    """

    def __init__(
        self,
        *,
        segmenter: ScriptSegmenter,
        synthesizer: ElevenLabsClient,
        store: AudioStore,
        sessions: SessionIdFactory,
    ) -> None:
        self._segmenter = segmenter
        self._synthesizer = synthesizer
        self._store = store
        self._sessions = sessions

    async def synthesize_text(self, text: str | None) -> tuple[str, AudioArtifact]:
        """Synthesize ``text`` in one call and persist it as ``tts_<ts>.mp3``."""

        text = _require_text(text)
        self._synthesizer.require_configured()

        logger.info("Generating audio for %d characters...", len(text))
        artifact = await self._synthesizer.synthesize(text)

        filename = simple_filename(self._sessions.new_session().value)
        await asyncio.to_thread(self._store.write, filename, artifact.data)
        return filename, artifact

    async def run_script(self, text: str | None) -> ScriptResult:
        text = _require_text(text)
        self._segmenter.require_configured()
        self._synthesizer.require_configured()

        logger.info("Script mode: splitting text (%d characters)...", len(text))
        segments = await self._segmenter.segment(text)
        logger.info("Split into %d chunks", len(segments))

        session_id = self._sessions.new_session()
        chunks = [
            Chunk(number=number, text=segment, session_id=session_id)
            for number, segment in enumerate(segments, start=1)
        ]

        result = ScriptResult(session_id=session_id)
        total = len(chunks)
        for chunk in chunks:
            logger.info("Generating audio for chunk %d/%d...", chunk.number, total)
            try:
                artifact = await self._synthesizer.synthesize(chunk.text)
            except VoiceoverError as exc:
                logger.error(
                    "Session %s aborted at chunk %d/%d: %s",
                    session_id,
                    chunk.number,
                    total,
                    exc,
                )
                raise ChunkSynthesisError(
                    chunk_number=chunk.number,
                    total_chunks=total,
                    cause=exc,
                ) from exc

            await asyncio.to_thread(self._store.write, chunk.filename, artifact.data)
            result.chunks.append(
                ChunkResult(
                    filename=chunk.filename,
                    text=chunk.text,
                    chunk_number=chunk.number,
                    audio_data=artifact.to_base64(),
                )
            )

        logger.info("Generated %d audio files for session %s", len(result.chunks), session_id)
        return result


__all__ = ["SpeechPipeline"]
