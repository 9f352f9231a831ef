"""ZIP bundling of the chunk files produced by one script session."""

from __future__ import annotations

import logging
import tempfile
import zipfile
from typing import IO, Iterator

from ..errors import BundleError, SessionNotFoundError
from ..models import BundleRequest, SessionId
from .audio_store import AudioStore

logger = logging.getLogger(__name__)

# Archives larger than this spill from memory to a temporary file.
_SPOOL_MAX_BYTES = 16 * 1024 * 1024
_READ_CHUNK_BYTES = 64 * 1024


class SessionBundler:
    def __init__(self, store: AudioStore) -> None:
        self._store = store

    def resolve(self, session_id: SessionId) -> BundleRequest:
        files = self._store.session_files(session_id)
        if not files:
            raise SessionNotFoundError()
        logger.info("Resolved %d files for session %s", len(files), session_id)
        return BundleRequest(session_id=session_id, files=tuple(files))

    def build_archive(self, bundle: BundleRequest) -> IO[bytes]:
        """Write every bundle file into a ZIP and return it rewound.

        The caller owns the returned file object and must close it.
        """

        spool = tempfile.SpooledTemporaryFile(max_size=_SPOOL_MAX_BYTES)
        try:
            with zipfile.ZipFile(
                spool,
                mode="w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=9,
            ) as archive:
                for path in bundle.files:
                    archive.write(path, arcname=path.name)
        except OSError as exc:
            spool.close()
            logger.error("Failed to bundle session %s: %s", bundle.session_id, exc)
            raise BundleError(details=str(exc)) from exc
        spool.seek(0)
        return spool

    def bundle_session(
        self, session_id: SessionId
    ) -> tuple[BundleRequest, IO[bytes]]:
        """Resolve and archive a session; blocking, run it off the event loop."""

        bundle = self.resolve(session_id)
        return bundle, self.build_archive(bundle)


def iter_archive(handle: IO[bytes]) -> Iterator[bytes]:
    """Yield an archive in blocks, closing it when exhausted."""

    try:
        while True:
            block = handle.read(_READ_CHUNK_BYTES)
            if not block:
                break
            yield block
    finally:
        handle.close()


__all__ = ["SessionBundler", "iter_archive"]
