"""Session identifier issuance and parsing."""

from __future__ import annotations

import re
import threading
import time
from typing import Any, Callable

from ..errors import ValidationError
from ..models import SessionId

_DIGITS = re.compile(r"[0-9]+")


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class SessionIdFactory:
    """Issue millisecond-timestamp session ids that never repeat in-process.

    If the clock has not moved past the last issued id (two runs in the same
    millisecond, or the wall clock stepping backwards), the previous id plus
    one is used instead.
    """

    def __init__(self, clock: Callable[[], int] = _now_ms) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._last = 0

    def new_session(self) -> SessionId:
        with self._lock:
            candidate = self._clock()
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return SessionId(candidate)


def parse_session_id(raw: Any) -> SessionId:
    """Validate a client-supplied session id (integer or digit string)."""

    if raw is None or raw == "":
        raise ValidationError("Session ID is required")
    if isinstance(raw, bool):
        raise ValidationError("Invalid session ID", details=repr(raw))
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and _DIGITS.fullmatch(raw.strip()):
        value = int(raw.strip())
    else:
        raise ValidationError("Invalid session ID", details=repr(raw))
    if value <= 0:
        raise ValidationError("Invalid session ID", details=repr(raw))
    return SessionId(value)


__all__ = ["SessionIdFactory", "parse_session_id"]
