"""
Time and cancellation primitives shared by the monitor, validator and orchestrator.
"""
from __future__ import annotations

import threading
import time
from typing import Optional

from .errors import RollbackCancelled


class SystemClock:
    """Wall-clock implementation of the Clock protocol."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


class CancellationToken:
    """
    External cancellation signal for a running rollback.

    Honoured at each poll boundary of a health check session and at each
    per-environment boundary of a full rollback.
    """

    def __init__(self):
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "cancellation requested") -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def raise_if_cancelled(self, where: str) -> None:
        if self._event.is_set():
            raise RollbackCancelled(f"{where} ({self._reason})")


def elapsed_ms(clock, started: float) -> int:
    return int(round((clock.monotonic() - started) * 1000))
