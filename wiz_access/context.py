"""Deadline and cancellation carried into every sync operation."""

from __future__ import annotations

import threading
import time
from typing import Optional

from wiz_access.errors import SyncCancelled


class SyncContext:
    """Cancellation flag plus an optional monotonic deadline.

    One context may be shared by several threads; cancel() wakes any thread
    sleeping in sleep().
    """

    def __init__(self, deadline: Optional[float] = None) -> None:
        self._deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> "SyncContext":
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> "SyncContext":
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def done(self) -> bool:
        return self.cancelled or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(self._deadline - time.monotonic(), 0.0)

    def raise_if_done(self, operation: str) -> None:
        if self.cancelled:
            raise SyncCancelled(operation, "cancelled")
        if self.expired:
            raise SyncCancelled(operation, "deadline exceeded")

    def sleep(self, seconds: float, operation: str) -> None:
        """Sleep up to `seconds`, waking early on cancel or deadline."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._cancelled.wait(seconds)
        self.raise_if_done(operation)
