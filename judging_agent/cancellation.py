"""Cancellation token shared by every stage and every network call of one run."""

import threading
import time
from typing import Optional


class ReviewCancelled(Exception):
    """The run was cancelled or its deadline passed."""


class CancellationToken:
    """
    A cancel flag plus an optional deadline.

    One token is created at pipeline entry and passed down to every stage.
    Network helpers call ``check()`` before each request and use
    ``timeout()`` to cap their request timeout by the time that is left.
    Backoff sleeps go through ``wait()`` so a cancel wakes them early.
    """

    def __init__(self, deadline_seconds: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = (
            time.monotonic() + deadline_seconds if deadline_seconds is not None else None
        )

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self) -> None:
        if self.cancelled:
            raise ReviewCancelled("Review cancelled before completion.")

    def timeout(self, default: float) -> float:
        """Request timeout: ``default`` capped by the remaining deadline."""
        self.check()
        remaining = self.remaining()
        if remaining is None:
            return default
        return max(0.1, min(default, remaining))

    def wait(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first. Raises when cancelled."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(seconds)
        self.check()
