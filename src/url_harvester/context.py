"""Cancellation and deadline propagation for one discovery run."""

from __future__ import annotations

import time
from collections.abc import Callable
from threading import Event

from .errors import Cancelled

Clock = Callable[[], float]


class RunContext:
    """Cancellation signal plus an optional deadline shared by every worker of a run.

    Every blocking call in the core goes through this object: HTTP timeouts are
    capped by :meth:`timeout`, sleeps use :meth:`sleep`, and pagination loops
    call :meth:`check` once per iteration.
    """

    def __init__(self, *, timeout: float | None = None, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._event = Event()
        self._deadline = None if timeout is None else clock() + timeout

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def cancel(self) -> None:
        self._event.set()

    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self._event.set()
            return True
        return False

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def check(self) -> None:
        """Raise Cancelled when the run should stop."""
        if self.cancelled():
            raise Cancelled("run cancelled or deadline exceeded")

    def timeout(self, request_timeout: float) -> float:
        """Return a request timeout that never outlives the run deadline."""
        self.check()
        remaining = self.remaining()
        if remaining is None:
            return request_timeout
        return max(0.001, min(request_timeout, remaining))

    def sleep(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return False if the run got cancelled meanwhile."""
        if seconds <= 0:
            return not self.cancelled()
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(remaining)
            return not self.cancelled()
        if self._event.wait(seconds):
            return False
        return not self.cancelled()
