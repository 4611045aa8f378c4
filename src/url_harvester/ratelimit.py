"""Shared request throttle for providers with a global quota."""

from __future__ import annotations

import time
from threading import Lock

from .context import Clock, RunContext
from .errors import Cancelled, ConfigError


class RateLimiter:
    """Thread-safe requests-per-minute limiter with an optional minimum delay.

    Callers reserve consecutive slots under the lock and sleep outside it, so
    any number of threads sharing one instance never exceed the budget.
    """

    def __init__(
        self,
        requests_per_minute: float,
        *,
        minimum_delay: float = 0.0,
        clock: Clock = time.monotonic,
    ) -> None:
        if requests_per_minute <= 0:
            raise ConfigError("requests_per_minute must be > 0.")
        if minimum_delay < 0:
            raise ConfigError("minimum_delay must be >= 0.")
        self.requests_per_minute = requests_per_minute
        self.minimum_delay = minimum_delay
        self.interval = max(60.0 / requests_per_minute, minimum_delay)
        self._clock = clock
        self._lock = Lock()
        self._next_slot: float | None = None

    def reserve(self) -> float:
        """Claim the next free slot and return its monotonic timestamp."""
        with self._lock:
            now = self._clock()
            slot = now if self._next_slot is None else max(now, self._next_slot)
            self._next_slot = slot + self.interval
            return slot

    def wait(self, ctx: RunContext | None = None) -> None:
        """Block until this caller's slot comes up."""
        if ctx is not None:
            ctx.check()
        slot = self.reserve()
        delay = slot - self._clock()
        if delay <= 0:
            return
        if ctx is None:
            time.sleep(delay)
            return
        if not ctx.sleep(delay):
            raise Cancelled("cancelled while waiting for rate limiter")
