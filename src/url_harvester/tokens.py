"""Credential rotation for providers that rate limit per key."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from threading import Lock

from .context import Clock, RunContext
from .errors import Cancelled, ConfigError


@dataclass
class Credential:
    """One API key and the monotonic time until which it must not be used."""

    secret: str
    exhausted_until: float | None = None

    def available(self, now: float) -> bool:
        return self.exhausted_until is None or now >= self.exhausted_until


class TokenRotator:
    """Round-robin pool of credentials with per-credential backoff.

    State moves ``Available -> Exhausted(until) -> Available``; the way back is
    purely time based and checked lazily by :meth:`get`.
    """

    def __init__(
        self,
        secrets: Iterable[str],
        *,
        clock: Clock = time.monotonic,
        logger: logging.Logger | None = None,
    ) -> None:
        self._pool = [Credential(secret) for secret in secrets if secret]
        self._clock = clock
        self._logger = logger or logging.getLogger("url_harvester")
        self._lock = Lock()
        self._cursor = -1
        self._last: Credential | None = None

    def __len__(self) -> int:
        return len(self._pool)

    def __bool__(self) -> bool:
        return bool(self._pool)

    def get(self) -> Credential:
        """Return the next usable credential.

        When every credential is exhausted the one whose backoff ends first is
        returned anyway and the caller is expected to wait (see :meth:`acquire`).
        """
        with self._lock:
            if not self._pool:
                raise ConfigError("token pool is empty")
            now = self._clock()
            size = len(self._pool)
            for step in range(1, size + 1):
                index = (self._cursor + step) % size
                credential = self._pool[index]
                if credential.available(now):
                    credential.exhausted_until = None
                    self._cursor = index
                    self._last = credential
                    return credential
            index, credential = min(
                enumerate(self._pool), key=lambda item: item[1].exhausted_until or 0.0
            )
            self._cursor = index
            self._last = credential
            return credential

    def mark_exhausted(self, retry_after: float, credential: Credential | None = None) -> None:
        """Put a credential (default: the last one dispensed) into backoff."""
        with self._lock:
            target = credential or self._last
            if target is None:
                return
            target.exhausted_until = self._clock() + max(0.0, retry_after)
            self._logger.debug(
                "Credential ...%s exhausted for %.1fs", target.secret[-4:], max(0.0, retry_after)
            )

    def wait_time(self, credential: Credential) -> float:
        with self._lock:
            if credential.exhausted_until is None:
                return 0.0
            return max(0.0, credential.exhausted_until - self._clock())

    def acquire(self, ctx: RunContext) -> Credential:
        """Return a usable credential, sleeping through ``ctx`` until the soonest backoff ends."""
        while True:
            credential = self.get()
            delay = self.wait_time(credential)
            if delay <= 0:
                return credential
            if not ctx.sleep(delay):
                raise Cancelled("cancelled while waiting for credential backoff")
