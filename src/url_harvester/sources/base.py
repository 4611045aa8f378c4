"""Shared plumbing for provider adapters."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from typing import Any, ClassVar

from requests import Response, Session
from requests.exceptions import RequestException

from ..context import RunContext
from ..errors import Cancelled, ConfigError, DecodeError, RateLimitExceeded, TransportError
from ..models import Result
from ..ratelimit import RateLimiter
from ..scope import ScopeFilter
from ..tokens import Credential, TokenRotator

DEFAULT_RETRY_AFTER = 60.0
MAX_ATTEMPTS = 3
BACKOFF_FACTOR = 0.6
SERVER_ERRORS = frozenset({500, 502, 503, 504})


def retry_after_header(response: Response, default: float = DEFAULT_RETRY_AFTER) -> float:
    value = response.headers.get("Retry-After") or ""
    return float(value) if value.isdigit() else default


class BaseSource:
    """Template for one provider.

    Subclasses implement :meth:`collect`; :meth:`run` wraps it so that a keyed
    provider without keys yields nothing, cancellation ends the stream quietly,
    and transport/decode failures become a single error result.

    Quota rejections (HTTP 429) are retried, never reported: keyless providers
    sleep out ``Retry-After`` inside :meth:`_get`, keyed ones put the credential
    into backoff and retry with the next one (:meth:`_get_json_with_key`).
    """

    name: ClassVar[str] = ""
    requires_keys: ClassVar[bool] = False
    requests_per_minute: ClassVar[float | None] = None
    minimum_delay: ClassVar[float] = 0.0

    def __init__(
        self,
        *,
        session: Session,
        timeout: float,
        logger: logging.Logger,
        limiter: RateLimiter | None = None,
        rotator: TokenRotator | None = None,
    ) -> None:
        self._session = session
        self._timeout = timeout
        self._logger = logger
        self._limiter = limiter
        self._rotator = rotator

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    @property
    def rotator(self) -> TokenRotator:
        if self._rotator is None:
            raise ConfigError(f"{self.name} requires API keys")
        return self._rotator

    def run(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        if self.requires_keys and not self._rotator:
            self._logger.debug("%s: no keys configured, skipping", self.name)
            return
        try:
            yield from self.collect(scope, ctx)
        except Cancelled:
            self._logger.debug("%s: cancelled", self.name)
        except RateLimitExceeded as exc:
            # Only reached when a request cannot move to another credential.
            self._logger.debug("%s: %s", self.name, exc)
            if self._rotator:
                self._rotator.mark_exhausted(exc.retry_after)
        except (TransportError, DecodeError) as exc:
            self._logger.debug("%s: %s", self.name, exc)
            yield Result.failure(self.name, exc)

    def collect(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        raise NotImplementedError

    def _throttle(self, ctx: RunContext) -> None:
        if self._limiter is not None:
            self._limiter.wait(ctx)

    def _request(self, method: str, url: str, ctx: RunContext, **kwargs: Any) -> Response:
        """Issue a throttled, deadline-bounded request; transport failures raise TransportError.

        Connection failures and server errors are retried up to ``MAX_ATTEMPTS``
        times with exponential backoff (or the server's ``Retry-After``).
        Without a rotator, 429 answers are waited out and the request repeated.
        Every wait goes through ``ctx.sleep``.
        """
        send = self._session.post if method == "POST" else self._session.get
        attempt = 0
        while True:
            attempt += 1
            self._throttle(ctx)
            try:
                response = send(url, timeout=ctx.timeout(self._timeout), **kwargs)
            except RequestException as exc:
                ctx.check()
                if attempt >= MAX_ATTEMPTS:
                    raise TransportError(f"{method} {url} failed: {exc}") from exc
                delay = BACKOFF_FACTOR * 2 ** (attempt - 1)
                self._logger.debug("%s: %s %s failed (%s), retrying", self.name, method, url, exc)
            else:
                if response.status_code == 429 and self._rotator is None:
                    attempt = 0
                    delay = retry_after_header(response)
                elif response.status_code in SERVER_ERRORS and attempt < MAX_ATTEMPTS:
                    delay = retry_after_header(response, BACKOFF_FACTOR * 2 ** (attempt - 1))
                else:
                    return response
                self._logger.debug(
                    "%s: %s answered %d, retrying in %.1fs",
                    self.name,
                    url,
                    response.status_code,
                    delay,
                )
            if not ctx.sleep(delay):
                raise Cancelled(f"cancelled while waiting to retry {url}")

    def _get(self, url: str, ctx: RunContext, **kwargs: Any) -> Response:
        return self._request("GET", url, ctx, **kwargs)

    def _post(self, url: str, ctx: RunContext, **kwargs: Any) -> Response:
        return self._request("POST", url, ctx, **kwargs)

    @staticmethod
    def _ensure_ok(response: Response, url: str) -> Response:
        if response.status_code == 429:
            raise RateLimitExceeded(f"quota exhausted for {url}", retry_after_header(response))
        if response.status_code != 200:
            raise TransportError(f"unexpected status {response.status_code} for {url}")
        return response

    @staticmethod
    def _decode(response: Response, url: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(f"invalid JSON from {url}: {exc}") from exc

    def _get_json(self, url: str, ctx: RunContext, **kwargs: Any) -> Any:
        response = self._ensure_ok(self._get(url, ctx, **kwargs), url)
        return self._decode(response, url)

    def _get_json_with_key(
        self, url: str, ctx: RunContext, request: Callable[[Credential], dict[str, Any]]
    ) -> Any:
        """GET ``url`` with request arguments built from a rotated credential.

        A quota rejection backs that credential off and the request is retried.
        """
        while True:
            ctx.check()
            credential = self.rotator.acquire(ctx)
            try:
                return self._get_json(url, ctx, **request(credential))
            except RateLimitExceeded as exc:
                self._logger.debug("%s: %s", self.name, exc)
                self.rotator.mark_exhausted(exc.retry_after, credential)

    def _scoped(
        self, scope: ScopeFilter, candidates: Iterable[Any], *, source: str | None = None
    ) -> Iterator[Result]:
        """Yield URL results for the in-scope candidates, dropping everything else."""
        for candidate in candidates:
            if not isinstance(candidate, str):
                continue
            normalized, in_scope = scope.examine(candidate)
            if in_scope:
                yield Result.url(source or self.name, normalized)
