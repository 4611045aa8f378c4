"""Intelligence X phonebook search."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from ..context import RunContext
from ..errors import Cancelled, DecodeError, RateLimitExceeded
from ..extraction import is_email
from ..models import Result
from ..scope import ScopeFilter
from .base import BaseSource, retry_after_header

MAX_RESULTS = 100000
RESULT_LIMIT = 10000
POLL_INTERVAL = 1.0
# Phonebook result status: 0 results so far, 1 finished, 2 unknown id, 3 no results yet.
STATUS_MORE = 0
STATUS_PENDING = 3


def split_key(key: str) -> tuple[str, str]:
    """Split a ``host:key`` credential; malformed values give empty parts."""
    host, _, secret = key.partition(":")
    return host.strip(), secret.strip()


class IntelXSource(BaseSource):
    """Starts a phonebook search, then polls its results until the search finishes.

    A quota rejection of the search request backs the key off and the search
    is started again with the next key. The search id is bound to the key that
    created it, so a rejected poll waits out ``Retry-After`` and asks again.
    """

    name = "intelx"
    requires_keys = True

    def collect(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        search = self._start_search(scope, ctx)
        if search is None:
            return
        host, secret, search_id = search

        results_url = f"https://{host}/phonebook/search/result"
        params = {"k": secret, "id": search_id, "limit": RESULT_LIMIT}
        status = STATUS_PENDING
        while status in (STATUS_MORE, STATUS_PENDING):
            ctx.check()
            payload = self._poll(results_url, params, ctx)
            if not isinstance(payload, dict):
                raise DecodeError(f"unexpected payload from {results_url}")
            status = payload.get("status", 1)
            selectors = payload.get("selectors") or []
            values = (
                selector.get("selectorvalue")
                for selector in selectors
                if isinstance(selector, dict)
            )
            yield from self._scoped(
                scope, (value for value in values if isinstance(value, str) and not is_email(value))
            )
            if status == STATUS_PENDING and not ctx.sleep(POLL_INTERVAL):
                return

    def _start_search(self, scope: ScopeFilter, ctx: RunContext) -> tuple[str, str, str] | None:
        while True:
            ctx.check()
            credential = self.rotator.acquire(ctx)
            host, secret = split_key(credential.secret)
            if not host or not secret:
                self._logger.debug("%s: key must be formatted as host:key", self.name)
                return None

            search_url = f"https://{host}/phonebook/search"
            response = self._post(
                search_url,
                ctx,
                params={"k": secret},
                json={
                    "term": scope.domain,
                    "maxresults": MAX_RESULTS,
                    "media": 0,
                    "target": 3,
                    "timeout": 20,
                },
            )
            if response.status_code == 429:
                self._logger.debug("%s: quota hit on %s, rotating key", self.name, host)
                self.rotator.mark_exhausted(retry_after_header(response), credential)
                continue
            search = self._decode(self._ensure_ok(response, search_url), search_url)
            if not isinstance(search, dict) or not search.get("id"):
                raise DecodeError(f"no search id returned by {search_url}")
            return host, secret, str(search["id"])

    def _poll(self, url: str, params: dict[str, Any], ctx: RunContext) -> Any:
        while True:
            try:
                return self._get_json(url, ctx, params=params)
            except RateLimitExceeded as exc:
                self._logger.debug("%s: %s", self.name, exc)
                if not ctx.sleep(exc.retry_after):
                    raise Cancelled("cancelled while waiting for phonebook quota") from exc
