"""GitHub code search."""

from __future__ import annotations

import time
from collections.abc import Iterator
from typing import Any

from requests import Response

from ..context import RunContext
from ..errors import DecodeError, TransportError
from ..extraction import build_url_regex, dedupe_preserve_order, extract_urls, raw_content_url
from ..models import Result
from ..scope import ScopeFilter
from .base import DEFAULT_RETRY_AFTER, BaseSource

SEARCH_URL = "https://api.github.com/search/code"
PAGE_SIZE = 100
QUOTA_STATUSES = frozenset({403, 429})


def retry_after_seconds(response: Response, *, now: float | None = None) -> float | None:
    """Return the backoff a quota rejection asks for, or None if this is not a quota rejection."""
    if response.status_code not in QUOTA_STATUSES:
        return None
    headers = response.headers
    remaining = headers.get("X-RateLimit-Remaining")
    retry_after = headers.get("Retry-After")
    if response.status_code == 403 and remaining != "0" and retry_after is None:
        return None
    if retry_after and retry_after.isdigit():
        return float(retry_after)
    reset = headers.get("X-RateLimit-Reset")
    if reset and reset.isdigit():
        return max(1.0, float(reset) - (time.time() if now is None else now))
    return DEFAULT_RETRY_AFTER


class GitHubSource(BaseSource):
    """Searches code for the domain and scrapes URLs from every matching file.

    Each search page is requested with a credential from the shared rotator; a
    quota rejection puts that credential into backoff and the same page is
    retried. Pages are chained through the ``Link: rel="next"`` header.
    """

    name = "github"
    requires_keys = True

    def collect(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        pattern = build_url_regex(scope.domain)
        next_url: str | None = SEARCH_URL
        params: dict[str, Any] | None = {
            "q": f'"{scope.domain}"',
            "per_page": PAGE_SIZE,
            "sort": "created",
            "order": "asc",
        }
        while next_url:
            ctx.check()
            response = self._search(next_url, params, ctx)
            payload = self._decode(response, next_url)
            if not isinstance(payload, dict):
                raise DecodeError(f"unexpected payload from {next_url}")
            for item in payload.get("items") or []:
                if isinstance(item, dict):
                    yield from self._scrape_item(item, pattern, scope, ctx)
            next_url = (response.links.get("next") or {}).get("url")
            # The next link already carries the query string.
            params = None

    def _search(self, url: str, params: dict[str, Any] | None, ctx: RunContext) -> Response:
        while True:
            ctx.check()
            credential = self.rotator.acquire(ctx)
            response = self._get(
                url,
                ctx,
                params=params,
                headers={
                    "Accept": "application/vnd.github.v3.text-match+json",
                    "Authorization": f"token {credential.secret}",
                },
            )
            backoff = retry_after_seconds(response)
            if backoff is not None:
                self._logger.debug("%s: quota hit, backing off %.0fs", self.name, backoff)
                self.rotator.mark_exhausted(backoff, credential)
                continue
            return self._ensure_ok(response, url)

    def _scrape_item(
        self, item: dict[str, Any], pattern: Any, scope: ScopeFilter, ctx: RunContext
    ) -> Iterator[Result]:
        candidates: list[str] = []
        html_url = item.get("html_url")
        if isinstance(html_url, str) and html_url:
            content_url = raw_content_url(html_url)
            try:
                response = self._get(content_url, ctx)
            except TransportError as exc:
                yield Result.failure(self.name, exc)
            else:
                if response.status_code == 200:
                    candidates.extend(extract_urls(response.text, pattern))
        for match in item.get("text_matches") or []:
            if isinstance(match, dict):
                candidates.extend(extract_urls(match.get("fragment") or "", pattern))
        yield from self._scoped(scope, dedupe_preserve_order(candidates))
