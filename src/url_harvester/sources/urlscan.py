"""urlscan.io search API."""

from __future__ import annotations

from collections.abc import Iterator

from ..context import RunContext
from ..errors import DecodeError
from ..models import Result
from ..scope import ScopeFilter
from .base import DEFAULT_RETRY_AFTER, BaseSource

API_URL = "https://urlscan.io/api/v1/search/"
PAGE_SIZE = 100


class URLScanSource(BaseSource):
    """Cursor-chained search: each page is requested with the last hit's ``sort`` value."""

    name = "urlscan"
    requires_keys = True

    def collect(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        search_after: str | None = None
        while True:
            ctx.check()
            credential = self.rotator.acquire(ctx)
            params: dict[str, str | int] = {"q": f"domain:{scope.domain}", "size": PAGE_SIZE}
            if search_after:
                params["search_after"] = search_after
            response = self._get(
                API_URL, ctx, params=params, headers={"API-Key": credential.secret}
            )
            if response.status_code == 429:
                retry_after = response.headers.get("X-Rate-Limit-Reset-After") or ""
                self.rotator.mark_exhausted(
                    float(retry_after) if retry_after.isdigit() else DEFAULT_RETRY_AFTER,
                    credential,
                )
                continue
            self._ensure_ok(response, API_URL)
            payload = self._decode(response, API_URL)
            if not isinstance(payload, dict):
                raise DecodeError(f"unexpected payload from {API_URL}")
            hits = [hit for hit in payload.get("results") or [] if isinstance(hit, dict)]
            yield from self._scoped(scope, ((hit.get("page") or {}).get("url") for hit in hits))
            if not payload.get("has_more") or not hits:
                return
            sort = hits[-1].get("sort") or []
            if not sort:
                return
            search_after = ",".join(str(value) for value in sort)
