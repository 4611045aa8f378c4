"""AlienVault Open Threat Exchange URL list."""

from __future__ import annotations

from collections.abc import Iterator

from ..context import RunContext
from ..errors import DecodeError
from ..models import Result
from ..scope import ScopeFilter
from .base import BaseSource

PAGE_SIZE = 200


class OTXSource(BaseSource):
    """Walks ``url_list`` pages until the API reports ``has_next: false``."""

    name = "otx"

    def collect(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        url = f"https://otx.alienvault.com/api/v1/indicators/domain/{scope.domain}/url_list"
        page = 1
        while True:
            ctx.check()
            payload = self._get_json(url, ctx, params={"limit": PAGE_SIZE, "page": page})
            if not isinstance(payload, dict):
                raise DecodeError(f"unexpected payload from {url} (page {page})")
            entries = payload.get("url_list") or []
            yield from self._scoped(
                scope, (entry.get("url") for entry in entries if isinstance(entry, dict))
            )
            if not payload.get("has_next") or not entries:
                return
            page += 1
