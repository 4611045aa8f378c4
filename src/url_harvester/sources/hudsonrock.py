"""Hudson Rock infostealer intelligence (URLs by domain)."""

from __future__ import annotations

from collections.abc import Iterator

from ..context import RunContext
from ..errors import DecodeError
from ..models import Result
from ..scope import ScopeFilter
from .base import BaseSource

API_URL = "https://cavalier.hudsonrock.com/api/json/v2/osint-tools/urls-by-domain"


class HudsonRockSource(BaseSource):
    name = "hudsonrock"

    def collect(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        payload = self._get_json(API_URL, ctx, params={"domain": scope.domain})
        if not isinstance(payload, dict):
            raise DecodeError(f"unexpected payload from {API_URL}")
        data = payload.get("data") or {}
        records = list(data.get("employees_urls") or []) + list(data.get("clients_urls") or [])
        yield from self._scoped(
            scope, (record.get("url") for record in records if isinstance(record, dict))
        )
