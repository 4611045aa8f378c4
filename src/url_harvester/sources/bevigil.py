"""BeVigil OSINT API."""

from __future__ import annotations

from collections.abc import Iterator

from ..context import RunContext
from ..errors import DecodeError
from ..models import Result
from ..scope import ScopeFilter
from .base import BaseSource


class BevigilSource(BaseSource):
    name = "bevigil"
    requires_keys = True

    def collect(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        url = f"https://osint.bevigil.com/api/{scope.domain}/urls/"
        payload = self._get_json_with_key(
            url, ctx, lambda credential: {"headers": {"X-Access-Token": credential.secret}}
        )
        if not isinstance(payload, dict):
            raise DecodeError(f"unexpected payload from {url}")
        yield from self._scoped(scope, payload.get("urls") or [])
