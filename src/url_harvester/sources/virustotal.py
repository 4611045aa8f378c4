"""VirusTotal v2 domain report."""

from __future__ import annotations

from collections.abc import Iterator

from ..context import RunContext
from ..errors import DecodeError
from ..models import Result
from ..scope import ScopeFilter
from .base import BaseSource

API_URL = "https://www.virustotal.com/vtapi/v2/domain/report"


def _report_candidates(payload: dict) -> Iterator[str]:
    for entry in payload.get("detected_urls") or []:
        if isinstance(entry, dict):
            yield entry.get("url") or ""
        elif isinstance(entry, list) and entry:
            yield entry[0]
    for entry in payload.get("undetected_urls") or []:
        if isinstance(entry, list) and entry:
            yield entry[0]
        elif isinstance(entry, dict):
            yield entry.get("url") or ""
    for subdomain in payload.get("subdomains") or []:
        yield subdomain


class VirusTotalSource(BaseSource):
    """Public API keys allow four requests per minute; the limiter enforces it."""

    name = "virustotal"
    requires_keys = True
    requests_per_minute = 4
    minimum_delay = 15.0

    def collect(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        payload = self._get_json_with_key(
            API_URL,
            ctx,
            lambda credential: {"params": {"apikey": credential.secret, "domain": scope.domain}},
        )
        if not isinstance(payload, dict):
            raise DecodeError(f"unexpected payload from {API_URL}")
        yield from self._scoped(scope, _report_candidates(payload))
