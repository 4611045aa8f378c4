"""Common Crawl CDX index servers, queried one worker per group of index shards."""

from __future__ import annotations

import json
from collections.abc import Iterator
from functools import partial
from typing import Any

from ..context import RunContext
from ..errors import DecodeError, TransportError
from ..models import Result
from ..scope import ScopeFilter
from ..streams import fan_in
from .base import BaseSource

COLLECTIONS_URL = "https://index.commoncrawl.org/collinfo.json"
SHARD_WORKERS = 4


def _shard_groups(apis: list[str], workers: int) -> list[list[str]]:
    groups = [apis[index::workers] for index in range(max(1, workers))]
    return [group for group in groups if group]


class CommonCrawlSource(BaseSource):
    name = "commoncrawl"

    def __init__(self, *, shard_workers: int = SHARD_WORKERS, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._shard_workers = shard_workers

    def collect(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        collections = self._get_json(COLLECTIONS_URL, ctx)
        if not isinstance(collections, list):
            raise DecodeError(f"unexpected payload from {COLLECTIONS_URL}")
        apis = [
            item["cdx-api"]
            for item in collections
            if isinstance(item, dict) and isinstance(item.get("cdx-api"), str)
        ]
        producers = [
            partial(self._query_shards, group, scope, ctx)
            for group in _shard_groups(apis, self._shard_workers)
        ]
        yield from fan_in(
            producers, ctx, on_error=self._shard_failed, thread_name_prefix="commoncrawl"
        )

    def _shard_failed(self, _index: int, exc: Exception) -> Result:
        self._logger.debug("%s: shard failed: %s", self.name, exc)
        return Result.failure(self.name, exc)

    def _query_shards(self, apis: list[str], scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        for api in apis:
            ctx.check()
            try:
                yield from self._query_index(api, scope, ctx)
            except (TransportError, DecodeError) as exc:
                yield self._shard_failed(0, exc)

    def _query_index(self, api: str, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        response = self._get(
            api, ctx, params={"url": f"*.{scope.domain}/*", "output": "json", "fl": "url"}
        )
        # The index answers 404 when it holds no captures for the query.
        if response.status_code == 404:
            return
        self._ensure_ok(response, api)
        candidates: list[str] = []
        for line in response.text.splitlines():
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except ValueError as exc:
                raise DecodeError(f"invalid JSON line from {api}: {exc}") from exc
            if isinstance(record, dict) and record.get("error"):
                raise DecodeError(f"{api}: {record['error']}")
            if isinstance(record, dict):
                candidates.append(record.get("url"))
        yield from self._scoped(scope, candidates)
