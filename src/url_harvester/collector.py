"""Concurrent fan-out over the enabled sources and fan-in of their results."""

from __future__ import annotations

import logging
from collections.abc import Generator, Iterable, Mapping
from functools import partial
from threading import Lock
from typing import Any

from requests import Session

from .config import DEFAULT_REQUEST_TIMEOUT, ProviderKeys
from .context import RunContext
from .models import Result, ScopeConfig, Source
from .ratelimit import RateLimiter
from .scope import ScopeFilter
from .sources.base import BaseSource
from .sources.registry import SOURCES, resolve_sources
from .streams import fan_in
from .tokens import TokenRotator


class SourceResources:
    """Long-lived objects shared by every source instance: session, limiters and rotators.

    One instance is built per process (or per test) and handed to each
    :class:`Collector`, so quotas and key backoff carry over between domains.
    """

    def __init__(
        self,
        keys: ProviderKeys,
        *,
        session: Session,
        logger: logging.Logger,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        limiters: Mapping[str, RateLimiter] | None = None,
        options: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> None:
        self.keys = keys
        self.options = {name: dict(values) for name, values in (options or {}).items()}
        self.session = session
        self.logger = logger
        self.request_timeout = request_timeout
        self._limiters: dict[str, RateLimiter | None] = dict(limiters or {})
        self._rotators: dict[str, TokenRotator | None] = {}
        self._lock = Lock()

    def limiter_for(self, source: type[BaseSource]) -> RateLimiter | None:
        with self._lock:
            if source.name not in self._limiters:
                self._limiters[source.name] = (
                    RateLimiter(source.requests_per_minute, minimum_delay=source.minimum_delay)
                    if source.requests_per_minute
                    else None
                )
            return self._limiters[source.name]

    def rotator_for(self, source: type[BaseSource]) -> TokenRotator | None:
        with self._lock:
            if source.name not in self._rotators:
                secrets = self.keys.for_source(source.name)
                self._rotators[source.name] = (
                    TokenRotator(secrets, logger=self.logger) if secrets else None
                )
            return self._rotators[source.name]

    def build(self, source: type[BaseSource]) -> BaseSource:
        return source(
            session=self.session,
            timeout=self.request_timeout,
            logger=self.logger,
            limiter=self.limiter_for(source),
            rotator=self.rotator_for(source),
            **self.options.get(source.name, {}),
        )


class Collector:
    """Runs every enabled source for one domain and merges their streams.

    The collector does not deduplicate: whoever drains :meth:`collect` owns
    the :class:`~url_harvester.dedup.DedupSet`.
    """

    def __init__(
        self,
        sources_to_use: Iterable[str],
        sources_to_exclude: Iterable[str],
        keys: ProviderKeys,
        scope_config: ScopeConfig,
        *,
        resources: SourceResources | None = None,
        session: Session | None = None,
        registry: Mapping[str, type[BaseSource]] | None = None,
        logger: logging.Logger,
    ) -> None:
        table = dict(SOURCES if registry is None else registry)
        names = resolve_sources(sources_to_use, sources_to_exclude, table)
        if resources is None:
            if session is None:
                raise ValueError("Collector needs either resources or a session.")
            resources = SourceResources(keys, session=session, logger=logger)
        self._logger = logger
        self.scope = ScopeFilter(scope_config)
        self.sources: dict[str, Source] = {name: resources.build(table[name]) for name in names}

    @property
    def names(self) -> list[str]:
        return list(self.sources)

    def _worker_failed(self, index: int, exc: Exception) -> Result:
        name = self.names[index]
        self._logger.debug("Source %s crashed: %s", name, exc)
        return Result.failure(name, exc)

    def collect(self, ctx: RunContext | None = None) -> Generator[Result, None, None]:
        """Yield results from all sources as they arrive; ends once every source has finished."""
        ctx = ctx or RunContext()
        self._logger.debug(
            "Collecting %s with sources: %s", self.scope.domain, ", ".join(self.names)
        )
        producers = [partial(source.run, self.scope, ctx) for source in self.sources.values()]
        yield from fan_in(
            producers, ctx, on_error=self._worker_failed, thread_name_prefix="source"
        )
