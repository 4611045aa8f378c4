"""Fake requests objects and clocks shared by the test modules."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from threading import Lock
from typing import Any

import requests
from requests.structures import CaseInsensitiveDict

from url_harvester.context import RunContext
from url_harvester.models import Result
from url_harvester.scope import ScopeFilter
from url_harvester.sources.base import BaseSource


class FakeResponse:
    def __init__(
        self,
        *,
        status_code: int = 200,
        payload: Any = None,
        text: str | None = None,
        headers: dict[str, str] | None = None,
        links: dict[str, dict[str, str]] | None = None,
    ) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else json.dumps(payload))
        self.headers = CaseInsensitiveDict(headers or {})
        self.links = links or {}

    def json(self) -> Any:
        if self._payload is not None:
            return self._payload
        return json.loads(self.text)


class FakeSession:
    """Routes requests by URL; a list of responses is consumed in order, the last one repeats."""

    def __init__(
        self, routes: dict[str, Any] | None = None, clock: Callable[[], float] | None = None
    ) -> None:
        self.routes = dict(routes or {})
        self.calls: list[dict[str, Any]] = []
        self._clock = clock
        self._lock = Lock()

    def _dispatch(self, method: str, url: str, kwargs: dict[str, Any]) -> FakeResponse:
        with self._lock:
            self.calls.append(
                {
                    "method": method,
                    "url": url,
                    "params": kwargs.get("params"),
                    "headers": kwargs.get("headers") or {},
                    "json": kwargs.get("json"),
                    "at": self._clock() if self._clock else None,
                }
            )
            route = self.routes.get(url)
            if isinstance(route, list):
                route = route.pop(0) if len(route) > 1 else route[0]
        if route is None:
            return FakeResponse(status_code=404, text="not routed")
        if isinstance(route, Exception):
            raise route
        if callable(route) and not isinstance(route, FakeResponse):
            return route(url, **kwargs)
        return route

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._dispatch("GET", url, kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._dispatch("POST", url, kwargs)

    def close(self) -> None:
        return None

    def urls(self) -> list[str]:
        return [call["url"] for call in self.calls]


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeClockContext(RunContext):
    """RunContext whose sleeps advance a fake clock instead of blocking."""

    def __init__(self, clock: FakeClock) -> None:
        super().__init__(clock=clock)
        self.fake_clock = clock
        self.sleeps: list[float] = []

    def sleep(self, seconds: float) -> bool:
        self.sleeps.append(seconds)
        self.fake_clock.advance(max(0.0, seconds))
        return not self.cancelled()


def network_down() -> requests.RequestException:
    return requests.ConnectionError("network down")


class StaticSource(BaseSource):
    """Source that reports a fixed list of candidates."""

    urls: tuple[str, ...] = ()

    def collect(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        yield from self._scoped(scope, self.urls)


class AlphaSource(StaticSource):
    name = "alpha"
    urls = ("https://example.com/shared", "https://example.com/alpha", "https://evil.com/x")


class BetaSource(StaticSource):
    name = "beta"
    urls = ("https://example.com/shared/", "https://www.example.com/beta")


class CrashingSource(BaseSource):
    name = "crashing"

    def collect(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        raise RuntimeError("boom")


class EndlessSource(BaseSource):
    """Paginates forever; only cancellation stops it."""

    name = "endless"

    def collect(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        page = 0
        while True:
            ctx.check()
            page += 1
            yield Result.url(self.name, f"https://{scope.domain}/page/{page}")
