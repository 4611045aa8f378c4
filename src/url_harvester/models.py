"""Protocols and lightweight model types."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .context import RunContext
    from .scope import ScopeFilter


class ResultType(Enum):
    URL = "url"
    ERROR = "error"


@dataclass(frozen=True)
class Result:
    """One item of a source stream: either an in-scope URL or an error."""

    type: ResultType
    source: str
    value: str = ""
    error: Exception | None = None

    @classmethod
    def url(cls, source: str, value: str) -> Result:
        return cls(type=ResultType.URL, source=source, value=value)

    @classmethod
    def failure(cls, source: str, error: Exception) -> Result:
        return cls(type=ResultType.ERROR, source=source, error=error)

    @property
    def is_url(self) -> bool:
        return self.type is ResultType.URL


@dataclass(frozen=True)
class ScopeConfig:
    """Scope policy for one run."""

    domain: str
    include_subdomains: bool = False
    exclude_pattern: str | None = None
    match_pattern: str | None = None


@dataclass(frozen=True)
class DiscoveredURL:
    """A deduplicated URL with every provider that reported it."""

    domain: str
    url: str
    source: str
    sources: tuple[str, ...]


class Source(Protocol):
    """Contract for URL providers."""

    name: str

    def run(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        """Yield results for the scope's domain until the provider is exhausted."""
