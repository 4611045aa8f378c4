"""First-seen-wins deduplication of collector output."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .models import Result


class DedupSet:
    """Maps each normalized URL to the providers that reported it.

    Not synchronized: exactly one consumer may feed it.
    """

    def __init__(self) -> None:
        self._sources: dict[str, set[str]] = {}

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, url: object) -> bool:
        return url in self._sources

    def add(self, url: str, source: str) -> bool:
        """Record a sighting; return True only the first time the URL is seen."""
        sources = self._sources.get(url)
        if sources is None:
            self._sources[url] = {source}
            return True
        sources.add(source)
        return False

    def sources_for(self, url: str) -> tuple[str, ...]:
        return tuple(sorted(self._sources.get(url, ())))

    def items(self) -> Iterator[tuple[str, tuple[str, ...]]]:
        for url in self._sources:
            yield url, self.sources_for(url)

    def unique(self, results: Iterable[Result]) -> Iterator[Result]:
        """Forward errors and first sightings; later duplicates only extend attribution."""
        for result in results:
            if not result.is_url:
                yield result
                continue
            if self.add(result.value, result.source):
                yield result
