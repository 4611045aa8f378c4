"""Name -> source class table."""

from __future__ import annotations

from collections.abc import Iterable

from ..errors import ConfigError
from .base import BaseSource
from .bevigil import BevigilSource
from .commoncrawl import CommonCrawlSource
from .github import GitHubSource
from .hudsonrock import HudsonRockSource
from .intelx import IntelXSource
from .otx import OTXSource
from .urlscan import URLScanSource
from .virustotal import VirusTotalSource
from .wayback import WaybackSource

SOURCES: dict[str, type[BaseSource]] = {
    source.name: source
    for source in (
        BevigilSource,
        CommonCrawlSource,
        GitHubSource,
        HudsonRockSource,
        IntelXSource,
        OTXSource,
        URLScanSource,
        VirusTotalSource,
        WaybackSource,
    )
}
SOURCE_NAMES: tuple[str, ...] = tuple(SOURCES)
KEYED_SOURCES: tuple[str, ...] = tuple(
    name for name, source in SOURCES.items() if source.requires_keys
)


def unknown_sources(
    names: Iterable[str], registry: dict[str, type[BaseSource]] | None = None
) -> list[str]:
    table = SOURCES if registry is None else registry
    return sorted({name for name in names if name not in table})


def resolve_sources(
    use: Iterable[str],
    exclude: Iterable[str],
    registry: dict[str, type[BaseSource]] | None = None,
) -> list[str]:
    """Resolve requested source names (default: all) minus exclusions, in registry order."""
    table = SOURCES if registry is None else registry
    use = [name.strip().lower() for name in use if name.strip()]
    exclude = [name.strip().lower() for name in exclude if name.strip()]
    unknown = unknown_sources([*use, *exclude], table)
    if unknown:
        raise ConfigError(f"Unknown source(s): {', '.join(unknown)}.")
    selected = set(use or table)
    return [name for name in table if name in selected and name not in set(exclude)]
