"""Core orchestration pipeline."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import TextIO

from tqdm import tqdm

from .collector import Collector, SourceResources
from .config import HarvestConfig
from .context import RunContext
from .dedup import DedupSet
from .http import make_session
from .models import DiscoveredURL, Result
from .output import ResultWriter


def build_resources(config: HarvestConfig, *, logger: logging.Logger) -> SourceResources:
    """Build the per-process session, limiters and key rotators."""
    return SourceResources(
        config.keys,
        session=make_session(config.user_agent),
        logger=logger,
        request_timeout=config.request_timeout,
        options=config.source_options(),
    )


def discover(
    domain: str,
    config: HarvestConfig,
    *,
    resources: SourceResources,
    logger: logging.Logger,
    ctx: RunContext | None = None,
    dedup: DedupSet | None = None,
) -> Iterator[Result]:
    """Yield errors and the first sighting of every in-scope URL for one domain."""
    collector = Collector(
        config.sources_to_use,
        config.sources_to_exclude,
        config.keys,
        config.scope_for(domain),
        resources=resources,
        logger=logger,
    )
    ctx = ctx or RunContext(timeout=config.run_timeout)
    dedup = DedupSet() if dedup is None else dedup
    results = collector.collect(ctx)
    try:
        yield from dedup.unique(results)
    finally:
        results.close()


def harvest_records(
    domain: str,
    config: HarvestConfig,
    *,
    resources: SourceResources,
    logger: logging.Logger,
    ctx: RunContext | None = None,
) -> list[DiscoveredURL]:
    """Run discovery to completion and return URLs with their full attribution."""
    dedup = DedupSet()
    first_source: dict[str, str] = {}
    for result in discover(
        domain, config, resources=resources, logger=logger, ctx=ctx, dedup=dedup
    ):
        if result.is_url:
            first_source[result.value] = result.source
        else:
            logger.debug("%s: %s", result.source, result.error)
    return [
        DiscoveredURL(domain=domain, url=url, source=source, sources=dedup.sources_for(url))
        for url, source in first_source.items()
    ]


def _domain_file(writer: ResultWriter, directory: str, domain: str) -> TextIO:
    return writer.create_file(str(Path(directory) / domain))


def run_pipeline(
    config: HarvestConfig,
    *,
    logger: logging.Logger,
    resources: SourceResources | None = None,
    stdout: TextIO | None = None,
) -> int:
    """Discover URLs for every configured domain, stream them to the sinks, return the count."""
    owns_resources = resources is None
    resources = resources or build_resources(config, logger=logger)
    writer = ResultWriter(json_output=config.json_output)
    stdout = stdout or sys.stdout
    shared_file = writer.create_file(config.output) if config.output else None

    domains = list(config.domains)
    iterator = (
        tqdm(domains, desc="domains", unit="domain")
        if config.show_progress and len(domains) > 1
        else domains
    )
    total = 0
    try:
        for domain in iterator:
            logger.info("Finding URLs for %s", domain)
            domain_file = (
                _domain_file(writer, config.output_directory, domain)
                if config.output_directory
                else None
            )
            sinks = [sink for sink in (stdout, shared_file, domain_file) if sink is not None]
            found = 0
            try:
                for result in discover(domain, config, resources=resources, logger=logger):
                    if not result.is_url:
                        logger.debug("%s: %s", result.source, result.error)
                        continue
                    for sink in sinks:
                        writer.write(sink, domain, result)
                    found += 1
            finally:
                if domain_file is not None:
                    domain_file.close()
            logger.info("Found %d unique URLs for %s", found, domain)
            total += found
    finally:
        if shared_file is not None:
            shared_file.close()
        if owns_resources:
            resources.session.close()
    return total
