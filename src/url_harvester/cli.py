"""CLI entrypoint for url-harvester."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from typing import TextIO

from .config import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_REQUEST_TIMEOUT,
    HarvestConfig,
    keys_from_env,
    load_keys_file,
)
from .errors import ConfigError
from .logging_utils import configure_logging, get_logger
from .pipeline import run_pipeline
from .sources.registry import SOURCES
from .validation import load_lines_from_file, normalize_domain


def _split_csv(values: list[str] | None) -> list[str]:
    output: list[str] = []
    for value in values or []:
        output.extend(part.strip() for part in value.split(",") if part.strip())
    return output


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(
        prog="url-harvester",
        description="Passive URL discovery across web archives, crawl indexes and threat-intel APIs.",
    )
    parser.add_argument(
        "-c",
        "--configuration",
        default=str(DEFAULT_CONFIG_PATH),
        help="YAML file holding provider keys (default: %(default)s).",
    )
    parser.add_argument(
        "-d", "--domain", action="append", help="Target domain (repeatable or comma separated)."
    )
    parser.add_argument("-l", "--list", help="Path to target domains file (one per line).")
    parser.add_argument(
        "--include-subdomains", action="store_true", help="Keep URLs on subdomains too."
    )
    parser.add_argument("--sources", action="store_true", help="List available sources and exit.")
    parser.add_argument(
        "-u", "--use-sources", action="append", help="Comma separated sources to use."
    )
    parser.add_argument(
        "-e", "--exclude-sources", action="append", help="Comma separated sources to exclude."
    )
    parser.add_argument("-f", "--filter", help="Regex; drop URLs whose path matches it.")
    parser.add_argument("-m", "--match", help="Regex; keep only URLs whose path matches it.")
    parser.add_argument(
        "--parse-wayback-robots",
        action="store_true",
        help="Also report Disallow paths from archived robots.txt snapshots.",
    )
    parser.add_argument(
        "--parse-wayback-source",
        action="store_true",
        help="Also report links found in archived page snapshots (slow).",
    )
    parser.add_argument("--json", action="store_true", help="Write results as JSON lines.")
    parser.add_argument("-o", "--output", help="Output file path.")
    parser.add_argument(
        "-O", "--output-directory", help="Write one output file per domain into this directory."
    )
    parser.add_argument(
        "--timeout", type=float, default=None, help="Deadline in seconds for each domain."
    )
    parser.add_argument(
        "--request-timeout",
        type=float,
        default=DEFAULT_REQUEST_TIMEOUT,
        help="Timeout in seconds for each HTTP request.",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable tqdm progress bars.")
    parser.add_argument("-s", "--silent", action="store_true", help="Only print URLs.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse and pre-validate CLI input."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.output and args.output_directory:
        parser.error("--output and --output-directory are mutually exclusive.")
    return args


def _materialize_domains(args: argparse.Namespace, stdin: TextIO | None) -> tuple[str, ...]:
    raw = _split_csv(args.domain)
    if args.list:
        raw.extend(load_lines_from_file(args.list))
    if stdin is not None and not stdin.isatty():
        raw.extend(line.strip() for line in stdin if line.strip())
    domains = [normalize_domain(value) for value in raw]
    return tuple(dict.fromkeys(domain for domain in domains if domain))


def namespace_to_config(args: argparse.Namespace, stdin: TextIO | None = None) -> HarvestConfig:
    """Convert CLI args to validated HarvestConfig."""
    logger = get_logger()
    explicit_config = args.configuration != str(DEFAULT_CONFIG_PATH)
    keys = load_keys_file(args.configuration, required=explicit_config).merged(keys_from_env())
    domains = _materialize_domains(args, stdin)

    sources_to_use = tuple(name.lower() for name in _split_csv(args.use_sources))
    missing = [
        name
        for name in (sources_to_use or tuple(SOURCES))
        if name in SOURCES and SOURCES[name].requires_keys and not keys.for_source(name)
    ]
    if keys.configured():
        logger.debug("Keys configured for: %s", ", ".join(keys.configured()))
    if missing:
        logger.info("No keys configured for: %s (skipped).", ", ".join(missing))

    return HarvestConfig(
        domains=domains,
        include_subdomains=args.include_subdomains,
        sources_to_use=sources_to_use,
        sources_to_exclude=tuple(name.lower() for name in _split_csv(args.exclude_sources)),
        keys=keys,
        filter_pattern=args.filter,
        match_pattern=args.match,
        output=args.output,
        output_directory=args.output_directory,
        json_output=args.json,
        request_timeout=args.request_timeout,
        run_timeout=args.timeout,
        show_progress=not (args.no_progress or args.silent),
        parse_wayback_robots=args.parse_wayback_robots,
        parse_wayback_source=args.parse_wayback_source,
    )


def list_sources(stream: TextIO) -> None:
    stream.write(f"{len(SOURCES)} sources; those marked with * take API keys.\n")
    for name, source in SOURCES.items():
        stream.write(f"> {name}{' *' if source.requires_keys else ''}\n")


def main(argv: Sequence[str] | None = None, stdin: TextIO | None = None) -> int:
    """CLI entrypoint."""
    args = parse_args(argv)
    configure_logging(args.verbose, args.silent)
    logger = get_logger()
    if args.sources:
        list_sources(sys.stdout)
        return 0
    try:
        config = namespace_to_config(args, stdin=sys.stdin if stdin is None else stdin)
    except (ConfigError, OSError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    total = run_pipeline(config, logger=logger)
    logger.info("Found %d unique URLs in total.", total)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
