"""Validation and runtime guardrails."""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import urlsplit

from .errors import ConfigError
from .sources.registry import unknown_sources

DOMAIN_REGEX = re.compile(r"^(?=.{1,253}$)(?:[a-z0-9_](?:[a-z0-9_-]{0,61}[a-z0-9])?\.)+[a-z0-9-]{2,63}$")


def normalize_domain(value: str) -> str:
    """Reduce user input (bare domain or URL) to a lowercase hostname."""
    value = value.strip().lower()
    if "://" in value:
        value = urlsplit(value).hostname or ""
    return value.split("/", maxsplit=1)[0].split(":", maxsplit=1)[0].rstrip(".")


def is_valid_domain(value: str) -> bool:
    return bool(DOMAIN_REGEX.match(value))


def load_lines_from_file(path: str) -> list[str]:
    """Load non-empty lines from a UTF-8 text file."""
    content = Path(path).read_text(encoding="utf-8")
    return [line.strip() for line in content.splitlines() if line.strip()]


def compile_pattern(pattern: str | None, option: str) -> re.Pattern[str] | None:
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ConfigError(f"{option} is not a valid regular expression: {exc}") from exc


def validate_runtime_constraints(
    *,
    domains: tuple[str, ...],
    sources_to_use: Iterable[str],
    sources_to_exclude: Iterable[str],
    request_timeout: float,
    run_timeout: float | None,
    filter_pattern: str | None,
    match_pattern: str | None,
) -> None:
    """Validate CLI/runtime configuration and raise ConfigError on invalid values."""
    if not domains:
        raise ConfigError("Provide --domain, --list, or domains on stdin.")
    invalid = [domain for domain in domains if not is_valid_domain(domain)]
    if invalid:
        raise ConfigError(f"Invalid domain(s): {', '.join(invalid)}.")
    unknown = unknown_sources([*sources_to_use, *sources_to_exclude])
    if unknown:
        raise ConfigError(f"Unknown source(s): {', '.join(unknown)}.")
    if request_timeout <= 0:
        raise ConfigError("--request-timeout must be > 0.")
    if run_timeout is not None and run_timeout <= 0:
        raise ConfigError("--timeout must be > 0.")
    compile_pattern(filter_pattern, "--filter")
    compile_pattern(match_pattern, "--match")
