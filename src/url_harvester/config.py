"""Runtime configuration model."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .models import ScopeConfig
from .validation import validate_runtime_constraints

DEFAULT_USER_AGENT = "url-harvester/1.0 (+passive URL discovery)"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "url-harvester" / "config.yaml"
ENV_PREFIX = "URL_HARVESTER"


def _as_keys(value: Any) -> tuple[str, ...]:
    if value is None:
        return tuple()
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, Iterable):
        raise ConfigError(f"Keys must be a string or a list of strings, got {value!r}.")
    return tuple(str(item).strip() for item in value if str(item).strip())


@dataclass(frozen=True)
class ProviderKeys:
    """API keys per keyed provider; IntelX keys are ``host:key`` pairs."""

    bevigil: tuple[str, ...] = ()
    github: tuple[str, ...] = ()
    intelx: tuple[str, ...] = ()
    urlscan: tuple[str, ...] = ()
    virustotal: tuple[str, ...] = ()

    @classmethod
    def provider_names(cls) -> tuple[str, ...]:
        return tuple(item.name for item in fields(cls))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> ProviderKeys:
        mapping = mapping or {}
        unknown = sorted(set(mapping) - set(cls.provider_names()))
        if unknown:
            raise ConfigError(f"Unknown key provider(s): {', '.join(unknown)}.")
        return cls(**{name: _as_keys(mapping.get(name)) for name in cls.provider_names()})

    def for_source(self, name: str) -> tuple[str, ...]:
        if name not in self.provider_names():
            return tuple()
        return getattr(self, name)

    def merged(self, other: ProviderKeys) -> ProviderKeys:
        """Union of both key sets, keeping first-seen order."""
        return ProviderKeys(
            **{
                name: tuple(dict.fromkeys(self.for_source(name) + other.for_source(name)))
                for name in self.provider_names()
            }
        )

    def configured(self) -> tuple[str, ...]:
        return tuple(name for name in self.provider_names() if self.for_source(name))


def load_keys_file(path: str | os.PathLike[str], *, required: bool = False) -> ProviderKeys:
    """Read the ``keys:`` mapping of a YAML configuration file."""
    config_path = Path(path)
    if not config_path.exists():
        if required:
            raise ConfigError(f"Configuration file not found: {config_path}")
        return ProviderKeys()
    try:
        document = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
    if not isinstance(document, dict):
        raise ConfigError(f"{config_path} must contain a mapping.")
    keys = document.get("keys") or {}
    if not isinstance(keys, dict):
        raise ConfigError(f"'keys' in {config_path} must be a mapping.")
    return ProviderKeys.from_mapping(keys)


def keys_from_env(environ: Mapping[str, str] | None = None) -> ProviderKeys:
    """Read ``URL_HARVESTER_<PROVIDER>_KEYS`` comma separated variables."""
    environ = os.environ if environ is None else environ
    return ProviderKeys.from_mapping(
        {
            name: environ.get(f"{ENV_PREFIX}_{name.upper()}_KEYS")
            for name in ProviderKeys.provider_names()
        }
    )


@dataclass(frozen=True)
class HarvestConfig:
    """Validated configuration used by the discovery pipeline."""

    domains: tuple[str, ...]
    include_subdomains: bool = False
    sources_to_use: tuple[str, ...] = ()
    sources_to_exclude: tuple[str, ...] = ()
    keys: ProviderKeys = field(default_factory=ProviderKeys)
    filter_pattern: str | None = None
    match_pattern: str | None = None
    output: str | None = None
    output_directory: str | None = None
    json_output: bool = False
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    run_timeout: float | None = None
    user_agent: str = DEFAULT_USER_AGENT
    show_progress: bool = True
    parse_wayback_robots: bool = False
    parse_wayback_source: bool = False

    def __post_init__(self) -> None:
        validate_runtime_constraints(
            domains=self.domains,
            sources_to_use=self.sources_to_use,
            sources_to_exclude=self.sources_to_exclude,
            request_timeout=self.request_timeout,
            run_timeout=self.run_timeout,
            filter_pattern=self.filter_pattern,
            match_pattern=self.match_pattern,
        )

    def scope_for(self, domain: str) -> ScopeConfig:
        return ScopeConfig(
            domain=domain,
            include_subdomains=self.include_subdomains,
            exclude_pattern=self.filter_pattern,
            match_pattern=self.match_pattern,
        )

    def source_options(self) -> dict[str, dict[str, Any]]:
        """Constructor options for sources that take more than the shared resources."""
        return {
            "wayback": {
                "parse_robots": self.parse_wayback_robots,
                "parse_source": self.parse_wayback_source,
            }
        }
