"""Scope checks and URL normalization."""

from __future__ import annotations

import re
from urllib.parse import urlsplit, urlunsplit

import tldextract

from .models import ScopeConfig

DEFAULT_PORTS = {"http": 80, "https": 443}
SUPPORTED_SCHEMES = frozenset(DEFAULT_PORTS)
LEADING_CHARS = "\"'`<>()[]{},;"
TRAILING_CHARS = "\"'`<>,;"
CLOSING_BRACKETS = {")": "(", "]": "[", "}": "{"}
HOST_REGEX = re.compile(r"^[a-z0-9_](?:[a-z0-9_.-]*[a-z0-9_])?$")

# Bundled public suffix snapshot only; never fetched over the network.
PUBLIC_SUFFIXES = tldextract.TLDExtract(suffix_list_urls=())


def registrable_domain(host: str) -> str:
    """Return the eTLD+1 for a hostname, or the hostname itself when it has no public suffix."""
    host = host.lower().rstrip(".")
    parts = PUBLIC_SUFFIXES(host)
    if parts.domain and parts.suffix:
        return f"{parts.domain}.{parts.suffix}"
    return host


def _with_scheme(value: str) -> str:
    if value.startswith("//"):
        return "https:" + value
    if value.startswith("://"):
        return "https" + value
    if "://" not in value:
        return "https://" + value
    return value


def _strip_artifacts(candidate: str) -> str:
    """Drop quotes and punctuation around a candidate.

    A trailing bracket is removed only when it has no opening partner inside
    the candidate, so '/wiki/Foo_(bar)' survives while '(https://x.com/a)' does not.
    """
    value = candidate.strip().lstrip(LEADING_CHARS).strip()
    while True:
        trimmed = value.rstrip(TRAILING_CHARS).rstrip()
        closer = trimmed[-1:]
        if closer in CLOSING_BRACKETS and trimmed.count(closer) > trimmed.count(
            CLOSING_BRACKETS[closer]
        ):
            trimmed = trimmed[:-1]
        if trimmed == value:
            return value
        value = trimmed


class ScopeFilter:
    """Decide whether candidates belong to the target and return their canonical form.

    Instances hold only immutable state, so one filter is shared by every worker
    thread of a run without locking.
    """

    def __init__(self, config: ScopeConfig) -> None:
        self.config = config
        self.domain = config.domain.strip().lower().rstrip(".")
        self.registrable = registrable_domain(self.domain)
        self._exclude = re.compile(config.exclude_pattern) if config.exclude_pattern else None
        self._match = re.compile(config.match_pattern) if config.match_pattern else None

    def host_in_scope(self, host: str) -> bool:
        if registrable_domain(host) != self.registrable:
            return False
        if host == self.domain or host == "www." + self.domain:
            return True
        return self.config.include_subdomains and host.endswith("." + self.domain)

    def examine(self, candidate: str) -> tuple[str, bool]:
        """Return ``(normalized, in_scope)``; malformed input is simply out of scope."""
        value = _strip_artifacts(candidate or "")
        if not value or any(char.isspace() for char in value):
            return "", False
        value = _with_scheme(value)
        try:
            parts = urlsplit(value)
            port = parts.port
        except ValueError:
            return "", False

        scheme = parts.scheme.lower()
        host = (parts.hostname or "").rstrip(".")
        if scheme not in SUPPORTED_SCHEMES or not host:
            return "", False
        if parts.username is not None or parts.password is not None:
            return "", False
        if not HOST_REGEX.match(host):
            return "", False
        if not self.host_in_scope(host):
            return "", False

        path = parts.path.rstrip("/")
        target = path or "/"
        if self._exclude is not None and self._exclude.search(target):
            return "", False
        if self._match is not None and not self._match.search(target):
            return "", False

        netloc = host if port in (None, DEFAULT_PORTS[scheme]) else f"{host}:{port}"
        return urlunsplit((scheme, netloc, path, parts.query, "")), True

    def __call__(self, candidate: str) -> tuple[str, bool]:
        return self.examine(candidate)
