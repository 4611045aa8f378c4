"""Wayback Machine CDX server, with optional passes over archived robots.txt and page sources."""

from __future__ import annotations

import re
from collections.abc import Iterator
from functools import partial
from typing import Any
from urllib.parse import urljoin, urlsplit

from ..context import RunContext
from ..errors import DecodeError, TransportError
from ..extraction import build_url_regex, dedupe_preserve_order, extract_urls
from ..models import Result
from ..scope import ScopeFilter
from ..streams import fan_in
from .base import BaseSource

CDX_URL = "https://web.archive.org/cdx/search/cdx"
CONTENT_URL = "https://web.archive.org/web/{timestamp}if_/{original}"
PAGE_WORKERS = 3
NOT_FOUND_MARKER = "This page can't be displayed. Please use the correct URL address to access"

MEDIA_REGEX = re.compile(
    r"\.(?:apng|bpm|png|bmp|gif|heif|ico|cur|jpg|jpeg|jfif|pjp|pjpeg|psd|raw|svg|tif|tiff|webp"
    r"|xbm|3gp|aac|flac|mpg|mpeg|mp3|mp4|m4a|m4v|m4p|oga|ogg|ogv|mov|wav|webm|eot|woff|woff2"
    r"|ttf|otf|pdf)(?:\?|#|$)",
    re.IGNORECASE,
)
ROBOTS_REGEX = re.compile(r"^https?://[^ \"]+/robots\.txt$", re.IGNORECASE)
DISALLOW_REGEX = re.compile(r"^\s*Disallow:\s*(\S+)", re.IGNORECASE | re.MULTILINE)
LINK_REGEX = re.compile(r"""(?:href|src|action)\s*=\s*["']([^"'\s<>]+)["']""", re.IGNORECASE)
SKIPPED_LINK_PREFIXES = ("#", "javascript:", "mailto:", "tel:", "data:", "/web/")


def disallowed_paths(robots: str) -> list[str]:
    """Return the ``Disallow`` paths of a robots.txt body, wildcards removed and slashes trimmed."""
    paths: list[str] = []
    for match in DISALLOW_REGEX.finditer(robots):
        value = match.group(1)
        if value in ("/", "*"):
            continue
        value = value.replace("*", "").rstrip("$").strip("/")
        if value:
            paths.append(value)
    return dedupe_preserve_order(paths)


def relative_links(content: str, base_url: str) -> list[str]:
    """Resolve the relative href/src/action links of an HTML page against ``base_url``."""
    links: list[str] = []
    for match in LINK_REGEX.finditer(content):
        link = match.group(1)
        if "//" in link or link.lower().startswith(SKIPPED_LINK_PREFIXES):
            continue
        links.append(urljoin(base_url, link))
    return links


class WaybackSource(BaseSource):
    """Asks the CDX server for its page count up front, then fetches pages in parallel.

    Every page request goes through the shared limiter, so the parallel page
    workers together stay within the archive's request budget.

    With ``parse_robots`` every archived robots.txt is fetched from its
    snapshots and its ``Disallow`` paths are reported under ``wayback:robots``.
    With ``parse_source`` every other non-media URL has its snapshots fetched
    and the links found in them are reported under ``wayback:source``.
    """

    name = "wayback"
    requests_per_minute = 40

    def __init__(
        self,
        *,
        page_workers: int = PAGE_WORKERS,
        parse_robots: bool = False,
        parse_source: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._page_workers = page_workers
        self._parse_robots = parse_robots
        self._parse_source = parse_source

    @staticmethod
    def query(scope: ScopeFilter) -> dict[str, str]:
        target = f"*.{scope.domain}/*" if scope.config.include_subdomains else f"{scope.domain}/*"
        return {"url": target, "output": "txt", "fl": "original", "collapse": "urlkey"}

    def page_count(self, scope: ScopeFilter, ctx: RunContext) -> int:
        params = {**self.query(scope), "showNumPages": "true"}
        response = self._ensure_ok(self._get(CDX_URL, ctx, params=params), CDX_URL)
        try:
            return int(response.text.strip() or 0)
        except ValueError as exc:
            raise DecodeError(f"invalid page count from {CDX_URL}: {response.text[:80]!r}") from exc

    def collect(self, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        pages = list(range(self.page_count(scope, ctx)))
        workers = max(1, min(self._page_workers, len(pages)))
        producers = [
            partial(self._fetch_pages, pages[index::workers], scope, ctx)
            for index in range(workers)
            if pages[index::workers]
        ]
        yield from fan_in(producers, ctx, on_error=self._page_failed, thread_name_prefix="wayback")

    def _page_failed(self, _index: int, exc: Exception) -> Result:
        self._logger.debug("%s: page worker failed: %s", self.name, exc)
        return Result.failure(self.name, exc)

    def _fetch_pages(self, pages: list[int], scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        for page in pages:
            ctx.check()
            params = {**self.query(scope), "page": str(page)}
            response = self._ensure_ok(self._get(CDX_URL, ctx, params=params), CDX_URL)
            found = list(self._scoped(scope, response.text.splitlines()))
            yield from found
            if self._parse_robots or self._parse_source:
                for result in found:
                    yield from self._expand(result.value, scope, ctx)

    def _expand(self, url: str, scope: ScopeFilter, ctx: RunContext) -> Iterator[Result]:
        if MEDIA_REGEX.search(url):
            return
        try:
            if ROBOTS_REGEX.match(url):
                if self._parse_robots:
                    yield from self._scoped(
                        scope, self._robots_urls(url, ctx), source=f"{self.name}:robots"
                    )
            elif self._parse_source:
                yield from self._scoped(
                    scope, self._source_urls(url, scope, ctx), source=f"{self.name}:source"
                )
        except (TransportError, DecodeError) as exc:
            self._logger.debug("%s: skipping snapshots of %s: %s", self.name, url, exc)

    def snapshots(
        self, url: str, ctx: RunContext, *, successful_only: bool = False
    ) -> list[tuple[str, str]]:
        """Return ``(timestamp, original)`` pairs of the distinct archived captures of ``url``."""
        params = {"url": url, "output": "json", "fl": "timestamp,original", "collapse": "digest"}
        if successful_only:
            params["filter"] = "statuscode:200"
        response = self._ensure_ok(self._get(CDX_URL, ctx, params=params), CDX_URL)
        rows = self._decode(response, CDX_URL)
        if not isinstance(rows, list):
            raise DecodeError(f"unexpected snapshot listing from {CDX_URL}")
        # The first row holds the field names.
        return [
            (str(row[0]), str(row[1]))
            for row in rows[1:]
            if isinstance(row, list) and len(row) >= 2
        ]

    def snapshot_content(self, timestamp: str, original: str, ctx: RunContext) -> str:
        url = CONTENT_URL.format(timestamp=timestamp, original=original)
        content = self._ensure_ok(self._get(url, ctx), url).text
        return "" if NOT_FOUND_MARKER in content else content

    def _robots_urls(self, url: str, ctx: RunContext) -> Iterator[str]:
        parts = urlsplit(url)
        for timestamp, original in self.snapshots(url, ctx, successful_only=True):
            ctx.check()
            for path in disallowed_paths(self.snapshot_content(timestamp, original, ctx)):
                yield f"{parts.scheme}://{parts.netloc}/{path}"

    def _source_urls(self, url: str, scope: ScopeFilter, ctx: RunContext) -> Iterator[str]:
        pattern = build_url_regex(scope.domain)
        for timestamp, original in self.snapshots(url, ctx):
            ctx.check()
            content = self.snapshot_content(timestamp, original, ctx)
            if not content:
                continue
            yield from dedupe_preserve_order(
                extract_urls(content, pattern) + relative_links(content, url)
            )
