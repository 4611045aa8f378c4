"""Pure URL extraction helpers for free-form provider content."""

from __future__ import annotations

import re
from urllib.parse import unquote

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")
QUOTES = ("'", '"', "`")
BRACKETS = (("[", "]"), ("(", ")"), ("{", "}"))


def build_url_regex(domain: str) -> re.Pattern[str]:
    """Match URLs (scheme optional) whose host is the domain or one of its subdomains."""
    host = r"(?:[a-z0-9_](?:[a-z0-9_-]*[a-z0-9_])?\.)*" + re.escape(domain.lower())
    return re.compile(
        r"(?:https?:)?(?://)?(?<![\w.-])" + host + r"(?::\d{1,5})?(?:[/?#][^\s\"'`<>\\]*)?",
        re.IGNORECASE,
    )


def is_email(value: str) -> bool:
    return bool(EMAIL_REGEX.match(value.strip()))


def normalize_content(content: str) -> str:
    """Percent-decode content and drop escaped tab/newline sequences."""
    return unquote(content).replace("\\t", "").replace("\\n", "")


def _unbalanced_quote(value: str, quote: str) -> int:
    if value.count(quote) % 2 == 0:
        return -1
    return value.index(quote)


def _unbalanced_bracket(value: str, opening: str, closing: str) -> int:
    depth = 0
    first_open = -1
    for index, char in enumerate(value):
        if char == opening:
            if depth == 0:
                first_open = index
            depth += 1
        elif char == closing:
            depth -= 1
            if depth < 0:
                return index
    return first_open if depth > 0 else -1


def fix_url(url: str) -> str:
    """Cut a regex match at the first unbalanced quote or bracket, or at ``;``."""
    fixed = url
    for quote in QUOTES:
        index = _unbalanced_quote(url, quote)
        if 0 <= index <= len(fixed):
            fixed = fixed[:index]
    for opening, closing in BRACKETS:
        index = _unbalanced_bracket(url, opening, closing)
        if 0 <= index <= len(fixed):
            fixed = fixed[:index]
    return fixed.split(";", maxsplit=1)[0]


def extract_urls(text: str, pattern: re.Pattern[str]) -> list[str]:
    """Return fixed-up URL candidates found in text, in order of appearance."""
    output: list[str] = []
    for match in pattern.finditer(normalize_content(text or "")):
        candidate = fix_url(match.group(0))
        if candidate:
            output.append(candidate)
    return output


def raw_content_url(html_url: str) -> str:
    """Map a github.com blob URL to its raw.githubusercontent.com counterpart."""
    return html_url.replace("https://github.com/", "https://raw.githubusercontent.com/").replace(
        "/blob/", "/", 1
    )


def dedupe_preserve_order(items: list[str]) -> list[str]:
    """Dedupe values while preserving first-seen order."""
    output: list[str] = []
    seen: set[str] = set()
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        output.append(item)
    return output
