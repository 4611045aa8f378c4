from url_harvester.extraction import (
    build_url_regex,
    dedupe_preserve_order,
    extract_urls,
    fix_url,
    is_email,
    raw_content_url,
)


def test_extract_urls_finds_domain_urls_and_skips_lookalikes() -> None:
    text = (
        'see https://api.example.com/v1?x=1 and "http://example.com/a" '
        "but not notexample.com/b"
    )
    assert extract_urls(text, build_url_regex("example.com")) == [
        "https://api.example.com/v1?x=1",
        "http://example.com/a",
    ]


def test_extract_urls_decodes_percent_encoding() -> None:
    text = "redirect=https%3A%2F%2Fexample.com%2Flogin"
    assert extract_urls(text, build_url_regex("example.com")) == ["https://example.com/login"]


def test_fix_url_cuts_unbalanced_quotes_and_brackets() -> None:
    assert fix_url("https://example.com/a')") == "https://example.com/a"
    assert fix_url("https://example.com/x]") == "https://example.com/x"
    assert fix_url("https://example.com/a(b)") == "https://example.com/a(b)"
    assert fix_url("https://example.com/a;b") == "https://example.com/a"


def test_raw_content_url() -> None:
    assert (
        raw_content_url("https://github.com/owner/repo/blob/main/app.js")
        == "https://raw.githubusercontent.com/owner/repo/main/app.js"
    )


def test_is_email() -> None:
    assert is_email("admin@example.com")
    assert not is_email("https://example.com/admin")


def test_dedupe_preserve_order() -> None:
    assert dedupe_preserve_order(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]
