import pytest

from url_harvester.config import HarvestConfig, ProviderKeys, keys_from_env, load_keys_file
from url_harvester.errors import ConfigError
from url_harvester.models import ScopeConfig


def test_provider_keys_from_mapping_accepts_lists_and_csv() -> None:
    keys = ProviderKeys.from_mapping({"github": "a, b", "intelx": ["2.intelx.io:k"]})
    assert keys.github == ("a", "b")
    assert keys.intelx == ("2.intelx.io:k",)
    assert keys.configured() == ("github", "intelx")
    assert keys.for_source("wayback") == ()


@pytest.mark.parametrize("mapping", [{"shodan": ["x"]}, {"github": 5}])
def test_provider_keys_rejects_bad_mappings(mapping: dict) -> None:
    with pytest.raises(ConfigError):
        ProviderKeys.from_mapping(mapping)


def test_merged_keys_keep_first_seen_order() -> None:
    merged = ProviderKeys(github=("a", "b")).merged(ProviderKeys(github=("b", "c"), urlscan=("u",)))
    assert merged.github == ("a", "b", "c")
    assert merged.urlscan == ("u",)


def test_load_keys_file(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("keys:\n  github:\n    - ghp_one\n    - ghp_two\n  urlscan: abc\n", encoding="utf-8")
    keys = load_keys_file(path)
    assert keys.github == ("ghp_one", "ghp_two")
    assert keys.urlscan == ("abc",)


def test_missing_keys_file(tmp_path) -> None:
    assert load_keys_file(tmp_path / "absent.yaml") == ProviderKeys()
    with pytest.raises(ConfigError):
        load_keys_file(tmp_path / "absent.yaml", required=True)


@pytest.mark.parametrize("content", ["keys: [unclosed", "keys:\n  - a\n  - b\n", "- just\n- a list\n"])
def test_malformed_keys_file(tmp_path, content: str) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_keys_file(path)


def test_keys_from_env() -> None:
    keys = keys_from_env({"URL_HARVESTER_VIRUSTOTAL_KEYS": "v1,v2", "UNRELATED": "x"})
    assert keys.virustotal == ("v1", "v2")
    assert keys.github == ()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"domains": ()},
        {"domains": ("not a domain",)},
        {"domains": ("example.com",), "sources_to_use": ("nope",)},
        {"domains": ("example.com",), "sources_to_exclude": ("nope",)},
        {"domains": ("example.com",), "request_timeout": 0},
        {"domains": ("example.com",), "run_timeout": -1},
        {"domains": ("example.com",), "filter_pattern": "("},
        {"domains": ("example.com",), "match_pattern": "[a-"},
    ],
)
def test_config_validation(kwargs: dict) -> None:
    with pytest.raises(ConfigError):
        HarvestConfig(**kwargs)


def test_scope_for_carries_filters() -> None:
    config = HarvestConfig(
        domains=("example.com",),
        include_subdomains=True,
        filter_pattern=r"\.png$",
        match_pattern="^/api",
    )
    assert config.scope_for("example.com") == ScopeConfig(
        "example.com", include_subdomains=True, exclude_pattern=r"\.png$", match_pattern="^/api"
    )


def test_wayback_snapshot_passes_become_source_options() -> None:
    config = HarvestConfig(domains=("example.com",), parse_wayback_robots=True)
    assert config.source_options() == {"wayback": {"parse_robots": True, "parse_source": False}}
    assert HarvestConfig(domains=("example.com",)).source_options()["wayback"] == {
        "parse_robots": False,
        "parse_source": False,
    }
