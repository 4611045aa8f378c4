import io

import pytest

from url_harvester import cli
from url_harvester.config import HarvestConfig


def capture_pipeline(monkeypatch: pytest.MonkeyPatch) -> list[HarvestConfig]:
    captured: list[HarvestConfig] = []

    def fake_run_pipeline(config: HarvestConfig, logger: object) -> int:
        _ = logger
        captured.append(config)
        return 0

    monkeypatch.setattr(cli, "run_pipeline", fake_run_pipeline)
    return captured


def test_split_csv() -> None:
    assert cli._split_csv(["a,b", " c ", ""]) == ["a", "b", "c"]


def test_parse_args_collects_domains() -> None:
    args = cli.parse_args(["-d", "example.com", "-d", "example.org", "--include-subdomains"])
    assert args.domain == ["example.com", "example.org"]
    assert args.include_subdomains


def test_output_and_output_directory_are_exclusive() -> None:
    with pytest.raises(SystemExit):
        cli.parse_args(["-d", "example.com", "-o", "out", "-O", "dir"])


def test_sources_flag_lists_providers(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--sources"], stdin=io.StringIO("")) == 0
    output = capsys.readouterr().out
    assert "> wayback\n" in output
    assert "> github *\n" in output


def test_main_returns_zero_on_success(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = capture_pipeline(monkeypatch)
    assert cli.main(["-d", "Example.com", "-u", "wayback,otx", "-e", "otx"], stdin=io.StringIO("")) == 0
    config = captured[0]
    assert config.domains == ("example.com",)
    assert config.sources_to_use == ("wayback", "otx")
    assert config.sources_to_exclude == ("otx",)


def test_domains_from_stdin_and_list_file(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    captured = capture_pipeline(monkeypatch)
    targets = tmp_path / "targets.txt"
    targets.write_text("example.net\n", encoding="utf-8")
    stdin = io.StringIO("example.com\n\nexample.org\nexample.com\n")
    assert cli.main(["-l", str(targets)], stdin=stdin) == 0
    assert captured[0].domains == ("example.net", "example.com", "example.org")


def test_configuration_file_keys_are_loaded(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    captured = capture_pipeline(monkeypatch)
    path = tmp_path / "config.yaml"
    path.write_text("keys:\n  github: [ghp_1]\n", encoding="utf-8")
    monkeypatch.setenv("URL_HARVESTER_GITHUB_KEYS", "ghp_2")
    assert cli.main(["-c", str(path), "-d", "example.com"], stdin=io.StringIO("")) == 0
    assert captured[0].keys.github == ("ghp_1", "ghp_2")


@pytest.mark.parametrize(
    "argv",
    [
        ["-d", "not a domain"],
        ["-d", "example.com", "-u", "nope"],
        ["-d", "example.com", "-f", "("],
        ["-d", "example.com", "-c", "/nonexistent/config.yaml"],
        ["-l", "/nonexistent/targets.txt"],
        [],
    ],
)
def test_main_returns_two_on_invalid_config(argv: list[str]) -> None:
    assert cli.main(argv, stdin=io.StringIO("")) == 2


def test_wayback_snapshot_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = capture_pipeline(monkeypatch)
    argv = ["-d", "example.com", "--parse-wayback-robots", "--parse-wayback-source"]
    assert cli.main(argv, stdin=io.StringIO("")) == 0
    assert captured[0].parse_wayback_robots is True
    assert captured[0].parse_wayback_source is True
    assert cli.main(["-d", "example.com"], stdin=io.StringIO("")) == 0
    assert captured[1].parse_wayback_robots is False
