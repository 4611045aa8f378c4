import io
import json
import logging

import pytest

from fakes import AlphaSource, BetaSource, FakeSession
from url_harvester import collector
from url_harvester.collector import SourceResources
from url_harvester.config import HarvestConfig, ProviderKeys
from url_harvester.pipeline import discover, harvest_records, run_pipeline

LOGGER = logging.getLogger("test")


@pytest.fixture(autouse=True)
def stub_registry(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(collector, "SOURCES", {"alpha": AlphaSource, "beta": BetaSource})


def make_resources() -> SourceResources:
    return SourceResources(
        ProviderKeys(),
        session=FakeSession(),  # type: ignore[arg-type]
        logger=LOGGER,
    )


def test_discover_yields_each_url_once() -> None:
    config = HarvestConfig(domains=("example.com",), show_progress=False)
    values = [
        result.value
        for result in discover("example.com", config, resources=make_resources(), logger=LOGGER)
    ]
    assert sorted(values) == [
        "https://example.com/alpha",
        "https://example.com/shared",
        "https://www.example.com/beta",
    ]


def test_harvest_records_keeps_full_attribution() -> None:
    config = HarvestConfig(domains=("example.com",), show_progress=False)
    records = harvest_records("example.com", config, resources=make_resources(), logger=LOGGER)
    by_url = {record.url: record for record in records}
    assert set(by_url) == {
        "https://example.com/alpha",
        "https://example.com/shared",
        "https://www.example.com/beta",
    }
    assert by_url["https://example.com/shared"].sources == ("alpha", "beta")
    assert by_url["https://example.com/alpha"].source == "alpha"
    assert all(record.domain == "example.com" for record in records)


def test_filter_pattern_applies_to_every_source() -> None:
    config = HarvestConfig(
        domains=("example.com",), filter_pattern="^/shared$", show_progress=False
    )
    records = harvest_records("example.com", config, resources=make_resources(), logger=LOGGER)
    assert "https://example.com/shared" not in {record.url for record in records}


def test_run_pipeline_streams_to_stdout_and_output_file(tmp_path) -> None:
    config = HarvestConfig(
        domains=("example.com", "example.org"),
        output=str(tmp_path / "all"),
        show_progress=False,
    )
    stdout = io.StringIO()
    total = run_pipeline(config, logger=LOGGER, resources=make_resources(), stdout=stdout)
    assert total == 3
    assert len(stdout.getvalue().splitlines()) == 3
    assert (tmp_path / "all.txt").read_text(encoding="utf-8") == stdout.getvalue()


def test_run_pipeline_json_per_domain_files(tmp_path) -> None:
    config = HarvestConfig(
        domains=("example.com",),
        output_directory=str(tmp_path / "out"),
        json_output=True,
        show_progress=False,
    )
    stdout = io.StringIO()
    run_pipeline(config, logger=LOGGER, resources=make_resources(), stdout=stdout)
    lines = (tmp_path / "out" / "example.com.json").read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]
    assert {record["domain"] for record in records} == {"example.com"}
    assert {record["source"] for record in records} <= {"alpha", "beta"}
    assert len(records) == 3
