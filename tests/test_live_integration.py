import io
import os

import pytest

from url_harvester.cli import main

requires_live = pytest.mark.skipif(
    os.getenv("RUN_LIVE_INTEGRATION") != "1",
    reason="Set RUN_LIVE_INTEGRATION=1 to execute live integration tests.",
)


@requires_live
def test_live_wayback_smoke() -> None:
    exit_code = main(
        ["-d", "example.com", "-u", "wayback", "--timeout", "60", "-s"], stdin=io.StringIO("")
    )
    assert exit_code == 0
