from collections.abc import Iterator
from threading import Event

from url_harvester.context import RunContext
from url_harvester.errors import Cancelled
from url_harvester.streams import fan_in


def test_fan_in_merges_every_producer() -> None:
    producers = [lambda: iter([1, 2, 3]), lambda: iter([4, 5]), lambda: iter([])]
    assert sorted(fan_in(producers, RunContext())) == [1, 2, 3, 4, 5]


def test_fan_in_without_producers_is_empty() -> None:
    assert list(fan_in([], RunContext())) == []


def test_producer_failure_is_reported_through_handler() -> None:
    def broken() -> Iterator[int]:
        yield 1
        raise RuntimeError("boom")

    items = list(
        fan_in(
            [broken, lambda: iter([2])],
            RunContext(),
            on_error=lambda index, exc: f"failed:{index}:{exc}",
        )
    )
    assert sorted(str(item) for item in items) == ["1", "2", "failed:0:boom"]


def test_cancelled_producer_ends_quietly() -> None:
    def cancelled() -> Iterator[int]:
        yield 7
        raise Cancelled("stop")

    failures: list[Exception] = []

    def on_error(_index: int, exc: Exception) -> None:
        failures.append(exc)

    assert list(fan_in([cancelled], RunContext(), on_error=on_error)) == [7]
    assert failures == []


def test_closing_early_cancels_context_and_stops_producers() -> None:
    ctx = RunContext()
    finished = Event()

    def endless() -> Iterator[int]:
        count = 0
        try:
            while True:
                ctx.check()
                count += 1
                yield count
        finally:
            finished.set()

    stream = fan_in([endless], ctx)
    assert next(stream) == 1
    stream.close()
    assert ctx.cancelled()
    assert finished.wait(5)
