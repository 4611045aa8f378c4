"""Fan-in of several concurrent producers into one iterator."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from queue import Full, Queue
from threading import Event
from typing import Optional, TypeVar

from .context import RunContext
from .errors import Cancelled

T = TypeVar("T")

Producer = Callable[[], Iterable[T]]
ErrorHandler = Callable[[int, Exception], Optional[T]]

_DONE = object()
POLL_INTERVAL = 0.1


def fan_in(
    producers: Sequence[Producer[T]],
    ctx: RunContext,
    *,
    on_error: ErrorHandler[T] | None = None,
    queue_size: int = 1,
    thread_name_prefix: str = "fan-in",
) -> Iterator[T]:
    """Run each producer in its own thread and yield their items as they arrive.

    The iterator ends only after every producer has finished. Closing it early
    cancels ``ctx`` so producers stop at their next blocking point. An exception
    raised by a producer is handed to ``on_error``; whatever it returns (unless
    None) is yielded like a regular item.
    """
    if not producers:
        return
    queue: Queue[object] = Queue(maxsize=queue_size)
    abandoned = Event()

    def put(item: object, *, force: bool = False) -> bool:
        while not abandoned.is_set():
            try:
                queue.put(item, timeout=POLL_INTERVAL)
                return True
            except Full:
                if not force and ctx.cancelled():
                    return False
        return False

    def drive(index: int, producer: Producer[T]) -> None:
        iterator: Iterable[T] | None = None
        try:
            iterator = producer()
            for item in iterator:
                if not put(item):
                    break
        except Cancelled:
            pass
        except Exception as exc:
            if on_error is not None:
                replacement = on_error(index, exc)
                if replacement is not None:
                    put(replacement)
        finally:
            close = getattr(iterator, "close", None)
            if callable(close):
                close()
            put(_DONE, force=True)

    pending = len(producers)
    executor = ThreadPoolExecutor(max_workers=pending, thread_name_prefix=thread_name_prefix)
    try:
        for index, producer in enumerate(producers):
            executor.submit(drive, index, producer)
        while pending:
            item = queue.get()
            if item is _DONE:
                pending -= 1
                continue
            yield item  # type: ignore[misc]
    finally:
        if pending:
            ctx.cancel()
            abandoned.set()
        executor.shutdown(wait=not pending, cancel_futures=True)
