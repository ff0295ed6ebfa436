from __future__ import annotations

import asyncio
from typing import AsyncIterable, AsyncIterator, Generator, Generic, List, Optional, TypeVar

T = TypeVar("T")

_CLOSE = object()


class _Raised:
    def __init__(self, error: BaseException) -> None:
        self.error = error


class ResultSlot(Generic[T]):
    """Single-assignment value: set once, awaited any number of times."""

    def __init__(self) -> None:
        self._ready = asyncio.Event()
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None

    def set(self, value: T) -> None:
        self._claim()
        self._value = value
        self._ready.set()

    def set_exception(self, error: BaseException) -> None:
        self._claim()
        self._error = error
        self._ready.set()

    def done(self) -> bool:
        return self._ready.is_set()

    def result(self) -> T:
        if not self.done():
            raise RuntimeError("Result slot has not been set yet.")
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]

    async def wait(self) -> T:
        await self._ready.wait()
        return self.result()

    def __await__(self) -> Generator[None, None, T]:
        return self.wait().__await__()

    def _claim(self) -> None:
        if self.done():
            raise RuntimeError("Result slot can only be set once.")


class StitchableStream(Generic[T]):
    """Multi-producer, single-consumer channel that splices whole sources in order.

    Producers either splice an async iterable with ``add_stream`` or push a
    single item with ``enqueue``; entries are emitted strictly in the order
    they were submitted, one source at a time. ``close`` ends the channel once
    everything submitted before it has been emitted. Each ``tee`` call returns
    an independent view; views must be taken before the first item flows.
    """

    def __init__(self) -> None:
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._outlets: List[asyncio.Queue] = []
        self._pump: Optional[asyncio.Task] = None
        self._closed = False

    def tee(self) -> AsyncIterator[T]:
        outlet: asyncio.Queue = asyncio.Queue()
        self._outlets.append(outlet)
        return self._drain(outlet)

    def add_stream(self, source: AsyncIterable[T]) -> None:
        self._submit(("stream", source))

    def enqueue(self, item: T) -> None:
        self._submit(("item", item))

    def close(self) -> None:
        if self._closed:
            return
        self._submit(_CLOSE)
        self._closed = True

    def _submit(self, entry: object) -> None:
        if self._closed:
            raise RuntimeError("Cannot add to a closed stream.")
        self._inbox.put_nowait(entry)
        if self._pump is None:
            self._pump = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            entry = await self._inbox.get()
            if entry is _CLOSE:
                self._broadcast(_CLOSE)
                return
            kind, payload = entry
            if kind == "item":
                self._broadcast(payload)
                continue
            try:
                async for item in payload:
                    self._broadcast(item)
            except Exception as exc:
                self._broadcast(_Raised(exc))
                self._broadcast(_CLOSE)
                return

    def _broadcast(self, item: object) -> None:
        for outlet in self._outlets:
            outlet.put_nowait(item)

    @staticmethod
    async def _drain(outlet: asyncio.Queue) -> AsyncIterator[T]:
        while True:
            item = await outlet.get()
            if item is _CLOSE:
                return
            if isinstance(item, _Raised):
                raise item.error
            yield item


class QueueStream(Generic[T]):
    """Single-producer stream backed by an unbounded queue, closed explicitly."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()

    def push(self, item: T) -> None:
        self._queue.put_nowait(item)

    def close(self) -> None:
        self._queue.put_nowait(_CLOSE)

    async def __aiter__(self) -> AsyncIterator[T]:
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                return
            yield item
