"""Delivery channels — one buffered lane per stream subscription.

A Channel buffers pushed values until its consumer reads them. close()
appends an end-of-stream marker; the Completion it returns resolves once
the consumer has read up to that marker, or has cancelled.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Generator, Generic, Iterable, TypeVar

T = TypeVar("T")

# End-of-stream marker placed in the queue by close().
_END = object()


class Channel(Generic[T]):
    """Unbounded FIFO lane between a notifier callback and one consumer."""

    __slots__ = ("_queue", "_closed", "_done", "_waiters", "on_cancel")

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._done = False
        self._waiters: list[asyncio.Future] = []
        self.on_cancel: Callable[[], None] | None = None

    @property
    def closed(self) -> bool:
        """No more values will be accepted."""
        return self._closed

    @property
    def done(self) -> bool:
        """The consumer has seen end-of-stream or cancelled."""
        return self._done

    def add(self, value: T) -> None:
        """Buffer a value for the consumer. No-op once closed."""
        if self._closed:
            return
        self._queue.put_nowait(value)

    def close(self) -> Completion:
        """Stop accepting values. Buffered values are still delivered."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_END)
        return Completion((self,))

    async def receive(self) -> T:
        """Next buffered value. Raises StopAsyncIteration at end-of-stream."""
        if self._done:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._finish()
            raise StopAsyncIteration
        return item

    def discard(self) -> None:
        """Drop undelivered values and finish; used when the consumer cancels."""
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        # Wake any reader parked in receive().
        self._queue.put_nowait(_END)
        self._finish()

    async def wait_done(self) -> None:
        if self._done:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter

    def _finish(self) -> None:
        if self._done:
            return
        self._done = True
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def __repr__(self) -> str:
        state = "done" if self._done else "closed" if self._closed else "open"
        return f"Channel({state}, buffered={self._queue.qsize()})"


class Completion:
    """Awaitable that resolves once every tracked channel is done.

    Creating one needs no event loop, so teardown can run from plain
    synchronous code and callers are free to ignore the result.
    """

    __slots__ = ("_channels",)

    def __init__(self, channels: Iterable[Channel] = ()) -> None:
        self._channels = tuple(channels)

    def done(self) -> bool:
        return all(channel.done for channel in self._channels)

    def __await__(self) -> Generator[object, None, None]:
        return self._wait().__await__()

    async def _wait(self) -> None:
        pending = [channel.wait_done() for channel in self._channels if not channel.done]
        if pending:
            await asyncio.gather(*pending)

    def __len__(self) -> int:
        return len(self._channels)

    def __repr__(self) -> str:
        state = "done" if self.done() else "pending"
        return f"Completion({len(self._channels)} channels, {state})"
