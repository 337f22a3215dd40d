"""Stream adapters — expose a notifier's changes as async streams.

ValueStream wraps anything with .value and add/remove_listener/dispose and
hands out a multi-subscriber Stream of that value:

- a new subscription receives the current value immediately,
- every later notification pushes the (new) current value,
- subscriptions are independent; cancelling one leaves the others alone,
- dispose() tears down the notifier and closes every live subscription.
  Subscribing after dispose() yields an empty, already-closed stream.

Usage:
    counter = ValueNotifier(0)
    values = ValueStream(counter)

    async with values.stream.listen() as sub:
        async for v in sub:
            ...

    await values.dispose()
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Generic, TypeVar

from valuestream.channel import Channel, Completion
from valuestream.notifier import Listenable, Listener, ValueListenable

logger = logging.getLogger("valuestream.adapter")

T = TypeVar("T")
N = TypeVar("N", bound=Listenable)


class _State(enum.Enum):
    ACTIVE = "active"
    DISPOSING = "disposing"
    DISPOSED = "disposed"


@dataclass(eq=False)
class _Lane(Generic[T]):
    """Per-subscription state: the channel and the listener feeding it."""

    channel: Channel[T]
    callback: Listener


class Subscription(Generic[T]):
    """One independent lane of a Stream. Iterate it, then cancel() it."""

    __slots__ = ("_channel", "_cancelled")

    def __init__(self, channel: Channel[T]) -> None:
        self._channel = channel
        self._cancelled = False

    @property
    def closed(self) -> bool:
        return self._channel.closed

    def cancel(self) -> None:
        """Stop receiving values. Safe to call more than once."""
        if self._cancelled:
            return
        self._cancelled = True
        handler, self._channel.on_cancel = self._channel.on_cancel, None
        if handler is not None:
            handler()
        self._channel.discard()

    async def aclose(self) -> None:
        self.cancel()

    def __aiter__(self) -> Subscription[T]:
        return self

    async def __anext__(self) -> T:
        return await self._channel.receive()

    async def __aenter__(self) -> Subscription[T]:
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else repr(self._channel)
        return f"Subscription({state})"


class Stream(Generic[T]):
    """Multi-subscriber async iterable. Each listen() is a fresh Subscription.

    `async for` subscribes on its first step and cancels the subscription
    once the loop finishes, breaks or raises.
    """

    __slots__ = ("_on_listen",)

    def __init__(self, on_listen: Callable[[], Subscription[T]]) -> None:
        self._on_listen = on_listen

    def listen(self) -> Subscription[T]:
        return self._on_listen()

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        sub = self._on_listen()
        try:
            async for value in sub:
                yield value
        finally:
            sub.cancel()


class _NotifierStream(ABC, Generic[N, T]):
    """Shared lifecycle for the adapters; subclasses pick what gets emitted."""

    def __init__(self, subject: N) -> None:
        self._subject = subject
        self._state = _State.ACTIVE
        self._lanes: dict[Channel[T], _Lane[T]] = {}

    @property
    def subject(self) -> N:
        return self._subject

    @property
    def disposed(self) -> bool:
        return self._state is _State.DISPOSED

    @property
    def active_count(self) -> int:
        """Number of live subscriptions (each has one registered listener)."""
        return len(self._lanes)

    @property
    def stream(self) -> Stream[T]:
        """Stream of the current value on every change notification.

        The latest value is delivered on listen immediately. Any number of
        listeners may subscribe. All subscriptions close on dispose();
        after that, a new subscription is closed at once without values.
        A subject disposed on its own, outside this adapter, behaves the same.
        """
        return Stream(self._listen)

    @abstractmethod
    def _current(self) -> T:
        """The item pushed on listen and on every notification."""

    def _listen(self) -> Subscription[T]:
        channel: Channel[T] = Channel()
        if self._state is not _State.ACTIVE or getattr(self._subject, "disposed", False):
            logger.debug("Subscribed to disposed %r; closing immediately", self)
            channel.close()
            return Subscription(channel)

        def _push() -> None:
            if self._state is _State.ACTIVE:
                channel.add(self._current())

        # Read before registering: a failing read must leave no listener behind.
        current = self._current()
        lane = _Lane(channel, _push)
        self._subject.add_listener(_push)
        channel.on_cancel = lambda: self._detach(lane)
        channel.add(current)
        self._lanes[channel] = lane
        logger.debug("Subscribed to %r (%d live)", self, len(self._lanes))
        return Subscription(channel)

    def _detach(self, lane: _Lane[T]) -> None:
        self._subject.remove_listener(lane.callback)
        lane.channel.close()
        self._lanes.pop(lane.channel, None)
        logger.debug("Subscription cancelled on %r (%d live)", self, len(self._lanes))

    def dispose(self) -> Completion:
        """Dispose the subject, then close every live subscription.

        The returned Completion resolves once every closed subscription has
        drained. Awaiting it is optional. A second call does nothing and
        returns an already-complete Completion. Notifications the subject
        sends during its own teardown are not delivered.
        """
        if self._state is not _State.ACTIVE:
            logger.debug("dispose() called again on %r; ignoring", self)
            return Completion()

        self._state = _State.DISPOSING
        try:
            self._subject.dispose()
        except BaseException:
            self._state = _State.ACTIVE
            raise

        lanes, self._lanes = self._lanes, {}
        self._state = _State.DISPOSED

        for channel in lanes:
            channel.on_cancel = None
            channel.close()
        logger.debug("Disposed %r, closed %d subscriptions", self, len(lanes))
        return Completion(lanes)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._subject!r}, {self._state.value})"


class ValueStream(_NotifierStream[ValueListenable[T], T]):
    """Streams subject.value each time the subject notifies."""

    def _current(self) -> T:
        return self._subject.value


class ChangeStream(_NotifierStream[N, N]):
    """Streams the notifier itself each time it notifies."""

    def _current(self) -> N:
        return self._subject
