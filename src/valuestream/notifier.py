"""Change notifiers — values that call listeners after they mutate.

Anything with add_listener/remove_listener/dispose (plus .value for
ValueListenable) can be wrapped by the stream adapters. ChangeNotifier
and ValueNotifier are the reference implementations shipped here.

Thread safety: call set_scheduler() once from the event-loop thread.
After that, any ValueNotifier.value assignment from another thread is
auto-marshaled. Same-thread assignment remains synchronous.
"""

from __future__ import annotations

import threading
from typing import Callable, Generic, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

Listener = Callable[[], None]

# ─── Auto-marshal ────────────────────────────────────────────────────────────
_scheduler: Callable[[Callable[[], None]], object] | None = None
_scheduler_thread: threading.Thread | None = None


def set_scheduler(scheduler) -> None:
    """Set the global thread scheduler for cross-thread value assignment.

    Call once from the event-loop thread:
        valuestream.set_scheduler(loop.call_soon_threadsafe)

    Pass None to go back to unmarshaled assignment.
    """
    global _scheduler, _scheduler_thread
    _scheduler = scheduler
    _scheduler_thread = threading.current_thread() if scheduler is not None else None


class DisposedError(RuntimeError):
    """A disposed notifier was used."""


@runtime_checkable
class Listenable(Protocol):
    """Anything that calls zero-arg listeners after it changes."""

    def add_listener(self, listener: Listener) -> None: ...

    def remove_listener(self, listener: Listener) -> None: ...

    def dispose(self) -> object: ...


@runtime_checkable
class ValueListenable(Listenable, Protocol[T_co]):
    """A Listenable that exposes its current value."""

    @property
    def value(self) -> T_co: ...


class ChangeNotifier:
    """Holds listeners and calls them on notify_listeners()."""

    __slots__ = ("_listeners", "_disposed")

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._disposed = False

    @property
    def has_listeners(self) -> bool:
        return bool(self._listeners)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def add_listener(self, listener: Listener) -> None:
        self._check_alive("add_listener")
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        """Remove one registration of listener. Missing listeners are ignored."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass  # already removed

    def notify_listeners(self) -> None:
        """Call every listener registered when the notification started."""
        self._check_alive("notify_listeners")
        # Snapshot: listeners may add or remove listeners while running.
        for listener in list(self._listeners):
            listener()

    def dispose(self) -> None:
        """Drop all listeners. The notifier never notifies again."""
        self._disposed = True
        self._listeners.clear()

    def _check_alive(self, op: str) -> None:
        if self._disposed:
            raise DisposedError(f"{type(self).__name__}.{op}() called after dispose()")


class ValueNotifier(ChangeNotifier, Generic[T]):
    """A ChangeNotifier holding a single value.

    Assigning a value equal to the current one does not notify.
    """

    __slots__ = ("_value",)

    def __init__(self, value: T) -> None:
        super().__init__()
        self._value = value

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, value: T) -> None:
        """Write a new value. Auto-marshals from foreign threads."""
        if _scheduler is not None and threading.current_thread() != _scheduler_thread:
            _scheduler(lambda v=value: self._set_direct(v))
        else:
            self._set_direct(value)

    def _set_direct(self, value: T) -> None:
        """Set value and notify. Always runs on the scheduler thread."""
        old = self._value
        if old is not value and old != value:
            self._value = value
            self.notify_listeners()

    def __repr__(self) -> str:
        return f"ValueNotifier({self._value!r})"
