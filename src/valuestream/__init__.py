"""valuestream: change notifiers as multi-subscriber async streams."""

from importlib.metadata import version as _version

__version__ = _version("valuestream")

from valuestream.notifier import (
    ChangeNotifier,
    DisposedError,
    Listenable,
    ValueListenable,
    ValueNotifier,
    set_scheduler,
)
from valuestream.channel import Channel, Completion
from valuestream.adapter import ChangeStream, Stream, Subscription, ValueStream

__all__ = [
    "ChangeNotifier",
    "ValueNotifier",
    "Listenable",
    "ValueListenable",
    "DisposedError",
    "set_scheduler",
    "Channel",
    "Completion",
    "Stream",
    "Subscription",
    "ValueStream",
    "ChangeStream",
]
