"""Multicast state channels that replay their latest value to new subscribers.

Every store keeps its state in a :class:`StateChannel` and hands consumers a
read-only :class:`ChannelView`.  Derived state (``map``, ``distinct``,
:func:`combine_latest`) is recomputed synchronously whenever a source channel
publishes, so consumers never re-derive anything by hand::

    active = combine_latest(user_context, overseeing).map(pick_user_id).distinct()
    sub = active.subscribe(lambda user_id: print("now viewing", user_id))
    ...
    sub.unsubscribe()
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar

logger = logging.getLogger("rabbitask.state_channel")

T = TypeVar("T")
R = TypeVar("R")

Callback = Callable[[Any], None]


class Subscription:
    def __init__(self, channel: "ReadableChannel", callback: Callback):
        self._channel = channel
        self._callback = callback
        self.closed = False

    def unsubscribe(self) -> None:
        if not self.closed:
            self._channel._remove(self._callback)
            self.closed = True


class ReadableChannel(Generic[T]):
    def __init__(self, initial: T, name: str = ""):
        self.name = name
        self._value = initial
        self._subscribers: List[Callback] = []

    @property
    def value(self) -> T:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], None], replay: bool = True) -> Subscription:
        """Register *callback*; with *replay* it is called with the current value first."""
        self._subscribers.append(callback)
        sub = Subscription(self, callback)
        if replay:
            self._deliver(callback, self._value)
        return sub

    def map(self, fn: Callable[[T], R], name: str = "") -> "DerivedChannel[R]":
        return DerivedChannel([self], lambda values: fn(values[0]), name=name or f"{self.name}.map")

    def distinct(self, name: str = "") -> "DerivedChannel[T]":
        return DerivedChannel([self], lambda values: values[0], name=name or f"{self.name}.distinct", distinct=True)

    # ── internals ──────────────────────────────────────────────────────────

    def _emit(self, value: T) -> None:
        self._value = value
        for callback in list(self._subscribers):
            self._deliver(callback, value)

    def _deliver(self, callback: Callback, value: Any) -> None:
        try:
            callback(value)
        except Exception:
            logger.exception("Subscriber of channel '%s' failed", self.name)

    def _remove(self, callback: Callback) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass


class StateChannel(ReadableChannel[T]):
    """Writable channel owned by a single store."""

    def publish(self, value: T) -> None:
        self._emit(value)

    def readonly(self) -> "ChannelView[T]":
        return ChannelView(self)


class ChannelView(Generic[T]):
    """Read-only facade over a channel handed out to consumers."""

    def __init__(self, channel: ReadableChannel[T]):
        self._channel = channel

    @property
    def name(self) -> str:
        return self._channel.name

    @property
    def value(self) -> T:
        return self._channel.value

    def subscribe(self, callback: Callable[[T], None], replay: bool = True) -> Subscription:
        return self._channel.subscribe(callback, replay=replay)

    def map(self, fn: Callable[[T], R], name: str = "") -> "DerivedChannel[R]":
        return self._channel.map(fn, name=name)

    def distinct(self, name: str = "") -> "DerivedChannel[T]":
        return self._channel.distinct(name=name)


class DerivedChannel(ReadableChannel[T]):
    """Channel whose value is a pure function of one or more source channels."""

    def __init__(
        self,
        sources: List[Any],
        compute: Callable[[Tuple[Any, ...]], T],
        name: str = "",
        distinct: bool = False,
    ):
        self._sources = list(sources)
        self._compute = compute
        self._distinct = distinct
        super().__init__(compute(tuple(s.value for s in self._sources)), name=name)
        self._source_subs: Optional[List[Subscription]] = [
            s.subscribe(self._on_source_change, replay=False) for s in self._sources
        ]

    def _on_source_change(self, _value: Any) -> None:
        new_value = self._compute(tuple(s.value for s in self._sources))
        if self._distinct and new_value == self._value:
            return
        self._emit(new_value)

    def close(self) -> None:
        """Detach from the source channels; the last value stays readable."""
        if self._source_subs is not None:
            for sub in self._source_subs:
                sub.unsubscribe()
            self._source_subs = None


def combine_latest(*channels: Any, name: str = "") -> DerivedChannel[Tuple[Any, ...]]:
    """Channel of the latest value of every source, re-emitted when any changes."""
    return DerivedChannel(list(channels), lambda values: values, name=name or "combine_latest")
