# tests/test_state_channel.py

from __future__ import annotations

import asyncio

import pytest

from rabbitask.state_channel import StateChannel, combine_latest
from rabbitask.timers import Debouncer, RepeatingTimer


def test_new_subscriber_gets_latest_value() -> None:
    channel = StateChannel(1, name="n")
    channel.publish(2)
    seen = []
    channel.subscribe(seen.append)
    channel.publish(3)
    assert seen == [2, 3]


def test_unsubscribe_stops_delivery() -> None:
    channel = StateChannel(0)
    seen = []
    sub = channel.subscribe(seen.append, replay=False)
    channel.publish(1)
    sub.unsubscribe()
    sub.unsubscribe()
    channel.publish(2)
    assert seen == [1]
    assert channel.subscriber_count == 0


def test_failing_subscriber_does_not_block_others() -> None:
    channel = StateChannel(0)
    seen = []
    channel.subscribe(lambda _: 1 / 0, replay=False)
    channel.subscribe(seen.append, replay=False)
    channel.publish(5)
    assert seen == [5]


def test_map_distinct_and_combine_latest() -> None:
    a = StateChannel(1, name="a")
    b = StateChannel("x", name="b")
    combined = combine_latest(a, b)
    parity = a.map(lambda v: v % 2).distinct()
    seen = []
    parity.subscribe(seen.append, replay=False)

    a.publish(3)
    a.publish(4)
    b.publish("y")

    assert combined.value == (4, "y")
    assert seen == [0]


def test_readonly_view_has_no_publish() -> None:
    view = StateChannel(1).readonly()
    assert view.value == 1
    assert not hasattr(view, "publish")


def test_closed_derived_channel_keeps_last_value() -> None:
    source = StateChannel(1)
    doubled = source.map(lambda v: v * 2)
    doubled.close()
    source.publish(5)
    assert doubled.value == 2
    assert source.subscriber_count == 0


@pytest.mark.asyncio
async def test_debouncer_fires_once_with_last_value() -> None:
    fired = []
    debouncer = Debouncer(0.02, fired.append)
    debouncer.call("a")
    debouncer.call("ab")
    assert debouncer.pending is True

    await asyncio.sleep(0.05)
    assert fired == ["ab"]
    assert debouncer.pending is False


@pytest.mark.asyncio
async def test_cancelled_debouncer_never_fires() -> None:
    fired = []
    debouncer = Debouncer(0.02, fired.append)
    debouncer.call("a")
    debouncer.cancel()
    await asyncio.sleep(0.05)
    assert fired == []


@pytest.mark.asyncio
async def test_repeating_timer_stops_when_tick_returns_false() -> None:
    ticks = []

    def tick():
        ticks.append(len(ticks))
        return len(ticks) < 3

    timer = RepeatingTimer(0.005, tick)
    timer.start()
    await asyncio.sleep(0.1)
    assert ticks == [0, 1, 2]
    assert timer.running is False
