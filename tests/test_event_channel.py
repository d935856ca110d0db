"""Tests for the bounded event channel and ``play_feed``.

These tests exercise timeframe gating, draining after close, the
closed result, backpressure and cancellation of the producer when the
consumer stops early.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from backtester.common.errors import FeedError
from backtester.common.timeframe import Timeframe
from backtester.feeds.channel import CLOSED, EventChannel, Received, play_feed
from backtester.feeds.event import Event
from tests.helpers.fake_feeds import START, EndlessFeed, FailingFeed, bar, day_feed

DAY = timedelta(days=1)


def _event(offset_days: int) -> Event:
    return Event(START + offset_days * DAY, [bar(100.0 + offset_days)])


@pytest.mark.asyncio
async def test_events_outside_timeframe_are_not_received() -> None:
    channel = EventChannel(capacity=10, timeframe=Timeframe(START + DAY, START + 3 * DAY))
    await channel.send(_event(0))  # before start, dropped
    await channel.send(_event(1))
    await channel.send(_event(2))
    await channel.send(_event(3))  # at end, closes the channel
    assert channel.closed
    received = [event.time async for event in channel]
    assert received == [START + DAY, START + 2 * DAY]


@pytest.mark.asyncio
async def test_close_keeps_backlog_and_returns_closed_repeatedly() -> None:
    channel = EventChannel(capacity=5)
    for i in range(3):
        await channel.send(_event(i))
    channel.close()
    channel.close()
    results = [await channel.receive() for _ in range(3)]
    assert all(isinstance(r, Received) for r in results)
    assert [r.event.time for r in results] == [START, START + DAY, START + 2 * DAY]
    assert await channel.receive() is CLOSED
    assert await channel.receive() is CLOSED
    assert not CLOSED


@pytest.mark.asyncio
async def test_send_after_close_is_ignored() -> None:
    channel = EventChannel(capacity=2)
    channel.close()
    await channel.send(_event(0))
    assert len(channel) == 0


@pytest.mark.asyncio
async def test_send_waits_while_full() -> None:
    channel = EventChannel(capacity=1)
    await channel.send(_event(0))
    sender = asyncio.create_task(channel.send(_event(1)))
    await asyncio.sleep(0)
    assert not sender.done()
    result = await channel.receive()
    assert result.event.time == START
    await asyncio.wait_for(sender, timeout=1)
    assert (await channel.receive()).event.time == START + DAY


@pytest.mark.asyncio
async def test_receive_wakes_on_close() -> None:
    channel = EventChannel(capacity=1)
    receiver = asyncio.create_task(channel.receive())
    await asyncio.sleep(0)
    assert not receiver.done()
    channel.close()
    assert await asyncio.wait_for(receiver, timeout=1) is CLOSED


def test_offer_drops_oldest_when_full(caplog) -> None:
    channel = EventChannel(capacity=2)
    for i in range(3):
        channel.offer(_event(i))
    assert len(channel) == 2
    assert "dropping event" in caplog.text
    result = asyncio.run(channel.receive())
    assert result.event.time == START + DAY


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        EventChannel(capacity=0)


@pytest.mark.asyncio
async def test_capacity_defaults_to_configured_value(monkeypatch) -> None:
    monkeypatch.setenv("BACKTEST_CHANNEL_CAPACITY", "3")
    assert EventChannel().capacity == 3
    async with play_feed(day_feed(2)) as channel:
        assert channel.capacity == 3
        times = [event.time async for event in channel]
    assert times == [START, START + DAY]


@pytest.mark.asyncio
async def test_play_feed_delivers_all_events_in_order() -> None:
    feed = day_feed(20)
    async with play_feed(feed, capacity=3) as channel:
        times = [event.time async for event in channel]
    assert times == feed.timeline


@pytest.mark.asyncio
async def test_play_feed_restricted_to_timeframe() -> None:
    feed = day_feed(20)
    timeframe = Timeframe(START + 5 * DAY, START + 8 * DAY)
    async with play_feed(feed, timeframe) as channel:
        times = [event.time async for event in channel]
    assert times == [START + 5 * DAY, START + 6 * DAY, START + 7 * DAY]


@pytest.mark.asyncio
async def test_consumer_exit_stops_producer() -> None:
    feed = EndlessFeed()
    async with play_feed(feed, capacity=2) as channel:
        async for event in channel:
            if event.time >= START + timedelta(seconds=3):
                break
    assert channel.closed
    assert feed.cancelled or feed.finished
    sent = feed.sent
    await asyncio.sleep(0.01)
    assert feed.sent == sent


@pytest.mark.asyncio
async def test_consumer_error_stops_producer() -> None:
    feed = EndlessFeed()
    with pytest.raises(KeyError):
        async with play_feed(feed, capacity=2) as channel:
            await channel.receive()
            raise KeyError("consumer failed")
    assert feed.cancelled or feed.finished


@pytest.mark.asyncio
async def test_producer_failure_raises_feed_error() -> None:
    feed = FailingFeed()
    feed.add(START, bar(100.0))
    received = []
    with pytest.raises(FeedError) as excinfo:
        async with play_feed(feed) as channel:
            async for event in channel:
                received.append(event)
    assert len(received) == 1
    assert isinstance(excinfo.value.__cause__, RuntimeError)
