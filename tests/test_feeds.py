"""Tests for the historic and random-walk feeds and the action helpers."""

from __future__ import annotations

from datetime import timedelta

import pandas as pd
import pytest

from backtester.common.currency import Asset
from backtester.common.timeframe import EPSILON, Timeframe
from backtester.feeds.actions import (
    ActionType,
    OrderBook,
    OrderBookEntry,
    PriceBar,
    PriceQuote,
    TradePrice,
    action_type,
    price_values,
)
from backtester.feeds.event import Event
from backtester.feeds.feed import HistoricFeed, collect_actions
from backtester.feeds.random_walk import RandomWalkFeed
from tests.helpers.fake_feeds import ASSET, START, bar, day_feed

DAY = timedelta(days=1)


def test_historic_feed_orders_events_and_groups_actions() -> None:
    feed = HistoricFeed()
    other = Asset("OTHER")
    feed.add(START + DAY, bar(101.0))
    feed.add(START, bar(100.0))
    feed.add(START + DAY, bar(50.0, asset=other))
    assert feed.timeline == [START, START + DAY]
    assert feed.assets == {ASSET, other}
    assert feed.timeframe == Timeframe(START, START + DAY + EPSILON)


def test_empty_feed_has_infinite_timeframe() -> None:
    assert HistoricFeed().timeframe == Timeframe.INFINITE


@pytest.mark.asyncio
async def test_collect_actions_filters_by_type_and_timeframe() -> None:
    feed = day_feed(10)
    feed.add(START + 2 * DAY, TradePrice(ASSET, 102.5, 3.0))
    bars = await collect_actions(feed, PriceBar, Timeframe(START + DAY, START + 4 * DAY))
    assert [t for t, _ in bars] == [START + DAY, START + 2 * DAY, START + 3 * DAY]
    trades = await collect_actions(feed, TradePrice)
    assert trades == [(START + 2 * DAY, TradePrice(ASSET, 102.5, 3.0))]


def test_from_frame_reads_ohlcv_columns() -> None:
    frame = pd.DataFrame(
        {
            "Timestamp": ["2024-01-01", "2024-01-02"],
            "Open": [1.0, 2.0],
            "High": [1.5, 2.5],
            "Low": [0.5, 1.5],
            "Close": [1.2, 2.2],
        }
    )
    feed = HistoricFeed.from_frame(frame, ASSET, time_column="Timestamp")
    assert len(feed) == 2
    assert feed.timeline[0] == START


def test_from_frame_requires_ohlc_columns() -> None:
    frame = pd.DataFrame({"close": [1.0]}, index=pd.to_datetime(["2024-01-01"]))
    with pytest.raises(ValueError):
        HistoricFeed.from_frame(frame, ASSET)


@pytest.mark.asyncio
async def test_from_csv(tmp_path) -> None:
    path = tmp_path / "prices.csv"
    path.write_text(
        "timestamp,open,high,low,close,volume\n"
        "2024-01-02T00:00:00Z,2,3,1,2.5,20\n"
        "2024-01-01T00:00:00Z,1,2,0.5,1.5,10\n"
    )
    feed = HistoricFeed.from_csv(str(path), ASSET)
    actions = await collect_actions(feed, PriceBar)
    assert [t for t, _ in actions] == [START, START + DAY]
    assert actions[0][1].close == 1.5
    assert actions[1][1].volume == 20.0


@pytest.mark.asyncio
async def test_random_walk_feed_is_deterministic_with_seed() -> None:
    timeframe = Timeframe(START, START + 30 * DAY)
    first = RandomWalkFeed(timeframe, n_assets=3, seed=5)
    second = RandomWalkFeed(timeframe, n_assets=3, seed=5)
    assert len(first) == 30
    assert len(first.assets) == 3
    a = await collect_actions(first, PriceBar)
    b = await collect_actions(second, PriceBar)
    assert a == b
    for _, price_bar in a:
        assert price_bar.low <= min(price_bar.open, price_bar.close)
        assert price_bar.high >= max(price_bar.open, price_bar.close)


def test_random_walk_requires_finite_timeframe() -> None:
    with pytest.raises(ValueError):
        RandomWalkFeed(Timeframe.INFINITE)


def test_action_tags_and_values(caplog) -> None:
    price_bar = PriceBar(ASSET, 1.0, 2.0, 0.5, 1.5, 10.0)
    quote = PriceQuote(ASSET, 101.0, 5.0, 99.0, 4.0)
    book = OrderBook(ASSET, asks=[OrderBookEntry(1.0, 101.0), OrderBookEntry(2.0, 100.5)], bids=[OrderBookEntry(3.0, 99.5)])
    assert action_type(price_bar) is ActionType.PRICE_BAR
    assert action_type(quote) is ActionType.PRICE_QUOTE
    assert action_type("news") is None
    assert price_values(price_bar) == [1.0, 2.0, 0.5, 1.5, 10.0]
    assert quote.get_price() == 100.0
    assert quote.spread == 2.0
    assert book.best_ask == 100.5
    assert book.get_price() == 100.0
    assert price_values("news") is None
    assert "Unsupported price action" in caplog.text


def test_event_prices_by_asset() -> None:
    other = Asset("OTHER")
    event = Event(START, [bar(100.0), TradePrice(other, 7.0), "news"])
    assert event.get_prices() == {ASSET: 100.0, other: 7.0}
    assert len(event.price_bars) == 1
    assert len(event) == 3
