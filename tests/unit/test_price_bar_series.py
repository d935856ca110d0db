"""Unit tests for the rolling price bar buffers.

These tests verify ring eviction, clearing, bar aggregation and the
lazy per-asset series of ``MultiAssetSeries``.
"""

import math

import numpy as np
import pytest

from backtester.common.currency import Asset
from backtester.common.errors import UnknownAsset
from backtester.feeds.actions import PriceBar, TradePrice
from backtester.feeds.event import Event
from backtester.ta.price_bar_series import MultiAssetSeries, PriceBarSeries
from tests.helpers.fake_feeds import START

ABC = Asset("ABC")
XYZ = Asset("XYZ")


def _series(n: int, capacity: int) -> PriceBarSeries:
    series = PriceBarSeries(capacity)
    for i in range(n):
        series.add_values(100 + i, 101 + i, 99 + i, 100 + i, 10000)
    return series


def test_series_fills_and_evicts_oldest():
    series = PriceBarSeries(3)
    assert not series.is_full()
    for close in (1.0, 2.0, 3.0):
        series.add(PriceBar(ABC, close, close, close, close, 10.0))
    assert series.is_full()
    assert series.size == 3
    series.add(PriceBar(ABC, 4.0, 4.0, 4.0, 4.0, 10.0))
    series.add(PriceBar(ABC, 5.0, 5.0, 5.0, 5.0, 10.0))
    assert series.size == 3
    assert list(series.close) == [3.0, 4.0, 5.0]
    assert series[0][3] == 3.0
    assert series[-1][3] == 5.0
    assert series.latest() == 5.0


def test_series_index_out_of_range():
    series = _series(2, 5)
    with pytest.raises(IndexError):
        series[2]
    with pytest.raises(IndexError):
        series[-3]


def test_clear_resets_size_and_reads_nan():
    series = _series(5, 5)
    series.clear()
    assert not series.is_full()
    assert series.size == 0
    assert len(series.close) == 0
    assert np.isnan(series.window("close")).all()
    assert math.isnan(series.latest("close"))
    series.add_values(1, 2, 0, 1, 5)
    assert series.size == 1
    assert series.latest() == 1.0


def test_window_pads_with_nan():
    series = _series(2, 4)
    window = series.window("close")
    assert len(window) == 4
    assert np.isnan(window[:2]).all()
    assert list(window[2:]) == [100.0, 101.0]


def test_columns_are_read_only():
    series = _series(3, 3)
    with pytest.raises(ValueError):
        series.close[0] = 1.0


def test_aggregate_drops_trailing_partial_group():
    series = _series(93, 93)
    aggregated = series.aggregate(10)
    assert aggregated.size == 9
    first = aggregated[0]
    assert first[0] == 100.0  # open
    assert first[1] == 110.0  # high
    assert first[2] == 99.0  # low
    assert first[3] == 109.0  # close
    assert first[4] == 100000.0  # volume


def test_aggregate_by_one_is_identity():
    series = _series(7, 5)
    aggregated = series.aggregate(1)
    assert aggregated.size == series.size
    for column in ("open", "high", "low", "close", "volume"):
        assert list(getattr(aggregated, column)) == list(getattr(series, column))


def test_aggregate_respects_ring_order():
    series = _series(12, 10)  # bars 2..11 remain
    aggregated = series.aggregate(5)
    assert aggregated.size == 2
    assert aggregated[0][0] == 102.0
    assert aggregated[1][3] == 111.0


def test_aggregate_rejects_non_positive_size():
    series = _series(3, 5)
    with pytest.raises(ValueError):
        series.aggregate(0)
    with pytest.raises(ValueError):
        series.aggregate(-2)


def test_aggregate_without_complete_group_is_empty():
    series = _series(3, 5)
    aggregated = series.aggregate(4)
    assert aggregated.size == 0
    assert not aggregated.is_full()
    assert series.aggregate(10).size == 0
    assert PriceBarSeries(4).aggregate(2).size == 0


def test_adjust_close_rescales_bar():
    bar = PriceBar(ABC, 10.0, 11.0, 9.0, 10.0, 100.0)
    bar.adjust_close(5.0)
    assert bar.open == 5.0
    assert bar.high == 5.5
    assert bar.low == 4.5
    assert bar.close == 5.0
    assert bar.volume == 200.0


def test_to_frame_has_ohlcv_columns():
    frame = _series(3, 3).to_frame()
    assert list(frame.columns) == ["open", "high", "low", "close", "volume"]
    assert list(frame["close"]) == [100.0, 101.0, 102.0]


def test_multi_asset_series_unseen_asset():
    multi = MultiAssetSeries(2)
    assert not multi.is_full(ABC)
    assert ABC not in multi
    with pytest.raises(UnknownAsset):
        multi.get_value(ABC)


def test_multi_asset_series_creates_series_lazily():
    multi = MultiAssetSeries(2)
    event = Event(
        START,
        [
            PriceBar(ABC, 1.0, 1.0, 1.0, 1.0),
            PriceBar(XYZ, 2.0, 2.0, 2.0, 2.0),
            TradePrice(ABC, 1.5, 10.0),
        ],
    )
    multi.add_all(event)
    multi.add(PriceBar(ABC, 3.0, 3.0, 3.0, 3.0))
    assert set(multi.assets) == {ABC, XYZ}
    assert multi.is_full(ABC)
    assert not multi.is_full(XYZ)
    assert list(multi[ABC].close) == [1.0, 3.0]
    multi.clear()
    assert len(multi) == 2
    assert multi[ABC].size == 0
