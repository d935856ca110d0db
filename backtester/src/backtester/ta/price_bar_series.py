"""Rolling OHLCV buffers.

:class:`PriceBarSeries` stores the most recent ``capacity`` price bars
of a single asset in five fixed-length numpy buffers that are used as
a ring: adding a bar to a full series overwrites the oldest one.
Column accessors return the bars in chronological order (oldest
first) as read-only arrays.

:class:`MultiAssetSeries` keeps one :class:`PriceBarSeries` per asset
and creates them on first use.

Examples
--------
>>> from backtester.common import Asset
>>> from backtester.feeds import PriceBar
>>> series = PriceBarSeries(2)
>>> for i in range(3):
...     series.add(PriceBar(Asset("ABC"), 10 + i, 11 + i, 9 + i, 10 + i, 100))
>>> series.close.tolist()
[11.0, 12.0]
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List

import numpy as np
import pandas as pd

from ..common.currency import Asset
from ..common.errors import UnknownAsset
from ..feeds.actions import PriceBar
from ..feeds.event import Event

logger = logging.getLogger(__name__)

COLUMNS = ("open", "high", "low", "close", "volume")
_ROW = {name: i for i, name in enumerate(COLUMNS)}


def _readonly(values: np.ndarray) -> np.ndarray:
    values.flags.writeable = False
    return values


class PriceBarSeries:
    """Fixed-capacity rolling buffer of OHLCV values for one asset."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._data = np.full((len(COLUMNS), capacity), np.nan)
        self._index = 0  # next slot to write
        self._size = 0

    def add(self, bar: PriceBar) -> None:
        """Append a bar, evicting the oldest one when the series is full."""
        self.add_values(bar.open, bar.high, bar.low, bar.close, bar.volume)

    def add_values(self, open: float, high: float, low: float, close: float, volume: float) -> None:
        self._data[:, self._index] = (open, high, low, close, volume)
        self._index = (self._index + 1) % self.capacity
        if self._size < self.capacity:
            self._size += 1

    def is_full(self) -> bool:
        return self._size == self.capacity

    @property
    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size

    def clear(self) -> None:
        """Remove all bars; the capacity stays the same."""
        self._data.fill(np.nan)
        self._index = 0
        self._size = 0

    def _positions(self) -> np.ndarray:
        start = (self._index - self._size) % self.capacity
        return (start + np.arange(self._size)) % self.capacity

    def _column(self, name: str) -> np.ndarray:
        return _readonly(self._data[_ROW[name], self._positions()])

    @property
    def open(self) -> np.ndarray:
        return self._column("open")

    @property
    def high(self) -> np.ndarray:
        return self._column("high")

    @property
    def low(self) -> np.ndarray:
        return self._column("low")

    @property
    def close(self) -> np.ndarray:
        return self._column("close")

    @property
    def volume(self) -> np.ndarray:
        return self._column("volume")

    @property
    def typical(self) -> np.ndarray:
        """Typical price ``(high + low + close) / 3`` per bar."""
        data = self._data[:, self._positions()]
        return _readonly((data[_ROW["high"]] + data[_ROW["low"]] + data[_ROW["close"]]) / 3.0)

    def window(self, column: str = "close") -> np.ndarray:
        """Full-capacity chronological view of a column.

        Slots that have not been filled (yet, or again after
        :meth:`clear`) read as NaN and come first.
        """
        values = np.full(self.capacity, np.nan)
        if self._size:
            values[self.capacity - self._size:] = self._data[_ROW[column], self._positions()]
        return _readonly(values)

    def latest(self, column: str = "close") -> float:
        """Most recent value of a column, NaN when the series is empty."""
        if not self._size:
            return float("nan")
        return float(self._data[_ROW[column], (self._index - 1) % self.capacity])

    def __getitem__(self, index: int) -> np.ndarray:
        """Return ``(open, high, low, close, volume)`` of a bar; ``0`` is the oldest."""
        if index < 0:
            index += self._size
        if not 0 <= index < self._size:
            raise IndexError("price bar index out of range")
        start = (self._index - self._size) % self.capacity
        return _readonly(self._data[:, (start + index) % self.capacity].copy())

    def __iter__(self) -> Iterator[np.ndarray]:
        for i in range(self._size):
            yield self[i]

    def aggregate(self, n: int) -> "PriceBarSeries":
        """Merge every ``n`` consecutive bars into one.

        The result holds ``size // n`` bars and has that capacity (one
        when no complete group exists, leaving it empty).  A trailing
        group with fewer than ``n`` bars is dropped.

        Raises:
            ValueError: If ``n`` is not positive.
        """
        if n <= 0:
            raise ValueError("aggregation size must be positive")
        groups = self._size // n
        if groups == 0:
            return PriceBarSeries(1)
        data = self._data[:, self._positions()[: groups * n]].reshape(len(COLUMNS), groups, n)
        result = PriceBarSeries(groups)
        result._data[_ROW["open"]] = data[_ROW["open"], :, 0]
        result._data[_ROW["high"]] = data[_ROW["high"]].max(axis=1)
        result._data[_ROW["low"]] = data[_ROW["low"]].min(axis=1)
        result._data[_ROW["close"]] = data[_ROW["close"], :, -1]
        result._data[_ROW["volume"]] = data[_ROW["volume"]].sum(axis=1)
        result._size = groups
        return result

    def to_frame(self) -> pd.DataFrame:
        """Bars as a pandas DataFrame with one column per OHLCV field."""
        data = self._data[:, self._positions()]
        return pd.DataFrame({name: data[i] for i, name in enumerate(COLUMNS)})

    def __repr__(self) -> str:
        return f"PriceBarSeries(capacity={self.capacity}, size={self._size})"


class MultiAssetSeries:
    """A :class:`PriceBarSeries` per asset, created the first time an asset is seen."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._series: Dict[Asset, PriceBarSeries] = {}

    def add(self, bar: PriceBar) -> None:
        series = self._series.get(bar.asset)
        if series is None:
            series = PriceBarSeries(self.capacity)
            self._series[bar.asset] = series
            logger.debug("Created price bar series for %s", bar.asset)
        series.add(bar)

    def add_all(self, event: Event) -> None:
        """Add every price bar of an event; other actions are ignored."""
        for action in event.actions:
            if isinstance(action, PriceBar):
                self.add(action)

    def is_full(self, asset: Asset) -> bool:
        """Whether the series of ``asset`` is full; ``False`` for unseen assets."""
        series = self._series.get(asset)
        return series is not None and series.is_full()

    def get_value(self, asset: Asset) -> PriceBarSeries:
        try:
            return self._series[asset]
        except KeyError:
            raise UnknownAsset(asset) from None

    __getitem__ = get_value

    def __contains__(self, asset: object) -> bool:
        return asset in self._series

    @property
    def assets(self) -> List[Asset]:
        return list(self._series)

    @property
    def size(self) -> int:
        return len(self._series)

    def __len__(self) -> int:
        return len(self._series)

    def clear(self) -> None:
        """Clear the bars of every asset; the assets stay tracked."""
        for series in self._series.values():
            series.clear()
