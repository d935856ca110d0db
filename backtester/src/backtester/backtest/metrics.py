"""
Metrics computed by a run for every event.

A metric receives each event and returns a flat mapping of metric
names to values.  Names use dotted paths (``"returns.sharpe"``) so the
optimizer can select a score with a single string.  Metrics keep their
own state and are created per run; they are never shared between
trials.

Available metrics
-----------------

* :class:`ProgressMetric` – counts events, actions and price bars.
* :class:`ReturnsMetric` – equally weighted buy-and-hold index of all
  observed assets with its Sharpe ratio and maximum drawdown.
* :class:`SmaCrossMetric` – moving-average crossovers and the paper
  P&L of flipping a unit position on every cross.
"""

from __future__ import annotations

import abc
import math
from typing import Dict

import numpy as np

from ..common.currency import Asset
from ..feeds.event import Event
from ..ta.price_bar_series import MultiAssetSeries

# Annualisation factor: assume ~252 trading days per year
ANNUALISATION = math.sqrt(252)


class Metric(abc.ABC):
    """Base class for run metrics."""

    @abc.abstractmethod
    def calculate(self, event: Event) -> Dict[str, float]:
        """Update the metric with ``event`` and return the current values."""

    def reset(self) -> None:
        """Forget all state so the metric can be reused for a new run."""


class ProgressMetric(Metric):
    """Number of events, actions and price bars seen so far."""

    def __init__(self) -> None:
        self.events = 0
        self.actions = 0
        self.price_bars = 0

    def calculate(self, event: Event) -> Dict[str, float]:
        self.events += 1
        self.actions += len(event.actions)
        self.price_bars += len(event.price_bars)
        return {
            "progress.events": float(self.events),
            "progress.actions": float(self.actions),
            "progress.price_bars": float(self.price_bars),
        }

    def reset(self) -> None:
        self.events = 0
        self.actions = 0
        self.price_bars = 0


class ReturnsMetric(Metric):
    """Performance of an equally weighted buy-and-hold index.

    The index value is the mean over all observed assets of
    ``price / first price``, so it starts at ``1.0``.  Sharpe ratio and
    maximum drawdown are maintained incrementally from the per-event
    index returns.
    """

    def __init__(self, price_type: str = "DEFAULT") -> None:
        self.price_type = price_type
        self.reset()

    def reset(self) -> None:
        self._first: Dict[Asset, float] = {}
        self._last: Dict[Asset, float] = {}
        self._equity = 1.0
        self._peak = 1.0
        self._max_drawdown = 0.0
        # Welford running mean/variance of returns
        self._n = 0
        self._mean = 0.0
        self._m2 = 0.0

    def _sharpe(self) -> float:
        if self._n < 2:
            return 0.0
        std = math.sqrt(self._m2 / self._n)
        if std == 0:
            return 0.0
        return self._mean / std * ANNUALISATION

    def calculate(self, event: Event) -> Dict[str, float]:
        prices = event.get_prices(self.price_type)
        for asset, price in prices.items():
            if math.isnan(price) or price <= 0:
                continue
            self._first.setdefault(asset, price)
            self._last[asset] = price
        if self._first:
            equity = float(np.mean([self._last[a] / self._first[a] for a in self._first]))
            ret = equity / self._equity - 1.0
            self._equity = equity
            self._n += 1
            delta = ret - self._mean
            self._mean += delta / self._n
            self._m2 += delta * (ret - self._mean)
            self._peak = max(self._peak, equity)
            self._max_drawdown = max(self._max_drawdown, (self._peak - equity) / self._peak)
        return {
            "returns.equity": self._equity,
            "returns.total": self._equity - 1.0,
            "returns.sharpe": self._sharpe(),
            "returns.max_drawdown": self._max_drawdown,
        }


class SmaCrossMetric(Metric):
    """Track fast/slow simple-moving-average crossovers per asset.

    A unit position is held in the direction of the last crossover
    (long after the fast average crosses above the slow one, short
    after it crosses below) and marked to the close of every bar.

    Args:
        fast: Window of the fast moving average.
        slow: Window of the slow moving average; must exceed ``fast``.
    """

    def __init__(self, fast: int = 5, slow: int = 15) -> None:
        if fast <= 0 or slow <= fast:
            raise ValueError("require 0 < fast < slow")
        self.fast = fast
        self.slow = slow
        self.reset()

    def reset(self) -> None:
        self._series = MultiAssetSeries(self.slow)
        self._prev_diff: Dict[Asset, float] = {}
        self._position: Dict[Asset, int] = {}
        self._last_close: Dict[Asset, float] = {}
        self._crossovers = 0
        self._pnl = 0.0

    def calculate(self, event: Event) -> Dict[str, float]:
        for bar in event.price_bars:
            asset = bar.asset
            position = self._position.get(asset, 0)
            if position and asset in self._last_close:
                self._pnl += position * (bar.close - self._last_close[asset])
            self._last_close[asset] = bar.close
            self._series.add(bar)
            if not self._series.is_full(asset):
                continue
            closes = self._series.get_value(asset).close
            diff = float(closes[-self.fast:].mean() - closes.mean())
            prev = self._prev_diff.get(asset)
            self._prev_diff[asset] = diff
            if prev is None:
                continue
            if prev <= 0 < diff and position <= 0:
                self._position[asset] = 1
                self._crossovers += 1
            elif prev >= 0 > diff and position >= 0:
                self._position[asset] = -1
                self._crossovers += 1
        return {"sma.crossovers": float(self._crossovers), "sma.pnl": self._pnl}
