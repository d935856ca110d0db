"""Randomly generated price bars, useful for tests and demos."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

import numpy as np

from ..common.currency import Asset
from ..common.timeframe import UTC, Timeframe, years as years_period
from .actions import PriceBar
from .feed import HistoricFeed


class RandomWalkFeed(HistoricFeed):
    """Historic feed of random-walk price bars.

    Each asset starts at a random price between 50 and 150 and moves by
    a normally distributed percentage per step.  Bars are generated up
    front, so playing the feed several times yields the same events.

    Parameters
    ----------
    timeframe : Timeframe
        Timeframe to generate bars for.  Must be finite.
    frequency : timedelta
        Time between two consecutive events.
    n_assets : int
        Number of assets, named ``ASSET1``, ``ASSET2``, ...
    volatility : float
        Standard deviation of the per-step return.
    seed : int, optional
        Seed for the numpy random generator.
    """

    def __init__(
        self,
        timeframe: Timeframe,
        frequency: timedelta = timedelta(days=1),
        n_assets: int = 10,
        volatility: float = 0.01,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__()
        if not timeframe.is_finite:
            raise ValueError("random walk requires a finite timeframe")
        if n_assets <= 0:
            raise ValueError("n_assets must be positive")
        rng = np.random.default_rng(seed)
        times: List[datetime] = []
        cursor = timeframe.start
        while cursor < timeframe.end:
            times.append(cursor)
            cursor += frequency
        n = len(times)
        for i in range(n_assets):
            asset = Asset(f"ASSET{i + 1}")
            start_price = rng.uniform(50.0, 150.0)
            closes = start_price * np.cumprod(1.0 + rng.normal(0.0, volatility, n))
            opens = np.concatenate(([start_price], closes[:-1]))
            spread = np.abs(rng.normal(0.0, volatility / 2.0, n)) * closes
            highs = np.maximum(opens, closes) + spread
            lows = np.minimum(opens, closes) - spread
            volumes = rng.integers(1_000, 10_000, n).astype(float)
            for t, o, h, l, c, v in zip(times, opens, highs, lows, closes, volumes):
                self.add(t, PriceBar(asset, float(o), float(h), float(l), float(c), float(v)))

    @classmethod
    def last_years(cls, years: int = 1, n_assets: int = 2, seed: Optional[int] = 42) -> "RandomWalkFeed":
        """Daily bars for the last ``years`` years up to today (midnight UTC)."""
        end = datetime.now(tz=UTC).replace(hour=0, minute=0, second=0, microsecond=0)
        start = years_period(years).subtract_from(end)
        return cls(Timeframe(start, end), n_assets=n_assets, seed=seed)
