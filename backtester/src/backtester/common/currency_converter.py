"""
Time-indexed currency conversion.

Exchange rates are kept per currency in a :class:`RateTable`, always
expressed against a single base currency: a rate of ``1.1`` for EUR
with base USD means one euro buys 1.1 dollars.  The
:class:`CurrencyConverter` looks rates up at a point in time and
triangulates cross conversions through the base currency.

Rate lookups select the most recent rate at or before the requested
time.  When the request predates every known rate the earliest rate is
used instead of failing, so a run that starts slightly before the rate
history still gets a value.

Tables can be seeded by hand with :meth:`RateTable.set_rate`, from a
pandas frame with :meth:`RateTable.from_frame`, or from the FOREX
price actions of a feed with :func:`load_rates_from_feed`.
"""

from __future__ import annotations

import bisect
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional, Tuple

import pandas as pd

from ..config import get_settings
from .currency import AssetType, Currency
from .errors import UnknownCurrency
from .timeframe import Timeframe, to_utc

if TYPE_CHECKING:  # pragma: no cover
    from ..feeds.feed import Feed

logger = logging.getLogger(__name__)


def default_base_currency() -> Currency:
    """Base currency configured with ``BACKTEST_BASE_CURRENCY``."""
    return Currency.of(get_settings().base_currency)


class RateTable:
    """Per-currency ordered history of exchange rates against a base currency."""

    def __init__(self) -> None:
        # currency -> (sorted timestamps, rates); the two lists are parallel
        self._times: Dict[Currency, List[datetime]] = {}
        self._rates: Dict[Currency, List[float]] = {}

    def set_rate(self, currency: Currency, time: datetime, rate: float) -> None:
        """Append a rate for ``currency`` valid from ``time`` onwards.

        Args:
            currency: The currency the rate applies to.
            time: Timestamp of the rate.  Must be later than any rate
                already recorded for this currency.
            rate: Value of one unit of ``currency`` in the base currency.

        Raises:
            ValueError: If the rate is not positive or ``time`` does not
                strictly increase.
        """
        if not rate > 0.0:
            raise ValueError(f"rate for {currency} must be positive, got {rate}")
        time = to_utc(time)
        times = self._times.setdefault(currency, [])
        if times and time <= times[-1]:
            raise ValueError(
                f"rates for {currency} must be added in increasing time order, "
                f"{time.isoformat()} <= {times[-1].isoformat()}"
            )
        times.append(time)
        self._rates.setdefault(currency, []).append(float(rate))

    def find(self, currency: Currency, time: datetime) -> float:
        """Rate in effect at ``time``, falling back to the earliest known rate."""
        time = to_utc(time)
        times = self._times.get(currency)
        if not times:
            raise UnknownCurrency(currency)
        idx = bisect.bisect_right(times, time) - 1
        if idx < 0:
            idx = 0
        return self._rates[currency][idx]

    def history(self, currency: Currency) -> List[Tuple[datetime, float]]:
        """Return a copy of the recorded ``(time, rate)`` pairs for a currency."""
        if currency not in self._times:
            raise UnknownCurrency(currency)
        return list(zip(self._times[currency], self._rates[currency]))

    def last_time(self, currency: Currency) -> Optional[datetime]:
        """Timestamp of the most recent rate, or ``None`` if there is none."""
        times = self._times.get(currency)
        return times[-1] if times else None

    @property
    def currencies(self) -> FrozenSet[Currency]:
        return frozenset(c for c, times in self._times.items() if times)

    def __contains__(self, currency: object) -> bool:
        return bool(self._times.get(currency))  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self.currencies)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "RateTable":
        """Build a table from a frame indexed by time with one column per currency code.

        Missing values (NaN) are skipped, so currencies with gaps in their
        history are supported.
        """
        table = cls()
        index = pd.to_datetime(frame.index, utc=True)
        ordered = frame.set_axis(index).sort_index()
        for column in ordered.columns:
            currency = Currency.of(str(column))
            for time, rate in ordered[column].dropna().items():
                table.set_rate(currency, time, float(rate))
        return table


class CurrencyConverter:
    """Convert amounts between currencies at a point in time.

    The converter never mutates its table; whoever seeds the rates owns
    the writes.
    """

    def __init__(self, base_currency: Optional[Currency] = None, table: Optional[RateTable] = None) -> None:
        if base_currency is None:
            base_currency = default_base_currency()
        self.base_currency = base_currency
        self.table = table if table is not None else RateTable()

    def rate(self, currency: Currency, time: datetime) -> float:
        return self.table.find(currency, time)

    def currencies(self) -> FrozenSet[Currency]:
        return self.table.currencies

    def convert(self, source: Currency, target: Currency, amount: float, time: datetime) -> float:
        """Convert ``amount`` from ``source`` to ``target`` using the rates at ``time``.

        Cross conversions go through the base currency and are therefore
        not guaranteed to be exact inverses of the reverse conversion.
        """
        if source == target:
            return amount
        if target == self.base_currency:
            return self.rate(source, time) * amount
        if source == self.base_currency:
            return amount / self.rate(target, time)
        return self.rate(source, time) / self.rate(target, time) * amount


async def load_rates_from_feed(
    feed: "Feed",
    base_currency: Optional[Currency] = None,
    timeframe: Timeframe = Timeframe.INFINITE,
    table: Optional[RateTable] = None,
) -> RateTable:
    """Seed a rate table from the FOREX price actions of a feed.

    For an asset ``XXX_BASE`` the price is the rate of ``XXX``; for an
    asset ``BASE_XXX`` the rate of ``XXX`` is the inverse of the price.
    Pairs not involving the base currency are ignored.  Only the first
    rate per currency and timestamp is kept.  ``base_currency`` defaults
    to ``BACKTEST_BASE_CURRENCY``.
    """
    from ..feeds.actions import PriceAction
    from ..feeds.channel import play_feed

    if base_currency is None:
        base_currency = default_base_currency()
    table = table if table is not None else RateTable()
    async with play_feed(feed, timeframe) as channel:
        async for event in channel:
            for action in event.actions:
                if not isinstance(action, PriceAction):
                    continue
                asset = action.asset
                if asset.asset_type is not AssetType.FOREX:
                    continue
                base, quote = asset.currency_pair
                price = action.get_price()
                if quote == base_currency:
                    currency, rate = base, price
                elif base == base_currency:
                    currency, rate = quote, 1.0 / price
                else:
                    continue
                last = table.last_time(currency)
                if last is not None and last >= event.time:
                    continue
                table.set_rate(currency, event.time, rate)
    logger.info("Loaded exchange rates for %d currencies from feed", len(table))
    return table
