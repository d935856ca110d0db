"""Market actions carried inside events.

An event holds an ordered list of actions.  The price-bearing variants
defined here form a closed set, each tagged with an
:class:`ActionType`:

* :class:`PriceBar` – OHLCV bar for a time bucket.
* :class:`TradePrice` – a single trade print.
* :class:`PriceQuote` – best bid/ask quote.
* :class:`OrderBook` – a snapshot of (part of) the order book.

Any other object may also travel inside an event (for example news or
corporate actions produced by a custom feed).  Code that only
understands prices uses :func:`price_values`, which returns the numeric
values for price-bearing variants and ``None`` for anything else.
"""

from __future__ import annotations

import abc
import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Any, ClassVar, List, Optional

from ..common.currency import Asset

logger = logging.getLogger(__name__)


class ActionType(enum.IntEnum):
    """Stable numeric tags of the price-bearing action variants."""

    PRICE_BAR = 1
    TRADE_PRICE = 2
    PRICE_QUOTE = 3
    ORDER_BOOK = 4


class PriceAction(abc.ABC):
    """Common interface of all price-bearing actions."""

    action_type: ClassVar[ActionType]
    asset: Asset

    @abc.abstractmethod
    def values(self) -> List[float]:
        """Numeric representation of the action, in a variant specific order."""

    @abc.abstractmethod
    def get_price(self, price_type: str = "DEFAULT") -> float:
        """Single price for the action, selected by ``price_type``."""

    @property
    @abc.abstractmethod
    def volume(self) -> float:
        """Volume associated with the action, NaN when unknown."""


@dataclass
class PriceBar(PriceAction):
    """Open/high/low/close/volume observation for an asset.

    The OHLC invariant ``low <= open, close <= high`` is assumed, not
    checked.
    """

    action_type: ClassVar[ActionType] = ActionType.PRICE_BAR

    asset: Asset
    open: float
    high: float
    low: float
    close: float
    volume: float = math.nan  # type: ignore[assignment]

    def values(self) -> List[float]:
        return [self.open, self.high, self.low, self.close, self.volume]

    def get_price(self, price_type: str = "DEFAULT") -> float:
        price_type = price_type.upper()
        if price_type == "OPEN":
            return self.open
        if price_type == "HIGH":
            return self.high
        if price_type == "LOW":
            return self.low
        if price_type == "TYPICAL":
            return (self.high + self.low + self.close) / 3.0
        return self.close

    def adjust_close(self, adjusted_close: float) -> None:
        """Rescale the bar in place so that its close equals ``adjusted_close``.

        Used to apply splits and dividends retroactively: all prices are
        multiplied by ``adjusted_close / close`` and the volume is divided
        by the same ratio, so the traded value stays unchanged.
        """
        ratio = adjusted_close / self.close
        self.open *= ratio
        self.high *= ratio
        self.low *= ratio
        self.close = adjusted_close
        self.volume /= ratio


@dataclass(frozen=True)
class TradePrice(PriceAction):
    """Price and volume of an executed trade."""

    action_type: ClassVar[ActionType] = ActionType.TRADE_PRICE

    asset: Asset
    price: float
    volume: float = math.nan  # type: ignore[assignment]

    def values(self) -> List[float]:
        return [self.price, self.volume]

    def get_price(self, price_type: str = "DEFAULT") -> float:
        return self.price


@dataclass(frozen=True)
class PriceQuote(PriceAction):
    """Best ask and bid with their sizes."""

    action_type: ClassVar[ActionType] = ActionType.PRICE_QUOTE

    asset: Asset
    ask_price: float
    ask_size: float
    bid_price: float
    bid_size: float

    def values(self) -> List[float]:
        return [self.ask_price, self.ask_size, self.bid_price, self.bid_size]

    @property
    def volume(self) -> float:  # type: ignore[override]
        return self.ask_size + self.bid_size

    @property
    def spread(self) -> float:
        return self.ask_price - self.bid_price

    def get_price(self, price_type: str = "DEFAULT") -> float:
        price_type = price_type.upper()
        if price_type == "ASK":
            return self.ask_price
        if price_type == "BID":
            return self.bid_price
        return (self.ask_price + self.bid_price) / 2.0


@dataclass(frozen=True)
class OrderBookEntry:
    size: float
    limit: float


@dataclass(frozen=True)
class OrderBook(PriceAction):
    """Order book snapshot; ``asks`` and ``bids`` in any order."""

    action_type: ClassVar[ActionType] = ActionType.ORDER_BOOK

    asset: Asset
    asks: List[OrderBookEntry] = field(default_factory=list)
    bids: List[OrderBookEntry] = field(default_factory=list)

    def values(self) -> List[float]:
        result: List[float] = [float(len(self.asks))]
        for entry in self.asks:
            result.extend((entry.size, entry.limit))
        for entry in self.bids:
            result.extend((entry.size, entry.limit))
        return result

    @property
    def best_ask(self) -> float:
        return min((e.limit for e in self.asks), default=math.nan)

    @property
    def best_bid(self) -> float:
        return max((e.limit for e in self.bids), default=math.nan)

    @property
    def volume(self) -> float:  # type: ignore[override]
        return sum(e.size for e in self.asks) + sum(e.size for e in self.bids)

    def get_price(self, price_type: str = "DEFAULT") -> float:
        price_type = price_type.upper()
        if price_type == "ASK":
            return self.best_ask
        if price_type == "BID":
            return self.best_bid
        return (self.best_ask + self.best_bid) / 2.0


def action_type(action: Any) -> Optional[ActionType]:
    """Tag of a price-bearing action, ``None`` for any other object."""
    if isinstance(action, PriceAction):
        return action.action_type
    return None


def price_values(action: Any) -> Optional[List[float]]:
    """Numeric values of a price-bearing action.

    Unsupported actions are skipped with a warning and yield ``None``.
    """
    if isinstance(action, PriceAction):
        return action.values()
    logger.warning("Unsupported price action encountered %r", action)
    return None
