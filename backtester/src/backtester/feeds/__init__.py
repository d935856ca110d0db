"""Market data model and the event pipeline.

This package contains the action variants carried by events, the
bounded event channel that connects a feed to a run loop, and the
in-memory feeds used for backtests.
"""

from .actions import (  # noqa: F401
    ActionType,
    OrderBook,
    OrderBookEntry,
    PriceAction,
    PriceBar,
    PriceQuote,
    TradePrice,
    action_type,
    price_values,
)
from .channel import CLOSED, EventChannel, Received, play_feed  # noqa: F401
from .event import Event  # noqa: F401
from .feed import Feed, HistoricFeed, collect_actions  # noqa: F401
from .random_walk import RandomWalkFeed  # noqa: F401
