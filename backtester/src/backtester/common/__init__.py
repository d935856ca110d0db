"""Shared building blocks: currencies, assets, time handling and errors."""

from .currency import Asset, AssetType, Currency  # noqa: F401
from .currency_converter import CurrencyConverter, RateTable, load_rates_from_feed  # noqa: F401
from .errors import (  # noqa: F401
    BacktestError,
    DuplicateRunName,
    FeedError,
    IncompatiblePeriodKind,
    ScoreNotFound,
    UnknownAsset,
    UnknownCurrency,
)
from .timeframe import (  # noqa: F401
    Timeframe,
    TradingPeriod,
    days,
    hours,
    millis,
    minutes,
    months,
    seconds,
    to_utc,
    years,
)
