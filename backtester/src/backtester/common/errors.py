"""Exception types raised by the backtester core.

All errors derive from :class:`BacktestError` so callers can catch the
whole family in one place.  Closing of an event channel is *not* an
error and has no exception here; see :mod:`backtester.feeds.channel`.
"""

from __future__ import annotations


class BacktestError(Exception):
    """Base class for all backtester errors."""


class UnknownCurrency(BacktestError):
    """A conversion was requested for a currency without exchange rates."""

    def __init__(self, currency: object) -> None:
        super().__init__(f"no exchange rates available for currency {currency}")
        self.currency = currency


class UnknownAsset(BacktestError):
    """A price series was requested for an asset that was never observed."""

    def __init__(self, asset: object) -> None:
        super().__init__(f"no price series available for asset {asset}")
        self.asset = asset


class IncompatiblePeriodKind(BacktestError):
    """Calendar periods and fixed durations were mixed in one operation."""


class DuplicateRunName(BacktestError):
    """A run name was registered twice."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"run name has to be unique, name={name} is already in use by another run"
        )
        self.name = name


class FeedError(BacktestError):
    """The feed producing events for a channel failed."""


class ScoreNotFound(BacktestError):
    """The score path could not be resolved in a metrics snapshot."""

    def __init__(self, path: str) -> None:
        super().__init__(f"score '{path}' not found in metrics snapshot")
        self.path = path
