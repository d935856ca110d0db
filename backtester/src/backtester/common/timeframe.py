"""Time intervals and trading periods.

A :class:`Timeframe` is a half-open interval ``[start, end)`` of
timezone-aware UTC datetimes.  It bounds event delivery on a channel
and describes the windows the optimizer carves out of a feed.

A :class:`TradingPeriod` is either a *calendar* amount (years, months,
days) or a fixed *duration* (hours, minutes, seconds, millis).
Calendar amounts are applied with :class:`pandas.DateOffset` so that
"one month" after January 31st lands on the last day of February,
while durations are plain :class:`datetime.timedelta` offsets.  The
two kinds can be added to datetimes freely but never combined with
each other: ``months(1) + hours(2)`` raises
:class:`~backtester.common.errors.IncompatiblePeriodKind`.

Examples
--------
>>> tf = Timeframe.parse("2024-01-01", "2024-07-01")
>>> [str(w) for w in tf.split(months(3))]
['2024-01-01T00:00:00+00:00 - 2024-04-01T00:00:00+00:00', '2024-04-01T00:00:00+00:00 - 2024-07-01T00:00:00+00:00']
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, ClassVar, List

import pandas as pd

from .errors import IncompatiblePeriodKind

UTC = timezone.utc

MIN_TIME = datetime.min.replace(tzinfo=UTC)
MAX_TIME = datetime.max.replace(tzinfo=UTC)

# Smallest step used to turn an inclusive last timestamp into an exclusive end.
EPSILON = timedelta(microseconds=1)


def to_utc(value: Any) -> datetime:
    """Convert a string, datetime or pandas timestamp to an aware UTC datetime.

    Naive values are interpreted as UTC.
    """
    if isinstance(value, datetime) and not isinstance(value, pd.Timestamp):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    else:
        ts = ts.tz_convert("UTC")
    return ts.to_pydatetime()


class PeriodKind(enum.Enum):
    CALENDAR = "calendar"
    DURATION = "duration"


@dataclass(frozen=True)
class TradingPeriod:
    """A calendar period or a fixed duration that can be added to datetimes."""

    kind: PeriodKind
    years: int = 0
    months: int = 0
    days: int = 0
    duration: timedelta = timedelta(0)

    def _check_kind(self, other: "TradingPeriod", operation: str) -> None:
        if not isinstance(other, TradingPeriod):
            raise TypeError(f"cannot {operation} {type(other).__name__} and TradingPeriod")
        if other.kind is not self.kind:
            raise IncompatiblePeriodKind(
                f"can only {operation} trading periods of the same kind, "
                f"got {self.kind.value} and {other.kind.value}"
            )

    def __add__(self, other: "TradingPeriod") -> "TradingPeriod":
        self._check_kind(other, "add")
        if self.kind is PeriodKind.CALENDAR:
            return TradingPeriod(
                PeriodKind.CALENDAR,
                years=self.years + other.years,
                months=self.months + other.months,
                days=self.days + other.days,
            )
        return TradingPeriod(PeriodKind.DURATION, duration=self.duration + other.duration)

    def __sub__(self, other: "TradingPeriod") -> "TradingPeriod":
        self._check_kind(other, "subtract")
        if self.kind is PeriodKind.CALENDAR:
            return TradingPeriod(
                PeriodKind.CALENDAR,
                years=self.years - other.years,
                months=self.months - other.months,
                days=self.days - other.days,
            )
        return TradingPeriod(PeriodKind.DURATION, duration=self.duration - other.duration)

    def __mul__(self, factor: int) -> "TradingPeriod":
        if self.kind is PeriodKind.CALENDAR:
            return TradingPeriod(
                PeriodKind.CALENDAR,
                years=self.years * factor,
                months=self.months * factor,
                days=self.days * factor,
            )
        return TradingPeriod(PeriodKind.DURATION, duration=self.duration * factor)

    __rmul__ = __mul__

    @property
    def is_zero(self) -> bool:
        if self.kind is PeriodKind.CALENDAR:
            return self.years == 0 and self.months == 0 and self.days == 0
        return self.duration == timedelta(0)

    def _offset(self, sign: int) -> pd.DateOffset:
        return pd.DateOffset(
            years=sign * self.years, months=sign * self.months, days=sign * self.days
        )

    def add_to(self, moment: datetime) -> datetime:
        """Return ``moment`` shifted forward by this period."""
        if self.kind is PeriodKind.DURATION:
            return moment + self.duration
        if self.is_zero:
            return moment
        return (pd.Timestamp(moment) + self._offset(1)).to_pydatetime()

    def subtract_from(self, moment: datetime) -> datetime:
        """Return ``moment`` shifted backward by this period."""
        if self.kind is PeriodKind.DURATION:
            return moment - self.duration
        if self.is_zero:
            return moment
        return (pd.Timestamp(moment) + self._offset(-1)).to_pydatetime()

    def __str__(self) -> str:
        if self.kind is PeriodKind.DURATION:
            return str(self.duration)
        return f"{self.years}y{self.months}m{self.days}d"


def years(n: int) -> TradingPeriod:
    return TradingPeriod(PeriodKind.CALENDAR, years=n)


def months(n: int) -> TradingPeriod:
    return TradingPeriod(PeriodKind.CALENDAR, months=n)


def days(n: int) -> TradingPeriod:
    return TradingPeriod(PeriodKind.CALENDAR, days=n)


def hours(n: int) -> TradingPeriod:
    return TradingPeriod(PeriodKind.DURATION, duration=timedelta(hours=n))


def minutes(n: int) -> TradingPeriod:
    return TradingPeriod(PeriodKind.DURATION, duration=timedelta(minutes=n))


def seconds(n: int) -> TradingPeriod:
    return TradingPeriod(PeriodKind.DURATION, duration=timedelta(seconds=n))


def millis(n: int) -> TradingPeriod:
    return TradingPeriod(PeriodKind.DURATION, duration=timedelta(milliseconds=n))


@dataclass(frozen=True)
class Timeframe:
    """Half-open time interval ``[start, end)``."""

    start: datetime
    end: datetime

    INFINITE: ClassVar["Timeframe"]

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("timeframe boundaries must be timezone aware")
        if self.end < self.start:
            raise ValueError(f"end {self.end} is before start {self.start}")

    @classmethod
    def parse(cls, start: Any, end: Any) -> "Timeframe":
        """Create a timeframe from anything :func:`to_utc` understands."""
        return cls(to_utc(start), to_utc(end))

    @classmethod
    def next(cls, period: TradingPeriod) -> "Timeframe":
        """Timeframe starting now and lasting ``period``."""
        now = datetime.now(tz=UTC)
        return cls(now, period.add_to(now))

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def __contains__(self, moment: datetime) -> bool:
        return self.contains(moment)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    @property
    def is_finite(self) -> bool:
        return self.start != MIN_TIME and self.end != MAX_TIME

    def intersect(self, other: "Timeframe") -> "Timeframe":
        """Overlap of two timeframes; empty (at ``self.start``) when disjoint."""
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if end < start:
            return Timeframe(self.start, self.start)
        return Timeframe(start, end)

    def split(self, period: TradingPeriod, include_remainder: bool = True) -> List["Timeframe"]:
        """Split into consecutive windows of ``period``.

        The last window is shorter than ``period`` when the timeframe is
        not an exact multiple; it is dropped if ``include_remainder`` is
        false.
        """
        if not self.is_finite:
            raise ValueError("cannot split an infinite timeframe")
        if period.is_zero:
            raise ValueError("cannot split using a zero period")
        windows: List[Timeframe] = []
        cursor = self.start
        while cursor < self.end:
            nxt = period.add_to(cursor)
            if nxt > self.end:
                if include_remainder:
                    windows.append(Timeframe(cursor, self.end))
                break
            windows.append(Timeframe(cursor, nxt))
            cursor = nxt
        return windows

    def __str__(self) -> str:
        return f"{self.start.isoformat()} - {self.end.isoformat()}"


Timeframe.INFINITE = Timeframe(MIN_TIME, MAX_TIME)
