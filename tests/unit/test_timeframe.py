"""Unit tests for timeframes and trading periods."""

from datetime import datetime, timedelta, timezone

import pytest

from backtester.common.errors import IncompatiblePeriodKind
from backtester.common.timeframe import Timeframe, days, hours, millis, minutes, months, to_utc, years

UTC = timezone.utc


def test_timeframe_is_half_open():
    tf = Timeframe.parse("2024-01-01", "2024-01-02")
    assert tf.contains(datetime(2024, 1, 1, tzinfo=UTC))
    assert datetime(2024, 1, 1, 23, 59, tzinfo=UTC) in tf
    assert datetime(2024, 1, 2, tzinfo=UTC) not in tf
    assert tf.duration == timedelta(days=1)


def test_timeframe_validation():
    with pytest.raises(ValueError):
        Timeframe(datetime(2024, 1, 1), datetime(2024, 1, 2))
    with pytest.raises(ValueError):
        Timeframe.parse("2024-01-02", "2024-01-01")


def test_infinite_timeframe():
    assert not Timeframe.INFINITE.is_finite
    with pytest.raises(ValueError):
        Timeframe.INFINITE.split(days(1))


def test_intersect():
    a = Timeframe.parse("2024-01-01", "2024-03-01")
    b = Timeframe.parse("2024-02-01", "2024-04-01")
    assert a.intersect(b) == Timeframe.parse("2024-02-01", "2024-03-01")
    c = Timeframe.parse("2025-01-01", "2025-02-01")
    assert a.intersect(c).is_empty


def test_split_by_months_keeps_remainder():
    tf = Timeframe.parse("2024-01-01", "2024-03-15")
    windows = tf.split(months(1))
    assert [w.start.month for w in windows] == [1, 2, 3]
    assert windows[-1].end == to_utc("2024-03-15")
    assert len(tf.split(months(1), include_remainder=False)) == 2


def test_calendar_period_respects_month_end():
    moment = to_utc("2024-01-31")
    assert months(1).add_to(moment) == to_utc("2024-02-29")
    assert years(1).subtract_from(to_utc("2024-02-29")) == to_utc("2023-02-28")


def test_duration_periods():
    moment = to_utc("2024-01-01")
    assert hours(2).add_to(moment) == to_utc("2024-01-01T02:00:00")
    assert (minutes(30) + minutes(30)).add_to(moment) == hours(1).add_to(moment)
    assert millis(1500).add_to(moment) - moment == timedelta(seconds=1.5)


def test_period_arithmetic():
    assert months(2) + months(1) == months(3)
    assert days(7) - days(2) == days(5)
    assert 3 * days(2) == days(6)
    assert (hours(1) * 0).is_zero


def test_mixing_period_kinds_fails():
    with pytest.raises(IncompatiblePeriodKind):
        months(1) + hours(2)
    with pytest.raises(IncompatiblePeriodKind):
        minutes(5) - days(1)


def test_to_utc_converts_timezones():
    moment = to_utc("2024-01-01T02:00:00+02:00")
    assert moment == datetime(2024, 1, 1, tzinfo=UTC)
    assert to_utc(datetime(2024, 1, 1)).tzinfo is not None
