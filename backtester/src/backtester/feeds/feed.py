"""
Feeds produce events into an :class:`~backtester.feeds.channel.EventChannel`.

A feed only has to implement :meth:`Feed.play`: push its events, in
chronological order, into the channel it is given and return when it
runs out of data or the channel is closed.  Filtering on the channel's
timeframe and backpressure are handled by the channel itself.

:class:`HistoricFeed` keeps a complete timeline in memory and can be
built action by action or from a pandas OHLCV frame / CSV file.
"""

from __future__ import annotations

import abc
import bisect
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple, Type

import pandas as pd

from ..common.currency import Asset
from ..common.timeframe import EPSILON, Timeframe, to_utc
from .actions import PriceBar
from .channel import EventChannel, play_feed
from .event import Event

logger = logging.getLogger(__name__)


class Feed(abc.ABC):
    """Source of events for a run."""

    @property
    @abc.abstractmethod
    def timeframe(self) -> Timeframe:
        """Timeframe covered by the feed."""

    @property
    @abc.abstractmethod
    def assets(self) -> Set[Asset]:
        """Assets that appear in the feed."""

    @abc.abstractmethod
    async def play(self, channel: EventChannel) -> None:
        """Send all events into ``channel``; return when done or when the channel closes."""


class HistoricFeed(Feed):
    """Feed backed by an in-memory, time-ordered list of events."""

    def __init__(self) -> None:
        self._times: List[datetime] = []
        self._actions: Dict[datetime, List[Any]] = {}
        self._assets: Set[Asset] = set()

    def add(self, time: Any, action: Any) -> None:
        """Add an action at ``time``; actions sharing a timestamp form one event."""
        time = to_utc(time)
        if time not in self._actions:
            bisect.insort(self._times, time)
            self._actions[time] = []
        self._actions[time].append(action)
        asset = getattr(action, "asset", None)
        if isinstance(asset, Asset):
            self._assets.add(asset)

    def add_event(self, event: Event) -> None:
        for action in event.actions:
            self.add(event.time, action)

    @property
    def timeline(self) -> List[datetime]:
        return list(self._times)

    @property
    def timeframe(self) -> Timeframe:
        if not self._times:
            return Timeframe.INFINITE
        return Timeframe(self._times[0], self._times[-1] + EPSILON)

    @property
    def assets(self) -> Set[Asset]:
        return set(self._assets)

    def __len__(self) -> int:
        return len(self._times)

    async def play(self, channel: EventChannel) -> None:
        start = bisect.bisect_left(self._times, channel.timeframe.start)
        for time in self._times[start:]:
            if channel.closed:
                return
            await channel.send(Event(time, list(self._actions[time])))

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        asset: Asset,
        time_column: Optional[str] = None,
        feed: Optional["HistoricFeed"] = None,
    ) -> "HistoricFeed":
        """Create (or extend) a feed from an OHLCV frame.

        :param frame: frame with ``open``, ``high``, ``low``, ``close`` and
            optionally ``volume`` columns (case insensitive)
        :param asset: asset the bars belong to
        :param time_column: column holding timestamps; the index is used when omitted
        :param feed: existing feed to add the bars to
        :return: the feed containing the bars
        """
        feed = feed if feed is not None else cls()
        df = frame.rename(columns=str.lower)
        missing = {"open", "high", "low", "close"} - set(df.columns)
        if missing:
            raise ValueError(f"frame is missing OHLC columns: {sorted(missing)}")
        times = pd.to_datetime(df[time_column.lower()] if time_column else df.index, utc=True)
        volumes = df["volume"] if "volume" in df.columns else pd.Series(float("nan"), index=df.index)
        for time, o, h, l, c, v in zip(times, df["open"], df["high"], df["low"], df["close"], volumes):
            feed.add(time, PriceBar(asset, float(o), float(h), float(l), float(c), float(v)))
        logger.debug("Loaded %d bars for %s", len(df), asset)
        return feed

    @classmethod
    def from_csv(cls, path: str, asset: Asset, time_column: str = "timestamp") -> "HistoricFeed":
        """Load a CSV file with a timestamp column and OHLCV columns."""
        logger.info("Loading data from %s", path)
        frame = pd.read_csv(path)
        return cls.from_frame(frame, asset, time_column=time_column)


async def collect_actions(
    feed: Feed,
    action_type: Type[Any] = object,
    timeframe: Timeframe = Timeframe.INFINITE,
    capacity: Optional[int] = None,
) -> List[Tuple[datetime, Any]]:
    """Play a feed and collect every action of ``action_type`` with its event time."""
    result: List[Tuple[datetime, Any]] = []
    async with play_feed(feed, timeframe, capacity) as channel:
        async for event in channel:
            result.extend((event.time, a) for a in event.actions if isinstance(a, action_type))
    return result
