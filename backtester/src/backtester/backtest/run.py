"""
Run loop: play a feed through a set of metrics.

A :class:`Run` consumes the events of a feed from a bounded channel,
hands every event to each of its metrics and forwards the resulting
values to a :class:`~backtester.backtest.loggers.MetricsLogger`.  When
the feed is exhausted (or the run fails) the logger is told the run has
ended and the final metric snapshot is returned.

A run is also what the optimizer builds for every parameter point:
``async run_async(feed, timeframe, name)`` is the trial contract.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Dict, Iterable, List, Optional

from ..common.timeframe import Timeframe
from ..config import get_settings
from ..feeds.channel import play_feed
from ..feeds.feed import Feed
from .loggers import LastEntryLogger, MetricsLogger
from .metrics import Metric, ProgressMetric

logger = logging.getLogger(__name__)

_anonymous = itertools.count()


class Run:
    """Play a feed and compute metrics for every event.

    Args:
        metrics: Metrics to evaluate.  A :class:`ProgressMetric` is
            added when none is given so ``progress.*`` values are always
            available.
        logger: Sink for metric values, :class:`LastEntryLogger` by default.
        channel_capacity: Buffer size of the event channel; defaults to
            ``BACKTEST_CHANNEL_CAPACITY``.
    """

    def __init__(
        self,
        metrics: Iterable[Metric] = (),
        logger: Optional[MetricsLogger] = None,
        channel_capacity: Optional[int] = None,
    ) -> None:
        self.metrics: List[Metric] = list(metrics)
        if not any(isinstance(m, ProgressMetric) for m in self.metrics):
            self.metrics.append(ProgressMetric())
        self.logger = logger if logger is not None else LastEntryLogger()
        if channel_capacity is None:
            channel_capacity = get_settings().channel_capacity
        if channel_capacity <= 0:
            raise ValueError("channel_capacity must be positive")
        self.channel_capacity = channel_capacity

    async def run_async(
        self,
        feed: Feed,
        timeframe: Optional[Timeframe] = None,
        name: Optional[str] = None,
    ) -> Dict[str, float]:
        """Play ``feed`` restricted to ``timeframe`` and return the final metric values."""
        if timeframe is None:
            timeframe = Timeframe.INFINITE
        if name is None:
            name = f"run-{next(_anonymous)}"
        for metric in self.metrics:
            metric.reset()

        logger.debug("Starting %s over %s", name, timeframe)
        events = 0
        try:
            async with play_feed(feed, timeframe, self.channel_capacity) as channel:
                async for event in channel:
                    results: Dict[str, float] = {}
                    for metric in self.metrics:
                        results.update(metric.calculate(event))
                    self.logger.log(results, event.time, name)
                    events += 1
        finally:
            self.logger.end(name)
        logger.debug("Finished %s after %d events", name, events)
        return self.logger.snapshot(name)

    def run(
        self,
        feed: Feed,
        timeframe: Optional[Timeframe] = None,
        name: Optional[str] = None,
    ) -> Dict[str, float]:
        """Blocking version of :meth:`run_async`."""
        return asyncio.run(self.run_async(feed, timeframe, name))
