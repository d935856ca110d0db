"""
Parameter search over runs.

The :class:`Optimizer` builds one trial per point of a
:class:`~backtester.backtest.search_space.SearchSpace`, plays a feed
through it and extracts a score from the trial's final metric
snapshot.  Three sweep modes are supported:

* :meth:`Optimizer.train` – every point over one timeframe.
* :meth:`Optimizer.walk_forward` – every point over a sequence of
  training windows that advance by the test period (rolling or
  expanding).
* :meth:`Optimizer.monte_carlo` – every point over randomly placed
  training windows.

Trials are independent: each one gets a fresh object from the builder
and its own event loop, so they can run on a thread pool.  Results keep
the enumeration order of the sweep whatever the degree of parallelism.
When a sweep is started from inside a running event loop the trials
always go to worker threads.

A failing trial is logged, recorded in :attr:`Optimizer.failures` and
skipped; with ``fail_fast`` the error is re-raised and the sweep stops.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import random
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

import pandas as pd

from .. import telemetry
from ..common.errors import ScoreNotFound
from ..common.timeframe import Timeframe, TradingPeriod, days
from ..config import get_settings
from ..feeds.feed import Feed
from .registry import RunRegistry
from .search_space import Params, SearchSpace

logger = logging.getLogger(__name__)


class Trial(Protocol):
    async def run_async(self, feed: Feed, timeframe: Optional[Timeframe], name: Optional[str]) -> Any:
        ...


Builder = Callable[[Params], Trial]


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


@dataclass(frozen=True)
class RunResult:
    """Score of one parameter point over one timeframe."""

    params: Params
    timeframe: Timeframe
    score: float
    name: str


@dataclass(frozen=True)
class TrialFailure:
    params: Params
    timeframe: Timeframe
    name: str
    error: BaseException


def extract_score(snapshot: Any, path: str) -> float:
    """Look up ``path`` in a trial snapshot.

    A mapping containing ``path`` as a key wins.  Otherwise the path is
    split on dots and each segment is resolved as a mapping key or an
    attribute.  Raises :class:`ScoreNotFound` if any segment is missing.
    """
    if isinstance(snapshot, Mapping) and path in snapshot:
        return float(snapshot[path])
    value = snapshot
    for segment in path.split("."):
        if isinstance(value, Mapping) and segment in value:
            value = value[segment]
        elif hasattr(value, segment):
            value = getattr(value, segment)
        else:
            raise ScoreNotFound(path)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ScoreNotFound(path) from exc


def results_frame(results: Sequence[RunResult]) -> pd.DataFrame:
    """Tabulate results: ``name``, ``start``, ``end``, ``score`` and one column per parameter."""
    rows: List[Dict[str, Any]] = []
    for result in results:
        row: Dict[str, Any] = {
            "name": result.name,
            "start": result.timeframe.start,
            "end": result.timeframe.end,
            "score": result.score,
        }
        row.update(result.params)
        rows.append(row)
    if not rows:
        return pd.DataFrame(columns=["name", "start", "end", "score"])
    return pd.DataFrame(rows)


class Optimizer:
    """Run a search space against a feed and collect scores.

    Args:
        space: Parameter points to evaluate.
        score: Dotted path of the score inside a trial snapshot,
            e.g. ``"returns.sharpe"``.
        builder: Creates a fresh trial for a parameter point.
        max_workers: Threads used to run trials; defaults to
            ``BACKTEST_OPTIMIZER_WORKERS``.
        fail_fast: Re-raise the first trial failure instead of skipping
            it; defaults to ``BACKTEST_FAIL_FAST``.
        max_trials: Cap on points taken from the space per window.
            Required for infinite spaces.
        registry: Registry that names every trial.  When omitted, a
            private registry is created afresh for every sweep.
    """

    def __init__(
        self,
        space: SearchSpace,
        score: str,
        builder: Builder,
        max_workers: Optional[int] = None,
        fail_fast: Optional[bool] = None,
        max_trials: Optional[int] = None,
        registry: Optional[RunRegistry] = None,
    ) -> None:
        settings = get_settings()
        self.space = space
        self.score = score
        self.builder = builder
        self.max_workers = max_workers if max_workers is not None else settings.optimizer_workers
        if self.max_workers <= 0:
            raise ValueError("max_workers must be positive")
        self.fail_fast = fail_fast if fail_fast is not None else settings.fail_fast
        if max_trials is not None and max_trials <= 0:
            raise ValueError("max_trials must be positive")
        self.max_trials = max_trials
        self._private_registry = registry is None
        self.registry = registry if registry is not None else RunRegistry()
        self.failures: List[TrialFailure] = []

    def _points(self) -> List[Params]:
        if self.max_trials is not None:
            return list(itertools.islice(self.space, self.max_trials))
        if not self.space.is_finite:
            raise ValueError("an infinite search space requires max_trials")
        return list(self.space)

    def _execute(self, feed: Feed, params: Params, timeframe: Timeframe, name: str) -> RunResult:
        started = time.perf_counter()
        ok = False
        try:
            trial = self.builder(params)
            run = trial.run_async(feed, timeframe, name)
            try:
                snapshot = asyncio.run(run)
            finally:
                run.close()
            score = extract_score(snapshot, self.score)
            ok = True
        finally:
            telemetry.record_trial(ok, time.perf_counter() - started)
        logger.debug("Trial %s params=%s score=%s", name, dict(params), score)
        return RunResult(params=params, timeframe=timeframe, score=score, name=name)

    def _run_windows(self, feed: Feed, windows: Sequence[Timeframe]) -> List[RunResult]:
        points = self._points()
        if self._private_registry:
            self.registry = RunRegistry()
        jobs: List[Tuple[Params, Timeframe, str]] = []
        for window in windows:
            for params in points:
                name = self.registry.next_name()
                self.registry.register(name, (params, window))
                jobs.append((params, window, name))
        logger.info("Running %d trials over %d window(s)", len(jobs), len(windows))

        results: List[RunResult] = []
        if self.max_workers == 1 and not _loop_running():
            for params, window, name in jobs:
                try:
                    results.append(self._execute(feed, params, window, name))
                except Exception as exc:
                    self._fail(params, window, name, exc)
            return results

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="trial") as pool:
            futures: List[Future] = [pool.submit(self._execute, feed, *job) for job in jobs]
            try:
                for (params, window, name), future in zip(jobs, futures):
                    try:
                        results.append(future.result())
                    except Exception as exc:
                        self._fail(params, window, name, exc)
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
        return results

    def _fail(self, params: Params, timeframe: Timeframe, name: str, error: Exception) -> None:
        if self.fail_fast:
            logger.error("Trial %s failed with params=%s, aborting sweep", name, dict(params))
            raise error
        logger.exception("Trial %s failed with params=%s", name, dict(params), exc_info=error)
        self.failures.append(TrialFailure(params=params, timeframe=timeframe, name=name, error=error))

    def train(self, feed: Feed, timeframe: Optional[Timeframe] = None) -> List[RunResult]:
        """Evaluate every point over ``timeframe`` (the whole feed by default)."""
        if timeframe is None:
            timeframe = feed.timeframe
        return self._run_windows(feed, [timeframe])

    def walk_forward(
        self,
        feed: Feed,
        train_period: TradingPeriod,
        test_period: TradingPeriod,
        anchor: TradingPeriod = days(0),
        rolling: bool = True,
    ) -> List[RunResult]:
        """Evaluate every point over successive training windows.

        Window ``k`` has origin ``start + anchor + k * test_period``.  A
        rolling window covers ``[origin, origin + train_period)``; an
        expanding one covers ``[start + anchor, origin + train_period)``.
        Windows are produced while ``origin + train_period + test_period``
        still fits in the feed's timeframe.
        """
        windows = walk_forward_windows(feed.timeframe, train_period, test_period, anchor, rolling)
        if not windows:
            logger.warning("Feed timeframe %s too short for walk-forward", feed.timeframe)
        return self._run_windows(feed, windows)

    def monte_carlo(
        self,
        feed: Feed,
        train_period: TradingPeriod,
        test_period: TradingPeriod,
        n: int,
        seed: Optional[int] = None,
    ) -> List[RunResult]:
        """Evaluate every point over ``n`` randomly placed training windows."""
        if seed is None:
            seed = get_settings().seed
        windows = monte_carlo_windows(feed.timeframe, train_period, test_period, n, seed)
        return self._run_windows(feed, windows)


def walk_forward_windows(
    timeframe: Timeframe,
    train_period: TradingPeriod,
    test_period: TradingPeriod,
    anchor: TradingPeriod = days(0),
    rolling: bool = True,
) -> List[Timeframe]:
    """Training windows of a walk-forward sweep over ``timeframe``."""
    if not timeframe.is_finite:
        raise ValueError("walk-forward requires a finite timeframe")
    if train_period.is_zero or test_period.is_zero:
        raise ValueError("train and test periods must be non-zero")
    first = anchor.add_to(timeframe.start)
    windows: List[Timeframe] = []
    for k in itertools.count():
        origin = (test_period * k).add_to(first)
        train_end = train_period.add_to(origin)
        if test_period.add_to(train_end) > timeframe.end:
            break
        windows.append(Timeframe(origin if rolling else first, train_end))
    return windows


def monte_carlo_windows(
    timeframe: Timeframe,
    train_period: TradingPeriod,
    test_period: TradingPeriod,
    n: int,
    seed: Optional[int] = None,
) -> List[Timeframe]:
    """``n`` training windows with uniformly drawn origins, drawn with replacement."""
    if n <= 0:
        raise ValueError("n must be positive")
    if not timeframe.is_finite:
        raise ValueError("monte carlo requires a finite timeframe")
    span = train_period + test_period
    latest = span.subtract_from(timeframe.end)
    if latest < timeframe.start:
        raise ValueError(f"timeframe {timeframe} is shorter than train + test period")
    rng = random.Random(seed)
    room = (latest - timeframe.start) // timedelta(microseconds=1)
    windows: List[Timeframe] = []
    for _ in range(n):
        origin = timeframe.start + timedelta(microseconds=rng.randint(0, room))
        windows.append(Timeframe(origin, train_period.add_to(origin)))
    return windows
