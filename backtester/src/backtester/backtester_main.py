"""
Backtester CLI entry point.

This module loads historical prices from a CSV file (or generates a
random-walk feed when no file is given), sweeps the windows of a
moving-average crossover metric with the optimizer and prints the best
parameter sets ranked by the chosen score.

CSV format requirements:

* Must contain a `timestamp` column (ISO 8601).
* Must contain `open`, `high`, `low`, `close` columns, or a single `price`
  column which is then used for all four.  `volume` is optional.

Environment variables (see :mod:`backtester.config`) set the defaults for
the channel capacity, worker threads, fail-fast policy, seed and log level.

Example usage:

    python -m backtester.backtester_main train --csv data.csv --symbol BTC-USD --fast 3:8 --slow 10:30
    python -m backtester.backtester_main walk-forward --train-months 6 --test-months 1
    python -m backtester.backtester_main monte-carlo --samples 20 --score returns.sharpe
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from .backtest.metrics import ReturnsMetric, SmaCrossMetric
from .backtest.optimizer import Optimizer, RunResult, results_frame
from .backtest.run import Run
from .backtest.search_space import GridSearch, Params
from .common.currency import Asset
from .common.timeframe import months
from .config import get_settings
from .feeds.feed import Feed, HistoricFeed
from .feeds.random_walk import RandomWalkFeed
from .log import configure_logging
from .telemetry import start_metrics_server

logger = logging.getLogger(__name__)


def parse_range(value: str) -> Tuple[int, int]:
    """Parse ``A:B`` into an inclusive integer range."""
    try:
        first, last = (int(part) for part in value.split(":", 1))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected A:B, got {value!r}") from exc
    if first > last:
        raise argparse.ArgumentTypeError(f"empty range {value!r}")
    return first, last


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Optimise moving-average windows against historical data")
    parser.add_argument("mode", choices=["train", "walk-forward", "monte-carlo"], help="Sweep mode")
    parser.add_argument("--csv", help="Path to CSV file containing historical prices")
    parser.add_argument("--symbol", default="ASSET", help="Symbol of the prices in the CSV file")
    parser.add_argument("--fast", type=parse_range, default=(3, 8), help="Fast window range A:B")
    parser.add_argument("--slow", type=parse_range, default=(10, 30), help="Slow window range A:B")
    parser.add_argument("--step", type=int, default=1, help="Step of both window ranges")
    parser.add_argument("--score", default="sma.pnl", help="Dotted metric path used as score")
    parser.add_argument("--train-months", type=int, default=6)
    parser.add_argument("--test-months", type=int, default=1)
    parser.add_argument("--expanding", action="store_true", help="Use expanding walk-forward windows")
    parser.add_argument("--samples", type=int, default=10, help="Monte Carlo window count")
    parser.add_argument("--top", type=int, default=10, help="Number of results to print")
    parser.add_argument("--metrics-port", type=int, help="Expose Prometheus metrics on this port")
    return parser.parse_args(argv)


def load_price_feed(data_file: str, symbol: str) -> HistoricFeed:
    """Load a CSV file into a historic feed of price bars for ``symbol``."""
    df = pd.read_csv(data_file)
    df.columns = [c.lower() for c in df.columns]
    if "close" not in df.columns:
        if "price" not in df.columns:
            raise ValueError("CSV must contain OHLC columns or a 'price' column")
        for column in ("open", "high", "low", "close"):
            df[column] = df["price"]
    if "timestamp" not in df.columns:
        raise ValueError("CSV must contain a 'timestamp' column")
    df.sort_values("timestamp", inplace=True)
    return HistoricFeed.from_frame(df, Asset(symbol), time_column="timestamp")


def build_space(fast: Tuple[int, int], slow: Tuple[int, int], step: int = 1) -> GridSearch:
    space = GridSearch()
    space.add_range("fast", fast[0], fast[1], step)
    space.add_range("slow", slow[0], slow[1], step)
    return space


def build_run(params: Params) -> Run:
    """Trial for one parameter point: an SMA crossover plus buy-and-hold returns."""
    return Run([SmaCrossMetric(params.get_int("fast"), params.get_int("slow")), ReturnsMetric()])


def rank(results: List[RunResult], top: int) -> pd.DataFrame:
    frame = results_frame(results)
    if frame.empty:
        return frame
    return frame.sort_values("score", ascending=False).head(top).reset_index(drop=True)


def run_optimizer(args: argparse.Namespace) -> pd.DataFrame:
    settings = get_settings()
    feed: Feed
    if args.csv:
        feed = load_price_feed(args.csv, args.symbol)
    else:
        logger.info("No CSV given, generating a random-walk feed")
        feed = RandomWalkFeed.last_years(years=2, n_assets=2, seed=settings.seed)
    space = build_space(args.fast, args.slow, args.step)
    optimizer = Optimizer(space, args.score, build_run)
    logger.info("Running %s over %d parameter points, feed %s", args.mode, len(space), feed.timeframe)
    if args.mode == "train":
        results = optimizer.train(feed)
    elif args.mode == "walk-forward":
        results = optimizer.walk_forward(
            feed, months(args.train_months), months(args.test_months), rolling=not args.expanding
        )
    else:
        results = optimizer.monte_carlo(feed, months(args.train_months), months(args.test_months), args.samples)
    if optimizer.failures:
        logger.warning("%d trial(s) failed", len(optimizer.failures))
    logger.info("Optimisation complete: %d results", len(results))
    return rank(results, args.top)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging(get_settings().log_level)
    if args.metrics_port:
        start_metrics_server(args.metrics_port)
    table = run_optimizer(args)
    if table.empty:
        print("No results")
        return
    print(table.to_string(index=False))


if __name__ == "__main__":
    main()
