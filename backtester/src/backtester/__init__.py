"""
Event-driven backtesting toolkit.

Historic or generated market data is replayed through a bounded event
channel into runs that compute metrics per event.  Rolling OHLCV
buffers and a time-indexed currency converter support the metrics, and
an optimizer sweeps parameter spaces over single, walk-forward and
Monte Carlo windows.
"""

__all__ = ["backtest", "backtester_main", "common", "config", "feeds", "log", "ta", "telemetry"]
