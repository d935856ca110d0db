"""
Runtime settings for the backtester.

Settings come from environment variables so the same code can be
tuned per deployment without code changes.  Values are validated with
pydantic; an invalid value (for example a non-positive channel
capacity) raises :class:`pydantic.ValidationError` when the settings
are loaded.

Environment variables
---------------------

* ``BACKTEST_CHANNEL_CAPACITY`` – buffer size of event channels (default ``5``).
* ``BACKTEST_OPTIMIZER_WORKERS`` – worker threads used for optimizer trials (default ``1``).
* ``BACKTEST_FAIL_FAST`` – abort a sweep on the first failing trial (default ``false``).
* ``BACKTEST_BASE_CURRENCY`` – base currency for exchange rates (default ``USD``).
* ``BACKTEST_SEED`` – seed for random search spaces and Monte Carlo windows (unset by default).
* ``LOG_LEVEL`` – logging level (default ``INFO``).
* ``PROMETHEUS_PORT`` – port of the metrics endpoint (default ``9108``).
"""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

_TRUE_VALUES = {"true", "1", "yes"}


class Settings(BaseModel):
    """Validated backtester settings."""

    channel_capacity: int = Field(5, gt=0, description="Event channel buffer size")
    optimizer_workers: int = Field(1, gt=0, description="Threads used to run optimizer trials")
    fail_fast: bool = Field(False, description="Abort sweeps on the first trial failure")
    base_currency: str = Field("USD", min_length=3, description="Base currency code")
    seed: Optional[int] = Field(None, description="Seed for random sampling")
    log_level: str = Field("INFO", description="Logging level name")
    prometheus_port: int = Field(9108, gt=0, lt=65536)

    @field_validator("base_currency", "log_level")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.strip().upper()


def get_settings() -> Settings:
    """Build settings from the current environment."""
    seed = os.getenv("BACKTEST_SEED")
    return Settings(
        channel_capacity=int(os.getenv("BACKTEST_CHANNEL_CAPACITY", "5")),
        optimizer_workers=int(os.getenv("BACKTEST_OPTIMIZER_WORKERS", "1")),
        fail_fast=os.getenv("BACKTEST_FAIL_FAST", "false").lower() in _TRUE_VALUES,
        base_currency=os.getenv("BACKTEST_BASE_CURRENCY", "USD"),
        seed=int(seed) if seed else None,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        prometheus_port=int(os.getenv("PROMETHEUS_PORT", "9108")),
    )
