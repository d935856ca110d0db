"""
Prometheus metrics for optimizer sweeps.

The counters are always updated; the HTTP endpoint is only started on
request with :func:`start_metrics_server`, on the port given by
``PROMETHEUS_PORT`` (default 9108).

Metrics
-------

* ``backtester_trials_total{status=...}`` – finished trials, ``status`` is
  ``ok`` or ``failed``.
* ``backtester_trial_seconds`` – wall-clock duration of a trial.
"""

from __future__ import annotations

import logging
from typing import Optional

from prometheus_client import Counter, Histogram, start_http_server

from .config import get_settings

logger = logging.getLogger(__name__)

TRIALS = Counter("backtester_trials_total", "Optimizer trials by outcome", labelnames=["status"])
TRIAL_SECONDS = Histogram("backtester_trial_seconds", "Duration of optimizer trials in seconds")


def record_trial(ok: bool, duration: float) -> None:
    TRIALS.labels(status="ok" if ok else "failed").inc()
    TRIAL_SECONDS.observe(duration)


def start_metrics_server(port: Optional[int] = None) -> bool:
    """Expose the metrics over HTTP; returns ``False`` if the server could not start."""
    if port is None:
        port = get_settings().prometheus_port
    try:
        start_http_server(port)
    except OSError as exc:
        # Likely already started
        logger.warning("Failed to start Prometheus server on port %d: %s", port, exc)
        return False
    logger.info("Prometheus metrics available on port %d", port)
    return True
