"""Sinks for metric values produced during runs.

A run calls :meth:`MetricsLogger.log` after every event and
:meth:`MetricsLogger.end` once when it stops, whatever the reason.
"""

from __future__ import annotations

import abc
import threading
from datetime import datetime
from typing import Dict, List, Mapping, Tuple

import pandas as pd


class MetricsLogger(abc.ABC):
    """Receives metric values keyed by run name."""

    @abc.abstractmethod
    def log(self, results: Mapping[str, float], time: datetime, run: str) -> None:
        """Record the metric values computed at ``time``."""

    def end(self, run: str) -> None:
        """Called when ``run`` finishes; flush buffered state here."""

    @abc.abstractmethod
    def snapshot(self, run: str) -> Dict[str, float]:
        """Latest value of every metric logged for ``run``."""


class LastEntryLogger(MetricsLogger):
    """Keep only the latest value per metric and run."""

    def __init__(self) -> None:
        self._values: Dict[str, Dict[str, float]] = {}
        self._lock = threading.Lock()

    def log(self, results: Mapping[str, float], time: datetime, run: str) -> None:
        with self._lock:
            self._values.setdefault(run, {}).update(results)

    def snapshot(self, run: str) -> Dict[str, float]:
        with self._lock:
            return dict(self._values.get(run, {}))

    @property
    def runs(self) -> List[str]:
        with self._lock:
            return list(self._values)


class MemoryLogger(MetricsLogger):
    """Keep the full history of every metric.

    ``history`` holds ``(run, time, name, value)`` tuples in logging
    order; :meth:`to_frame` turns them into a pandas DataFrame.
    """

    def __init__(self) -> None:
        self.history: List[Tuple[str, datetime, str, float]] = []
        self.finished: List[str] = []
        self._lock = threading.Lock()

    def log(self, results: Mapping[str, float], time: datetime, run: str) -> None:
        with self._lock:
            self.history.extend((run, time, name, value) for name, value in results.items())

    def end(self, run: str) -> None:
        with self._lock:
            self.finished.append(run)

    def snapshot(self, run: str) -> Dict[str, float]:
        with self._lock:
            return {name: value for r, _, name, value in self.history if r == run}

    def to_frame(self) -> pd.DataFrame:
        with self._lock:
            return pd.DataFrame(self.history, columns=["run", "time", "name", "value"])
