"""Registry of named runs.

Run names must be unique; registering a name twice is an error rather
than silently replacing the earlier run.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Any, Dict, List

from ..common.errors import DuplicateRunName

logger = logging.getLogger(__name__)


class RunRegistry:
    """Thread-safe mapping of run names to arbitrary run information."""

    def __init__(self) -> None:
        self._runs: Dict[str, Any] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def next_name(self, prefix: str = "run") -> str:
        """Generate a new name ``<prefix>-<n>``; the counter is shared by all prefixes."""
        with self._lock:
            return f"{prefix}-{next(self._counter)}"

    def register(self, name: str, info: Any = None) -> None:
        with self._lock:
            if name in self._runs:
                raise DuplicateRunName(name)
            self._runs[name] = info
        logger.debug("Registered run %s", name)

    def get(self, name: str) -> Any:
        with self._lock:
            return self._runs[name]

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._runs

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)

    @property
    def names(self) -> List[str]:
        with self._lock:
            return list(self._runs)
