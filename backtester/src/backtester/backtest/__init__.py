"""Runs, metrics and the parameter optimizer."""

from .loggers import LastEntryLogger, MemoryLogger, MetricsLogger  # noqa: F401
from .metrics import Metric, ProgressMetric, ReturnsMetric, SmaCrossMetric  # noqa: F401
from .optimizer import (  # noqa: F401
    Optimizer,
    RunResult,
    TrialFailure,
    extract_score,
    monte_carlo_windows,
    results_frame,
    walk_forward_windows,
)
from .registry import RunRegistry  # noqa: F401
from .run import Run  # noqa: F401
from .search_space import EmptySearchSpace, GridSearch, Params, RandomSearch, SearchSpace  # noqa: F401
