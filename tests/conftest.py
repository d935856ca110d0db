"""Pytest configuration for path setup.

The test suite imports the ``backtester`` package located under
``backtester/src``.  When the project is not installed, that directory
is not on ``sys.path``; this file puts it (and the repository root, for
``tests.helpers``) at the front so imports work however pytest is
invoked.
"""

from __future__ import annotations

import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]

for path in (ROOT / "backtester" / "src", ROOT):
    path_str = str(path)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)
