"""Root conftest: add src/ to sys.path and configure logging for the test run."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Insert the src directory at the front of sys.path so that
# ``from rbacops.engine.hierarchy import …`` works without an install.
_src = str(Path(__file__).resolve().parent / "src")
if _src not in sys.path:
    sys.path.insert(0, _src)

from rbacops.infrastructure.logging import setup_logging  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _configure_logging() -> None:
    """Route structlog through stdlib logging so log lines stay off stdout."""
    setup_logging(level="warning")
