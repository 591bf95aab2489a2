"""Global pytest configuration.

Conditionally registers the fixture plugin `tests.lib.algorithms.sample_graphs`.
Avoid importing the plugin directly to let pytest apply assertion rewriting.
"""

from __future__ import annotations

from importlib.util import find_spec

import pytest

from mfepath.logging import reset_logging, setup_root_logger

pytest_plugins: list[str] = []
if find_spec("tests.lib.algorithms.sample_graphs") is not None:
    pytest_plugins = ["tests.lib.algorithms.sample_graphs"]


@pytest.fixture(autouse=True)
def _restore_logging():
    """CLI tests change the global level; start every test from the default."""
    yield
    reset_logging()
    setup_root_logger()
