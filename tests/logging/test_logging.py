"""Tests for centralized logging behavior and configuration."""

import logging
from io import StringIO

import pytest

from mfepath.logging import (
    ROOT_LOGGER_NAME,
    configure_verbosity,
    get_logger,
    reset_logging,
    set_global_log_level,
    setup_root_logger,
)


@pytest.fixture(autouse=True)
def _reset_logging_each_test():
    reset_logging()
    yield
    reset_logging()


def test_verbosity_toggles_debug_records():
    """Debug records pass only while verbose output is on."""
    capture = StringIO()
    setup_root_logger(handler=logging.StreamHandler(capture))
    logger = get_logger("mfepath.lib.algorithms.steepest_descent")

    logger.info("info-1")
    logger.debug("debug-1")
    assert "info-1" in capture.getvalue()
    assert "debug-1" not in capture.getvalue()

    assert configure_verbosity(verbose=True) == logging.DEBUG
    logger.debug("debug-2")
    assert "debug-2" in capture.getvalue()

    assert configure_verbosity() == logging.INFO
    logger.debug("debug-3")
    assert "debug-3" not in capture.getvalue()


def test_global_level_reaches_children():
    existing = get_logger("mfepath.cli")
    assert existing.getEffectiveLevel() == logging.INFO

    set_global_log_level(logging.WARNING)
    assert existing.getEffectiveLevel() == logging.WARNING
    assert get_logger("mfepath.lib.io").getEffectiveLevel() == logging.WARNING


def test_setup_idempotent():
    setup_root_logger(handler=logging.StreamHandler(StringIO()))
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    assert len(root_logger.handlers) == 1

    setup_root_logger(level=logging.DEBUG)
    assert len(root_logger.handlers) == 1
    assert root_logger.level == logging.INFO


def test_custom_format_string():
    capture = StringIO()
    setup_root_logger(
        format_string="%(levelname)s|%(name)s|%(message)s",
        handler=logging.StreamHandler(capture),
    )
    get_logger("mfepath.test.format").warning("hello")
    assert capture.getvalue().strip() == "WARNING|mfepath.test.format|hello"


def test_reset_clears_handlers():
    setup_root_logger()
    reset_logging()
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    assert root_logger.handlers == []
    assert root_logger.level == logging.NOTSET


@pytest.mark.parametrize(
    "verbose, quiet, level",
    [
        (True, False, logging.DEBUG),
        (False, True, logging.WARNING),
        (True, True, logging.DEBUG),
        (False, False, logging.INFO),
    ],
)
def test_configure_verbosity(verbose, quiet, level):
    assert configure_verbosity(verbose, quiet) == level
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    assert root_logger.level == level
    assert all(handler.level == level for handler in root_logger.handlers)
