"""Logging for mfepath.

Every module logs through a child of the ``mfepath`` logger, obtained with
`get_logger(__name__)`. The ``mfepath`` logger owns the only handler; children
stay at NOTSET and follow whatever level it is given.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "mfepath"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_root_logger(
    level: int = logging.INFO,
    format_string: Optional[str] = None,
    handler: Optional[logging.Handler] = None,
) -> None:
    """Install the single handler on the ``mfepath`` logger.

    Only the first call has an effect; later calls return immediately until
    `reset_logging()` runs.

    Args:
        level: Initial level of the ``mfepath`` logger.
        format_string: Record format (defaults to `DEFAULT_FORMAT`).
        handler: Handler to install. Defaults to a stderr stream, leaving
            stdout to CLI results.
    """
    global _configured
    if _configured:
        return

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.handlers.clear()
    package_logger.setLevel(level)

    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))
    package_logger.addHandler(handler)

    # Records still reach the Python root logger, where pytest's caplog listens
    package_logger.propagate = True
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return the logger `name`, set up to inherit the ``mfepath`` level."""
    setup_root_logger()
    logger = logging.getLogger(name)
    logger.setLevel(logging.NOTSET)
    return logger


def set_global_log_level(level: int) -> None:
    """Apply `level` to the ``mfepath`` logger and its handler."""
    setup_root_logger()
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level)
    for handler in package_logger.handlers:
        handler.setLevel(level)


def configure_verbosity(verbose: bool = False, quiet: bool = False) -> int:
    """Pick the package level from the CLI flags and apply it.

    `verbose` wins over `quiet`.

    Returns:
        The level that was applied.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    set_global_log_level(level)
    return level


def reset_logging() -> None:
    """Remove the handler and level so the next call sets up from scratch."""
    global _configured
    _configured = False
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


setup_root_logger()
