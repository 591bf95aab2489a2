"""Exceptions raised by the steepest-descent path finder."""

from __future__ import annotations

from typing import Any, Optional

from mfepath.lib.algorithms.base import ErrorKind


class PathSearchError(Exception):
    """Base class for path search failures.

    Attributes:
        kind: Tag identifying the failure category.
        start: Start vertex of the failing search (if known).
        end: End vertex of the failing search (if known).
    """

    kind: ErrorKind

    def __init__(
        self, message: str, start: Optional[Any] = None, end: Optional[Any] = None
    ) -> None:
        self.start = start
        self.end = end
        super().__init__(message)


class InvalidArgumentError(PathSearchError, ValueError):
    """The end vertex is not contained in the graph."""

    kind = ErrorKind.INVALID_ARGUMENT


class NoPathFoundError(PathSearchError):
    """Backtracking reached the origin with nothing left to try."""

    kind = ErrorKind.NO_PATH_FOUND


class InternalInconsistencyError(PathSearchError, RuntimeError):
    """An escape decision had no previous edge to step back over."""

    kind = ErrorKind.INTERNAL_INCONSISTENCY


class ResourceExhaustedError(PathSearchError, RuntimeError):
    """The search hit its depth or step limit, or revisited a state.

    Distinct from `NoPathFoundError`: a path may exist that this greedy
    search cannot reach.
    """

    kind = ErrorKind.RESOURCE_EXHAUSTED
