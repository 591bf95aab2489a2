from __future__ import annotations

from enum import IntEnum
from typing import Tuple, Union

from mfepath.lib.graph import EdgeID, NodeID

#: Numeric transition cost between two conformations (e.g. a free-energy barrier).
Weight = Union[int, float]

#: A single path element is a tuple of:
#:   - The current node ID.
#:   - A tuple holding the edge ID taken from this node to the next node.
#: The final element has an empty tuple to indicate termination.
PathElement = Tuple[NodeID, Tuple[EdgeID, ...]]

#: A path is a tuple of PathElements forming a route from source to destination.
PathTuple = Tuple[PathElement, ...]

#: Radius value meaning "no cutoff".
UNBOUNDED_RADIUS = float("inf")


class CycleState(IntEnum):
    """
    Where a search reads and writes cycle assignments.
    """

    #: Use the graph's own registry. Assignments persist across searches.
    SHARED = 1
    #: Start from a copy of the graph's registry and discard it afterwards.
    SNAPSHOT = 2
    #: Start from an empty registry and discard it afterwards.
    FRESH = 3


class ErrorKind(IntEnum):
    """Failure categories reported by the path finder."""

    #: The end vertex is not part of the graph.
    INVALID_ARGUMENT = 1
    #: Backtracking exhausted all options at the origin.
    NO_PATH_FOUND = 2
    #: An escape decision was reached with an empty path history.
    INTERNAL_INCONSISTENCY = 3
    #: Depth, step or repeated-state limit reached.
    RESOURCE_EXHAUSTED = 4
