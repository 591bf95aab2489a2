"""Steepest-descent path finding over an energy landscape.

The search never explores globally. At each vertex it commits to the locally
cheapest transition, detects when that choice closes a loop (a basin) and
records the basin as a Cycle on the vertex. Once a vertex knows its basin, it
looks past it: the cheapest edge out of the basin decides where the search
goes next, stepping back along the path or running a nested search to the
basin's exit vertex. Dead ends are handled by undoing the last step.

Cycle assignments are shared state. By default they live on the graph and
persist between searches, so a second search over the same graph can take a
different route than the first.
"""

from __future__ import annotations

from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import ContextManager, List, Optional, Set, Tuple

from mfepath.config import SEARCH_CONFIG, SearchConfig
from mfepath.lib.algorithms.base import UNBOUNDED_RADIUS, CycleState, Weight
from mfepath.lib.algorithms.errors import (
    InternalInconsistencyError,
    InvalidArgumentError,
    NoPathFoundError,
    ResourceExhaustedError,
)
from mfepath.lib.cycle import build_cycle
from mfepath.lib.cycle_registry import CycleRegistry
from mfepath.lib.graph import EdgeID, LandscapeGraph, NodeID
from mfepath.lib.path import PathResult
from mfepath.logging import get_logger

logger = get_logger(__name__)

_StateKey = Tuple[NodeID, int, Optional[EdgeID], int, int, int]


@dataclass
class _Frame:
    """Mutable state of one search from `start` to `end`."""

    start: NodeID
    end: NodeID
    current: NodeID = field(init=False)
    visited: List[NodeID] = field(default_factory=list)
    visited_set: Set[NodeID] = field(default_factory=set)
    edges: List[EdgeID] = field(default_factory=list)
    forbidden: Set[EdgeID] = field(default_factory=set)
    seen_states: Set[_StateKey] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.current = self.start

    def visit(self, node: NodeID) -> None:
        self.visited.append(node)
        self.visited_set.add(node)

    def check_progress(self, cycles_version: int) -> None:
        # Everything except `current` and `edges` only grows, so a repeated key
        # means the next decisions repeat as well.
        key = (
            self.current,
            len(self.edges),
            self.edges[-1] if self.edges else None,
            len(self.visited_set),
            cycles_version,
            len(self.forbidden),
        )
        if key in self.seen_states:
            raise ResourceExhaustedError(
                f"Search from '{self.start}' to '{self.end}' revisited vertex "
                f"'{self.current}' without making progress.",
                self.start,
                self.end,
            )
        self.seen_states.add(key)


def _select_edges(
    graph: LandscapeGraph, cycles: CycleRegistry, frame: _Frame
) -> Tuple[Optional[EdgeID], Optional[EdgeID]]:
    current = frame.current
    cycle = cycles.get(current)
    if cycle is not None and cycle.contains(frame.end):
        # A basin holding the destination is not a trap.
        best = graph.cheapest_edge(current, frame.forbidden)
        return best, best
    return (
        graph.min_edge(current, frame.forbidden, cycles),
        graph.min_edge_in_cycle(current, frame.forbidden, cycles),
    )


def _advance(
    graph: LandscapeGraph,
    cycles: CycleRegistry,
    frame: _Frame,
    config: SearchConfig,
) -> Optional[_Frame]:
    """
    Make one decision at `frame.current`.

    Returns:
        A new frame when the decision is to search towards a basin exit,
        otherwise None (the frame was updated in place).
    """
    current = frame.current
    frame.visit(current)

    best, best_in_cycle = _select_edges(graph, cycles, frame)

    # Loop closure: the cheapest move leads back onto this frame's trail.
    if best is not None and graph.edge_target(best) in frame.visited_set:
        cycle = build_cycle(graph, current)
        if cycles.assign(current, cycle):
            logger.debug("Loop closed at %r, assigned %r", current, cycle)
        return None

    # Dead end: undo the last step.
    if best is None and best_in_cycle is None:
        if not frame.edges:
            raise NoPathFoundError(
                f"No path from '{frame.start}' to '{frame.end}': "
                f"dead end at '{current}' with nothing left to undo.",
                frame.start,
                frame.end,
            )
        removed = frame.edges.pop()
        if config.exclude_dead_end_edges:
            frame.forbidden.add(removed)
        frame.current = graph.edge_source(removed)
        logger.debug("Dead end at %r, back to %r", current, frame.current)
        return None

    # Escape: the basin's cheapest exit starts elsewhere.
    if best_in_cycle is not None and best != best_in_cycle:
        if not frame.edges:
            raise InternalInconsistencyError(
                f"Vertex '{current}' holds a cycle whose exit starts elsewhere, "
                f"but the search from '{frame.start}' has no step to undo.",
                frame.start,
                frame.end,
            )
        previous = frame.edges[-1]
        previous_source = graph.edge_source(previous)
        out_node = graph.edge_source(best_in_cycle)
        basin = cycles.get(current)

        if basin is not None and basin.contains(previous_source):
            frame.edges.pop()
            frame.current = previous_source
            logger.debug(
                "Basin exit at %r, stepping back from %r to %r",
                out_node,
                current,
                previous_source,
            )
            return None

        logger.debug("Basin exit at %r, searching from %r", out_node, current)
        return _Frame(current, out_node)

    frame.edges.append(best)
    frame.current = graph.edge_target(best)
    return None


def _descend(
    graph: LandscapeGraph,
    cycles: CycleRegistry,
    start: NodeID,
    end: NodeID,
    config: SearchConfig,
) -> List[EdgeID]:
    stack = [_Frame(start, end)]
    steps = 0

    while True:
        frame = stack[-1]
        if frame.current == frame.end:
            stack.pop()
            if not stack:
                return frame.edges
            parent = stack[-1]
            parent.edges.extend(frame.edges)
            parent.current = frame.end
            continue

        steps += 1
        if steps > config.max_steps:
            raise ResourceExhaustedError(
                f"Search from '{start}' to '{end}' exceeded {config.max_steps} steps.",
                start,
                end,
            )
        frame.check_progress(cycles.version)

        nested = _advance(graph, cycles, frame, config)
        if nested is not None:
            if len(stack) >= config.max_depth:
                raise ResourceExhaustedError(
                    f"Search from '{start}' to '{end}' exceeded the nesting "
                    f"limit of {config.max_depth} basin escapes.",
                    start,
                    end,
                )
            stack.append(nested)


def find_path(
    graph: LandscapeGraph,
    start_node: NodeID,
    end_node: NodeID,
    radius: float = UNBOUNDED_RADIUS,
    config: Optional[SearchConfig] = None,
) -> PathResult:
    """
    Find a steepest-descent path from `start_node` to `end_node`.

    The start vertex is not validated: a start outside the graph has no
    outgoing edges and the search fails with NoPathFoundError.

    Args:
        graph: The landscape graph.
        start_node: Vertex to start from.
        end_node: Vertex to reach. Must be in the graph.
        radius: Accepted for compatibility; it does not limit the search.
        config: Search limits and switches (defaults to SEARCH_CONFIG).

    Returns:
        The completed PathResult.

    Raises:
        InvalidArgumentError: If `end_node` is not in the graph.
        NoPathFoundError: If backtracking exhausted the origin.
        InternalInconsistencyError: If an escape decision had no step to undo.
        ResourceExhaustedError: If a depth, step or repeated-state limit was hit.
    """
    if not graph.contains_vertex(end_node):
        raise InvalidArgumentError(
            "graph must contain the end vertex", start_node, end_node
        )
    if config is None:
        config = SEARCH_CONFIG

    lock: ContextManager = nullcontext()
    if config.cycle_state == CycleState.SHARED:
        cycles = graph.cycles
        if config.lock_shared_state:
            lock = graph.search_lock
    elif config.cycle_state == CycleState.SNAPSHOT:
        with graph.search_lock:
            cycles = graph.cycles.copy()
    else:
        cycles = CycleRegistry()

    with lock:
        edges = _descend(graph, cycles, start_node, end_node, config)

    try:
        result = PathResult.from_edges(graph, start_node, end_node, edges)
    except ValueError as exc:
        raise InternalInconsistencyError(str(exc), start_node, end_node) from exc

    logger.debug(
        "Path %r -> %r: %d edges, weight %s",
        start_node,
        end_node,
        len(result.edges),
        result.weight,
    )
    return result


def find_path_edges(
    graph: LandscapeGraph,
    start_node: NodeID,
    end_node: NodeID,
    radius: float = UNBOUNDED_RADIUS,
    config: Optional[SearchConfig] = None,
) -> List[EdgeID]:
    """Same as `find_path`, returning only the edge keys."""
    return list(find_path(graph, start_node, end_node, radius, config).edges)


class MolecularShortestPath:
    """
    A single steepest-descent search, executed on construction.

    An instance is only good for one search; afterwards it can be queried for
    the path found. When backtracking proves there is no path, the accessors
    return their sentinels instead of raising. Other failures propagate.

    Attributes:
        radius: The radius the search was created with (informational only).
        error: The NoPathFoundError raised by the search, if any.
    """

    def __init__(
        self,
        graph: LandscapeGraph,
        start_node: NodeID,
        end_node: NodeID,
        radius: float = UNBOUNDED_RADIUS,
        config: Optional[SearchConfig] = None,
    ) -> None:
        self.radius = radius
        self.error: Optional[NoPathFoundError] = None
        self._path: Optional[PathResult] = None

        try:
            self._path = find_path(graph, start_node, end_node, radius, config)
        except NoPathFoundError as exc:
            logger.debug("No path: %s", exc)
            self.error = exc

    @property
    def path(self) -> Optional[PathResult]:
        """The path found, or None if no path exists."""
        return self._path

    @property
    def path_edge_list(self) -> Optional[List[EdgeID]]:
        """The edges making up the path found, or None if no path exists."""
        if self._path is None:
            return None
        return list(self._path.edges)

    @property
    def path_length(self) -> Weight:
        """The weight of the path found, or infinity if no path exists."""
        if self._path is None:
            return float("inf")
        return self._path.weight


def find_path_between(
    graph: LandscapeGraph,
    start_node: NodeID,
    end_node: NodeID,
) -> Optional[List[EdgeID]]:
    """
    Convenience wrapper returning the edge list of a single search.

    Returns:
        The path's edge keys, or None if no path exists.
    """
    return MolecularShortestPath(graph, start_node, end_node).path_edge_list
