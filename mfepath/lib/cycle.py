from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Iterator, List, Tuple

if TYPE_CHECKING:
    from mfepath.lib.graph import EdgeID, LandscapeGraph, NodeID


class Cycle:
    """
    A basin of the energy landscape: the closed loop that greedy descent
    falls into when started from a seed vertex.

    A Cycle is immutable once built. Membership covers only the vertices on
    the closed loop, not the trace prefix that led into it. A Cycle with no
    members is degenerate: the trace ended at a dead end before closing.

    Attributes:
        seed: The vertex the trace started from.
        nodes: Loop vertices in the order the trace visited them.
        edges: Loop edges; `edges[i]` leads from `nodes[i]` to the next vertex
            on the loop (wrapping around to `nodes[0]`).
    """

    __slots__ = ("seed", "nodes", "edges", "_members")

    def __init__(
        self,
        seed: NodeID,
        nodes: Tuple[NodeID, ...] = (),
        edges: Tuple[EdgeID, ...] = (),
    ) -> None:
        self.seed = seed
        self.nodes = tuple(nodes)
        self.edges = tuple(edges)
        self._members: FrozenSet[NodeID] = frozenset(self.nodes)

    @property
    def members(self) -> FrozenSet[NodeID]:
        """Return the loop vertices as a frozen set."""
        return self._members

    @property
    def is_degenerate(self) -> bool:
        """True if the trace never closed into a loop."""
        return not self.nodes

    def contains(self, node: NodeID) -> bool:
        """Return True if `node` lies on the loop."""
        return node in self._members

    def __contains__(self, node: Any) -> bool:
        return self.contains(node)

    def __iter__(self) -> Iterator[NodeID]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Cycle):
            return NotImplemented
        return self._members == other._members

    def __hash__(self) -> int:
        return hash(self._members)

    def __repr__(self) -> str:
        return f"Cycle(seed={self.seed!r}, nodes={self.nodes!r})"


def build_cycle(graph: LandscapeGraph, seed: NodeID) -> Cycle:
    """
    Trace cheapest outgoing edges from `seed` until a vertex repeats.

    The trace follows `graph.cheapest_edge`, i.e. the raw landscape descent,
    regardless of any cycles already assigned. When the trace revisits a vertex
    the loop from that vertex back to itself becomes the Cycle. When the trace
    reaches a vertex without outgoing edges the result is a degenerate Cycle.

    Because only the loop is kept, every vertex whose trace runs into the same
    basin gets an equal Cycle. A basin whose cheapest exit leads back to a
    vertex on the approach (S -> A <-> B -> S) therefore yields no new
    assignment the second time around, and a search caught in it stops with
    ResourceExhaustedError even if another edge out of S reaches the target.

    Args:
        graph: The landscape graph.
        seed: Vertex to start tracing from.

    Returns:
        The Cycle reached from `seed`.
    """
    trace: List[NodeID] = []
    trace_edges: List[EdgeID] = []
    position: Dict[NodeID, int] = {}

    node = seed
    while node not in position:
        position[node] = len(trace)
        trace.append(node)

        edge_id = graph.cheapest_edge(node)
        if edge_id is None:
            return Cycle(seed)

        trace_edges.append(edge_id)
        node = graph.edge_target(edge_id)

    loop_start = position[node]
    return Cycle(seed, tuple(trace[loop_start:]), tuple(trace_edges[loop_start:]))
