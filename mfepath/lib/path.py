from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Any, Iterator, Sequence, Tuple

from mfepath.lib.algorithms.base import PathTuple, Weight
from mfepath.lib.graph import EdgeID, LandscapeGraph, NodeID


@dataclass(frozen=True)
class PathResult:
    """
    A completed steepest-descent path.

    Attributes:
        src_node: The vertex the search started from.
        dst_node: The vertex the search ended at.
        edges: Edge keys in traversal order (empty if src_node == dst_node).
        path_tuple: The same route as a sequence of (node_id, (edge_id,))
            elements; the final element holds the destination and an empty tuple.
        weight: Sum of the weights of all edges in `edges`.
    """

    src_node: NodeID
    dst_node: NodeID
    edges: Tuple[EdgeID, ...]
    path_tuple: PathTuple
    weight: Weight

    @classmethod
    def from_edges(
        cls,
        graph: LandscapeGraph,
        src_node: NodeID,
        dst_node: NodeID,
        edges: Sequence[EdgeID],
    ) -> PathResult:
        """
        Build a PathResult from an ordered list of edge keys.

        Args:
            graph: The graph the edges belong to.
            src_node: Start vertex of the search.
            dst_node: End vertex of the search.
            edges: Edge keys in traversal order.

        Returns:
            A new PathResult with its weight recomputed from the graph.

        Raises:
            ValueError: If the edges do not form a contiguous route ending at
                `dst_node`.
        """
        elements = []
        weight: Weight = 0
        expected_source = src_node

        for edge_id in edges:
            source = graph.edge_source(edge_id)
            if source != expected_source:
                raise ValueError(
                    f"Edge '{edge_id}' starts at '{source}', expected '{expected_source}'."
                )
            elements.append((source, (edge_id,)))
            weight += graph.edge_weight(edge_id)
            expected_source = graph.edge_target(edge_id)

        if expected_source != dst_node:
            raise ValueError(
                f"Path ends at '{expected_source}', expected '{dst_node}'."
            )
        elements.append((dst_node, ()))

        return cls(src_node, dst_node, tuple(edges), tuple(elements), weight)

    def __len__(self) -> int:
        """Return the number of edges in the path."""
        return len(self.edges)

    def __iter__(self) -> Iterator[EdgeID]:
        return iter(self.edges)

    def __getitem__(self, idx: int) -> EdgeID:
        return self.edges[idx]

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, PathResult):
            return NotImplemented
        return self.weight < other.weight

    @property
    def is_trivial(self) -> bool:
        """True if the search started at its destination."""
        return not self.edges

    @cached_property
    def nodes_seq(self) -> Tuple[NodeID, ...]:
        """
        Return the vertices along the path, source to destination.

        Vertices may repeat when the path walks around a basin before leaving it.
        """
        return tuple(node for node, _ in self.path_tuple)
