from __future__ import annotations

import base64
import threading
import uuid
from pickle import dumps, loads
from typing import (
    Any,
    Dict,
    FrozenSet,
    Hashable,
    Iterator,
    List,
    Optional,
    Set,
    Tuple,
)

import networkx as nx

from mfepath.lib.cycle import Cycle
from mfepath.lib.cycle_registry import CycleRegistry


def new_base64_uuid() -> str:
    """
    Generate a Base64-encoded UUID without padding.

    Returns:
        str: A unique 22-character, URL-safe Base64-encoded UUID.
    """
    # A 16-byte UUID encodes to 24 chars ending in '=='; drop the padding.
    return base64.urlsafe_b64encode(uuid.uuid4().bytes)[:-2].decode("ascii")


NodeID = Hashable
EdgeID = Hashable
AttrDict = Dict[str, Any]
EdgeTuple = Tuple[NodeID, NodeID, EdgeID, AttrDict]


class LandscapeGraph(nx.MultiDiGraph):
    """
    A directed, edge-weighted multigraph of an energy landscape.

    Nodes are conformations (optionally carrying an ``energy`` attribute) and
    edges are transitions carrying a ``weight`` attribute. On top of the
    strict graph rules it answers the minimum-edge queries used by steepest
    descent and owns the side-table of assigned cycles.

    This class enforces:
      - No automatic creation of missing nodes when adding an edge.
      - No duplicate nodes or duplicate edge keys (ValueError).
      - Removing non-existent nodes or edges raises ValueError.
      - Each edge key is unique; a Base64-UUID is generated if none is given.

    Tie-breaking in every minimum-edge query is deterministic: among equal
    weights the first edge in insertion order wins.

    Attributes:
        weight_attr: Edge attribute holding the transition weight.
        cycles: Cycle assignments shared by all searches over this graph.
    """

    weight_attr: str = "weight"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._edges: Dict[EdgeID, EdgeTuple] = {}
        self.cycles = CycleRegistry()
        self._search_lock = threading.RLock()

    def __getstate__(self) -> Dict[str, Any]:
        state = self.__dict__.copy()
        state.pop("_search_lock", None)
        return state

    def __setstate__(self, state: Dict[str, Any]) -> None:
        self.__dict__.update(state)
        self._search_lock = threading.RLock()

    @property
    def search_lock(self) -> threading.RLock:
        """Lock held by searches that read and write `cycles`."""
        return self._search_lock

    @staticmethod
    def new_edge_key(src_node: NodeID, dst_node: NodeID) -> EdgeID:
        """
        Generate a unique edge key.

        Subclasses may override this to provide an alternative scheme, such as
        a numeric counter.
        """
        return new_base64_uuid()

    def copy(self, as_view: bool = False, pickle: bool = True) -> LandscapeGraph:
        """
        Create a copy of this graph.

        The default pickle-based deep copy also carries the cycle assignments.
        With pickle=False the parent class's copy is used, which supports views
        and starts with an empty cycle registry.

        Args:
            as_view: If True, return a view instead of a full copy;
                only used if pickle=False.
            pickle: If True, perform a pickle-based deep copy.

        Returns:
            LandscapeGraph: A new instance (or view) of the graph.
        """
        if not pickle:
            return super().copy(as_view=as_view)
        return loads(dumps(self))

    #
    # Node management
    #
    def add_node(self, n: NodeID, **attr: Any) -> None:
        """
        Add a single conformation, disallowing duplicates.

        Args:
            n: The node to add.
            **attr: Arbitrary attributes, e.g. ``energy``.

        Raises:
            ValueError: If the node already exists in the graph.
        """
        if n in self:
            raise ValueError(f"Node '{n}' already exists in this graph.")
        super().add_node(n, **attr)

    def remove_node(self, n: NodeID) -> None:
        """
        Remove a single node, its incident edges and its assigned cycle.

        Raises:
            ValueError: If the node does not exist in the graph.
        """
        if n not in self:
            raise ValueError(f"Node '{n}' does not exist.")
        to_delete = [
            e_id for e_id, (s, t, _, _) in self._edges.items() if s == n or t == n
        ]
        for e_id in to_delete:
            del self._edges[e_id]

        self.cycles.discard(n)
        super().remove_node(n)

    def contains_vertex(self, n: NodeID) -> bool:
        """Return True if `n` is a node of this graph."""
        return n in self

    def node_energy(self, n: NodeID) -> Optional[float]:
        """Return the ``energy`` attribute of `n`, or None if unset."""
        return self.nodes[n].get("energy")

    #
    # Edge management
    #
    def add_edge(
        self,
        u_for_edge: NodeID,
        v_for_edge: NodeID,
        key: Optional[EdgeID] = None,
        **attr: Any,
    ) -> EdgeID:
        """
        Add a directed transition from u_for_edge to v_for_edge.

        Both nodes must already exist. If no key is provided, a unique
        Base64-UUID is generated.

        Args:
            u_for_edge: The source node.
            v_for_edge: The target node.
            key: The unique edge key. Must not already be in use if provided.
            **attr: Edge attributes; steepest descent reads ``weight``.

        Returns:
            EdgeID: The key associated with this new edge.

        Raises:
            ValueError: If either node does not exist, or if the key is in use.
        """
        if u_for_edge not in self:
            raise ValueError(f"Source node '{u_for_edge}' does not exist.")
        if v_for_edge not in self:
            raise ValueError(f"Target node '{v_for_edge}' does not exist.")

        if key is None:
            key = self.new_edge_key(u_for_edge, v_for_edge)
        elif key in self._edges:
            raise ValueError(f"Edge with id '{key}' already exists.")

        super().add_edge(u_for_edge, v_for_edge, key=key, **attr)
        self._edges[key] = (
            u_for_edge,
            v_for_edge,
            key,
            self[u_for_edge][v_for_edge][key],
        )
        return key

    def remove_edge(
        self,
        u: NodeID,
        v: NodeID,
        key: Optional[EdgeID] = None,
    ) -> None:
        """
        Remove the edge `key` from u to v, or all edges from u to v if no key.

        Raises:
            ValueError: If the nodes or the edge(s) do not exist, or if `key`
                connects a different pair of nodes.
        """
        if u not in self:
            raise ValueError(f"Source node '{u}' does not exist.")
        if v not in self:
            raise ValueError(f"Target node '{v}' does not exist.")

        if key is not None:
            if key not in self._edges:
                raise ValueError(f"No edge with id='{key}' found from {u} to {v}.")
            src_node, dst_node, _, _ = self._edges[key]
            if src_node != u or dst_node != v:
                raise ValueError(
                    f"Edge with id='{key}' is actually from {src_node} to {dst_node}, "
                    f"not from {u} to {v}."
                )
            self.remove_edge_by_id(key)
        else:
            edge_ids = tuple(self.succ[u].get(v, ()))
            if not edge_ids:
                raise ValueError(f"No edges from '{u}' to '{v}' to remove.")
            for e_id in edge_ids:
                self.remove_edge_by_id(e_id)

    def remove_edge_by_id(self, key: EdgeID) -> None:
        """
        Remove a directed edge by its unique key.

        Raises:
            ValueError: If no edge with this key exists in the graph.
        """
        if key not in self._edges:
            raise ValueError(f"Edge with id='{key}' not found.")
        src_node, dst_node, _, _ = self._edges.pop(key)
        super().remove_edge(src_node, dst_node, key=key)

    #
    # Convenience methods
    #
    def get_nodes(self) -> Dict[NodeID, AttrDict]:
        """Return all nodes and their attributes as a dictionary."""
        return dict(self.nodes(data=True))

    def get_edges(self) -> Dict[EdgeID, EdgeTuple]:
        """
        Return all edges by key.

        Returns:
            Dict[EdgeID, EdgeTuple]: Edge key -> (source, target, key, attributes).
        """
        return self._edges

    def get_edge_attr(self, key: EdgeID) -> AttrDict:
        """
        Return the attribute dictionary of a specific edge.

        Raises:
            ValueError: If no edge with this key is found.
        """
        if key not in self._edges:
            raise ValueError(f"Edge with id='{key}' not found.")
        return self._edges[key][3]

    def has_edge_by_id(self, key: EdgeID) -> bool:
        """Return True if an edge with the given key exists."""
        return key in self._edges

    def edges_between(self, u: NodeID, v: NodeID) -> List[EdgeID]:
        """List all edge keys from node u to node v (empty if none)."""
        if u not in self.succ or v not in self.succ[u]:
            return []
        return list(self.succ[u][v].keys())

    def update_edge_attr(self, key: EdgeID, **attr: Any) -> None:
        """
        Update attributes on an existing edge by key.

        Raises:
            ValueError: If the edge with the given key does not exist.
        """
        if key not in self._edges:
            raise ValueError(f"Edge with id='{key}' not found.")
        self._edges[key][3].update(attr)

    def edge_source(self, key: EdgeID) -> NodeID:
        return self._edges[key][0]

    def edge_target(self, key: EdgeID) -> NodeID:
        return self._edges[key][1]

    def edge_weight(self, key: EdgeID) -> float:
        return self._edges[key][3][self.weight_attr]

    def outgoing_edges(self, node: NodeID) -> Iterator[Tuple[EdgeID, NodeID, AttrDict]]:
        """
        Yield (edge key, target, attributes) for every edge leaving `node`.

        The order is the graph's insertion order and is stable between calls.
        Unknown nodes yield nothing.
        """
        adjacency = self._adj.get(node)
        if not adjacency:
            return
        for target, edges_map in adjacency.items():
            for edge_id, attr in edges_map.items():
                yield edge_id, target, attr

    def dead_ends(self) -> List[NodeID]:
        """Return nodes without outgoing edges, in insertion order."""
        return [node for node in self if not self._adj[node]]

    #
    # Cycle assignments
    #
    def cycle_of(self, node: NodeID) -> Optional[Cycle]:
        """Return the Cycle currently assigned to `node`, or None."""
        return self.cycles.get(node)

    def assign_cycle(self, node: NodeID, cycle: Cycle) -> bool:
        """Assign `cycle` to `node`, replacing any earlier assignment."""
        return self.cycles.assign(node, cycle)

    def clear_cycles(self) -> None:
        """Forget all cycle assignments."""
        self.cycles.clear()

    #
    # Minimum-edge queries
    #
    def cheapest_edge(
        self,
        node: NodeID,
        excluded_edges: Optional[Set[EdgeID]] = None,
        excluded_targets: Optional[FrozenSet[NodeID]] = None,
    ) -> Optional[EdgeID]:
        """
        Return the lowest-weight edge leaving `node`, ignoring assigned cycles.

        Args:
            node: The node whose outgoing edges are considered.
            excluded_edges: Edge keys to skip.
            excluded_targets: Skip edges whose target is in this set.

        Returns:
            The selected edge key, or None if no candidate edge exists.
        """
        weight_attr = self.weight_attr
        chosen: Optional[EdgeID] = None
        min_weight = float("inf")

        for edge_id, target, attr in self.outgoing_edges(node):
            if excluded_edges and edge_id in excluded_edges:
                continue
            if excluded_targets and target in excluded_targets:
                continue
            weight = attr[weight_attr]
            if chosen is None or weight < min_weight:
                min_weight = weight
                chosen = edge_id

        return chosen

    def _active_cycle(
        self, node: NodeID, cycles: Optional[CycleRegistry]
    ) -> Optional[Cycle]:
        registry = self.cycles if cycles is None else cycles
        cycle = registry.get(node)
        if cycle is None or cycle.is_degenerate:
            return None
        return cycle

    def min_edge(
        self,
        node: NodeID,
        excluded_edges: Optional[Set[EdgeID]] = None,
        cycles: Optional[CycleRegistry] = None,
    ) -> Optional[EdgeID]:
        """
        Return the lowest-weight outgoing edge of `node`.

        When `node` holds an assigned cycle, edges leading back into that cycle
        are not candidates: a vertex that knows its basin looks past it.

        Args:
            node: The node whose outgoing edges are considered.
            excluded_edges: Edge keys to skip.
            cycles: Registry to read assignments from (defaults to `self.cycles`).

        Returns:
            The selected edge key, or None.
        """
        cycle = self._active_cycle(node, cycles)
        if cycle is None:
            return self.cheapest_edge(node, excluded_edges)
        return self.cheapest_edge(node, excluded_edges, cycle.members)

    def min_edge_in_cycle(
        self,
        node: NodeID,
        excluded_edges: Optional[Set[EdgeID]] = None,
        cycles: Optional[CycleRegistry] = None,
    ) -> Optional[EdgeID]:
        """
        Return the cheapest edge leaving the cycle assigned to `node`.

        Every member of the cycle is a candidate source, so the result may
        start at a vertex other than `node`. Without an assigned (non-degenerate)
        cycle the result is exactly `min_edge(node)`.

        Args:
            node: The node whose assigned cycle is examined.
            excluded_edges: Edge keys to skip.
            cycles: Registry to read assignments from (defaults to `self.cycles`).

        Returns:
            The selected edge key, or None if the cycle has no exit.
        """
        cycle = self._active_cycle(node, cycles)
        if cycle is None:
            return self.min_edge(node, excluded_edges, cycles)

        weight_attr = self.weight_attr
        chosen: Optional[EdgeID] = None
        min_weight = float("inf")

        for member in cycle.nodes:
            for edge_id, target, attr in self.outgoing_edges(member):
                if target in cycle.members:
                    continue
                if excluded_edges and edge_id in excluded_edges:
                    continue
                weight = attr[weight_attr]
                if chosen is None or weight < min_weight:
                    min_weight = weight
                    chosen = edge_id

        return chosen
