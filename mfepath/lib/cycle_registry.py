from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterator, Optional, Tuple

from mfepath.lib.cycle import Cycle

if TYPE_CHECKING:
    from mfepath.lib.graph import NodeID


class CycleRegistry:
    """
    Side-table holding at most one assigned Cycle per vertex.

    The registry replaces per-vertex mutable fields: a vertex's assignment is
    looked up by node ID. A later assignment on the same vertex replaces the
    earlier one; cycles are never merged.

    Attributes:
        version: Number of effective changes made so far. Re-assigning a cycle
            equal to the current one does not count as a change.
    """

    def __init__(self) -> None:
        self._cycles: Dict[NodeID, Cycle] = {}
        self.version: int = 0

    def get(self, node: NodeID) -> Optional[Cycle]:
        """Return the Cycle assigned to `node`, or None."""
        return self._cycles.get(node)

    def assign(self, node: NodeID, cycle: Cycle) -> bool:
        """
        Assign `cycle` to `node`, replacing any previous assignment.

        Args:
            node: The vertex receiving the assignment.
            cycle: The Cycle to assign.

        Returns:
            True if the assignment changed the registry.
        """
        previous = self._cycles.get(node)
        self._cycles[node] = cycle
        if previous is not None and previous == cycle:
            return False
        self.version += 1
        return True

    def discard(self, node: NodeID) -> None:
        """Remove the assignment for `node` if present."""
        if self._cycles.pop(node, None) is not None:
            self.version += 1

    def clear(self) -> None:
        """Drop all assignments."""
        if self._cycles:
            self._cycles.clear()
            self.version += 1

    def copy(self) -> CycleRegistry:
        """
        Return a registry with the same assignments.

        Cycles are immutable, so the copy shares them with this registry.
        """
        other = CycleRegistry()
        other._cycles = dict(self._cycles)
        other.version = self.version
        return other

    def items(self) -> Iterator[Tuple[NodeID, Cycle]]:
        return iter(self._cycles.items())

    def __contains__(self, node: object) -> bool:
        return node in self._cycles

    def __len__(self) -> int:
        return len(self._cycles)

    def __repr__(self) -> str:
        return f"CycleRegistry({len(self._cycles)} assigned, version={self.version})"
