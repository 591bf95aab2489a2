"""Configuration classes for mfepath components."""

from dataclasses import dataclass, replace
from typing import Any

from mfepath.lib.algorithms.base import CycleState


@dataclass(frozen=True)
class SearchConfig:
    """Limits and switches for steepest-descent path searches."""

    # Where cycle assignments are read from and written to
    cycle_state: CycleState = CycleState.SHARED

    # Forbid an edge for the rest of the frame once it led into a dead end
    exclude_dead_end_edges: bool = True

    # Maximum number of nested basin-escape searches alive at once
    max_depth: int = 256

    # Maximum number of decision steps across all frames of one search
    max_steps: int = 1_000_000

    # Hold the graph's search lock while using its shared cycle registry
    lock_shared_state: bool = True

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        object.__setattr__(self, "cycle_state", CycleState(self.cycle_state))

    def with_overrides(self, **changes: Any) -> "SearchConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


# Global configuration instance
SEARCH_CONFIG = SearchConfig()
