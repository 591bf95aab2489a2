"""mfepath: steepest-descent paths over energy landscapes.

A landscape is a directed, edge-weighted graph of conformations. Paths follow
the locally cheapest transition at every vertex, recording basins (cycles) as
they are discovered and escaping them through their cheapest exit.

Primary API:
    LandscapeGraph - Strict directed multigraph with minimum-edge queries
    find_path() - Run one search and return a PathResult
    MolecularShortestPath - Search object with sentinel accessors
    SearchConfig - Limits and cycle-state mode of a search

Example:
    from mfepath import LandscapeGraph, find_path

    g = LandscapeGraph()
    for n in ("A", "B", "C"):
        g.add_node(n)
    g.add_edge("A", "B", weight=1.0)
    g.add_edge("B", "C", weight=2.0)
    g.add_edge("A", "C", weight=5.0)

    result = find_path(g, "A", "C")
    result.weight  # 3.0, greedy rather than optimal
"""

from __future__ import annotations

from mfepath import cli, logging
from mfepath._version import __version__
from mfepath.config import SEARCH_CONFIG, SearchConfig
from mfepath.lib.algorithms.base import CycleState, ErrorKind
from mfepath.lib.algorithms.errors import (
    InternalInconsistencyError,
    InvalidArgumentError,
    NoPathFoundError,
    PathSearchError,
    ResourceExhaustedError,
)
from mfepath.lib.algorithms.steepest_descent import (
    MolecularShortestPath,
    find_path,
    find_path_between,
    find_path_edges,
)
from mfepath.lib.cycle import Cycle, build_cycle
from mfepath.lib.cycle_registry import CycleRegistry
from mfepath.lib.graph import LandscapeGraph
from mfepath.lib.io import load_graph
from mfepath.lib.path import PathResult

__all__ = [
    # Version
    "__version__",
    # Model
    "LandscapeGraph",
    "Cycle",
    "CycleRegistry",
    "PathResult",
    "build_cycle",
    # Search
    "find_path",
    "find_path_edges",
    "find_path_between",
    "MolecularShortestPath",
    "SearchConfig",
    "SEARCH_CONFIG",
    "CycleState",
    # Errors
    "ErrorKind",
    "PathSearchError",
    "InvalidArgumentError",
    "NoPathFoundError",
    "InternalInconsistencyError",
    "ResourceExhaustedError",
    # I/O
    "load_graph",
    # Utilities
    "cli",
    "logging",
]
