"""Command-line interface for mfepath."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import networkx as nx

from mfepath.config import SEARCH_CONFIG
from mfepath.lib.algorithms.base import CycleState
from mfepath.lib.algorithms.errors import NoPathFoundError, PathSearchError
from mfepath.lib.algorithms.steepest_descent import find_path
from mfepath.lib.graph import LandscapeGraph, NodeID
from mfepath.lib.io import load_graph
from mfepath.lib.path import PathResult
from mfepath.logging import configure_verbosity, get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_PATH = 2


def _format_weight(value: Any) -> str:
    """Format a weight compactly, dropping a trailing '.0'."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    if number.is_integer():
        return str(int(number))
    return f"{number:g}"


def _path_to_dict(graph: LandscapeGraph, result: PathResult) -> Dict[str, Any]:
    return {
        "source": result.src_node,
        "target": result.dst_node,
        "weight": result.weight,
        "nodes": list(result.nodes_seq),
        "edges": [
            {
                "key": edge_id,
                "source": graph.edge_source(edge_id),
                "target": graph.edge_target(edge_id),
                "weight": graph.edge_weight(edge_id),
            }
            for edge_id in result.edges
        ],
    }


def _print_path(graph: LandscapeGraph, result: PathResult) -> None:
    if result.is_trivial:
        print(f"Path {result.src_node} -> {result.dst_node}: trivial (weight 0)")
        return
    print(
        f"Path {result.src_node} -> {result.dst_node}: {len(result)} steps, "
        f"weight {_format_weight(result.weight)}"
    )
    for edge_id in result.edges:
        print(
            f"  {graph.edge_source(edge_id)} -> {graph.edge_target(edge_id)}"
            f"  [{_format_weight(graph.edge_weight(edge_id))}]"
        )


def _resolve_node(graph: LandscapeGraph, name: str) -> NodeID:
    """
    Map a command-line node name to a node of `graph`.

    Node IDs loaded from YAML or JSON keep their type, so ``1`` on the command
    line must find the integer node 1. An exact match wins; otherwise the name
    resolves to the single node whose string form equals it. Names that match
    nothing, or several nodes, are returned unchanged.
    """
    if name in graph:
        return name
    matches = [node for node in graph if str(node) == name]
    if len(matches) == 1:
        return matches[0]
    if matches:
        logger.warning(f"Node name {name!r} is ambiguous: {matches}")
    return name


def _find(args: argparse.Namespace) -> int:
    try:
        graph = load_graph(args.graph)
    except FileNotFoundError:
        print(f"❌ ERROR: Graph file not found: {args.graph}")
        return EXIT_ERROR
    except (ValueError, RuntimeError) as e:
        logger.error(f"Failed to load graph: {type(e).__name__}: {e}")
        print(f"❌ ERROR: Failed to load graph: {e}")
        return EXIT_ERROR

    config = SEARCH_CONFIG.with_overrides(
        cycle_state=CycleState[args.cycle_state.upper()],
        exclude_dead_end_edges=not args.no_dead_end_exclusion,
        max_depth=args.max_depth,
        max_steps=args.max_steps,
    )

    start = _resolve_node(graph, args.start)
    end = _resolve_node(graph, args.end)

    try:
        result = find_path(graph, start, end, args.radius, config)
    except NoPathFoundError as e:
        print(f"No path: {e}")
        return EXIT_NO_PATH
    except PathSearchError as e:
        logger.error(f"Search failed ({e.kind.name}): {e}")
        print(f"❌ ERROR: {e.kind.name}: {e}")
        return EXIT_ERROR

    if args.json:
        print(json.dumps(_path_to_dict(graph, result), indent=2, default=str))
    else:
        _print_path(graph, result)
    return EXIT_OK


def _inspect(args: argparse.Namespace) -> int:
    try:
        graph = load_graph(args.graph)
    except FileNotFoundError:
        print(f"❌ ERROR: Graph file not found: {args.graph}")
        return EXIT_ERROR
    except (ValueError, RuntimeError) as e:
        print(f"❌ ERROR: Failed to load graph: {e}")
        return EXIT_ERROR

    dead_ends = graph.dead_ends()
    basins = [
        scc
        for scc in nx.strongly_connected_components(graph)
        if len(scc) > 1
    ]
    print(f"Nodes: {graph.number_of_nodes()}")
    print(f"Edges: {graph.number_of_edges()}")
    print(f"Self-loops: {nx.number_of_selfloops(graph)}")
    print(f"Dead ends: {len(dead_ends)}")
    for node in dead_ends:
        print(f"  {node}")
    print(f"Strongly connected groups: {len(basins)}")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``mfepath`` command.

    Args:
        argv: Optional list of command-line arguments. If ``None``, ``sys.argv``
            is used.
    """
    parser = argparse.ArgumentParser(
        prog="mfepath",
        description="Steepest-descent paths over energy landscape graphs.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--quiet", action="store_true", help="Only log warnings and errors"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        title="Available commands",
        metavar="{find,inspect}",
        help="Available commands",
    )

    find_parser = subparsers.add_parser("find", help="Find a path between two nodes")
    find_parser.add_argument("graph", type=Path, help="Path to graph YAML/JSON")
    find_parser.add_argument("start", help="Start node")
    find_parser.add_argument("end", help="End node")
    find_parser.add_argument(
        "--radius",
        type=float,
        default=float("inf"),
        help="Accepted for compatibility; does not limit the search",
    )
    find_parser.add_argument(
        "--cycle-state",
        choices=[state.name.lower() for state in CycleState],
        default=SEARCH_CONFIG.cycle_state.name.lower(),
        help="Where cycle assignments are kept during the search",
    )
    find_parser.add_argument(
        "--no-dead-end-exclusion",
        action="store_true",
        help="Allow re-selecting edges that led into a dead end",
    )
    find_parser.add_argument(
        "--max-depth",
        type=int,
        default=SEARCH_CONFIG.max_depth,
        help="Maximum number of nested basin escapes",
    )
    find_parser.add_argument(
        "--max-steps",
        type=int,
        default=SEARCH_CONFIG.max_steps,
        help="Maximum number of search steps",
    )
    find_parser.add_argument(
        "--json", action="store_true", help="Print the path as JSON"
    )

    inspect_parser = subparsers.add_parser(
        "inspect", help="Summarize a graph file"
    )
    inspect_parser.add_argument("graph", type=Path, help="Path to graph YAML/JSON")

    effective_args = sys.argv[1:] if argv is None else argv

    if not effective_args:
        parser.print_help()
        raise SystemExit(0)

    args = parser.parse_args(effective_args)

    if configure_verbosity(args.verbose, args.quiet) == logging.DEBUG:
        logger.debug("Debug logging enabled")

    if args.command == "find":
        code = _find(args)
    else:
        code = _inspect(args)

    if code != EXIT_OK:
        sys.exit(code)


if __name__ == "__main__":
    main()
