from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml

from mfepath.lib.graph import LandscapeGraph, NodeID
from mfepath.logging import get_logger

logger = get_logger(__name__)


def _weighted(
    graph: LandscapeGraph, src: NodeID, dst: NodeID, attrs: Dict[str, Any]
) -> Dict[str, Any]:
    """Return a copy of `attrs` with the weight parsed as a float.

    Raises:
        ValueError: If the weight is missing or not a number.
    """
    weight_attr = graph.weight_attr
    if weight_attr not in attrs:
        raise ValueError(f"Edge {src} -> {dst} has no '{weight_attr}'")
    try:
        weight = float(attrs[weight_attr])
    except (TypeError, ValueError):
        raise ValueError(
            f"Edge {src} -> {dst} has a non-numeric '{weight_attr}': "
            f"{attrs[weight_attr]!r}"
        ) from None
    return {**attrs, weight_attr: weight}


def graph_to_node_link(graph: LandscapeGraph) -> Dict[str, Any]:
    """
    Convert a LandscapeGraph into a node-link dict representation.

    The returned dict has the following structure:
        {
            "graph": { ... top-level graph attributes ... },
            "nodes": [{"id": node_id, "attr": { ... }}, ...],
            "links": [
                {"source": <node index>, "target": <node index>,
                 "key": <edge_id>, "attr": { ... }},
                ...
            ]
        }

    Cycle assignments are search state and are not exported.

    Args:
        graph: The LandscapeGraph to convert.

    Returns:
        A dict containing the 'graph' attributes, 'nodes' and 'links'.
    """
    node_dict = graph.get_nodes()
    node_list = list(node_dict.keys())
    node_map = {node_id: i for i, node_id in enumerate(node_list)}

    return {
        "graph": dict(graph.graph),
        "nodes": [
            {"id": node_id, "attr": dict(node_dict[node_id])} for node_id in node_list
        ],
        "links": [
            {
                "source": node_map[src],
                "target": node_map[dst],
                "key": edge_id,
                "attr": dict(edge_attrs),
            }
            for edge_id, (src, dst, _, edge_attrs) in graph.get_edges().items()
        ],
    }


def node_link_to_graph(data: Dict[str, Any]) -> LandscapeGraph:
    """
    Reconstruct a LandscapeGraph from its node-link dict representation.

    Link endpoints are indices into the "nodes" list, as produced by
    `graph_to_node_link`.

    Args:
        data: A dict representing the node-link structure.

    Returns:
        A LandscapeGraph reconstructed from the provided data.

    Raises:
        ValueError: If a link has no numeric weight.
    """
    graph = LandscapeGraph(**data.get("graph", {}))

    node_map: Dict[int, NodeID] = {}
    for idx, node_obj in enumerate(data.get("nodes", [])):
        node_id = node_obj["id"]
        graph.add_node(node_id, **node_obj.get("attr", {}))
        node_map[idx] = node_id

    for edge_obj in data.get("links", []):
        src_id = node_map[edge_obj["source"]]
        dst_id = node_map[edge_obj["target"]]
        attrs = _weighted(graph, src_id, dst_id, edge_obj.get("attr", {}))
        graph.add_edge(src_id, dst_id, key=edge_obj.get("key"), **attrs)

    return graph


def landscape_to_graph(data: Dict[str, Any]) -> LandscapeGraph:
    """
    Build a LandscapeGraph from a compact landscape document.

    Expected input format:
        {
            "nodes": {"A": {"energy": -1.2}, "B": {}, ...}   # or a list of IDs
            "edges": [
                {"source": "A", "target": "B", "weight": 0.4, "key": "ab"},
                ...
            ]
        }

    Nodes referenced by edges but not declared are added without attributes.
    Any edge field other than source, target and key becomes an edge attribute.

    Raises:
        ValueError: If the document is malformed or an edge has no weight.
    """
    nodes = data.get("nodes") or {}
    edges = data.get("edges") or []
    if not isinstance(nodes, (dict, list)):
        raise ValueError("'nodes' must be a mapping or a list")
    if not isinstance(edges, list):
        raise ValueError("'edges' must be a list")

    graph = LandscapeGraph()
    if isinstance(nodes, dict):
        for node_id, attrs in nodes.items():
            graph.add_node(node_id, **(attrs or {}))
    else:
        for node_id in nodes:
            graph.add_node(node_id)

    for entry in edges:
        if not isinstance(entry, dict):
            raise ValueError("Each edge must be a mapping with 'source' and 'target'")
        if "source" not in entry or "target" not in entry:
            raise ValueError("Each edge must include 'source' and 'target'")
        attrs = _weighted(
            graph,
            entry["source"],
            entry["target"],
            {k: v for k, v in entry.items() if k not in ("source", "target", "key")},
        )

        for node_id in (entry["source"], entry["target"]):
            if node_id not in graph:
                graph.add_node(node_id)
        graph.add_edge(entry["source"], entry["target"], key=entry.get("key"), **attrs)

    return graph


def edgelist_to_graph(
    lines: Iterable[str],
    columns: List[str],
    separator: str = " ",
    graph: Optional[LandscapeGraph] = None,
    source: str = "src",
    target: str = "dst",
    key: str = "key",
) -> LandscapeGraph:
    """
    Build or update a LandscapeGraph from an edge list.

    Each line is split by `separator` into tokens mapped to `columns`. The
    `source` and `target` tokens become node IDs, the `key` token (if that
    column exists) the edge ID. The weight column is required and parsed as a
    float; all other tokens are kept as string attributes. Blank lines are
    skipped.

    Args:
        lines: An iterable of strings, each representing one edge.
        columns: Column names, e.g. ["src", "dst", "weight"].
        separator: The separator used to split each line.
        graph: An existing graph to update; if None, a new graph is created.
        source: The column name for the source node ID.
        target: The column name for the target node ID.
        key: The column name for a custom edge ID.

    Returns:
        The updated (or newly created) LandscapeGraph.

    Raises:
        RuntimeError: If a line has the wrong number of tokens.
        ValueError: If there is no weight column or a weight is not a number.
    """
    if graph is None:
        graph = LandscapeGraph()

    for line in lines:
        line = line.rstrip("\r\n")
        if not line.strip():
            continue
        tokens = line.split(separator)
        if len(tokens) != len(columns):
            raise RuntimeError(
                f"Line '{line}' does not match expected columns {columns} (token count mismatch)."
            )

        line_dict = dict(zip(columns, tokens))
        src_id = line_dict[source]
        dst_id = line_dict[target]
        edge_key = line_dict.get(key, None)

        attr_dict: Dict[str, Any] = {
            k: v for k, v in line_dict.items() if k not in (source, target, key)
        }
        attr_dict = _weighted(graph, src_id, dst_id, attr_dict)

        if src_id not in graph:
            graph.add_node(src_id)
        if dst_id not in graph:
            graph.add_node(dst_id)

        graph.add_edge(src_id, dst_id, key=edge_key, **attr_dict)

    return graph


def graph_to_edgelist(
    graph: LandscapeGraph,
    columns: Optional[List[str]] = None,
    separator: str = " ",
    source_col: str = "src",
    target_col: str = "dst",
    key_col: str = "key",
) -> List[str]:
    """
    Convert a LandscapeGraph into edge-list lines.

    By default the output columns are
    [source_col, target_col, key_col] + sorted(edge_attribute_names).
    With an explicit list of columns, missing values are written as "".

    Returns:
        A list of strings, one per edge.
    """
    edge_dicts: List[Dict[str, str]] = []
    all_attr_keys = set()

    for edge_id, (src, dst, _, edge_attrs) in graph.get_edges().items():
        key_val = str(edge_id) if edge_id is not None else ""
        row = {
            source_col: str(src),
            target_col: str(dst),
            key_col: key_val,
        }
        for attr_key, attr_val in edge_attrs.items():
            row[attr_key] = str(attr_val)
            all_attr_keys.add(attr_key)
        edge_dicts.append(row)

    if columns is None:
        columns = [source_col, target_col, key_col] + sorted(all_attr_keys)

    return [
        separator.join(row_dict.get(col, "") for col in columns)
        for row_dict in edge_dicts
    ]


def load_graph(path: Union[str, Path]) -> LandscapeGraph:
    """
    Load a LandscapeGraph from a YAML or JSON file.

    Both node-link documents (with "links") and compact landscape documents
    (with "edges") are accepted. Files ending in ".json" are parsed as JSON,
    everything else as YAML.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the document is not a mapping or has neither "links"
            nor "edges".
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("The graph file must map to a dictionary at top-level.")

    if "links" in data:
        graph = node_link_to_graph(data)
    elif "edges" in data:
        graph = landscape_to_graph(data)
    else:
        raise ValueError("The graph file must define either 'links' or 'edges'.")

    logger.debug(
        "Loaded %s: %d nodes, %d edges",
        path,
        graph.number_of_nodes(),
        graph.number_of_edges(),
    )
    return graph
