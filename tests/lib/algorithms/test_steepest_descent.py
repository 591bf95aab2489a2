import logging
from concurrent.futures import ThreadPoolExecutor

import networkx as nx
import pytest

from mfepath.config import SearchConfig
from mfepath.lib.algorithms.base import CycleState, ErrorKind
from mfepath.lib.algorithms.errors import (
    InternalInconsistencyError,
    InvalidArgumentError,
    NoPathFoundError,
    ResourceExhaustedError,
)
from mfepath.lib.algorithms.steepest_descent import (
    MolecularShortestPath,
    find_path,
    find_path_between,
    find_path_edges,
)
from mfepath.lib.cycle import build_cycle
from mfepath.lib.graph import LandscapeGraph
from tests.lib.algorithms.sample_graphs import *


class TestGreedySelection:
    def test_follows_local_minimum(self, greedy_triangle):
        """A->B (1) is taken over the direct A->C (5)."""
        result = find_path(greedy_triangle, "A", "C")
        assert result.edges == (0, 1)
        assert result.weight == 3
        assert result.nodes_seq == ("A", "B", "C")

    def test_not_globally_optimal(self, greedy_detour):
        """Greedy descent commits to A->B even though A->C is cheaper overall."""
        result = find_path(greedy_detour, "A", "C")
        assert result.edges == (0, 1)
        assert result.weight == 11
        assert nx.dijkstra_path_length(greedy_detour, "A", "C", weight="weight") == 5

    def test_ties_resolve_to_first_inserted_edge(self, tie_square):
        first = find_path(tie_square, "A", "D")
        second = find_path(tie_square, "A", "D")
        assert first.edges == (0, 2)
        assert second.edges == first.edges

    def test_trivial_path(self, greedy_triangle):
        result = find_path(greedy_triangle, "B", "B")
        assert result.edges == ()
        assert result.weight == 0
        assert result.path_tuple == (("B", ()),)
        assert result.is_trivial

    def test_edges_only_entry_point(self, greedy_triangle):
        assert find_path_edges(greedy_triangle, "A", "C") == [0, 1]


class TestArguments:
    @pytest.mark.parametrize("start", ["A", "B", "nowhere"])
    @pytest.mark.parametrize("radius", [0.0, 1.5, float("inf")])
    def test_missing_end_vertex(self, greedy_triangle, start, radius):
        with pytest.raises(InvalidArgumentError) as exc_info:
            find_path(greedy_triangle, start, "Z", radius)
        assert exc_info.value.kind == ErrorKind.INVALID_ARGUMENT
        assert isinstance(exc_info.value, ValueError)

    def test_missing_end_vertex_detected_before_traversal(self, two_cycle):
        with pytest.raises(InvalidArgumentError):
            find_path(two_cycle, "A", "Z")
        assert len(two_cycle.cycles) == 0

    def test_unknown_start_has_no_path(self, greedy_triangle):
        with pytest.raises(NoPathFoundError):
            find_path(greedy_triangle, "nowhere", "C")

    def test_radius_does_not_limit_search(self, greedy_triangle):
        bounded = find_path(greedy_triangle, "A", "C", radius=0.5)
        unbounded = find_path(greedy_triangle, "A", "C")
        assert bounded == unbounded
        assert bounded.weight > 0.5


class TestCycles:
    def test_cycle_detection_and_escape(self, two_cycle):
        """The 2-cycle A<->B is detected at B and left through B->C."""
        result = find_path(two_cycle, "A", "C")

        assert result.edges == (0, 2)
        assert result.weight == 11
        assert result.dst_node == "C"

        cycle = two_cycle.cycle_of("B")
        assert cycle is not None
        assert cycle.members == {"A", "B"}
        assert two_cycle.cycle_of("A") is None

    def test_loop_only_membership(self, tail_into_loop):
        result = find_path(tail_into_loop, "S", "T")
        assert result.edges == (0, 1, 3)
        assert result.weight == 5
        cycle = tail_into_loop.cycle_of("B")
        assert cycle.members == {"A", "B"}
        assert "S" not in cycle

    def test_step_back_to_cheaper_exit(self, basin_exit_elsewhere):
        """The basin {A, B} is cheapest to leave from A, so the search steps back."""
        result = find_path(basin_exit_elsewhere, "A", "C")
        assert result.edges == (2,)
        assert result.weight == 5
        assert basin_exit_elsewhere.cycle_of("A").members == {"A", "B"}
        assert basin_exit_elsewhere.cycle_of("B").members == {"A", "B"}

    def test_nested_search_to_exit_vertex(self, basin_exit_elsewhere):
        """Entering a known basin from outside walks it to its exit vertex."""
        find_path(basin_exit_elsewhere, "A", "C")

        result = find_path(basin_exit_elsewhere, "D", "C")
        assert result.edges == (4, 1, 2)
        assert result.nodes_seq == ("D", "B", "A", "C")
        assert result.weight == 7

    def test_start_with_divergent_cycle(self, basin_exit_elsewhere):
        g = basin_exit_elsewhere
        g.assign_cycle("B", build_cycle(g, "B"))
        with pytest.raises(InternalInconsistencyError) as exc_info:
            find_path(g, "B", "C")
        assert exc_info.value.kind == ErrorKind.INTERNAL_INCONSISTENCY

    def test_basin_holding_target_is_transparent(self, two_cycle):
        two_cycle.assign_cycle("B", build_cycle(two_cycle, "B"))
        result = find_path(two_cycle, "B", "A")
        assert result.edges == (1,)


class TestDeadEnds:
    def test_backtrack_from_dead_end(self, dead_end):
        result = find_path(dead_end, "A", "C")
        assert result.edges == (1,)
        assert result.weight == 2

    def test_reselected_dead_end_edge_is_reported(self, dead_end):
        """Without edge exclusion, A->B is chosen again; the search must stop."""
        config = SearchConfig(exclude_dead_end_edges=False)
        with pytest.raises(ResourceExhaustedError) as exc_info:
            find_path(dead_end, "A", "C", config=config)
        assert exc_info.value.kind == ErrorKind.RESOURCE_EXHAUSTED
        assert not isinstance(exc_info.value, NoPathFoundError)

    def test_no_path_after_backtracking(self, isolated_target):
        with pytest.raises(NoPathFoundError) as exc_info:
            find_path(isolated_target, "A", "C")
        assert exc_info.value.start == "A"
        assert exc_info.value.end == "C"

    def test_no_path_from_sink(self, isolated_target):
        with pytest.raises(NoPathFoundError):
            find_path(isolated_target, "B", "A")


class TestCycleStatePersistence:
    def test_second_search_observes_earlier_cycle(self, two_cycle):
        find_path(two_cycle, "A", "C")
        first_cycle = two_cycle.cycle_of("B")

        result = find_path(two_cycle, "D", "C")
        assert result.edges == (3, 2)
        assert result.weight == 11
        assert two_cycle.cycle_of("B") is first_cycle
        # B already knew its basin, so no loop was closed at A this time.
        assert two_cycle.cycle_of("A") is None

    def test_same_search_without_earlier_cycle(self, two_cycle):
        result = find_path(two_cycle, "D", "C")
        assert result.edges == (3, 2)
        assert two_cycle.cycle_of("A") is not None

    def test_fresh_state_leaves_graph_untouched(self, basin_exit_elsewhere):
        g = basin_exit_elsewhere
        find_path(g, "A", "C")
        version = g.cycles.version

        config = SearchConfig(cycle_state=CycleState.FRESH)
        result = find_path(g, "D", "C", config=config)
        assert result.edges == (4, 1, 2)
        assert g.cycles.version == version

    def test_fresh_state_ignores_earlier_cycles(self, basin_exit_elsewhere):
        g = basin_exit_elsewhere
        g.assign_cycle("B", build_cycle(g, "B"))
        config = SearchConfig(cycle_state=CycleState.FRESH)
        # With the shared registry this start is inconsistent.
        result = find_path(g, "B", "C", config=config)
        assert result.edges == (1, 2)
        assert result.weight == 6

    def test_snapshot_reads_but_does_not_write(self, basin_exit_elsewhere):
        g = basin_exit_elsewhere
        find_path(g, "A", "C")
        assigned = dict(g.cycles.items())
        version = g.cycles.version

        config = SearchConfig(cycle_state=CycleState.SNAPSHOT)
        result = find_path(g, "D", "C", config=config)
        assert result.edges == (4, 1, 2)
        assert g.cycles.version == version
        assert dict(g.cycles.items()) == assigned

    def test_snapshot_of_empty_registry_stays_empty(self, two_cycle):
        config = SearchConfig(cycle_state=CycleState.SNAPSHOT)
        find_path(two_cycle, "A", "C", config=config)
        assert len(two_cycle.cycles) == 0


class TestLimits:
    def test_max_steps(self, greedy_triangle):
        with pytest.raises(ResourceExhaustedError, match="steps"):
            find_path(greedy_triangle, "A", "C", config=SearchConfig(max_steps=1))

    def test_max_depth(self, basin_exit_elsewhere):
        g = basin_exit_elsewhere
        find_path(g, "A", "C")
        with pytest.raises(ResourceExhaustedError, match="nesting"):
            find_path(g, "D", "C", config=SearchConfig(max_depth=1))

    def test_concurrent_shared_searches(self, two_cycle):
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(
                pool.map(lambda _: find_path(two_cycle, "A", "C"), range(8))
            )
        assert {r.edges for r in results} == {(0, 2)}


class TestMolecularShortestPath:
    def test_accessors(self, greedy_triangle):
        alg = MolecularShortestPath(greedy_triangle, "A", "C")
        assert alg.path is not None
        assert alg.path_edge_list == [0, 1]
        assert alg.path_length == 3
        assert alg.error is None
        assert alg.radius == float("inf")

    def test_no_path_sentinels(self, isolated_target):
        alg = MolecularShortestPath(isolated_target, "A", "C", radius=2.0)
        assert alg.path is None
        assert alg.path_edge_list is None
        assert alg.path_length == float("inf")
        assert alg.error.kind == ErrorKind.NO_PATH_FOUND
        assert alg.radius == 2.0

    def test_trivial_path_is_not_missing(self, greedy_triangle):
        alg = MolecularShortestPath(greedy_triangle, "C", "C")
        assert alg.path is not None
        assert alg.path_edge_list == []
        assert alg.path_length == 0

    def test_invalid_end_raises(self, greedy_triangle):
        with pytest.raises(InvalidArgumentError):
            MolecularShortestPath(greedy_triangle, "A", "Z")

    def test_resource_exhaustion_propagates(self, dead_end):
        with pytest.raises(ResourceExhaustedError):
            MolecularShortestPath(
                dead_end, "A", "C", config=SearchConfig(exclude_dead_end_edges=False)
            )

    def test_find_path_between(self, greedy_triangle, isolated_target):
        assert find_path_between(greedy_triangle, "A", "C") == [0, 1]
        assert find_path_between(isolated_target, "A", "C") is None


def test_debug_log_records_loop_closure(two_cycle, caplog):
    caplog.set_level(logging.DEBUG, logger="mfepath")
    find_path(two_cycle, "A", "C")
    assert "Loop closed at 'B'" in caplog.text


def test_basin_exit_back_onto_approach_is_exhausted():
    # Weight:
    #      [1]      [1]
    #  S───────►A◄──────►B
    #  ▲ │          [1] │
    #  │ │ [5]          │ [2]
    #  │ ▼              │
    #  │ T              │
    #  └────────────────┘
    # The basin {A, B} is left through B->S, which leads back into it; S->T is
    # never tried.
    g = LandscapeGraph()
    for node in ("S", "A", "B", "T"):
        g.add_node(node)
    g.add_edge("S", "A", key=0, weight=1)
    g.add_edge("A", "B", key=1, weight=1)
    g.add_edge("B", "A", key=2, weight=1)
    g.add_edge("B", "S", key=3, weight=2)
    g.add_edge("S", "T", key=4, weight=5)

    with pytest.raises(ResourceExhaustedError, match="without making progress"):
        find_path(g, "S", "T")
    assert g.cycle_of("S") == g.cycle_of("B")
    assert g.cycle_of("S").members == {"A", "B"}


def test_step_back_uses_current_basin_not_exit_vertex_cycle(basin_exit_elsewhere):
    """The exit vertex A holds an unrelated cycle; B's basin still decides."""
    g = basin_exit_elsewhere
    g.add_node("E")
    g.add_node("F")
    g.add_edge("E", "F", key=5, weight=1)
    g.add_edge("F", "E", key=6, weight=1)
    g.assign_cycle("A", build_cycle(g, "E"))
    assert not g.cycle_of("A").contains("A")

    result = find_path(g, "A", "C")

    # Stepped back over A->B rather than running a nested search from B to A.
    assert result.edges == (2,)
    assert result.weight == 5
    assert g.cycle_of("A").members == {"A", "B"}
