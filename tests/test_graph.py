"""Tests for dependency graph construction and cycle analysis.

Covers:
- build_graph(): deduplication, unknown-table edges dropped, self-edges kept
- find_components(): Tarjan SCC partition, completion order, determinism
- Explicit-stack traversal (no recursion limit on long chains)
"""

import ast
import sys
from pathlib import Path

import pytest

from db_purge.purge.graph import build_graph, find_components
from db_purge.purge.models import DependencyGraph

GRAPH_PY = Path(__file__).parent.parent / "src" / "db_purge" / "purge" / "graph.py"


def _assert_partition(graph: DependencyGraph, components: list[tuple[str, ...]]) -> None:
    seen: list[str] = [t for c in components for t in c]
    assert sorted(seen) == sorted(graph.tables)
    assert len(seen) == len(set(seen)), "a table appears in two components"


# ------------------------------------------------------------------
# build_graph
# ------------------------------------------------------------------


class TestBuildGraph:
    """Verify graph construction from tables and raw FK pairs."""

    def test_empty_input(self):
        """Empty input yields an empty graph, not an error."""
        graph = build_graph([], [])
        assert graph.tables == []
        assert graph.edges == {}
        assert graph.edge_count == 0

    def test_edges_child_to_parent(self):
        """(referencing, referenced) becomes referencing -> referenced."""
        graph = build_graph(["users", "orders"], [("orders", "users")])
        assert graph.references("orders") == ["users"]
        assert graph.references("users") == []

    def test_duplicate_edges_collapse(self):
        """Multiple FKs between the same pair produce one edge."""
        graph = build_graph(
            ["orders", "users"],
            [("orders", "users"), ("orders", "users"), ("orders", "users")],
        )
        assert graph.references("orders") == ["users"]
        assert graph.edge_count == 1

    def test_unknown_tables_dropped(self):
        """Edges to or from tables outside the known set are ignored."""
        graph = build_graph(
            ["orders"],
            [("orders", "other_schema_users"), ("ghost", "orders")],
        )
        assert graph.edges == {"orders": []}
        assert "ghost" not in graph

    def test_self_edge_kept(self):
        """A self-referencing FK is a legal edge."""
        graph = build_graph(["categories"], [("categories", "categories")])
        assert graph.has_self_reference("categories")
        assert graph.edge_count == 1

    def test_duplicate_tables_ignored_order_preserved(self):
        """Table order is insertion order, duplicates dropped."""
        graph = build_graph(["b", "a", "b", "c"], [])
        assert graph.tables == ["b", "a", "c"]

    def test_adjacency_keeps_insertion_order(self):
        """Adjacency lists keep the order edges were supplied in."""
        graph = build_graph(["a", "b", "c"], [("a", "c"), ("a", "b")])
        assert graph.references("a") == ["c", "b"]

    def test_every_table_has_adjacency_entry(self):
        """Tables without FKs still appear in edges."""
        graph = build_graph(["a", "b"], [])
        assert set(graph.edges) == {"a", "b"}


class TestReferrersOf:
    """Verify reverse reachability used by the group isolation guard."""

    def test_transitive_referrers(self):
        """Finds direct and indirect referencing tables."""
        graph = build_graph(
            ["p", "c", "g1", "g2", "other"],
            [("p", "c"), ("c", "g1"), ("g1", "g2"), ("g2", "g1")],
        )
        assert graph.referrers_of(["g1", "g2"]) == {"p", "c"}

    def test_no_referrers(self):
        """A table nothing references has no referrers."""
        graph = build_graph(["a", "b"], [("a", "b")])
        assert graph.referrers_of(["a"]) == set()


# ------------------------------------------------------------------
# find_components
# ------------------------------------------------------------------


class TestFindComponents:
    """Verify Tarjan SCC partitioning."""

    def test_empty_graph(self):
        """No tables, no components."""
        assert find_components(build_graph([], [])) == []

    def test_isolated_tables_are_singletons(self):
        """A table with no edges forms a component of size 1."""
        graph = build_graph(["a", "b"], [])
        assert find_components(graph) == [("a",), ("b",)]

    def test_self_edge_is_singleton(self):
        """A self-edge never groups a table with others."""
        graph = build_graph(["tree", "leaf"], [("tree", "tree"), ("leaf", "tree")])
        components = find_components(graph)
        assert ("tree",) in components
        assert ("leaf",) in components
        assert len(components) == 2

    def test_three_cycle(self):
        """a -> b -> c -> a is one component."""
        graph = build_graph(["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a")])
        assert find_components(graph) == [("a", "b", "c")]

    def test_mutual_reference(self):
        """x <-> y is one component."""
        graph = build_graph(["x", "y"], [("x", "y"), ("y", "x")])
        assert find_components(graph) == [("x", "y")]

    def test_components_listed_in_graph_order(self):
        """Members of a component follow graph order, not pop order."""
        graph = build_graph(["c", "a", "b"], [("a", "b"), ("b", "c"), ("c", "a")])
        assert find_components(graph) == [("c", "a", "b")]

    def test_completion_order_parents_first(self):
        """A component is emitted after every component it references."""
        graph = build_graph(
            ["order_items", "orders", "users"],
            [("order_items", "orders"), ("orders", "users")],
        )
        assert find_components(graph) == [("users",), ("orders",), ("order_items",)]

    def test_two_cycles_joined_by_edge(self):
        """Two cycles linked one-way stay separate components."""
        graph = build_graph(
            ["a", "b", "c", "d"],
            [("a", "b"), ("b", "a"), ("b", "c"), ("c", "d"), ("d", "c")],
        )
        components = find_components(graph)
        assert components == [("c", "d"), ("a", "b")]

    def test_nested_cycles_merge(self):
        """Overlapping cycles form one component."""
        graph = build_graph(
            ["a", "b", "c", "d"],
            [("a", "b"), ("b", "a"), ("b", "c"), ("c", "d"), ("d", "b")],
        )
        components = find_components(graph)
        assert components == [("a", "b", "c", "d")]

    @pytest.mark.parametrize(
        "tables,edges",
        [
            (["a"], []),
            (["a", "b", "c"], [("a", "b"), ("b", "c")]),
            (["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a")]),
            (
                ["a", "b", "c", "d", "e", "f"],
                [
                    ("a", "b"), ("b", "c"), ("c", "a"), ("c", "d"),
                    ("d", "e"), ("e", "d"), ("f", "f"), ("f", "a"),
                ],
            ),
            (["x", "y", "z"], [("x", "x"), ("y", "x"), ("z", "y"), ("x", "z")]),
        ],
    )
    def test_partition_invariant(self, tables, edges):
        """Components cover every table exactly once."""
        graph = build_graph(tables, edges)
        _assert_partition(graph, find_components(graph))

    def test_mutual_reachability_within_components(self):
        """Every pair inside a component reaches each other."""
        graph = build_graph(
            ["a", "b", "c", "d", "e"],
            [("a", "b"), ("b", "c"), ("c", "a"), ("c", "d"), ("d", "e")],
        )

        def reachable(start: str) -> set[str]:
            seen, pending = {start}, [start]
            while pending:
                for nxt in graph.references(pending.pop()):
                    if nxt not in seen:
                        seen.add(nxt)
                        pending.append(nxt)
            return seen

        for component in find_components(graph):
            for table in component:
                assert set(component) <= reachable(table)

    def test_deterministic(self):
        """Same input always yields the same components in the same order."""
        tables = ["t%d" % i for i in range(20)]
        edges = [(f"t{i}", f"t{(i * 7) % 20}") for i in range(20)]
        first = find_components(build_graph(tables, edges))
        for _ in range(5):
            assert find_components(build_graph(tables, edges)) == first

    def test_long_chain_does_not_recurse(self):
        """A reference chain deeper than the recursion limit is handled."""
        depth = sys.getrecursionlimit() + 500
        tables = [f"t{i}" for i in range(depth)]
        edges = [(f"t{i}", f"t{i + 1}") for i in range(depth - 1)]
        components = find_components(build_graph(tables, edges))
        assert len(components) == depth
        # Deepest parent completes first
        assert components[0] == (f"t{depth - 1}",)

    def test_long_cycle_does_not_recurse(self):
        """A cycle longer than the recursion limit is one component."""
        depth = sys.getrecursionlimit() + 500
        tables = [f"t{i}" for i in range(depth)]
        edges = [(f"t{i}", f"t{(i + 1) % depth}") for i in range(depth)]
        components = find_components(build_graph(tables, edges))
        assert len(components) == 1
        assert len(components[0]) == depth

    def test_no_recursive_helper_in_source(self):
        """graph.py defines no function that calls itself."""
        tree = ast.parse(GRAPH_PY.read_text())
        for func in ast.walk(tree):
            if not isinstance(func, ast.FunctionDef):
                continue
            for node in ast.walk(func):
                if (
                    isinstance(node, ast.Call)
                    and isinstance(node.func, ast.Name)
                    and node.func.id == func.name
                ):
                    pytest.fail(f"{func.name}() is recursive")
