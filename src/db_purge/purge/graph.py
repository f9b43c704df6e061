"""Foreign-key graph construction and cycle analysis.

Pure logic -- no I/O, no database connections.

Usage:
    from db_purge.purge.graph import build_graph, find_components

    graph = build_graph(
        ["users", "orders", "order_items"],
        [("order_items", "orders"), ("orders", "users")],
    )
    components = find_components(graph)
    # [('users',), ('orders',), ('order_items',)]
"""

import logging
from collections.abc import Iterable, Iterator

from db_purge.purge.models import Component, DependencyGraph

logger = logging.getLogger(__name__)


def build_graph(
    tables: Iterable[str],
    raw_edges: Iterable[tuple[str, str]],
) -> DependencyGraph:
    """Build a dependency graph from a table list and foreign-key pairs.

    Each raw edge ``(referencing, referenced)`` becomes an edge
    ``referencing -> referenced``.  Edges that mention a table outside
    *tables* are dropped -- introspection may legitimately return
    cross-schema or stale foreign keys.  Duplicate edges collapse into one;
    self-edges are kept.

    Args:
        tables: Table names.  Duplicates are ignored, order is preserved.
        raw_edges: ``(referencing, referenced)`` pairs.

    Returns:
        ``DependencyGraph`` whose edges only connect known tables.

    Examples:
        >>> graph = build_graph(["a", "b"], [("a", "b"), ("a", "b"), ("a", "zz")])
        >>> graph.edges
        {'a': ['b'], 'b': []}

        >>> build_graph([], []).tables
        []
    """
    graph = DependencyGraph()
    for table in tables:
        if table not in graph.edges:
            graph.tables.append(table)
            graph.edges[table] = []

    dropped = 0
    for source, target in raw_edges:
        if source not in graph.edges or target not in graph.edges:
            dropped += 1
            continue
        targets = graph.edges[source]
        if target not in targets:
            targets.append(target)

    if dropped:
        logger.debug("Dropped %d foreign keys to or from unknown tables", dropped)
    logger.debug(
        "Built dependency graph: %d tables, %d edges",
        len(graph.tables),
        graph.edge_count,
    )
    return graph


def find_components(graph: DependencyGraph) -> list[Component]:
    """Partition the graph into strongly connected components (Tarjan).

    Depth-first traversal with an explicit work stack, so long reference
    chains cannot exhaust the interpreter's recursion limit.  Roots are
    taken in ``graph.tables`` order and neighbours in edge-insertion order.

    Components come back in completion order: a component is emitted only
    after every component it references.  Reversing the list therefore
    gives a children-before-parents order over the components.

    A table without cycles, including one whose only cycle is a self-edge,
    forms a singleton component.

    Args:
        graph: Dependency graph from ``build_graph()``.

    Returns:
        List of components; each lists its members in graph order.

    Example:
        >>> graph = build_graph(["a", "b", "c"], [("a", "b"), ("b", "a"), ("b", "c")])
        >>> find_components(graph)
        [('c',), ('a', 'b')]
    """
    position = {table: i for i, table in enumerate(graph.tables)}
    index_of: dict[str, int] = {}
    low_link: dict[str, int] = {}
    stack: list[str] = []
    on_stack: set[str] = set()
    components: list[Component] = []

    def discover(table: str) -> None:
        index_of[table] = low_link[table] = len(index_of)
        stack.append(table)
        on_stack.add(table)

    for root in graph.tables:
        if root in index_of:
            continue

        discover(root)
        work: list[tuple[str, Iterator[str]]] = [(root, iter(graph.edges[root]))]

        while work:
            table, neighbours = work[-1]

            for neighbour in neighbours:
                if neighbour not in index_of:
                    discover(neighbour)
                    work.append((neighbour, iter(graph.edges[neighbour])))
                    break
                if neighbour in on_stack:
                    low_link[table] = min(low_link[table], index_of[neighbour])
            else:
                # All neighbours visited
                work.pop()
                if work:
                    parent = work[-1][0]
                    low_link[parent] = min(low_link[parent], low_link[table])

                if low_link[table] == index_of[table]:
                    members: list[str] = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        members.append(member)
                        if member == table:
                            break
                    components.append(tuple(sorted(members, key=position.__getitem__)))

    logger.debug(
        "Found %d components (%d cyclic)",
        len(components),
        sum(1 for c in components if len(c) > 1),
    )
    return components
