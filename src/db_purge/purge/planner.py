"""Deletion planning -- order non-protected tables for a safe bulk clear.

Pure sync logic.  Takes the graph and components from
``db_purge.purge.graph`` and produces a ``DeletionPlan`` in which every
table is cleared no later than the tables it references (children before
parents).  Cycles among deletable tables are cleared as one grouped step per
component.

Usage:
    from db_purge.purge.planner import plan_deletion, ConflictError

    try:
        plan = plan_deletion(tables, edges, protected={"users"})
    except ConflictError as e:
        print(f"Cannot purge: {e}")
    else:
        print(plan.format_report())
"""

import logging
from collections import deque
from collections.abc import Collection, Iterable, Sequence

from db_purge.purge.graph import build_graph, find_components
from db_purge.purge.models import (
    Component,
    DeletionPlan,
    DependencyGraph,
    GroupStep,
    SingleStep,
    Step,
    is_protected,
    normalize_protected,
)

logger = logging.getLogger(__name__)


class ConflictError(Exception):
    """Raised when protected and deletable tables cannot be separated.

    Either a foreign-key cycle mixes protected and deletable tables, or a
    protected table references a group that can only be cleared with a
    cascade.  Never resolved automatically.

    Attributes:
        component: The tables that could not be planned.
        protected_members: The protected tables involved.
    """

    def __init__(
        self,
        component: Sequence[str],
        protected_members: Sequence[str],
        message: str | None = None,
    ) -> None:
        self.component = tuple(component)
        self.protected_members = tuple(protected_members)
        if message is None:
            message = (
                f"Cycle mixes protected and deletable tables: "
                f"{', '.join(self.component)} "
                f"(protected: {', '.join(self.protected_members)})"
            )
        super().__init__(message)


# ------------------------------------------------------------------
# Protection check
# ------------------------------------------------------------------


def check_safety(components: Iterable[Component], protected: Iterable[str]) -> None:
    """Verify no component mixes protected and deletable tables.

    A cycle can only be cleared as a whole, so clearing part of a cycle that
    contains a protected table would orphan or corrupt rows the caller asked
    to keep.

    Args:
        components: Components from ``find_components()``.
        protected: Protected table names (compared case-insensitively).

    Raises:
        ConflictError: For the first offending component.

    Example:
        >>> check_safety([("a", "b", "c")], {"B"})
        Traceback (most recent call last):
        ...
        db_purge.purge.planner.ConflictError: Cycle mixes protected and deletable tables: a, b, c (protected: b)
    """
    keep = normalize_protected(protected)
    for component in components:
        kept = [t for t in component if is_protected(t, keep)]
        if kept and len(kept) < len(component):
            raise ConflictError(component, kept)


def check_group_isolation(
    graph: DependencyGraph,
    steps: Iterable[Step],
    protected: Iterable[str],
) -> None:
    """Verify no protected table can be reached by a grouped clear.

    A grouped clear cascades along every foreign key that points into the
    group, so any table that transitively references a group member is
    cleared with it.

    Args:
        graph: Full dependency graph.
        steps: Planned steps; only ``GroupStep`` entries are checked.
        protected: Protected table names (compared case-insensitively).

    Raises:
        ConflictError: If a protected table references a grouped table,
            directly or through other tables.
    """
    keep = normalize_protected(protected)
    for step in steps:
        if not isinstance(step, GroupStep):
            continue
        referrers = graph.referrers_of(step.tables)
        exposed = [t for t in graph.tables if t in referrers and is_protected(t, keep)]
        if exposed:
            raise ConflictError(
                step.tables,
                exposed,
                message=(
                    f"Protected tables reference cyclic group "
                    f"{', '.join(step.tables)} and would be cleared by the "
                    f"cascade: {', '.join(exposed)}"
                ),
            )


# ------------------------------------------------------------------
# Ordering
# ------------------------------------------------------------------


def plan_acyclic(
    graph: DependencyGraph,
    deletable: Collection[str],
) -> tuple[list[str], bool]:
    """Order deletable tables children-before-parents (Kahn's algorithm).

    The graph is restricted to *deletable*: foreign keys to or from other
    tables impose no ordering because those tables are never cleared.
    Self-edges are ignored for the same reason.  Ties between tables that
    nothing references are broken by graph order.

    Args:
        graph: Dependency graph from ``build_graph()``.
        deletable: Tables to clear.

    Returns:
        ``(order, True)`` when every deletable table was ordered, otherwise
        ``(partial_order, False)`` -- a cycle exists among deletable tables
        and the caller should fall back to ``plan_with_cycles()``.

    Example:
        >>> graph = build_graph(["users", "orders"], [("orders", "users")])
        >>> plan_acyclic(graph, {"users", "orders"})
        (['orders', 'users'], True)
    """
    nodes = [t for t in graph.tables if t in deletable]
    node_set = set(nodes)

    in_degree = dict.fromkeys(nodes, 0)
    for source in nodes:
        for target in graph.references(source):
            if target != source and target in node_set:
                in_degree[target] += 1

    queue = deque(t for t in nodes if in_degree[t] == 0)
    order: list[str] = []

    while queue:
        table = queue.popleft()
        order.append(table)
        for target in graph.references(table):
            if target == table or target not in node_set:
                continue
            in_degree[target] -= 1
            if in_degree[target] == 0:
                queue.append(target)

    return order, len(order) == len(nodes)


def plan_with_cycles(
    components: Sequence[Component],
    deletable: Collection[str],
    graph: DependencyGraph | None = None,
) -> list[Step]:
    """Plan one step per component that contains deletable tables.

    Components are walked in reverse completion order, which clears a
    component only after every component that references it.  A component
    with one deletable table becomes a ``SingleStep``; one with several
    becomes a ``GroupStep`` cleared in a single operation.

    Args:
        components: Components from ``find_components()``, in the order
            returned.
        deletable: Tables to clear.
        graph: Optional graph, used to flag self-referencing single tables.

    Returns:
        List of steps in execution order.

    Example:
        >>> plan_with_cycles([("x", "y")], {"x", "y"})
        [GroupStep(tables=('x', 'y'))]
    """
    steps: list[Step] = []
    for component in reversed(components):
        members = tuple(t for t in component if t in deletable)
        if not members:
            continue
        if len(members) == 1:
            table = members[0]
            self_ref = graph.has_self_reference(table) if graph is not None else False
            steps.append(SingleStep(table, self_referencing=self_ref))
        else:
            steps.append(GroupStep(members))
    return steps


# ------------------------------------------------------------------
# Plan generation
# ------------------------------------------------------------------


def plan_deletion(
    tables: Iterable[str],
    edges: Iterable[tuple[str, str]],
    protected: Iterable[str] = (),
) -> DeletionPlan:
    """Plan clearing every table except the protected ones.

    Runs the full pipeline: graph construction, cycle analysis, protection
    check, topological ordering and -- when deletable tables form cycles --
    the grouped fallback.  Nothing is executed.

    Args:
        tables: Table names, e.g. from ``SchemaIntrospector.list_tables()``.
        edges: ``(referencing, referenced)`` foreign-key pairs.  Pairs that
            mention unknown tables are ignored.
        protected: Tables to keep (compared case-insensitively).

    Returns:
        ``DeletionPlan`` ready for review and ``execute_plan()``.

    Raises:
        ConflictError: If a cycle mixes protected and deletable tables, or a
            protected table would be reached by a grouped clear.

    Example:
        >>> plan = plan_deletion(
        ...     ["users", "orders", "order_items"],
        ...     [("order_items", "orders"), ("orders", "users")],
        ...     protected={"users"},
        ... )
        >>> plan.tables
        ['order_items', 'orders']
    """
    keep = normalize_protected(protected)
    graph = build_graph(tables, edges)
    components = find_components(graph)

    check_safety(components, keep)

    kept = [t for t in graph.tables if is_protected(t, keep)]
    deletable = {t for t in graph.tables if not is_protected(t, keep)}

    protected_refs = [
        (source, target)
        for source in kept
        for target in graph.references(source)
        if target in deletable
    ]

    order, acyclic = plan_acyclic(graph, deletable)
    if acyclic:
        steps: list[Step] = [
            SingleStep(t, self_referencing=graph.has_self_reference(t)) for t in order
        ]
    else:
        logger.warning(
            "Cycles among deletable tables; planning by component "
            "(%d of %d tables ordered before the cycle)",
            len(order),
            len(deletable),
        )
        steps = plan_with_cycles(components, deletable, graph)
        check_group_isolation(graph, steps, keep)

    plan = DeletionPlan(
        steps=steps,
        kept_tables=kept,
        acyclic=acyclic,
        protected_references=protected_refs,
    )
    logger.info(
        "Planned %d steps over %d tables (%d kept)",
        plan.step_count,
        len(deletable),
        len(kept),
    )
    return plan
