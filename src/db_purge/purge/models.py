"""Data model for deletion planning.

This module contains the planning-domain types:
- Graph: DependencyGraph (child -> parents adjacency)
- Steps: SingleStep, GroupStep
- Plan: DeletionPlan
- Outcome: PurgeResult

All of these are transient values computed for one invocation.  Nothing here
touches the database.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from pydantic import BaseModel

# A strongly connected component, members listed in graph order
Component = tuple[str, ...]


def normalize_protected(protected: Iterable[str]) -> frozenset[str]:
    """Lower-case a protected table list for case-insensitive membership.

    Example:
        >>> sorted(normalize_protected(["Users", "formas_pago"]))
        ['formas_pago', 'users']
    """
    return frozenset(name.lower() for name in protected)


def is_protected(table: str, protected: frozenset[str]) -> bool:
    """True if *table* is in an already-normalized protected set."""
    return table.lower() in protected


# ============================================================================
# Dependency Graph
# ============================================================================


@dataclass
class DependencyGraph:
    """Directed foreign-key graph.

    An edge ``A -> B`` means a row in ``A`` references a row in ``B``
    (child -> parent).  Both ``tables`` and each adjacency list keep
    insertion order so every traversal over the graph is reproducible.

    Attributes:
        tables: Known tables, deduplicated, in the order they were supplied.
        edges: Mapping of every known table to the tables it references.
    """

    tables: list[str] = field(default_factory=list)
    edges: dict[str, list[str]] = field(default_factory=dict)

    def __contains__(self, table: object) -> bool:
        return table in self.edges

    def references(self, table: str) -> list[str]:
        """Tables referenced by *table* (empty for unknown tables)."""
        return self.edges.get(table, [])

    def has_self_reference(self, table: str) -> bool:
        """True if *table* holds a foreign key to itself."""
        return table in self.edges.get(table, ())

    @property
    def edge_count(self) -> int:
        """Number of distinct edges, self-edges included."""
        return sum(len(targets) for targets in self.edges.values())

    def referrers_of(self, targets: Iterable[str]) -> set[str]:
        """All tables that transitively reference any table in *targets*.

        The targets themselves are only included when a cycle leads back to
        them from outside the target set.
        """
        reverse: dict[str, list[str]] = {table: [] for table in self.tables}
        for source, parents in self.edges.items():
            for parent in parents:
                reverse[parent].append(source)

        target_set = set(targets)
        seen: set[str] = set()
        pending = [t for t in target_set if t in reverse]
        while pending:
            current = pending.pop()
            for referrer in reverse[current]:
                if referrer not in seen and referrer not in target_set:
                    seen.add(referrer)
                    pending.append(referrer)
        return seen


# ============================================================================
# Plan Steps
# ============================================================================


@dataclass(frozen=True)
class SingleStep:
    """Clear one table.

    Example:
        step = SingleStep("orders")
        step.tables
        # ('orders',)
    """

    table: str
    self_referencing: bool = False  # table has a FK to itself

    @property
    def tables(self) -> tuple[str, ...]:
        return (self.table,)

    def describe(self) -> str:
        suffix = " (self-referencing)" if self.self_referencing else ""
        return f"{self.table}{suffix}"


@dataclass(frozen=True)
class GroupStep:
    """Clear a mutually-referencing group of tables in one operation.

    Example:
        step = GroupStep(("a", "b"))
        step.describe()
        # 'a, b'
    """

    tables: tuple[str, ...]

    def describe(self) -> str:
        return ", ".join(self.tables)


Step = SingleStep | GroupStep


# ============================================================================
# Deletion Plan
# ============================================================================


@dataclass
class DeletionPlan:
    """Ordered steps that clear every non-protected table.

    Attributes:
        steps: Steps in execution order (children before parents).
        kept_tables: Known tables that matched the protected set.
        acyclic: True if the plan is a strict per-table order (no
            ``GroupStep`` was needed).
        protected_references: ``(protected, deletable)`` foreign keys.  These
            impose no ordering but make the clear of the deletable table fail
            while a protected row still points at it.
    """

    steps: list[Step] = field(default_factory=list)
    kept_tables: list[str] = field(default_factory=list)
    acyclic: bool = True
    protected_references: list[tuple[str, str]] = field(default_factory=list)

    @property
    def tables(self) -> list[str]:
        """Every table cleared by the plan, in step order."""
        return [table for step in self.steps for table in step.tables]

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def has_steps(self) -> bool:
        """True if there is anything to delete."""
        return bool(self.steps)

    def format_report(self) -> str:
        """Format the plan as a human-readable report.

        Example:
            >>> plan = DeletionPlan(steps=[SingleStep("order_items"), SingleStep("orders")])
            >>> print(plan.format_report())
            Tables to clear (in this order):
              1. order_items
              2. orders
        """
        if not self.steps:
            return "Nothing to clear"

        if self.acyclic:
            lines = ["Tables to clear (in this order):"]
        else:
            lines = ["Tables to clear (by component):"]

        for i, step in enumerate(self.steps, start=1):
            lines.append(f"  {i}. {step.describe()}")

        if self.kept_tables:
            lines.append(f"\nKept tables: {', '.join(self.kept_tables)}")

        if self.protected_references:
            lines.append("\nProtected tables referencing cleared tables (warning):")
            for source, target in self.protected_references:
                lines.append(f"  - {source} -> {target}")

        return "\n".join(lines)


# ============================================================================
# Execution Result
# ============================================================================


class PurgeResult(BaseModel):
    """Result of applying a deletion plan.

    Attributes:
        success: True if every step was applied and committed (or the
            dry run completed).
        steps_applied: Number of steps executed (or that would be, on a
            dry run).
        tables_cleared: Number of tables cleared (or that would be).
        failed_step: Description of the step that failed, if any.
        error: Error message if the purge failed.

    Example:
        >>> PurgeResult(success=True, steps_applied=2, tables_cleared=3).success
        True
    """

    success: bool = False
    steps_applied: int = 0
    tables_cleared: int = 0
    failed_step: str | None = None
    error: str | None = None
