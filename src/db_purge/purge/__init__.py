"""Deletion planning and transactional execution.

Provides the graph builder (``build_graph``), cycle analysis
(``find_components``), planning (``plan_deletion`` and its stages) and
execution (``execute_plan``, ``apply_plan``).

Usage:
    from db_purge.purge import plan_deletion, execute_plan
    from db_purge.purge import ConflictError, ExecutionError
"""

from db_purge.purge.executor import ExecutionError, apply_plan, execute_plan, run_plan
from db_purge.purge.graph import build_graph, find_components
from db_purge.purge.models import (
    Component,
    DeletionPlan,
    DependencyGraph,
    GroupStep,
    PurgeResult,
    SingleStep,
    Step,
    normalize_protected,
)
from db_purge.purge.planner import (
    ConflictError,
    check_group_isolation,
    check_safety,
    plan_acyclic,
    plan_deletion,
    plan_with_cycles,
)

__all__ = [
    "build_graph",
    "find_components",
    "check_safety",
    "check_group_isolation",
    "plan_acyclic",
    "plan_with_cycles",
    "plan_deletion",
    "execute_plan",
    "run_plan",
    "apply_plan",
    "ConflictError",
    "ExecutionError",
    "Component",
    "DependencyGraph",
    "SingleStep",
    "GroupStep",
    "Step",
    "DeletionPlan",
    "PurgeResult",
    "normalize_protected",
]
