"""db-purge: Foreign-key-safe bulk table purge with protected tables.

Plans the order in which every non-protected table of a schema can be
cleared without violating a foreign key -- grouping cyclic tables -- and
applies the plan in a single transaction.

Usage:
    from db_purge import plan_deletion, execute_plan, AsyncPostgresExecutor
    from db_purge import ConflictError, ExecutionError
    from db_purge import SchemaIntrospector, load_db_config
"""

__version__ = "0.1.0"

# Executors
from db_purge.adapters.base import PurgeExecutor
from db_purge.adapters.postgres import AsyncPostgresExecutor

# Config
from db_purge.config.loader import load_db_config
from db_purge.config.models import DatabaseConfig, DatabaseProfile, PurgeSettings

# Factory
from db_purge.factory import (
    ProfileNotFoundError,
    get_executor,
    load_deletion_plan,
    resolve_url,
)

# Planning and execution
from db_purge.purge.executor import ExecutionError, apply_plan, execute_plan, run_plan
from db_purge.purge.graph import build_graph, find_components
from db_purge.purge.models import (
    DeletionPlan,
    DependencyGraph,
    GroupStep,
    PurgeResult,
    SingleStep,
)
from db_purge.purge.planner import ConflictError, check_safety, plan_deletion

# Schema
from db_purge.schema.introspector import SchemaIntrospector
from db_purge.schema.models import ForeignKeyEdge, SchemaSnapshot

__all__ = [
    # Executors
    "PurgeExecutor",
    "AsyncPostgresExecutor",
    # Config
    "load_db_config",
    "DatabaseProfile",
    "DatabaseConfig",
    "PurgeSettings",
    # Factory
    "get_executor",
    "load_deletion_plan",
    "ProfileNotFoundError",
    "resolve_url",
    # Planning
    "build_graph",
    "find_components",
    "check_safety",
    "plan_deletion",
    "ConflictError",
    "DependencyGraph",
    "DeletionPlan",
    "SingleStep",
    "GroupStep",
    # Execution
    "execute_plan",
    "run_plan",
    "apply_plan",
    "ExecutionError",
    "PurgeResult",
    # Schema
    "SchemaIntrospector",
    "SchemaSnapshot",
    "ForeignKeyEdge",
]
