"""Purge executors package.

Provides the ``PurgeExecutor`` Protocol and the async PostgreSQL
implementation used to apply deletion plans.

Usage:
    from db_purge.adapters import PurgeExecutor, AsyncPostgresExecutor
"""

from db_purge.adapters.base import PurgeExecutor
from db_purge.adapters.postgres import AsyncPostgresExecutor

__all__ = [
    "PurgeExecutor",
    "AsyncPostgresExecutor",
]
