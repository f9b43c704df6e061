"""Purge executor protocol definition.

Defines the ``PurgeExecutor`` Protocol that all executors must implement.
All methods are ``async def`` -- the library is async-first.

Usage:
    from db_purge.adapters.base import PurgeExecutor

    async def clear(executor: PurgeExecutor) -> None:
        await executor.begin()
        try:
            await executor.delete_all_rows("order_items")
            await executor.delete_all_rows_group(("invoices", "payments"))
        except Exception:
            await executor.rollback()
            raise
        await executor.commit()
"""

from collections.abc import Sequence
from typing import Protocol


class PurgeExecutor(Protocol):
    """Transactional executor interface that all backends must implement.

    One transaction is open at a time: ``begin()`` opens it and exactly one
    of ``commit()`` / ``rollback()`` ends it.  The delete methods are only
    valid while a transaction is open.

    All methods are async -- callers must ``await`` every operation.
    """

    async def begin(self) -> None:
        """Open the transaction that every following delete runs in."""
        ...

    async def commit(self) -> None:
        """Commit the open transaction."""
        ...

    async def rollback(self) -> None:
        """Roll back the open transaction, undoing every delete in it."""
        ...

    async def delete_all_rows(self, table: str, self_referencing: bool = False) -> None:
        """Remove every row from a table and reset its sequences.

        After the call the table must look as if it never had rows,
        including auto-increment/identity counters.

        Args:
            table: Table name.
            self_referencing: True if the table holds a foreign key to
                itself; the executor must use a mode that tolerates rows
                referencing other rows of the same table.

        Raises:
            Exception: If the delete violates a constraint (for example a
                protected table still references the rows).

        Example:
            await executor.delete_all_rows("categories", self_referencing=True)
        """
        ...

    async def delete_all_rows_group(self, tables: Sequence[str]) -> None:
        """Remove every row from a mutually-referencing group of tables.

        Same post-condition as ``delete_all_rows()``, applied to all tables
        at once so that references between group members never block the
        clear.

        Args:
            tables: Table names forming one cycle of foreign keys.

        Example:
            await executor.delete_all_rows_group(("invoices", "payments"))
        """
        ...

    async def close(self) -> None:
        """Close connections and clean up resources."""
        ...
