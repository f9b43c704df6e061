"""Pydantic models for schema introspection.

This module contains the snapshot of a live schema that deletion planning
works from:
- ForeignKeyEdge: one foreign key between two tables
- SchemaSnapshot: tables and foreign keys of one schema
"""

from pydantic import BaseModel, Field


class ForeignKeyEdge(BaseModel):
    """A foreign key: rows in ``source`` reference rows in ``target``.

    Example:
        >>> edge = ForeignKeyEdge(source="orders", target="users", name="orders_user_id_fkey")
        >>> edge.is_self_reference
        False
    """

    source: str
    target: str
    name: str = ""

    @property
    def is_self_reference(self) -> bool:
        return self.source == self.target


class SchemaSnapshot(BaseModel):
    """Tables and foreign keys of one schema at introspection time.

    Example:
        >>> snapshot = SchemaSnapshot(
        ...     tables=["users", "orders"],
        ...     foreign_keys=[ForeignKeyEdge(source="orders", target="users")],
        ... )
        >>> snapshot.edge_pairs()
        [('orders', 'users')]
    """

    schema_name: str = "public"
    tables: list[str] = Field(default_factory=list)
    foreign_keys: list[ForeignKeyEdge] = Field(default_factory=list)

    def edge_pairs(self) -> list[tuple[str, str]]:
        """Foreign keys as ``(referencing, referenced)`` pairs."""
        return [(fk.source, fk.target) for fk in self.foreign_keys]
