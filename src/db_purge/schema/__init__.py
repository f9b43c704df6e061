"""Schema introspection for deletion planning.

Provides live database introspection (``SchemaIntrospector``) and the
snapshot models it returns (``SchemaSnapshot``, ``ForeignKeyEdge``).

Usage:
    from db_purge.schema import SchemaIntrospector, SchemaSnapshot
"""

from db_purge.schema.introspector import SchemaIntrospector
from db_purge.schema.models import ForeignKeyEdge, SchemaSnapshot

__all__ = [
    "SchemaIntrospector",
    "SchemaSnapshot",
    "ForeignKeyEdge",
]
