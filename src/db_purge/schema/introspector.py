"""PostgreSQL schema introspection via pg_catalog.

This module queries the live database for what deletion planning needs:
- Base tables of a schema
- Foreign keys between tables of that schema

Uses psycopg (v3) async connections.
"""

from psycopg import AsyncConnection

from db_purge.schema.models import ForeignKeyEdge, SchemaSnapshot


class SchemaIntrospector:
    """Introspects tables and foreign keys of a PostgreSQL schema.

    Works with any PostgreSQL database (RDS, Supabase, local).

    Usage:
        async with SchemaIntrospector(database_url) as introspector:
            snapshot = await introspector.snapshot("public")

            # Or the pieces separately
            tables = await introspector.list_tables()
            foreign_keys = await introspector.list_foreign_keys()
    """

    # Tables excluded unless the caller passes its own set
    DEFAULT_EXCLUDED_TABLES = frozenset({
        "schema_migrations",
        "pg_stat_statements",
        "spatial_ref_sys",
    })

    def __init__(
        self,
        database_url: str,
        excluded_tables: set[str] | frozenset[str] | None = None,
    ):
        """Initialize with database connection URL.

        Args:
            database_url: PostgreSQL connection URL
            excluded_tables: Tables to leave out of the snapshot.  Defaults
                to ``DEFAULT_EXCLUDED_TABLES``.
        """
        self._database_url = database_url
        self._conn: AsyncConnection | None = None
        if excluded_tables is None:
            excluded_tables = self.DEFAULT_EXCLUDED_TABLES
        self.excluded_tables = frozenset(excluded_tables)

    async def __aenter__(self) -> "SchemaIntrospector":
        """Async context manager entry - opens connection."""
        # Append connect_timeout if not already in URL
        url = self._database_url
        if "connect_timeout" not in url:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}connect_timeout=10"

        self._conn = await AsyncConnection.connect(url)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - closes connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_connection(self) -> AsyncConnection:
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        return self._conn

    async def snapshot(self, schema_name: str = "public") -> SchemaSnapshot:
        """Introspect tables and foreign keys of a schema.

        Args:
            schema_name: PostgreSQL schema to introspect (default: public)

        Returns:
            SchemaSnapshot ready for ``plan_deletion()``.
        """
        tables = await self.list_tables(schema_name)
        foreign_keys = await self.list_foreign_keys(schema_name)
        return SchemaSnapshot(
            schema_name=schema_name,
            tables=tables,
            foreign_keys=foreign_keys,
        )

    async def list_tables(self, schema_name: str = "public") -> list[str]:
        """Get all base table names in schema, ordered by name."""
        conn = self._require_connection()
        query = """
            SELECT tablename
            FROM pg_tables
            WHERE schemaname = %s
            ORDER BY tablename
        """
        async with conn.cursor() as cur:
            await cur.execute(query, (schema_name,))
            rows = await cur.fetchall()
        return [row[0] for row in rows if row[0] and row[0] not in self.excluded_tables]

    async def list_foreign_keys(self, schema_name: str = "public") -> list[ForeignKeyEdge]:
        """Get foreign keys whose both ends live in the schema.

        Multi-column foreign keys appear once.  Keys pointing into another
        schema are left out -- a same-named table there is a different table.
        """
        conn = self._require_connection()
        query = """
            SELECT
                src.relname AS table_from,
                dst.relname AS table_to,
                c.conname
            FROM pg_constraint c
            JOIN pg_class src ON src.oid = c.conrelid
            JOIN pg_class dst ON dst.oid = c.confrelid
            JOIN pg_namespace src_ns ON src_ns.oid = src.relnamespace
            JOIN pg_namespace dst_ns ON dst_ns.oid = dst.relnamespace
            WHERE c.contype = 'f'
              AND src_ns.nspname = %s
              AND dst_ns.nspname = %s
            ORDER BY src.relname, c.conname
        """
        async with conn.cursor() as cur:
            await cur.execute(query, (schema_name, schema_name))
            rows = await cur.fetchall()

        return [
            ForeignKeyEdge(source=source, target=target, name=name)
            for source, target, name in rows
            if source not in self.excluded_tables and target not in self.excluded_tables
        ]
