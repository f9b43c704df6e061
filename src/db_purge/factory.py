"""Executor factory and purge target resolution.

Resolves which database to purge and which tables to keep.

URL priority:

1. Direct mode: an explicit database URL bypasses profiles.
2. Profile mode (db.toml): an explicit ``--profile`` picks a
   ``[profiles.<name>]`` section.
3. ``{env_prefix}DATABASE_URL`` from the environment.
4. Profile mode again, with the name from ``{env_prefix}DB_PROFILE``.

Keep-list priority: explicit list, then ``{env_prefix}DB_PURGE_KEEP``
(comma-separated), then ``[purge].keep`` from db.toml, then
``DEFAULT_KEEP_TABLES``.
"""

import logging
import os
from collections.abc import Iterable
from urllib.parse import quote

from db_purge.adapters.postgres import AsyncPostgresExecutor
from db_purge.config.loader import load_db_config
from db_purge.config.models import DEFAULT_KEEP_TABLES, DatabaseConfig, DatabaseProfile
from db_purge.purge.models import DeletionPlan
from db_purge.purge.planner import plan_deletion
from db_purge.schema.introspector import SchemaIntrospector
from db_purge.schema.models import SchemaSnapshot

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = frozenset({"postgres"})


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


# ============================================================================
# Profile Resolution
# ============================================================================


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from the environment.

    Reads ``{env_prefix}DB_PROFILE`` (``DB_PROFILE`` with the default empty
    prefix).

    Args:
        env_prefix: Prefix for environment variable lookup.

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Run: {env_var}=<name> db-purge plan\n"
        f"Or set {env_prefix}DATABASE_URL, or pass --profile <name> or --database-url <url>."
    )


def get_active_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Args:
        profile_name: Explicit profile name.  If None, read from the
            environment via ``get_active_profile_name()``.
        env_prefix: Prefix for environment variable lookup.
        config: Already-loaded config.  Loaded from db.toml if None.

    Returns:
        Tuple of (profile_name, DatabaseProfile)

    Raises:
        ProfileNotFoundError: If no profile configured
        KeyError: If profile not found in db.toml
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix=env_prefix)
    if config is None:
        config = load_db_config()

    if profile_name not in config.profiles:
        raise KeyError(
            f"Profile '{profile_name}' not found in db.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def resolve_database_url(
    profile_name: str | None = None,
    database_url: str | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
) -> str:
    """Resolve the connection URL of the database to purge.

    Args:
        profile_name: Profile name from db.toml.
        database_url: Direct URL.  When given, profiles are ignored.
        env_prefix: Prefix for environment variable lookup.
        config: Already-loaded config.

    Returns:
        PostgreSQL connection URL.

    Raises:
        ProfileNotFoundError: If neither a URL nor a profile is configured.
        KeyError: If the profile does not exist.
        ValueError: If the profile's provider is not supported.

    Example:
        >>> resolve_database_url(database_url="postgresql://localhost/shop")
        'postgresql://localhost/shop'
    """
    if database_url:
        return database_url

    if profile_name is None:
        env_url = os.environ.get(f"{env_prefix}DATABASE_URL")
        if env_url:
            return env_url

    name, profile = get_active_profile(profile_name, env_prefix=env_prefix, config=config)
    if profile.provider not in SUPPORTED_PROVIDERS:
        raise ValueError(
            f"Profile '{name}' uses provider '{profile.provider}'; "
            f"db-purge supports: {', '.join(sorted(SUPPORTED_PROVIDERS))}"
        )
    return resolve_url(profile)


def resolve_keep_tables(
    keep: Iterable[str] | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
) -> list[str]:
    """Resolve the list of tables to keep.

    Args:
        keep: Explicit table names (e.g. from ``--keep``).  Wins when given.
        env_prefix: Prefix for environment variable lookup.
        config: Loaded config whose ``[purge].keep`` is the fallback.

    Returns:
        Table names to protect, as given (case is compared later).  An
        explicit empty list protects nothing; with nothing configured at all
        ``DEFAULT_KEEP_TABLES`` is returned.

    Example:
        >>> resolve_keep_tables(["users", " orders "])
        ['users', 'orders']
    """
    if keep is not None:
        return [t.strip() for t in keep if t.strip()]

    env_keep = os.environ.get(f"{env_prefix}DB_PURGE_KEEP")
    if env_keep:
        return [t.strip() for t in env_keep.split(",") if t.strip()]

    if config is not None:
        return list(config.purge.keep_tables)

    return list(DEFAULT_KEEP_TABLES)


# ============================================================================
# Executor and Plan Factories
# ============================================================================


async def get_executor(
    profile_name: str | None = None,
    database_url: str | None = None,
    env_prefix: str = "",
    schema_name: str = "public",
    config: DatabaseConfig | None = None,
) -> AsyncPostgresExecutor:
    """Create a purge executor for the resolved database.

    A new executor is created on every call (no caching).

    Args:
        profile_name: Profile name from db.toml.
        database_url: Direct URL.  When given, profiles are ignored.
        env_prefix: Prefix for environment variable lookup.
        schema_name: Schema holding the tables to purge.
        config: Already-loaded config.

    Returns:
        ``AsyncPostgresExecutor`` bound to *schema_name*.

    Raises:
        ProfileNotFoundError: If no database configuration found.

    Example:
        executor = await get_executor(profile_name="local")
        try:
            await execute_plan(plan, executor)
        finally:
            await executor.close()
    """
    url = resolve_database_url(profile_name, database_url, env_prefix, config)
    return AsyncPostgresExecutor(url, schema_name=schema_name)


async def introspect_schema(
    database_url: str,
    schema_name: str = "public",
    excluded_tables: set[str] | None = None,
) -> SchemaSnapshot:
    """Take a snapshot of the tables and foreign keys of a schema."""
    async with SchemaIntrospector(database_url, excluded_tables=excluded_tables) as introspector:
        snapshot = await introspector.snapshot(schema_name)
    logger.info(
        "Introspected schema %s: %d tables, %d foreign keys",
        schema_name,
        len(snapshot.tables),
        len(snapshot.foreign_keys),
    )
    return snapshot


async def load_deletion_plan(
    database_url: str,
    keep_tables: Iterable[str],
    schema_name: str = "public",
) -> tuple[SchemaSnapshot, DeletionPlan]:
    """Introspect a live schema and plan its purge.

    Args:
        database_url: PostgreSQL connection URL.
        keep_tables: Tables to protect.
        schema_name: Schema to purge.

    Returns:
        Tuple of (snapshot the plan was built from, plan).

    Raises:
        ConflictError: If protected and deletable tables share a cycle.
    """
    snapshot = await introspect_schema(database_url, schema_name)
    plan = plan_deletion(snapshot.tables, snapshot.edge_pairs(), keep_tables)
    return snapshot, plan
