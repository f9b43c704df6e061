"""Pydantic models for database and purge configuration."""

from pydantic import BaseModel, Field

# Kept when neither --keep, DB_PURGE_KEEP nor [purge].keep says otherwise
DEFAULT_KEEP_TABLES = ("formas_pago", "users", "usuario", "usuarios")


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"  # Defaults to postgres


class PurgeSettings(BaseModel):
    """Purge settings from the ``[purge]`` section of db.toml."""

    schema_name: str = "public"
    keep_tables: list[str] = Field(default_factory=lambda: list(DEFAULT_KEEP_TABLES))


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    purge: PurgeSettings = Field(default_factory=PurgeSettings)
