"""Configuration management: profiles, purge settings, and TOML loading.

Usage:
    >>> from db_purge.config import load_db_config, DatabaseProfile, DatabaseConfig
"""

from db_purge.config.loader import load_db_config
from db_purge.config.models import (
    DEFAULT_KEEP_TABLES,
    DatabaseConfig,
    DatabaseProfile,
    PurgeSettings,
)

__all__ = [
    "load_db_config",
    "DatabaseConfig",
    "DatabaseProfile",
    "PurgeSettings",
    "DEFAULT_KEEP_TABLES",
]
