"""Configuration management: connection settings, profiles, TOML loading.

Usage:
    >>> from pg_snapshot.config import ConnectionConfig, load_dump_config, resolve_config
"""

from pg_snapshot.config.loader import (
    ProfileNotFoundError,
    get_active_profile_name,
    load_dump_config,
    resolve_config,
    resolve_url,
)
from pg_snapshot.config.models import ConnectionConfig, DumpConfig, DumpProfile

__all__ = [
    "ConnectionConfig",
    "DumpConfig",
    "DumpProfile",
    "ProfileNotFoundError",
    "get_active_profile_name",
    "load_dump_config",
    "resolve_config",
    "resolve_url",
]
