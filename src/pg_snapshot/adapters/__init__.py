"""Session adapters package.

Provides the ``CatalogSession`` Protocol and the psycopg-backed
``AsyncPostgresSession`` implementation.

Usage:
    from pg_snapshot.adapters import CatalogSession, AsyncPostgresSession
"""

from pg_snapshot.adapters.base import CatalogSession, Row
from pg_snapshot.adapters.postgres import AsyncPostgresSession

__all__ = [
    "CatalogSession",
    "AsyncPostgresSession",
    "Row",
]
