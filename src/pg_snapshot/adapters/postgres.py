"""Async PostgreSQL catalog session.

Provides ``AsyncPostgresSession``, an implementation of the
``CatalogSession`` protocol on top of psycopg (v3) ``AsyncConnection``.

The connection runs in autocommit mode: a catalog query rejected for
insufficient privilege must not abort a surrounding transaction, since
the serializers keep issuing queries after such a failure.

Usage:
    from pg_snapshot.adapters.postgres import AsyncPostgresSession

    session = await AsyncPostgresSession.connect(config)
    rows = await session.query("SELECT typname FROM pg_type WHERE typtype = %s", ("e",))
    await session.close()
"""

from collections.abc import AsyncIterator

import psycopg
from psycopg import AsyncConnection
from psycopg.types.string import TextLoader

from pg_snapshot.adapters.base import Params, Row
from pg_snapshot.config.models import ConnectionConfig
from pg_snapshot.errors import CatalogQueryError, PermissionDenied
from pg_snapshot.logging_config import get_logger

logger = get_logger(__name__)

# Kept as server text; values like infinity or BC dates have no Python equivalent.
TEXT_LOADED_TYPES = ("date", "timestamp", "timestamptz", "time", "timetz", "interval")


def register_text_loaders(conn: AsyncConnection) -> None:
    """Make ``conn`` return date, time, and interval values as their text form."""
    for type_name in TEXT_LOADED_TYPES:
        conn.adapters.register_loader(type_name, TextLoader)


def translate_error(error: psycopg.Error, sql: str) -> CatalogQueryError:
    """Map a psycopg error onto the snapshot error taxonomy."""
    if isinstance(error, psycopg.errors.InsufficientPrivilege):
        return PermissionDenied(str(error).strip(), sql, error.sqlstate)
    return CatalogQueryError(str(error).strip(), sql, error.sqlstate)


class AsyncPostgresSession:
    """psycopg-backed implementation of the ``CatalogSession`` protocol.

    Args:
        conn: An open ``psycopg.AsyncConnection``.  Use ``connect()`` to
            build one from a ``ConnectionConfig``.
    """

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    @classmethod
    async def connect(cls, config: ConnectionConfig) -> "AsyncPostgresSession":
        """Open a new autocommit session for ``config``.

        Raises:
            psycopg.OperationalError: If the server cannot be reached or
                rejects the credentials.
        """
        conn = await AsyncConnection.connect(config.to_url(), autocommit=True)
        register_text_loaders(conn)
        return cls(conn)

    @property
    def closed(self) -> bool:
        return self._conn.closed

    async def query(self, sql: str, params: Params = None) -> list[Row]:
        """Run a query and return all rows."""
        logger.debug("query: %s", " ".join(sql.split()))
        try:
            async with self._conn.cursor() as cur:
                await cur.execute(sql, params)
                if cur.description is None:
                    return []
                return await cur.fetchall()
        except psycopg.Error as e:
            raise translate_error(e, sql) from e

    async def query_one(self, sql: str, params: Params = None) -> Row:
        """Run a query that must return a row."""
        row = await self.query_optional(sql, params)
        if row is None:
            raise CatalogQueryError("Query returned no rows", sql)
        return row

    async def query_optional(self, sql: str, params: Params = None) -> Row | None:
        """Run a query and return its first row, or ``None``."""
        rows = await self.query(sql, params)
        return rows[0] if rows else None

    async def stream(self, sql: str, params: Params = None) -> AsyncIterator[Row]:
        """Yield rows one at a time using psycopg's single-row mode."""
        logger.debug("stream: %s", " ".join(sql.split()))
        try:
            async with self._conn.cursor() as cur:
                async for row in cur.stream(sql, params):
                    yield row
        except psycopg.Error as e:
            raise translate_error(e, sql) from e

    async def close(self) -> None:
        """Close the underlying connection."""
        if not self._conn.closed:
            await self._conn.close()

    async def __aenter__(self) -> "AsyncPostgresSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
