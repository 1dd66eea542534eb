"""Catalog session protocol definition.

Defines the ``CatalogSession`` Protocol that the serializers drive.  All
methods are ``async def`` -- exactly one query is in flight at a time and
every call is awaited before the next one is issued.

Rows are plain tuples in select-list order.

Usage:
    from pg_snapshot.adapters.base import CatalogSession

    async def count_tables(session: CatalogSession) -> int:
        row = await session.query_one(
            "SELECT COUNT(*) FROM information_schema.tables"
        )
        return row[0]
"""

from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol

Row = tuple[Any, ...]
Params = Sequence[Any] | None


class CatalogSession(Protocol):
    """Query interface that all session implementations must provide.

    Failures are reported through the ``pg_snapshot.errors`` taxonomy:
    ``PermissionDenied`` for insufficient privilege, ``CatalogQueryError``
    for everything else.
    """

    async def query(self, sql: str, params: Params = None) -> list[Row]:
        """Run a query and return all rows.

        Args:
            sql: Statement with ``%s`` placeholders.
            params: Positional parameters for the placeholders.

        Returns:
            List of row tuples.  Empty list if nothing matched.

        Raises:
            PermissionDenied: If the principal lacks privilege.
            CatalogQueryError: On any other server or transport error.
        """
        ...

    async def query_one(self, sql: str, params: Params = None) -> Row:
        """Run a query that must return exactly one row.

        Raises:
            CatalogQueryError: If no row is returned.
        """
        ...

    async def query_optional(self, sql: str, params: Params = None) -> Row | None:
        """Run a query that returns at most one row.

        Returns:
            The row, or ``None`` when the query matched nothing.
        """
        ...

    def stream(self, sql: str, params: Params = None) -> AsyncIterator[Row]:
        """Iterate over the rows of a query without buffering the result set."""
        ...

    async def close(self) -> None:
        """Close the session and release the underlying connection."""
        ...
