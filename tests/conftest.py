"""Shared fixtures: a fake catalog session replaying a captured snapshot.

``FakeSession`` answers each query by matching a fragment of its
(whitespace-collapsed) SQL.  A response is a list of row tuples, a
callable taking the params and returning rows, or an exception instance
to raise.
"""

from collections.abc import Callable
from typing import Any

import pytest

from pg_snapshot.config.models import ConnectionConfig
from pg_snapshot.errors import CatalogQueryError, PermissionDenied

Response = list[tuple] | Callable[[Any], list[tuple]] | Exception


class FakeSession:
    """In-memory ``CatalogSession`` driven by SQL fragments."""

    def __init__(self, responses: dict[str, Response]) -> None:
        self.responses = dict(responses)
        self.calls: list[tuple[str, Any]] = []
        self.closed = False

    def _rows(self, sql: str, params: Any) -> list[tuple]:
        normalized = " ".join(sql.split())
        self.calls.append((normalized, params))
        for fragment, response in self.responses.items():
            if fragment in normalized:
                if isinstance(response, Exception):
                    raise response
                if callable(response):
                    return list(response(params))
                return list(response)
        raise AssertionError(f"Unexpected query: {normalized}")

    async def query(self, sql: str, params: Any = None) -> list[tuple]:
        return self._rows(sql, params)

    async def query_one(self, sql: str, params: Any = None) -> tuple:
        rows = self._rows(sql, params)
        if not rows:
            raise CatalogQueryError("Query returned no rows", sql)
        return rows[0]

    async def query_optional(self, sql: str, params: Any = None) -> tuple | None:
        rows = self._rows(sql, params)
        return rows[0] if rows else None

    async def stream(self, sql: str, params: Any = None):
        for row in self._rows(sql, params):
            yield row

    async def close(self) -> None:
        self.closed = True


def denied(what: str = "pg_authid") -> PermissionDenied:
    """A permission error as the session would raise it."""
    return PermissionDenied(f"permission denied for table {what}", sqlstate="42501")


def by_first_param(mapping: dict[str, list[tuple]]) -> Callable[[Any], list[tuple]]:
    """Response keyed on the first query parameter (usually an object name)."""
    return lambda params: mapping.get(params[0], [])


def orders_catalog() -> dict[str, Response]:
    """Catalog of a database with enum ``status`` and table ``orders``.

    orders(id integer primary key, status status, note text) holding the
    single row (1, 'open', NULL), owned by ``alice``; the dump runs as
    ``backup``.
    """
    return {
        "information_schema.tables": [(1,)],
        "t.typtype = 'e'": [("status",)],
        "pg_catalog.pg_enum": by_first_param({"status": [("open",), ("closed",)]}),
        "c.relkind = 'S'": [],
        "pg_catalog.pg_sequence s": [],
        "c.relkind = 'r'": [("orders",)],
        "format_type": by_first_param({
            "orders": [
                ("id", "integer", True, None),
                ("status", "status", False, None),
                ("note", "text", False, None),
            ],
        }),
        "array_position": by_first_param({"orders": [("id",)]}),
        "pg_get_indexdef": [],
        "con.contype = 'f'": [],
        "FROM public.orders": [(1, "open", None)],
        # roles
        "SELECT rolname FROM pg_catalog.pg_roles ORDER BY rolname": [
            ("alice",), ("backup",), ("pg_monitor",), ("postgres",),
        ],
        "datdba": [("alice",)],
        "SELECT current_user": [("backup",)],
        "relowner": [("r", "public", "orders", "alice")],
        "shobj_description": by_first_param({
            "alice": [(False, True, False, True, True, False, -1, None)],
            "backup": [(False, True, False, False, True, False, 5, "Nightly dumps")],
        }),
        "rolpassword": denied(),
        "pg_auth_members": by_first_param({"backup": [("alice",)]}),
        "aclexplode": by_first_param({"backup": [("public", "USAGE")]}),
        "role_table_grants": by_first_param({
            "backup": [("public", "orders", "SELECT")],
        }),
    }


@pytest.fixture
def catalog() -> dict[str, Response]:
    return orders_catalog()


@pytest.fixture
def session(catalog: dict[str, Response]) -> FakeSession:
    return FakeSession(catalog)


@pytest.fixture
def config() -> ConnectionConfig:
    return ConnectionConfig(host="db.internal", port=5432, dbname="shop", user="backup", password="s3cret")
