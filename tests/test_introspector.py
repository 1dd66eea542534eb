"""Tests for the catalog reader against a fake session."""

import asyncio

import pytest

from pg_snapshot.errors import CatalogQueryError, PermissionDenied
from pg_snapshot.schema.introspector import CatalogReader
from pg_snapshot.schema.models import Sequence

from conftest import FakeSession, by_first_param, denied


# ============================================================
# Test: Sequences
# ============================================================


class TestSequenceParameters:
    """Missing parameters fall back to the documented defaults."""

    def test_no_row_uses_defaults(self) -> None:
        reader = CatalogReader(FakeSession({"pg_catalog.pg_sequence s": []}))
        seq = asyncio.run(reader.sequence_parameters("orders_id_seq"))
        assert seq == Sequence(
            name="orders_id_seq", start=1, increment=1, min_value=1, max_value=2147483647
        )

    def test_permission_denied_uses_defaults(self) -> None:
        reader = CatalogReader(FakeSession({"pg_catalog.pg_sequence s": denied("pg_sequence")}))
        seq = asyncio.run(reader.sequence_parameters("s"))
        assert (seq.start, seq.increment, seq.min_value, seq.max_value) == (1, 1, 1, 2147483647)

    def test_null_fields_use_defaults(self) -> None:
        reader = CatalogReader(FakeSession({"pg_catalog.pg_sequence s": [(100, None, 9000, None)]}))
        seq = asyncio.run(reader.sequence_parameters("s"))
        assert (seq.start, seq.min_value, seq.max_value, seq.increment) == (100, 1, 9000, 1)

    def test_other_errors_propagate(self) -> None:
        reader = CatalogReader(
            FakeSession({"pg_catalog.pg_sequence s": CatalogQueryError("server closed")})
        )
        with pytest.raises(CatalogQueryError, match="server closed"):
            asyncio.run(reader.sequence_parameters("s"))


# ============================================================
# Test: Tables
# ============================================================


class TestTables:
    """Columns, keys, and foreign keys are projected in catalog order."""

    def test_columns_keep_catalog_order(self) -> None:
        session = FakeSession({
            "format_type": [
                ("id", "integer", True, "nextval('t_id_seq'::regclass)"),
                ("name", "character varying(40)", False, None),
            ],
        })
        columns = asyncio.run(CatalogReader(session).list_columns("t"))
        assert [c.name for c in columns] == ["id", "name"]
        assert columns[0].definition() == "id integer NOT NULL DEFAULT nextval('t_id_seq'::regclass)"
        assert columns[1].definition() == "name varchar(40)"

    def test_queries_are_parameterized(self) -> None:
        session = FakeSession({"format_type": []})
        asyncio.run(CatalogReader(session, schema_name="sales").list_columns("t"))
        assert session.calls[0][1] == ("t", "sales")

    def test_multi_column_foreign_key_is_folded(self) -> None:
        session = FakeSession({
            "con.contype = 'f'": [
                ("lines_order_fk", 1, "order_id", "public", "orders", "id", "a", "c"),
                ("lines_order_fk", 2, "order_rev", "public", "orders", "rev", "a", "c"),
                ("lines_sku_fk", 1, "sku", "catalog", "products", "sku", "c", "r"),
            ],
        })
        keys = asyncio.run(CatalogReader(session).foreign_keys("lines"))

        assert len(keys) == 2
        assert keys[0].columns == ["order_id", "order_rev"]
        assert keys[0].referenced_columns == ["id", "rev"]
        assert keys[0].update_rule == "NO ACTION"
        assert keys[0].delete_rule == "CASCADE"
        assert keys[1].referenced_table == "catalog.products"
        assert keys[1].update_rule == "CASCADE"
        assert keys[1].delete_rule == "RESTRICT"

    def test_enum_labels_skip_nulls(self) -> None:
        session = FakeSession({"pg_catalog.pg_enum": [(None,), ("a",), ("b",)]})
        assert asyncio.run(CatalogReader(session).list_enum_labels("t")) == ["a", "b"]

    def test_stream_rows_selects_columns_in_order(self) -> None:
        session = FakeSession({'FROM public."Order"': [(1, "x")]})

        async def collect():
            return [row async for row in CatalogReader(session).stream_rows("Order", ["id", "user"])]

        assert asyncio.run(collect()) == [(1, "x")]
        assert session.calls[0][0] == 'SELECT id, "user" FROM public."Order"'


# ============================================================
# Test: Roles
# ============================================================


class TestRoles:
    """Role queries degrade on missing privilege where documented."""

    def test_password_hash_absent_when_denied(self) -> None:
        reader = CatalogReader(FakeSession({"rolpassword": denied()}))
        assert asyncio.run(reader.password_hash("alice")) is None

    def test_password_hash(self) -> None:
        reader = CatalogReader(FakeSession({"rolpassword": [("md5abc",)]}))
        assert asyncio.run(reader.password_hash("alice")) == "md5abc"

    def test_role_detail_missing(self) -> None:
        reader = CatalogReader(FakeSession({"shobj_description": []}))
        assert asyncio.run(reader.role_detail("ghost")) is None

    def test_parent_roles_passes_candidates(self) -> None:
        session = FakeSession({"pg_auth_members": [("admins",)]})
        parents = asyncio.run(CatalogReader(session).parent_roles("bob", ["admins", "bob"]))
        assert parents == ["admins"]
        assert session.calls[0][1] == ("bob", ["admins", "bob"])

    def test_object_owners(self) -> None:
        session = FakeSession({
            "relowner": [("r", "public", "orders", "alice"), ("S", "public", "orders_id_seq", "alice")],
        })
        owned = asyncio.run(CatalogReader(session).object_owners())
        assert [(o.kind, o.name) for o in owned] == [("TABLE", "orders"), ("SEQUENCE", "orders_id_seq")]

    def test_grants_are_deduplicated(self) -> None:
        """Duplicate privilege rows from the grant join collapse into one."""
        session = FakeSession({
            "role_table_grants": [
                ("public", "orders", "SELECT"),
                ("public", "orders", "SELECT"),
                ("public", "orders", "INSERT"),
                ("public", "lines", "SELECT"),
            ],
        })
        grants = asyncio.run(CatalogReader(session).table_grants("bob"))
        assert [(g.object_name, g.privileges) for g in grants] == [
            ("public.lines", ["SELECT"]),
            ("public.orders", ["INSERT", "SELECT"]),
        ]

    def test_role_list_permission_error_propagates(self) -> None:
        reader = CatalogReader(FakeSession({"pg_catalog.pg_roles ORDER BY rolname": denied("pg_roles")}))
        with pytest.raises(PermissionDenied):
            asyncio.run(reader.list_roles())

    def test_schema_grants_use_target_schema(self) -> None:
        session = FakeSession({"aclexplode": by_first_param({"bob": [("sales", "USAGE"), ("sales", "USAGE")]})})
        grants = asyncio.run(CatalogReader(session, schema_name="sales").schema_grants("bob"))
        assert [(g.object_kind, g.object_name, g.privileges) for g in grants] == [
            ("SCHEMA", "sales", ["USAGE"]),
        ]
        assert session.calls[0][1] == ("bob", "sales")
