"""PostgreSQL catalog introspection.

``CatalogReader`` issues the read-only catalog queries that discover:
- Enum types and their labels
- Sequences and their parameters
- Tables, columns, primary keys, indexes, foreign keys
- Roles, role attributes, password hashes, memberships
- Object owners and schema/table grants

Every query runs through a ``CatalogSession``; failures surface as
``PermissionDenied`` or ``CatalogQueryError`` and are left to the
serializers to contain or propagate.
"""

from collections.abc import AsyncIterator

from pg_snapshot.adapters.base import CatalogSession, Row
from pg_snapshot.errors import PermissionDenied
from pg_snapshot.logging_config import get_logger
from pg_snapshot.roles.models import Grant, OwnedObject, Role
from pg_snapshot.schema.encoder import quote_ident
from pg_snapshot.schema.models import Column, ForeignKey, Index, Sequence

logger = get_logger(__name__)

# pg_constraint.confupdtype / confdeltype codes
FK_RULES = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}

OWNED_KINDS = {"r": "TABLE", "S": "SEQUENCE", "v": "VIEW"}

SYSTEM_SCHEMAS = ("pg_catalog", "information_schema")


class CatalogReader:
    """Read-only catalog queries over one session.

    Usage:
        reader = CatalogReader(session, schema_name="public")
        for type_name in await reader.list_enum_types():
            labels = await reader.list_enum_labels(type_name)
    """

    def __init__(self, session: CatalogSession, schema_name: str = "public") -> None:
        """Initialize with a connected session.

        Args:
            session: Connected ``CatalogSession``.
            schema_name: Namespace whose objects are dumped.
        """
        self._session = session
        self.schema_name = schema_name

    # ------------------------------------------------------------------
    # Capability probe
    # ------------------------------------------------------------------

    async def check_access(self) -> int:
        """Count visible tables; fails when basic catalog access is missing."""
        row = await self._session.query_one(
            "SELECT COUNT(*) FROM information_schema.tables"
        )
        return row[0]

    # ------------------------------------------------------------------
    # Types and sequences
    # ------------------------------------------------------------------

    async def list_enum_types(self) -> list[str]:
        """Get enum type names in the schema."""
        query = """
            SELECT t.typname
            FROM pg_catalog.pg_type t
            JOIN pg_catalog.pg_namespace n ON n.oid = t.typnamespace
            WHERE t.typtype = 'e'
              AND n.nspname = %s
            ORDER BY t.typname
        """
        rows = await self._session.query(query, (self.schema_name,))
        return [row[0] for row in rows]

    async def list_enum_labels(self, type_name: str) -> list[str]:
        """Get the labels of an enum type in declared sort order."""
        query = """
            SELECT e.enumlabel
            FROM pg_catalog.pg_enum e
            JOIN pg_catalog.pg_type t ON e.enumtypid = t.oid
            JOIN pg_catalog.pg_namespace n ON n.oid = t.typnamespace
            WHERE t.typname = %s
              AND n.nspname = %s
            ORDER BY e.enumsortorder NULLS FIRST
        """
        rows = await self._session.query(query, (type_name, self.schema_name))
        return [row[0] for row in rows if row[0] is not None]

    async def list_sequences(self) -> list[str]:
        """Get sequence names in the schema."""
        query = """
            SELECT c.relname
            FROM pg_catalog.pg_class c
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relkind = 'S'
              AND n.nspname = %s
            ORDER BY c.relname
        """
        rows = await self._session.query(query, (self.schema_name,))
        return [row[0] for row in rows]

    async def sequence_parameters(self, name: str) -> Sequence:
        """Get start/min/max/increment for a sequence.

        Falls back to ``start=1, min=1, max=2147483647, increment=1`` when
        the parameters cannot be read, per missing field.
        """
        query = """
            SELECT s.seqstart, s.seqmin, s.seqmax, s.seqincrement
            FROM pg_catalog.pg_sequence s
            JOIN pg_catalog.pg_class c ON c.oid = s.seqrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relname = %s
              AND n.nspname = %s
        """
        try:
            row = await self._session.query_optional(query, (name, self.schema_name))
        except PermissionDenied as e:
            logger.warning("Cannot read parameters of sequence %s: %s", name, e)
            row = None

        if row is None:
            return Sequence(name=name)

        start, min_value, max_value, increment = row
        defaults = Sequence(name=name)
        return Sequence(
            name=name,
            start=defaults.start if start is None else start,
            min_value=defaults.min_value if min_value is None else min_value,
            max_value=defaults.max_value if max_value is None else max_value,
            increment=defaults.increment if increment is None else increment,
        )

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    async def list_tables(self) -> list[str]:
        """Get base table names in the schema."""
        query = """
            SELECT c.relname
            FROM pg_catalog.pg_class c
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relkind = 'r'
              AND n.nspname = %s
            ORDER BY c.relname
        """
        rows = await self._session.query(query, (self.schema_name,))
        return [row[0] for row in rows]

    async def list_columns(self, table_name: str) -> list[Column]:
        """Get columns in attribute-number order, excluding dropped ones."""
        query = """
            SELECT
                a.attname,
                pg_catalog.format_type(a.atttypid, a.atttypmod),
                a.attnotnull,
                pg_catalog.pg_get_expr(d.adbin, d.adrelid)
            FROM pg_catalog.pg_attribute a
            LEFT JOIN pg_catalog.pg_attrdef d
                ON d.adrelid = a.attrelid AND d.adnum = a.attnum
            JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relname = %s
              AND n.nspname = %s
              AND a.attnum > 0
              AND NOT a.attisdropped
            ORDER BY a.attnum
        """
        rows = await self._session.query(query, (table_name, self.schema_name))
        columns = []
        for row in rows:
            name, data_type, not_null, default = row
            columns.append(
                Column(name=name, data_type=data_type, not_null=not_null, default=default)
            )
        return columns

    async def primary_key_columns(self, table_name: str) -> list[str]:
        """Get primary key column names in key order."""
        query = """
            SELECT a.attname
            FROM pg_catalog.pg_index i
            JOIN pg_catalog.pg_attribute a
                ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
            JOIN pg_catalog.pg_class t ON t.oid = i.indrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = t.relnamespace
            WHERE t.relname = %s
              AND n.nspname = %s
              AND i.indisprimary
            ORDER BY array_position(i.indkey::int2[], a.attnum)
        """
        rows = await self._session.query(query, (table_name, self.schema_name))
        return [row[0] for row in rows]

    async def index_definitions(self, table_name: str) -> list[Index]:
        """Get index definitions, excluding the index backing the primary key."""
        query = """
            SELECT ic.relname, pg_catalog.pg_get_indexdef(i.indexrelid)
            FROM pg_catalog.pg_index i
            JOIN pg_catalog.pg_class ic ON ic.oid = i.indexrelid
            JOIN pg_catalog.pg_class t ON t.oid = i.indrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = t.relnamespace
            WHERE t.relname = %s
              AND n.nspname = %s
              AND NOT i.indisprimary
            ORDER BY ic.relname
        """
        rows = await self._session.query(query, (table_name, self.schema_name))
        return [Index(name=name, definition=definition) for name, definition in rows]

    async def foreign_keys(self, table_name: str) -> list[ForeignKey]:
        """Get foreign key constraints with their update/delete rules.

        Multi-column keys are folded into one ``ForeignKey`` whose column
        lists keep key order.
        """
        query = """
            SELECT
                con.conname,
                k.ord,
                la.attname,
                fn.nspname,
                ft.relname,
                fa.attname,
                con.confupdtype,
                con.confdeltype
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class t ON t.oid = con.conrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_catalog.pg_class ft ON ft.oid = con.confrelid
            JOIN pg_catalog.pg_namespace fn ON fn.oid = ft.relnamespace
            CROSS JOIN LATERAL unnest(con.conkey, con.confkey)
                WITH ORDINALITY AS k(local_attnum, foreign_attnum, ord)
            JOIN pg_catalog.pg_attribute la
                ON la.attrelid = con.conrelid AND la.attnum = k.local_attnum
            JOIN pg_catalog.pg_attribute fa
                ON fa.attrelid = con.confrelid AND fa.attnum = k.foreign_attnum
            WHERE con.contype = 'f'
              AND t.relname = %s
              AND n.nspname = %s
            ORDER BY con.conname, k.ord
        """
        rows = await self._session.query(query, (table_name, self.schema_name))
        keys: dict[str, dict] = {}
        for row in rows:
            name, _, column, ref_schema, ref_table, ref_column, upd, dele = row
            if name not in keys:
                if ref_schema != self.schema_name:
                    ref_table = f"{ref_schema}.{ref_table}"
                keys[name] = {
                    "name": name,
                    "columns": [],
                    "referenced_table": ref_table,
                    "referenced_columns": [],
                    "update_rule": FK_RULES.get(upd, "NO ACTION"),
                    "delete_rule": FK_RULES.get(dele, "NO ACTION"),
                }
            keys[name]["columns"].append(column)
            keys[name]["referenced_columns"].append(ref_column)

        return [ForeignKey(**fields) for fields in keys.values()]

    async def stream_rows(self, table_name: str, column_names: list[str]) -> AsyncIterator[Row]:
        """Stream the rows of a table with values in ``column_names`` order."""
        select_list = ", ".join(quote_ident(c) for c in column_names)
        sql = (
            f"SELECT {select_list} FROM "
            f"{quote_ident(self.schema_name)}.{quote_ident(table_name)}"
        )
        async for row in self._session.stream(sql):
            yield row

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    async def list_roles(self) -> list[str]:
        """Get every role name visible in ``pg_roles``."""
        rows = await self._session.query(
            "SELECT rolname FROM pg_catalog.pg_roles ORDER BY rolname"
        )
        return [row[0] for row in rows]

    async def database_owner(self) -> str | None:
        """Get the role owning the current database."""
        row = await self._session.query_optional(
            """
            SELECT pg_catalog.pg_get_userbyid(d.datdba)
            FROM pg_catalog.pg_database d
            WHERE d.datname = current_database()
            """
        )
        return row[0] if row else None

    async def current_principal(self) -> str:
        """Get the role the session is running as."""
        row = await self._session.query_one("SELECT current_user")
        return row[0]

    async def object_owners(self) -> list[OwnedObject]:
        """Get tables, sequences, and views outside system namespaces with owners."""
        query = """
            SELECT c.relkind, n.nspname, c.relname, pg_catalog.pg_get_userbyid(c.relowner)
            FROM pg_catalog.pg_class c
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relkind IN ('r', 'S', 'v')
              AND n.nspname <> ALL(%s)
              AND left(n.nspname, 3) <> 'pg_'
            ORDER BY n.nspname, c.relname
        """
        rows = await self._session.query(query, (list(SYSTEM_SCHEMAS),))
        return [
            OwnedObject(kind=OWNED_KINDS[kind], schema_name=schema, name=name, owner=owner)
            for kind, schema, name, owner in rows
            if kind in OWNED_KINDS
        ]

    async def role_detail(self, name: str) -> Role | None:
        """Get role attributes and comment, or None if the role does not exist."""
        query = """
            SELECT
                r.rolsuper,
                r.rolinherit,
                r.rolcreaterole,
                r.rolcreatedb,
                r.rolcanlogin,
                r.rolreplication,
                r.rolconnlimit,
                pg_catalog.shobj_description(r.oid, 'pg_authid')
            FROM pg_catalog.pg_roles r
            WHERE r.rolname = %s
        """
        row = await self._session.query_optional(query, (name,))
        if row is None:
            return None

        superuser, inherit, create_role, create_db, can_login, replication, limit, comment = row
        return Role(
            name=name,
            superuser=superuser,
            inherit=inherit,
            create_role=create_role,
            create_db=create_db,
            can_login=can_login,
            replication=replication,
            connection_limit=limit,
            comment=comment,
        )

    async def password_hash(self, name: str) -> str | None:
        """Get the stored password hash; None when absent or not readable."""
        try:
            row = await self._session.query_optional(
                "SELECT rolpassword FROM pg_catalog.pg_authid WHERE rolname = %s",
                (name,),
            )
        except PermissionDenied:
            logger.debug("pg_authid not readable; omitting password for %s", name)
            return None
        return row[0] if row else None

    async def parent_roles(self, name: str, candidates: list[str]) -> list[str]:
        """Get roles in ``candidates`` that ``name`` is a direct member of."""
        query = """
            SELECT b.rolname
            FROM pg_catalog.pg_auth_members m
            JOIN pg_catalog.pg_roles b ON m.roleid = b.oid
            JOIN pg_catalog.pg_roles r ON m.member = r.oid
            WHERE r.rolname = %s
              AND b.rolname = ANY(%s)
            ORDER BY b.rolname
        """
        rows = await self._session.query(query, (name, list(candidates)))
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Grants
    # ------------------------------------------------------------------

    async def schema_grants(self, role_name: str) -> list[Grant]:
        """Get schema privileges held by a role on the dumped schema."""
        query = """
            SELECT n.nspname, a.privilege_type
            FROM pg_catalog.pg_namespace n
            CROSS JOIN LATERAL pg_catalog.aclexplode(n.nspacl) a
            JOIN pg_catalog.pg_roles r ON r.oid = a.grantee
            WHERE r.rolname = %s
              AND n.nspname = %s
        """
        rows = await self._session.query(query, (role_name, self.schema_name))
        return _collect_grants(role_name, "SCHEMA", [(schema, priv) for schema, priv in rows])

    async def table_grants(self, role_name: str) -> list[Grant]:
        """Get table privileges held by a role in the dumped schema."""
        query = """
            SELECT table_schema, table_name, privilege_type
            FROM information_schema.role_table_grants
            WHERE grantee = %s
              AND table_schema = %s
        """
        rows = await self._session.query(query, (role_name, self.schema_name))
        return _collect_grants(
            role_name, "TABLE", [(f"{schema}.{table}", priv) for schema, table, priv in rows]
        )


def _collect_grants(grantee: str, kind: str, pairs: list[tuple[str, str]]) -> list[Grant]:
    """Deduplicate (object, privilege) pairs into one sorted Grant per object."""
    by_object: dict[str, set[str]] = {}
    for object_name, privilege in pairs:
        by_object.setdefault(object_name, set()).add(privilege)
    return [
        Grant(
            grantee=grantee,
            object_kind=kind,
            object_name=object_name,
            privileges=sorted(privileges),
        )
        for object_name, privileges in sorted(by_object.items())
    ]
