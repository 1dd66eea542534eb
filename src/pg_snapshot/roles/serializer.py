"""Role serializer: roles, memberships, grants, and object ownership.

The role set is the union, in order of first discovery, of:

1. the role owning the database,
2. the role the session runs as,
3. every owner of a table, sequence, or view outside system namespaces.

Roles whose names carry the reserved ``pg_`` prefix are never emitted.

Emission order: every ``CREATE ROLE`` (with password and comment), then
role memberships, then schema/table grants, then ownership statements.
Roles therefore always exist before a statement references them.

Restricted principals are expected: an unreadable password is omitted
silently, an unreadable grant list becomes a warning comment, and if the
initial role probe fails the whole section is one warning comment.
"""

from typing import TYPE_CHECKING

from pg_snapshot.errors import PermissionDenied
from pg_snapshot.logging_config import get_logger
from pg_snapshot.roles.models import Grant, OwnedObject, Role
from pg_snapshot.schema.encoder import quote_ident, quote_literal
from pg_snapshot.sink import StatementSink

if TYPE_CHECKING:
    from pg_snapshot.schema.introspector import CatalogReader

logger = get_logger(__name__)

RESERVED_ROLE_PREFIX = "pg_"
PASSWORD_HASH_PREFIX = "md5"

NO_ROLE_ACCESS_WARNING = "-- Warning: No access to role information. Skipping user and role dump."


# ------------------------------------------------------------------
# Statement rendering
# ------------------------------------------------------------------


def _flag(enabled: bool, keyword: str) -> str:
    return keyword if enabled else f"NO{keyword}"


def render_create_role(role: Role) -> str:
    """``CREATE ROLE`` with every attribute flag spelled out."""
    parts = [
        f"CREATE ROLE {quote_ident(role.name)}",
        _flag(role.superuser, "SUPERUSER"),
        _flag(role.inherit, "INHERIT"),
        _flag(role.create_role, "CREATEROLE"),
        _flag(role.create_db, "CREATEDB"),
        _flag(role.can_login, "LOGIN"),
        _flag(role.replication, "REPLICATION"),
    ]
    if role.connection_limit >= 0:
        parts.append(f"CONNECTION LIMIT {role.connection_limit}")
    return " ".join(parts) + ";"


def render_password(role: Role) -> str | None:
    """``ALTER ROLE ... PASSWORD`` when a recognised hash is known."""
    if role.password_hash and role.password_hash.startswith(PASSWORD_HASH_PREFIX):
        return (
            f"ALTER ROLE {quote_ident(role.name)} WITH ENCRYPTED PASSWORD "
            f"{quote_literal(role.password_hash)};"
        )
    return None


def render_grant(grant: Grant) -> str:
    if grant.object_kind == "TABLE":
        target = ".".join(quote_ident(part) for part in grant.object_name.split(".", 1))
    else:
        target = quote_ident(grant.object_name)
    return (
        f"GRANT {', '.join(grant.privileges)} ON {grant.object_kind} {target} "
        f"TO {quote_ident(grant.grantee)};"
    )


def render_owner(obj: OwnedObject) -> str:
    return (
        f"ALTER {obj.kind} {quote_ident(obj.schema_name)}.{quote_ident(obj.name)} "
        f"OWNER TO {quote_ident(obj.owner)};"
    )


def is_reserved_role(name: str) -> bool:
    return name.startswith(RESERVED_ROLE_PREFIX)


# ------------------------------------------------------------------
# Serializer
# ------------------------------------------------------------------


class RoleSerializer:
    """Emits the roles-and-permissions part of a dump.

    Args:
        reader: Catalog reader bound to the session and target schema.
    """

    def __init__(self, reader: "CatalogReader") -> None:
        self._reader = reader
        self._owned: list[OwnedObject] = []
        self._tables: set[str] | None = None

    async def serialize(self, sink: StatementSink) -> None:
        """Write the roles section to ``sink``.

        Raises:
            CatalogQueryError: If a role query fails for a reason other
                than insufficient privilege.
            SinkWriteError: If the sink rejects a line.
        """
        sink.write_line("-- Users, roles and permissions")
        sink.write_line("")

        try:
            visible = set(await self._reader.list_roles())
        except PermissionDenied as e:
            logger.warning("Skipping role dump: %s", e)
            sink.write_line(NO_ROLE_ACCESS_WARNING)
            return

        names = [n for n in await self.discover_roles() if n in visible]
        logger.info("Dumping %d roles", len(names))

        roles = []
        for name in names:
            role = await self._read_role(sink, name, names)
            if role is not None:
                roles.append(role)

        self._write_memberships(sink, roles)
        for role in roles:
            await self._write_grants(sink, role)
        self._write_ownership(sink, {role.name for role in roles})

    async def discover_roles(self) -> list[str]:
        """Role names to emit, deduplicated in order of first discovery."""
        discovered: list[str] = []

        def add(name: str | None) -> None:
            if name and not is_reserved_role(name) and name not in discovered:
                discovered.append(name)

        try:
            add(await self._reader.database_owner())
        except PermissionDenied as e:
            logger.warning("Cannot read database owner: %s", e)

        add(await self._reader.current_principal())

        try:
            self._owned = await self._reader.object_owners()
        except PermissionDenied as e:
            logger.warning("Cannot read object owners: %s", e)
            self._owned = []
        for obj in self._owned:
            add(obj.owner)

        return discovered

    async def _read_role(self, sink: StatementSink, name: str, names: list[str]) -> Role | None:
        """Emit ``CREATE ROLE`` and friends for one role; return it with memberships."""
        sink.write_line(f"-- Role: {name}")
        try:
            role = await self._reader.role_detail(name)
        except PermissionDenied as e:
            logger.warning("Cannot read attributes of role %s: %s", name, e)
            sink.write_line(f"-- Warning: Could not read attributes of role {name}. Skipping.")
            sink.write_line("")
            return None

        if role is None:
            sink.write_line(f"-- Warning: Role {name} disappeared during the dump. Skipping.")
            sink.write_line("")
            return None

        try:
            parents = await self._reader.parent_roles(name, names)
        except PermissionDenied as e:
            logger.warning("Cannot read memberships of role %s: %s", name, e)
            parents = []

        role = role.model_copy(
            update={
                "member_of": parents,
                "password_hash": await self._reader.password_hash(name),
            }
        )

        sink.write_line(render_create_role(role))
        password = render_password(role)
        if password:
            sink.write_line(password)
        if role.comment:
            sink.write_line(f"COMMENT ON ROLE {quote_ident(name)} IS {quote_literal(role.comment)};")
        sink.write_line("")
        return role

    def _write_memberships(self, sink: StatementSink, roles: list[Role]) -> None:
        emitted = {role.name for role in roles}
        grants = [
            f"GRANT {quote_ident(parent)} TO {quote_ident(role.name)};"
            for role in roles
            for parent in role.member_of
            if parent in emitted
        ]
        if not grants:
            return
        sink.write_line("-- Role memberships")
        for line in grants:
            sink.write_line(line)
        sink.write_line("")

    async def _write_grants(self, sink: StatementSink, role: Role) -> None:
        try:
            grants = await self._reader.schema_grants(role.name)
            tables = await self._dumped_tables()
            grants += [
                grant
                for grant in await self._reader.table_grants(role.name)
                if grant.object_name.split(".", 1)[-1] in tables
            ]
        except PermissionDenied as e:
            logger.warning("Cannot read privileges of role %s: %s", role.name, e)
            sink.write_line(f"-- Warning: Could not read privileges of role {role.name}.")
            sink.write_line("")
            return

        if not grants:
            return
        sink.write_line(f"-- Privileges for role: {role.name}")
        for grant in grants:
            sink.write_line(render_grant(grant))
        sink.write_line("")

    async def _dumped_tables(self) -> set[str]:
        """Base tables of the dumped schema; views and other relations get no grants."""
        if self._tables is None:
            self._tables = set(await self._reader.list_tables())
        return self._tables

    def _write_ownership(self, sink: StatementSink, emitted: set[str]) -> None:
        """Ownership for dumped tables and sequences whose owner was emitted."""
        lines = [
            render_owner(obj)
            for obj in self._owned
            if obj.kind in ("TABLE", "SEQUENCE")
            and obj.schema_name == self._reader.schema_name
            and obj.owner in emitted
        ]
        if not lines:
            return
        sink.write_line("-- Object ownership")
        for line in lines:
            sink.write_line(line)
        sink.write_line("")
