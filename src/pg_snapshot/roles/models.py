"""Pydantic models for roles, memberships, and grants."""

from pydantic import BaseModel, ConfigDict, Field


class Role(BaseModel):
    """A database principal and its attribute flags.

    Example:
        >>> role = Role(name="app", can_login=True)
        >>> role.superuser
        False
    """

    model_config = ConfigDict(frozen=True)

    name: str
    superuser: bool = False
    inherit: bool = True
    create_role: bool = False
    create_db: bool = False
    can_login: bool = False
    replication: bool = False
    connection_limit: int = -1  # -1 means unlimited
    member_of: list[str] = Field(default_factory=list)
    password_hash: str | None = None
    comment: str | None = None


class Grant(BaseModel):
    """A privilege set held by a grantee on one schema or table."""

    model_config = ConfigDict(frozen=True)

    grantee: str
    object_kind: str  # "SCHEMA" or "TABLE"
    object_name: str  # schema name, or "schema.table"
    privileges: list[str] = Field(default_factory=list)


class OwnedObject(BaseModel):
    """A relation outside the system namespaces and the role that owns it."""

    model_config = ConfigDict(frozen=True)

    kind: str  # "TABLE", "SEQUENCE", or "VIEW"
    schema_name: str
    name: str
    owner: str
