"""Pydantic models for catalog introspection.

All models are read-only projections of live catalog state; they are
built by ``CatalogReader`` and consumed by the serializers.

Example:
    >>> col = Column(name="id", data_type="integer", not_null=True)
    >>> col.definition()
    'id integer NOT NULL'
"""

import re

from pydantic import BaseModel, ConfigDict, Field

from pg_snapshot.schema.encoder import quote_ident

_VARCHAR = re.compile(r"^character varying\((\d+)\)(.*)$")
_CHAR = re.compile(r"^character\((\d+)\)(.*)$")


class CatalogModel(BaseModel):
    """Base for frozen catalog projections."""

    model_config = ConfigDict(frozen=True)


# ============================================================================
# Type and Sequence Models
# ============================================================================


class EnumType(CatalogModel):
    """A user-defined enumerated type.

    Example:
        >>> EnumType(name="status", labels=["open", "closed"]).labels
        ['open', 'closed']
    """

    name: str
    labels: list[str] = Field(default_factory=list)


class Sequence(CatalogModel):
    """A numeric sequence generator with its parameters."""

    name: str
    start: int = 1
    increment: int = 1
    min_value: int = 1
    max_value: int = 2147483647


# ============================================================================
# Table Models
# ============================================================================


class Column(CatalogModel):
    """A table attribute, in catalog attribute order."""

    name: str
    data_type: str  # format_type() output, e.g. "character varying(40)"
    not_null: bool = False
    default: str | None = None

    def sql_type(self) -> str:
        """Declared type with ``varchar(n)``/``char(n)`` shorthand applied."""
        for pattern, short in ((_VARCHAR, "varchar"), (_CHAR, "char")):
            match = pattern.match(self.data_type)
            if match:
                return f"{short}({match.group(1)}){match.group(2)}"
        return self.data_type

    def definition(self) -> str:
        """Column definition as it appears inside ``CREATE TABLE``."""
        parts = [quote_ident(self.name), self.sql_type()]
        if self.not_null:
            parts.append("NOT NULL")
        if self.default is not None:
            parts.append(f"DEFAULT {self.default}")
        return " ".join(parts)


class ForeignKey(CatalogModel):
    """A referential constraint; local and referenced columns pair up by position."""

    name: str
    columns: list[str] = Field(default_factory=list)
    referenced_table: str
    referenced_columns: list[str] = Field(default_factory=list)
    update_rule: str = "NO ACTION"
    delete_rule: str = "NO ACTION"


class Index(CatalogModel):
    """A secondary index (never the one backing the primary key)."""

    name: str
    definition: str  # pg_indexes.indexdef, e.g. "CREATE INDEX ... USING btree (...)"


class Table(CatalogModel):
    """A base relation with its columns and primary key.

    Indexes and foreign keys are read in a separate pass, after every
    table has been created.
    """

    name: str
    columns: list[Column] = Field(default_factory=list)
    primary_key: list[str] = Field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]
