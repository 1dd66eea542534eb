"""Catalog introspection, value encoding, and schema serialization.

Usage:
    from pg_snapshot.schema import CatalogReader, SchemaSerializer
    from pg_snapshot.schema import Cell, encode
"""

from pg_snapshot.schema.encoder import Cell, CellKind, encode, quote_ident, quote_literal
from pg_snapshot.schema.introspector import CatalogReader
from pg_snapshot.schema.models import Column, EnumType, ForeignKey, Index, Sequence, Table
from pg_snapshot.schema.serializer import SchemaSerializer

__all__ = [
    "CatalogReader",
    "Cell",
    "CellKind",
    "Column",
    "EnumType",
    "ForeignKey",
    "Index",
    "SchemaSerializer",
    "Sequence",
    "Table",
    "encode",
    "quote_ident",
    "quote_literal",
]
