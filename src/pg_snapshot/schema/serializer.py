"""Schema serializer: types, sequences, tables, constraints, and row data.

Emission order is fixed:

1. Session directives (encoding, string conformance, search path).
2. Enum types.
3. Sequences.
4. ``CREATE TABLE`` for every table.
5. Indexes and foreign keys for every table (second pass, so every
   referenced table already exists).
6. ``INSERT`` statements for every table (third pass).

Lines go to the sink in exactly the order they are generated.  A catalog
query rejected for insufficient privilege turns into a ``-- Warning:``
comment for the object concerned; any other failure propagates.

Usage:
    from pg_snapshot.schema.serializer import SchemaSerializer

    reader = CatalogReader(session, schema_name="public")
    await SchemaSerializer(reader).serialize(sink)
"""

from pg_snapshot.errors import PermissionDenied
from pg_snapshot.logging_config import get_logger
from pg_snapshot.schema.encoder import Cell, encode, quote_ident, quote_literal
from pg_snapshot.schema.introspector import CatalogReader
from pg_snapshot.schema.models import EnumType, ForeignKey, Sequence, Table
from pg_snapshot.sink import StatementSink

logger = get_logger(__name__)


# ------------------------------------------------------------------
# Statement rendering
# ------------------------------------------------------------------


def session_directives(schema_name: str) -> list[str]:
    """Lines that configure the replaying session."""
    return [
        "SET client_encoding = 'UTF8';",
        "SET standard_conforming_strings = on;",
        "SET check_function_bodies = false;",
        "SET client_min_messages = warning;",
        f"SET search_path = {quote_ident(schema_name)}, pg_catalog;",
    ]


def render_enum(enum_type: EnumType) -> str:
    labels = ", ".join(quote_literal(label) for label in enum_type.labels)
    return f"CREATE TYPE {quote_ident(enum_type.name)} AS ENUM ({labels});"


def render_sequence(seq: Sequence) -> str:
    return (
        f"CREATE SEQUENCE {quote_ident(seq.name)} START WITH {seq.start} "
        f"INCREMENT BY {seq.increment} MINVALUE {seq.min_value} MAXVALUE {seq.max_value};"
    )


def render_create_table(table: Table) -> list[str]:
    """``CREATE TABLE`` as one line per column definition."""
    defs = [f"  {column.definition()}" for column in table.columns]
    if table.primary_key:
        pk = ", ".join(quote_ident(c) for c in table.primary_key)
        defs.append(f"  PRIMARY KEY ({pk})")

    name = quote_ident(table.name)
    if not defs:
        return [f"CREATE TABLE {name} ();"]

    lines = [f"CREATE TABLE {name} ("]
    lines.extend(f"{d}," for d in defs[:-1])
    lines.append(defs[-1])
    lines.append(");")
    return lines


def render_foreign_key(table_name: str, fk: ForeignKey) -> str:
    local = ", ".join(quote_ident(c) for c in fk.columns)
    remote = ", ".join(quote_ident(c) for c in fk.referenced_columns)
    ref_table = ".".join(quote_ident(part) for part in fk.referenced_table.split(".", 1))
    return (
        f"ALTER TABLE ONLY {quote_ident(table_name)} ADD CONSTRAINT {quote_ident(fk.name)} "
        f"FOREIGN KEY ({local}) REFERENCES {ref_table} ({remote}) "
        f"ON UPDATE {fk.update_rule} ON DELETE {fk.delete_rule};"
    )


def render_insert(table: Table, row: tuple) -> str:
    """``INSERT`` for one row whose values follow ``table.columns`` order."""
    columns = ", ".join(quote_ident(c.name) for c in table.columns)
    values = ", ".join(
        encode(Cell.from_value(value, column.data_type), column.data_type)
        for column, value in zip(table.columns, row)
    )
    return f"INSERT INTO {quote_ident(table.name)} ({columns}) VALUES ({values});"


# ------------------------------------------------------------------
# Serializer
# ------------------------------------------------------------------


class SchemaSerializer:
    """Emits the schema and data part of a dump.

    Args:
        reader: Catalog reader bound to the session and target schema.
    """

    def __init__(self, reader: CatalogReader) -> None:
        self._reader = reader

    async def serialize(self, sink: StatementSink) -> None:
        """Write the full schema-and-data section to ``sink``.

        Raises:
            CatalogQueryError: If a catalog query fails for a reason other
                than insufficient privilege.
            SinkWriteError: If the sink rejects a line.
        """
        sink.write_line("-- Tables, sequences, data types, and table data")
        for line in session_directives(self._reader.schema_name):
            sink.write_line(line)
        sink.write_line("")

        await self.write_enum_types(sink)
        await self.write_sequences(sink)

        tables = await self.write_tables(sink)
        await self.write_constraints(sink, tables)
        await self.write_data(sink, tables)

    async def write_enum_types(self, sink: StatementSink) -> None:
        """Emit one ``CREATE TYPE ... AS ENUM`` per enum type."""
        try:
            type_names = await self._reader.list_enum_types()
        except PermissionDenied as e:
            _skip(sink, "Could not list enum types", e)
            return

        for type_name in type_names:
            sink.write_line(f"-- Custom Type: {type_name}")
            try:
                labels = await self._reader.list_enum_labels(type_name)
            except PermissionDenied as e:
                logger.warning("Cannot read labels of enum %s: %s", type_name, e)
                labels = []

            if labels:
                sink.write_line(render_enum(EnumType(name=type_name, labels=labels)))
            else:
                sink.write_line(
                    f"-- Warning: Could not retrieve enum values for type {type_name}"
                )
            sink.write_line("")

    async def write_sequences(self, sink: StatementSink) -> None:
        """Emit one ``CREATE SEQUENCE`` per sequence."""
        try:
            names = await self._reader.list_sequences()
        except PermissionDenied as e:
            _skip(sink, "Could not list sequences", e)
            return

        for name in names:
            sink.write_line(f"-- Sequence: {name}")
            sink.write_line(render_sequence(await self._reader.sequence_parameters(name)))
            sink.write_line("")

    async def write_tables(self, sink: StatementSink) -> list[Table]:
        """Emit ``CREATE TABLE`` for every table and return what was rendered."""
        try:
            names = await self._reader.list_tables()
        except PermissionDenied as e:
            _skip(sink, "Could not list tables", e)
            return []

        logger.info("Dumping %d tables from schema %s", len(names), self._reader.schema_name)

        tables = []
        for name in names:
            sink.write_line(f"-- Table: {name}")
            try:
                columns = await self._reader.list_columns(name)
                primary_key = await self._reader.primary_key_columns(name)
            except PermissionDenied as e:
                _skip(sink, f"Could not read definition of table {name}", e)
                sink.write_line("")
                continue

            table = Table(name=name, columns=columns, primary_key=primary_key)
            for line in render_create_table(table):
                sink.write_line(line)
            sink.write_line("")
            tables.append(table)
        return tables

    async def write_constraints(self, sink: StatementSink, tables: list[Table]) -> None:
        """Second pass: index definitions and foreign keys for every table."""
        for table in tables:
            try:
                indexes = await self._reader.index_definitions(table.name)
                foreign_keys = await self._reader.foreign_keys(table.name)
            except PermissionDenied as e:
                _skip(sink, f"Could not read constraints of table {table.name}", e)
                sink.write_line("")
                continue

            if not indexes and not foreign_keys:
                continue

            sink.write_line(f"-- Indexes and constraints for table: {table.name}")
            for index in indexes:
                sink.write_line(f"{index.definition};")
            for fk in foreign_keys:
                sink.write_line(render_foreign_key(table.name, fk))
            sink.write_line("")

    async def write_data(self, sink: StatementSink, tables: list[Table]) -> None:
        """Third pass: one ``INSERT`` per row, streamed table by table."""
        for table in tables:
            if not table.columns:
                continue

            sink.write_line(f"-- Data for table: {table.name}")
            count = 0
            try:
                async for row in self._reader.stream_rows(table.name, table.column_names):
                    sink.write_line(render_insert(table, row))
                    count += 1
            except PermissionDenied as e:
                _skip(sink, f"Could not read data of table {table.name}", e)
            logger.debug("Wrote %d rows for table %s", count, table.name)
            sink.write_line("")


def _skip(sink: StatementSink, what: str, error: PermissionDenied) -> None:
    """Log and annotate an object skipped for lack of privilege."""
    logger.warning("%s: %s", what, error)
    sink.write_line(f"-- Warning: {what} (permission denied). Skipping.")
