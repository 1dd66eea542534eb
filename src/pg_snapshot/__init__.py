"""pg-snapshot: rebuild a PostgreSQL database's logical state as SQL text.

Introspects the system catalogs and emits enum types, sequences, tables,
constraints, indexes, row data, roles, and grants as plain statements
that can be replayed through any SQL client.

Usage:
    from pg_snapshot import ConnectionConfig, run_dump

    config = ConnectionConfig(host="localhost", dbname="shop", user="backup")
    await run_dump(config, output="shop.sql")
"""

__version__ = "0.1.0"

# Config
from pg_snapshot.config.models import ConnectionConfig

# Connection
from pg_snapshot.connection import ConnectionSupervisor, SupervisorState, acquire

# Errors
from pg_snapshot.errors import (
    CatalogAccessError,
    CatalogQueryError,
    ConnectionFailure,
    PermissionDenied,
    SinkWriteError,
    SnapshotError,
)

# Serialization
from pg_snapshot.dump import dump_database, run_dump
from pg_snapshot.roles.serializer import RoleSerializer
from pg_snapshot.schema.encoder import Cell, encode
from pg_snapshot.schema.introspector import CatalogReader
from pg_snapshot.schema.serializer import SchemaSerializer

# Sinks
from pg_snapshot.sink import ConsoleSink, FileSink, MemorySink, StatementSink

__all__ = [
    # Config
    "ConnectionConfig",
    # Connection
    "ConnectionSupervisor",
    "SupervisorState",
    "acquire",
    # Errors
    "SnapshotError",
    "ConnectionFailure",
    "CatalogQueryError",
    "PermissionDenied",
    "CatalogAccessError",
    "SinkWriteError",
    # Serialization
    "CatalogReader",
    "SchemaSerializer",
    "RoleSerializer",
    "Cell",
    "encode",
    "dump_database",
    "run_dump",
    # Sinks
    "StatementSink",
    "ConsoleSink",
    "FileSink",
    "MemorySink",
]
