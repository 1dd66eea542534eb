"""Dump orchestration: connect, probe, serialize schema then roles.

Usage:
    from pg_snapshot.dump import run_dump

    await run_dump(config, output="shop.sql", max_attempts=3)
"""

from pathlib import Path

from pg_snapshot.adapters.base import CatalogSession
from pg_snapshot.config.models import ConnectionConfig
from pg_snapshot.connection import Connector, Sleeper, acquire
from pg_snapshot.errors import CatalogAccessError, CatalogQueryError
from pg_snapshot.logging_config import get_logger
from pg_snapshot.roles.serializer import RoleSerializer
from pg_snapshot.schema.introspector import CatalogReader
from pg_snapshot.schema.serializer import SchemaSerializer
from pg_snapshot.sink import StatementSink, open_sink

logger = get_logger(__name__)


async def check_catalog_access(reader: CatalogReader) -> None:
    """Verify the session can read basic catalog metadata.

    Raises:
        CatalogAccessError: If the probe query fails for any reason.
    """
    try:
        await reader.check_access()
    except CatalogQueryError as e:
        raise CatalogAccessError(
            f"Cannot query database schema. Check your permissions. ({e})"
        ) from e


def write_header(sink: StatementSink, config: ConnectionConfig) -> None:
    """Two comment lines naming the source database and host, then a blank line."""
    sink.write_line(f"-- Database Dump for: {config.dbname}")
    sink.write_line(f"-- Host: {config.host}:{config.port}")
    sink.write_line("")


async def dump_database(reader: CatalogReader, sink: StatementSink) -> None:
    """Run the schema serializer, then the role serializer, into one sink."""
    await SchemaSerializer(reader).serialize(sink)
    await RoleSerializer(reader).serialize(sink)


async def dump_session(
    session: CatalogSession,
    sink: StatementSink,
    config: ConnectionConfig,
    schema_name: str = "public",
) -> None:
    """Write header and body for an already-open, already-probed session."""
    write_header(sink, config)
    await dump_database(CatalogReader(session, schema_name=schema_name), sink)


async def run_dump(
    config: ConnectionConfig,
    output: str | Path | None = None,
    max_attempts: int = 3,
    schema_name: str = "public",
    connector: Connector | None = None,
    sleep: Sleeper | None = None,
) -> None:
    """Dump one database to a file, or to stdout when ``output`` is None.

    The catalog probe runs before the output file is created, so a
    principal without catalog access leaves no file behind.  Later
    failures leave a partially written file in place.

    Raises:
        ConnectionFailure: If no session could be established.
        CatalogAccessError: If the baseline catalog probe fails.
        CatalogQueryError: If a catalog query fails for a non-privilege reason.
        SinkWriteError: If the output cannot be written.
    """
    session = await acquire(config, max_attempts, connector=connector, sleep=sleep)
    try:
        await check_catalog_access(CatalogReader(session, schema_name=schema_name))
        with open_sink(output) as sink:
            await dump_session(session, sink, config, schema_name)
    finally:
        await session.close()

    if output is not None:
        logger.info("Dump of %s written to %s", config.dbname, output)
