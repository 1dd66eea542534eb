"""Command line entry point for pg-snapshot.

Usage:
    pg-snapshot -H localhost -d shop -u backup -p secret
    pg-snapshot -H db.internal -P 6543 -d shop -u backup -o shop.sql
    pg-snapshot --profile prod -o shop.sql
    PG_SNAPSHOT_PROFILE=prod pg-snapshot --config ops/pg-snapshot.toml

Exit codes:
    0 - dump completed
    1 - connection, permission, query, or output failure
    2 - invalid arguments (argparse)
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

from rich.console import Console

from pg_snapshot.config.loader import (
    DEFAULT_CONFIG_FILE,
    PROFILE_ENV,
    ProfileNotFoundError,
    load_dump_config,
    resolve_config,
)
from pg_snapshot.config.models import ConnectionConfig, DumpConfig
from pg_snapshot.dump import run_dump
from pg_snapshot.errors import ConnectionFailure, SnapshotError
from pg_snapshot.logging_config import configure_logging

# stdout may carry the dump itself
console = Console(stderr=True)


# ============================================================================
# Argument resolution
# ============================================================================


def _load_settings(args: argparse.Namespace) -> DumpConfig:
    """Load the TOML config when present; an absent default file is not an error."""
    path = Path(args.config) if args.config else Path.cwd() / DEFAULT_CONFIG_FILE
    if not path.exists() and not args.config:
        return DumpConfig()
    return load_dump_config(path)


def _connection_from_args(args: argparse.Namespace, settings: DumpConfig) -> ConnectionConfig:
    """Build the connection config from explicit flags or a profile.

    Raises:
        ProfileNotFoundError: If a profile is requested but not defined.
        ValueError: If neither flags nor a profile identify a database.
    """
    if args.host:
        missing = [flag for flag, value in (("--dbname", args.dbname), ("--user", args.user)) if not value]
        if missing:
            raise ValueError(f"Missing required option(s): {', '.join(missing)}")
        return ConnectionConfig(
            host=args.host,
            port=args.port,
            dbname=args.dbname,
            user=args.user,
            password=args.password or os.environ.get("PGPASSWORD"),
        )

    if args.profile or os.environ.get(f"{args.env_prefix}{PROFILE_ENV}"):
        return resolve_config(settings, args.profile, args.env_prefix)

    raise ValueError("Specify --host/--dbname/--user or select a --profile")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pg-snapshot",
        description="Dump PostgreSQL tables, data, users, and roles as SQL statements",
    )
    parser.add_argument("-H", "--host", help="Database host")
    parser.add_argument("-P", "--port", type=int, default=5432, help="Database port (default: 5432)")
    parser.add_argument("-d", "--dbname", help="Database name")
    parser.add_argument("-u", "--user", help="Database user")
    parser.add_argument(
        "-p",
        "--password",
        help="Database password (default: $PGPASSWORD)",
    )
    parser.add_argument("-o", "--output", help="Output file (default: stdout)")
    parser.add_argument(
        "--profile",
        help=f"Profile from the config file (default: ${PROFILE_ENV})",
    )
    parser.add_argument(
        "--config",
        help=f"Path to the TOML config file (default: ./{DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            f"(e.g., --env-prefix APP_ reads APP_{PROFILE_ENV})"
        ),
    )
    parser.add_argument("--schema", help="Schema to dump (default: public)")
    parser.add_argument(
        "--max-attempts",
        type=int,
        help="Connection attempts before giving up (default: 3)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


# ============================================================================
# Main entry point
# ============================================================================


async def _async_dump(args: argparse.Namespace) -> int:
    """Async implementation of the dump command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        settings = _load_settings(args)
        config = _connection_from_args(args, settings)
    except (FileNotFoundError, ProfileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        await run_dump(
            config,
            output=args.output,
            max_attempts=args.max_attempts or settings.max_attempts,
            schema_name=args.schema or settings.schema_name,
        )
    except SnapshotError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        if isinstance(e, ConnectionFailure):
            console.print("[dim]Please check your connection parameters and credentials.[/dim]")
        return 1

    if args.output:
        console.print(
            f"[bold green]v[/bold green] Dump completed and saved to: [cyan]{args.output}[/cyan]"
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)
    return asyncio.run(_async_dump(args))


if __name__ == "__main__":
    sys.exit(main())
