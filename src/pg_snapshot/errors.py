"""Exception taxonomy for snapshot runs.

Fatal errors abort the whole dump and surface to the operator with a
non-zero exit code.  ``PermissionDenied`` is the one local failure: the
serializer that hits it writes a warning comment and moves on.

Usage:
    from pg_snapshot.errors import PermissionDenied, SnapshotError
"""


class SnapshotError(Exception):
    """Base class for all errors raised by pg-snapshot."""

    pass


class ConnectionFailure(SnapshotError):
    """Raised when no session could be established within the allowed attempts.

    Attributes:
        attempts: Number of connection attempts made.
    """

    def __init__(self, message: str, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class CatalogQueryError(SnapshotError):
    """Raised when a catalog query fails.

    Attributes:
        sql: The statement that failed (whitespace-collapsed).
        sqlstate: Five-character SQLSTATE reported by the server, if any.
    """

    def __init__(self, message: str, sql: str = "", sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sql = " ".join(sql.split())
        self.sqlstate = sqlstate


class PermissionDenied(CatalogQueryError):
    """Raised when the querying principal lacks privilege (SQLSTATE 42501)."""

    pass


class CatalogAccessError(SnapshotError):
    """Raised when the baseline catalog capability probe fails."""

    pass


class SinkWriteError(SnapshotError):
    """Raised when a statement line cannot be written to its sink."""

    pass
