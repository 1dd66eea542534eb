"""Statement sinks: ordered line output to a file or a console stream.

Serializers only see the ``StatementSink`` protocol and never know where
their lines end up.  A sink is owned by one serializer at a time.

Usage:
    from pg_snapshot.sink import open_sink

    with open_sink("dump.sql") as sink:
        sink.write_line("SET client_encoding = 'UTF8';")
"""

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol, TextIO

from pg_snapshot.errors import SinkWriteError


class StatementSink(Protocol):
    """Receives statement and comment lines in emission order."""

    def write_line(self, line: str) -> None:
        """Write ``line`` followed by a newline.

        Raises:
            SinkWriteError: If the underlying target rejects the write.
        """
        ...


class StreamSink:
    """Sink writing to an already-open text stream."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def write_line(self, line: str) -> None:
        try:
            self._stream.write(f"{line}\n")
        except OSError as e:
            raise SinkWriteError(f"Failed to write dump output: {e}") from e


class ConsoleSink(StreamSink):
    """Sink writing to standard output (or another console stream)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__(stream or sys.stdout)


class FileSink(StreamSink):
    """Sink writing to a named file.

    The file is created (truncated) on construction.  Nothing is rolled
    back on failure: lines already written stay on disk.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        try:
            handle = open(self.path, "w", encoding="utf-8")
        except OSError as e:
            raise SinkWriteError(f"Cannot open output file {self.path}: {e}") from e
        super().__init__(handle)
        self._handle = handle

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()


class MemorySink:
    """Sink collecting lines in a list (for previews and tests)."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def write_line(self, line: str) -> None:
        self.lines.append(line)

    def getvalue(self) -> str:
        """Return the collected output as it would appear in a file."""
        return "".join(f"{line}\n" for line in self.lines)


@contextmanager
def open_sink(path: str | Path | None = None) -> Iterator[StatementSink]:
    """Yield a ``FileSink`` for ``path``, or a ``ConsoleSink`` when ``path`` is None."""
    if path is None:
        yield ConsoleSink()
        return

    sink = FileSink(path)
    try:
        yield sink
    finally:
        sink.close()
