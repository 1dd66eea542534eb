"""Tests for statement sinks."""

import io
from pathlib import Path

import pytest

from pg_snapshot.errors import SinkWriteError
from pg_snapshot.sink import ConsoleSink, FileSink, MemorySink, StreamSink, open_sink


class TestSinks:
    """File, console, and memory sinks write the same lines in order."""

    def test_file_sink(self, tmp_path: Path) -> None:
        path = tmp_path / "dump.sql"
        with open_sink(path) as sink:
            sink.write_line("SELECT 1;")
            sink.write_line("")
            sink.write_line("-- done")
        assert path.read_text() == "SELECT 1;\n\n-- done\n"

    def test_console_sink_defaults_to_stdout(self, capsys) -> None:
        with open_sink(None) as sink:
            assert isinstance(sink, ConsoleSink)
            sink.write_line("SELECT 1;")
        assert capsys.readouterr().out == "SELECT 1;\n"

    def test_memory_sink_matches_file_output(self, tmp_path: Path) -> None:
        memory = MemorySink()
        path = tmp_path / "dump.sql"
        with open_sink(path) as file_sink:
            for sink in (memory, file_sink):
                sink.write_line("a")
                sink.write_line("b")
        assert memory.getvalue() == path.read_text()

    def test_unopenable_file(self, tmp_path: Path) -> None:
        with pytest.raises(SinkWriteError, match="Cannot open output file"):
            FileSink(tmp_path / "missing-dir" / "dump.sql")

    def test_write_failure_is_wrapped(self) -> None:
        class BrokenStream(io.StringIO):
            def write(self, s: str) -> int:
                raise OSError("disk full")

        with pytest.raises(SinkWriteError, match="disk full"):
            StreamSink(BrokenStream()).write_line("x")

    def test_partial_file_is_kept(self, tmp_path: Path) -> None:
        """Lines written before a failure stay on disk."""
        path = tmp_path / "dump.sql"
        with pytest.raises(RuntimeError):
            with open_sink(path) as sink:
                sink.write_line("CREATE TABLE t ();")
                raise RuntimeError("boom")
        assert path.read_text() == "CREATE TABLE t ();\n"
