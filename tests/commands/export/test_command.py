import io
from types import SimpleNamespace

import pytest
import typer

from tsexport.commands.export.command import ExportCommand
from tsexport.commands.export.config import InvalidFormat, MissingRequiredField
from tsexport.formats import Writer, WriterError
from tsexport.models import Record
from tsexport.store import Store, StoreError


class SpyStore(Store):
    def __init__(self, open_error=None):
        self.open_calls = []
        self.close_calls = 0
        self.open_error = open_error

    def open(self, config_path):
        self.open_calls.append(config_path)
        if self.open_error:
            raise self.open_error

    def close(self):
        self.close_calls += 1

    def database(self, name):
        raise StoreError("not used")

    def shard_groups(self, database, retention_policy):
        return []

    def read_shard(self, database, retention_policy, shard_id):
        return iter(())


class FakeSession:
    def __init__(self, records, fail_after=None, close_error=None):
        self.records = records
        self.fail_after = fail_after
        self.close_error = close_error
        self.retention_policy = "autogen"
        self.print_calls = 0
        self.close_calls = 0
        self.events = []

    def print_plan(self, stream):
        self.print_calls += 1
        stream.write("PLAN\n")

    def write_to(self, writer):
        for i, record in enumerate(self.records):
            if self.fail_after is not None and i == self.fail_after:
                raise RuntimeError("stream broke")
            writer.write(record)

    def close(self):
        self.close_calls += 1
        self.events.append("session.close")
        if self.close_error:
            raise self.close_error


class RecordingWriter(Writer):
    def __init__(self, events, close_error=None):
        super().__init__()
        self.received = []
        self.close_calls = 0
        self.events = events
        self.close_error = close_error

    def write(self, record):
        self.received.append(record)
        self.records_written += 1

    def close(self):
        self.close_calls += 1
        self.events.append("writer.close")
        if self.close_error:
            raise self.close_error


@pytest.fixture
def records():
    return [
        Record("cpu", (), {"v": 1}, 1),
        Record("cpu", (), {"v": 2}, 2),
        Record("cpu", (), {"v": 3}, 3),
    ]


@pytest.fixture
def harness(mocker, records):
    """Wire an ExportCommand to spy collaborators."""
    store = SpyStore()
    session = FakeSession(records)
    writer = RecordingWriter(session.events)
    stdout = io.StringIO()

    cmd = ExportCommand(store, stdout=stdout, stderr=io.StringIO())
    cmd.open_exporter = mocker.Mock(return_value=session)
    select = mocker.patch(
        "tsexport.commands.export.command.select_writer", return_value=writer
    )
    profiler_cls = mocker.patch(
        "tsexport.commands.export.command.ProfilerController"
    )
    profiler = profiler_cls.return_value
    profiler.stop.side_effect = lambda: session.events.append("profiler.stop")

    return SimpleNamespace(
        cmd=cmd,
        store=store,
        session=session,
        writer=writer,
        stdout=stdout,
        select=select,
        profiler_cls=profiler_cls,
        profiler=profiler,
    )


def test_missing_database_touches_nothing(harness):
    with pytest.raises(MissingRequiredField):
        harness.cmd.run(["-format", "line"])

    assert harness.store.open_calls == []
    harness.cmd.open_exporter.assert_not_called()
    harness.profiler_cls.assert_not_called()


def test_invalid_format_touches_nothing(harness):
    with pytest.raises(InvalidFormat):
        harness.cmd.run(["-database", "db0", "-format", "csv"])

    assert harness.store.open_calls == []
    harness.cmd.open_exporter.assert_not_called()


def test_print_only_prints_plan_once(harness):
    harness.cmd.run(["-database", "db0", "-print"])

    assert harness.session.print_calls == 1
    assert harness.stdout.getvalue() == "PLAN\n"
    harness.select.assert_not_called()
    harness.profiler_cls.assert_not_called()
    assert harness.session.close_calls == 1


def test_export_streams_records_in_order(harness, records):
    harness.cmd.run(["-database", "db0", "-config", "store.json"])

    assert harness.store.open_calls == ["store.json"]
    assert harness.writer.received == records
    assert harness.writer.close_calls == 1
    assert harness.session.close_calls == 1
    assert harness.session.print_calls == 0


def test_export_starts_and_stops_profiler(harness):
    harness.cmd.run(["-database", "db0", "-cpuprofile", "cpu.prof"])

    harness.profiler.prepare.assert_called_once()
    harness.profiler.start.assert_called_once()
    assert harness.profiler.stop.called
    config = harness.profiler.prepare.call_args[0][0]
    assert config.cpu_profile == "cpu.prof"


def test_release_order_is_reverse_of_acquisition(harness):
    harness.cmd.run(["-database", "db0"])

    events = harness.session.events
    assert events.index("writer.close") < events.index("profiler.stop")
    assert events.index("profiler.stop") < events.index("session.close")


def test_writer_close_error_replaces_success(harness):
    harness.writer.close_error = WriterError("flush failed")

    with pytest.raises(WriterError, match="flush failed"):
        harness.cmd.run(["-database", "db0"])

    assert harness.session.close_calls == 1


def test_writer_close_error_wins_over_stream_error(harness):
    harness.session.fail_after = 1
    harness.writer.close_error = WriterError("flush failed")

    with pytest.raises(WriterError) as exc:
        harness.cmd.run(["-database", "db0"])

    assert isinstance(exc.value.__context__, RuntimeError)


def test_stream_failure_still_closes_everything(harness, records):
    harness.session.fail_after = 1

    with pytest.raises(RuntimeError, match="stream broke"):
        harness.cmd.run(["-database", "db0"])

    assert harness.writer.received == records[:1]
    assert harness.writer.close_calls == 1
    assert harness.session.close_calls == 1
    assert harness.profiler.stop.called


def test_store_open_error_propagates_verbatim(harness):
    failure = StoreError("disk on fire")
    harness.store.open_error = failure

    with pytest.raises(StoreError) as exc:
        harness.cmd.run(["-database", "db0"])

    assert exc.value is failure
    harness.cmd.open_exporter.assert_not_called()
    # The store belongs to the caller
    assert harness.store.close_calls == 0


def test_session_open_error_propagates(harness):
    failure = RuntimeError("no such rp")
    harness.cmd.open_exporter.side_effect = failure

    with pytest.raises(RuntimeError) as exc:
        harness.cmd.run(["-database", "db0"])

    assert exc.value is failure
    harness.select.assert_not_called()
    assert harness.profiler.stop.called


def test_session_close_error_is_surfaced(harness):
    harness.session.close_error = RuntimeError("close failed")

    with pytest.raises(RuntimeError, match="close failed"):
        harness.cmd.run(["-database", "db0"])


def test_uncreatable_cpu_profile_exits_before_store_open(tmp_path):
    store = SpyStore()
    stderr = io.StringIO()
    cmd = ExportCommand(store, stdout=io.StringIO(), stderr=stderr)
    bad_path = tmp_path / "no" / "such" / "dir" / "x.prof"

    with pytest.raises(typer.Exit) as exc:
        cmd.run(["-database", "db0", "-cpuprofile", str(bad_path)])

    assert exc.value.exit_code == 1
    assert stderr.getvalue().startswith("cpuprofile: ")
    assert store.open_calls == []


def test_export_with_local_store_line_format(store_config):
    from tsexport.store import LocalStore

    store = LocalStore()
    stdout = io.StringIO()
    try:
        ExportCommand(store, stdout=stdout).run(
            ["-database", "db0", "-config", str(store_config), "-duration", "24h"]
        )
    finally:
        store.close()

    lines = stdout.getvalue().splitlines()
    assert lines == [
        "cpu,host=a usage=0.5 3600000000000",
        "cpu,host=a usage=1.0 7200000000000",
        "cpu,host=b usage=3.0 3600000000000",
        "cpu,host=a idle=96.0,usage=4.0 90000000000000",
    ]


def test_print_plan_with_local_store(store_config):
    from tsexport.store import LocalStore

    store = LocalStore()
    stdout = io.StringIO()
    try:
        ExportCommand(store, stdout=stdout).run(
            ["-database", "db0", "-config", str(store_config), "-print"]
        )
    finally:
        store.close()

    output = stdout.getvalue()
    assert output.startswith("Source data from: 1970-01-01T00:00:00Z -> 1970-01-03T00:00:00Z")
    assert "Converting source from 2 shard group(s) to 1 shard group(s)" in output
