# ==============================================
# Tests for IngestAndClassify
# ==============================================
#
# Per-file orchestration against real SQLite snapshots and an
# in-memory sink.
# ==============================================

import sqlite3
import threading
from datetime import datetime, timezone

import pytest

from conftest import T0, RecordingSink, io_row, sys_row, zcache_row
from metering_ingest.analysis import SOURCE_TAG
from metering_ingest.discovery import SourceFile
from metering_ingest.errors import QueryError, RunCancelled, SchemaError, WriteError
from metering_ingest.ingest_and_classify import IngestAndClassify


def ingestor(path, config, sink, cancel_event=None):
    source = SourceFile(path=str(path), source_id=path.parent.name)
    return IngestAndClassify(source, config=config, sink_factory=lambda: sink, cancel_event=cancel_event)


class SystemRejectingSink(RecordingSink):
    """Rejects system points; other writes wait until the run is cancelled."""

    def __init__(self, cancel_event):
        super().__init__()
        self.cancel_event = cancel_event

    def write(self, points):
        if any(p.measurement == "system" for p in points):
            raise WriteError("system points rejected")
        self.cancel_event.wait(timeout=5)
        super().write(points)


class TestIngestFile:
    def test_all_tables_ingested(self, make_db, config, sink):
        path = make_db(
            io_rows=[io_row(time=T0 + i) for i in range(3)],
            sys_rows=[sys_row(time=T0 + i) for i in range(2)],
            zcache_rows=[zcache_row()],
        )

        result = ingestor(path, config, sink).run()

        assert [t.table for t in result.tables] == [
            "metering_info", "metering_sys_info", "metering_zcache_info"
        ]
        assert result.points_written == 6
        assert sorted(p.measurement for p in sink.points) == ["io"] * 3 + ["system"] * 2 + ["zcache"]
        assert all(p.tags[SOURCE_TAG] == "vpsa-1" for p in sink.points)
        assert sink.closed

    def test_seeds_reference_table(self, make_db, config, sink):
        path = make_db(io_rows=[io_row()])
        ingestor(path, config, sink).run()

        con = sqlite3.connect(str(path))
        (count,) = con.execute("SELECT count(*) FROM dev_types").fetchone()
        con.close()
        assert count == 14

    def test_empty_tables_are_skipped(self, make_db, config, sink):
        path = make_db(zcache_rows=[zcache_row()])
        result = ingestor(path, config, sink).run()

        assert [t.table for t in result.tables] == ["metering_zcache_info"]
        assert result.source.tables == ["metering_zcache_info"]

    def test_io_points(self, make_db, config, sink):
        path = make_db(io_rows=[io_row(num_ios=50, interval=5, total_resp=1000)])
        ingestor(path, config, sink).run()

        (point,) = sink.points
        assert point.measurement == "io"
        assert point.tags["dev_ext_name"] == "volume-1"
        assert point.tags["dev_server_name"] == "server-a"
        assert point.tags["bucket_name"] == "all"
        assert point.fields["iops"] == pytest.approx(10.0)
        assert point.fields["latency_ms"] == pytest.approx(20.0)
        assert "interval" not in point.fields
        assert "time" not in point.fields

    def test_zero_name_columns_stay_tags(self, make_db, config, sink):
        path = make_db(io_rows=[io_row(dev_dbid=4)])
        ingestor(path, config, sink).run()

        (point,) = sink.points
        assert point.tags["dev_server_name"] == "0"
        assert point.tags["dev_target_name"] == "0"
        assert "dev_server_name" not in point.fields

    def test_rows_without_fields_are_dropped(self, make_db, config, sink):
        empty = (1, 0, None, None, None, None, None, None, None, None, T0 + 1)
        path = make_db(io_rows=[io_row(time=T0), empty])

        result = ingestor(path, config, sink).run()

        (table,) = result.tables
        assert table.rows_read == 2
        assert table.rows_dropped == 1
        assert table.points_written == 1
        assert len(sink.points) == 1

    def test_batches_of_ten_thousand(self, make_db, config, sink):
        path = make_db(io_rows=[io_row(time=T0 + i) for i in range(25_000)])

        result = ingestor(path, config, sink).run()

        assert sink.batch_sizes == [10_000, 10_000, 5_000]
        assert result.tables[0].flushes == 3
        times = [p.timestamp for p in sink.points]
        assert times == sorted(times)

    def test_interval_is_captured(self, make_db, config, sink):
        path = make_db(io_rows=[io_row(interval=30)])
        result = ingestor(path, config, sink).run()

        assert result.tables[0].interval == 30

    def test_microsecond_file(self, make_db, config, sink):
        path = make_db(latency_unit="us", io_rows=[io_row(num_ios=4, total_resp=10_000)])
        result = ingestor(path, config, sink).run()

        assert result.tables[0].query_name == "metering_info_us"
        assert sink.points[0].fields["latency_ms"] == pytest.approx(2.5)

    def test_millisecond_time_column(self, make_db, config, sink):
        path = make_db(io_rows=[io_row(time=T0 * 1000)])
        ingestor(path, config, sink).run()

        (point,) = sink.points
        assert point.timestamp == datetime.fromtimestamp(T0, tz=timezone.utc)


class TestErrors:
    def test_table_error_fails_the_file(self, make_db, config, sink):
        path = make_db(io_rows=[io_row()], sys_rows=[sys_row()])
        con = sqlite3.connect(str(path))
        # Drop the join target of the IO query only
        con.execute("DROP TABLE io_buckets")
        con.commit()
        con.close()

        with pytest.raises(QueryError):
            ingestor(path, config, sink).run()
        assert sink.closed

    def test_write_error_propagates(self, make_db, config):
        sink = RecordingSink(fail_on_write=WriteError("rejected"))
        path = make_db(io_rows=[io_row()])

        with pytest.raises(WriteError):
            ingestor(path, config, sink).run()
        assert sink.closed

    def test_out_of_range_time_fails_the_file(self, make_db, config, sink):
        path = make_db(io_rows=[io_row(time=10 ** 18)])

        with pytest.raises(SchemaError):
            ingestor(path, config, sink).run()
        assert sink.points == []

    def test_first_error_cancels_siblings(self, make_db, config):
        sink = RecordingSink(fail_on_write=WriteError("rejected"))
        cancel = threading.Event()
        path = make_db(io_rows=[io_row()], sys_rows=[sys_row()], zcache_rows=[zcache_row()])

        with pytest.raises(WriteError):
            ingestor(path, config, sink, cancel_event=cancel).run()
        assert cancel.is_set()

    def test_running_sibling_stops_early(self, make_db, config):
        cancel = threading.Event()
        sink = SystemRejectingSink(cancel)
        config.batch.batch_size = 1
        path = make_db(
            io_rows=[io_row(time=T0 + i) for i in range(200)],
            sys_rows=[sys_row()],
        )

        with pytest.raises(WriteError):
            ingestor(path, config, sink, cancel_event=cancel).run()

        assert cancel.is_set()
        assert len(sink.points) < 200
        assert all(p.measurement == "io" for p in sink.points)
        assert sink.closed

    def test_already_cancelled(self, make_db, config, sink):
        cancel = threading.Event()
        cancel.set()
        path = make_db(io_rows=[io_row()])

        with pytest.raises(RunCancelled):
            ingestor(path, config, sink, cancel_event=cancel).run()
        assert sink.batches == []
