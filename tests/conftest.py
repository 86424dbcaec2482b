# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared fixtures for all tests.
#
# FIXTURES:
# ---------
# - make_db        → build a metering SQLite snapshot under tmp_path
# - sink / sink_factory → in-memory sink recording every batch
# - config         → AppConfig with defaults, independent of the env
#
# ==============================================

import sqlite3
import threading
from pathlib import Path

import pytest

from metering_ingest.config import AppConfig

# 2023-11-14T22:13:20Z
T0 = 1_700_000_000

DEVICES = [
    # dev_dbid, dev_ext_name, dev_server_name, dev_target_name, dev_type
    (1, "volume-1", "server-a", "target-a", 1),
    (2, "vpsa-system", None, None, 5),
    (3, "zcache-1", None, None, 7),
    (4, "rstjob-1", 0, 0, 1),
]

IO_BUCKETS = [
    # dev_type, bucket, bucket_name
    (1, 0, "all"),
    (1, 1, "read"),
]


def _io_table(latency_unit: str) -> str:
    return f"""
CREATE TABLE metering_info (
    dev_dbid integer,
    bucket integer,
    interval integer,
    num_ios integer,
    bytes integer,
    total_resp_tm_{latency_unit} integer,
    active_ios integer,
    io_errors integer,
    max_cmd integer,
    max_resp_tm_{latency_unit} integer,
    time integer
)"""


SYS_TABLE = """
CREATE TABLE metering_sys_info (
    dev_dbid integer,
    interval integer,
    cpu_user integer,
    cpu_system integer,
    cpu_iowait integer,
    cpu_idle integer,
    mem_alloc integer,
    time integer
)"""

ZCACHE_TABLE = """
CREATE TABLE metering_zcache_info (
    dev_dbid integer,
    interval integer,
    data_dirty integer,
    meta_dirty integer,
    data_clean integer,
    meta_clean integer,
    data_cb_util integer,
    meta_cb_util integer,
    data_read_hit integer,
    meta_read_hit integer,
    data_write_hit integer,
    meta_write_hit integer,
    time integer
)"""


def io_row(dev_dbid=1, bucket=0, interval=5, num_ios=50, bytes_=4096, total_resp=1000,
           active_ios=2, io_errors=0, max_cmd=8, max_resp=40, time=T0):
    return (dev_dbid, bucket, interval, num_ios, bytes_, total_resp,
            active_ios, io_errors, max_cmd, max_resp, time)


def sys_row(interval=5, cpu_user=25, cpu_system=25, cpu_iowait=0, cpu_idle=50,
            mem_alloc=1024, time=T0):
    return (2, interval, cpu_user, cpu_system, cpu_iowait, cpu_idle, mem_alloc, time)


def zcache_row(interval=5, time=T0):
    return (3, interval, 10, 11, 12, 13, 14, 15, 16, 17, 18, 19, time)


def build_metering_db(path: Path, latency_unit="ms", io_rows=(), sys_rows=(), zcache_rows=()) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(str(path))
    try:
        # Name columns left untyped so integer 0 survives as an integer
        con.execute(
            "CREATE TABLE devices (dev_dbid integer, dev_ext_name varchar,"
            " dev_server_name, dev_target_name, dev_type integer)"
        )
        con.executemany("INSERT INTO devices VALUES (?, ?, ?, ?, ?)", DEVICES)
        con.execute("CREATE TABLE io_buckets (dev_type integer, bucket integer, bucket_name varchar)")
        con.executemany("INSERT INTO io_buckets VALUES (?, ?, ?)", IO_BUCKETS)

        con.execute(_io_table(latency_unit))
        con.execute(SYS_TABLE)
        con.execute(ZCACHE_TABLE)
        con.executemany(f"INSERT INTO metering_info VALUES ({', '.join('?' * 11)})", list(io_rows))
        con.executemany(f"INSERT INTO metering_sys_info VALUES ({', '.join('?' * 8)})", list(sys_rows))
        con.executemany(f"INSERT INTO metering_zcache_info VALUES ({', '.join('?' * 13)})", list(zcache_rows))
        con.commit()
    finally:
        con.close()
    return path


class RecordingSink:
    """Thread-safe in-memory sink; remembers every batch it was handed."""

    def __init__(self, fail_on_write: Exception = None):
        self.batches = []
        self.closed = False
        self.fail_on_write = fail_on_write
        self._lock = threading.Lock()

    def write(self, points):
        if self.fail_on_write is not None and points:
            raise self.fail_on_write
        with self._lock:
            self.batches.append(list(points))

    def close(self):
        self.closed = True

    @property
    def points(self):
        return [point for batch in self.batches for point in batch]

    @property
    def batch_sizes(self):
        return [len(batch) for batch in self.batches]


@pytest.fixture
def make_db(tmp_path):
    """Build a metering database at tmp_path / relative path."""
    def _make(relative="vpsa-1/metering.db", **kwargs) -> Path:
        return build_metering_db(tmp_path / relative, **kwargs)
    return _make


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def config():
    return AppConfig()
