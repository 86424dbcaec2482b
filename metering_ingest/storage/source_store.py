# ==============================================
# SourceStore
# ==============================================
#
# PURPOSE:
#   Manages one SQLite metering snapshot: seeds the device-type
#   lookup table, finds which metering tables hold data, picks the
#   query variant matching the schema generation, and streams the
#   query results as RawRows.
#
# CLASS: SourceStore
# ------------------
#   Stateful — holds one sqlite3 connection. Connections are never
#   shared between threads: every table unit opens its own store.
#
#   Constructor:
#   ------------
#   - __init__(path: str)
#       Store the path. Don't connect yet.
#
#   Methods:
#   --------
#   - connect() -> None
#   - disconnect() -> None
#
#   - ensure_device_types() -> None
#       Create and fill dev_types in one transaction if it is missing.
#       Any failure rolls back and raises SchemaError. No-op when present.
#
#   - select_populated_tables() -> list[str]
#       Known metering tables with count(*) > 0, in declared order.
#       Raises QueryError when a count fails.
#
#   - detect_query_name(table: str) -> str
#       metering_info → metering_info_ms / metering_info_us depending on
#       whether the stored definition has a millisecond latency column.
#
#   - count_rows(table: str) -> int
#
#   - iter_rows(query_name: str) -> Iterator[RawRow]
#       Execute a fixed query and yield tagged rows one at a time.
#
#   Context Manager:
#   ----------------
#   - __enter__ / __exit__ for `with SourceStore(path) as store:` usage.
#
# ==============================================

import logging
import os
import sqlite3
from typing import Iterator, Optional

from metering_ingest.errors import NotFoundError, QueryError, SchemaError
from metering_ingest.normalization import RawRow, RecordNormalizer
from .queries import (
    DEV_TYPES_TABLE,
    DEVICE_TYPES,
    IO_QUERY_MS,
    IO_QUERY_US,
    IO_TABLE,
    METERING_TABLES,
    MS_LATENCY_COLUMN,
    QUERIES,
)

logger = logging.getLogger(__name__)


class SourceStore:
    def __init__(self, path: str, normalizer: Optional[RecordNormalizer] = None):
        self.path = path
        self.normalizer = normalizer or RecordNormalizer()
        self.connection: Optional[sqlite3.Connection] = None

    def connect(self) -> None:
        # sqlite3.connect would silently create a missing file
        if not os.path.isfile(self.path):
            raise NotFoundError(f"Metering database does not exist: {self.path}")
        try:
            # Autocommit mode; transactions are opened explicitly
            self.connection = sqlite3.connect(self.path, isolation_level=None)
        except sqlite3.Error as e:
            raise QueryError(f"Could not open metering database {self.path}: {e}") from e
        logger.debug("opened metering database: %s", self.path)

    def disconnect(self) -> None:
        if self.connection:
            self.connection.close()
            self.connection = None

    def _require_connection(self) -> sqlite3.Connection:
        if self.connection is None:
            raise QueryError(f"Not connected to metering database: {self.path}")
        return self.connection

    def ensure_device_types(self) -> None:
        conn = self._require_connection()
        try:
            row = conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
                (DEV_TYPES_TABLE,)
            ).fetchone()
        except sqlite3.Error as e:
            raise SchemaError(f"Could not inspect schema of {self.path}: {e}") from e

        if row is not None:
            logger.debug("table '%s' already exists in metering db: %s", DEV_TYPES_TABLE, self.path)
            return

        logger.debug("table '%s' needs to be created in metering db: %s", DEV_TYPES_TABLE, self.path)
        try:
            conn.execute("BEGIN")
            conn.execute(f"CREATE TABLE {DEV_TYPES_TABLE} (dev_type integer, dev_name varchar)")
            conn.executemany(
                f"INSERT INTO {DEV_TYPES_TABLE} (dev_type, dev_name) VALUES (?, ?)",
                DEVICE_TYPES.items()
            )
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise SchemaError(
                f"Could not seed '{DEV_TYPES_TABLE}' in metering db {self.path}: {e}"
            ) from e

    def count_rows(self, table: str) -> int:
        conn = self._require_connection()
        try:
            (count,) = conn.execute(f"SELECT count(*) FROM {table}").fetchone()
        except sqlite3.Error as e:
            raise QueryError(f"Count of table {table} in {self.path} failed: {e}") from e
        return int(count)

    def select_populated_tables(self) -> list[str]:
        tables = []
        for name in METERING_TABLES:
            count = self.count_rows(name)
            logger.debug("count for table %s: %d", name, count)
            if count > 0:
                logger.debug("metering info in db %s found in table: %s", self.path, name)
                tables.append(name)
        return tables

    def detect_query_name(self, table: str) -> str:
        if table != IO_TABLE:
            if table not in QUERIES:
                raise SchemaError(f"No metering query known for table: {table}")
            return table

        conn = self._require_connection()
        try:
            (matches,) = conn.execute(
                "SELECT count(*) FROM sqlite_master WHERE name = ? AND sql LIKE ?",
                (IO_TABLE, f"%{MS_LATENCY_COLUMN}%")
            ).fetchone()
        except sqlite3.Error as e:
            raise QueryError(f"Schema check of {table} in {self.path} failed: {e}") from e

        # Older snapshots store response times in microseconds
        return IO_QUERY_MS if matches else IO_QUERY_US

    def iter_rows(self, query_name: str) -> Iterator[RawRow]:
        conn = self._require_connection()
        query = QUERIES.get(query_name)
        if query is None:
            raise SchemaError(f"Unknown metering query: {query_name}")

        logger.debug("executing metering query: %s", query)
        try:
            cursor = conn.execute(query)
        except sqlite3.Error as e:
            raise QueryError(f"Query {query_name} failed in {self.path}: {e}") from e

        columns = [description[0] for description in cursor.description]
        try:
            while True:
                try:
                    values = cursor.fetchone()
                except sqlite3.Error as e:
                    raise QueryError(f"Reading {query_name} from {self.path} failed: {e}") from e
                if values is None:
                    break
                yield self.normalizer.normalize(columns, values)
        finally:
            cursor.close()

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
        return False
