# ==============================================
# IngestAndClassify — Per-file Orchestrator
# ==============================================
#
# PURPOSE:
#   Ingests ONE metering snapshot. Seeds the reference table,
#   finds the populated metering tables, then fans out one unit
#   per table onto a bounded thread pool.
#
# HOW IT CONNECTS THE 3 TOPICS (per table unit):
#
#   ┌──────────────────────────────────────────────────────────┐
#   │                   IngestAndClassify                      │
#   │                                                          │
#   │  ┌──────────────────────────────────────────────┐        │
#   │  │ TOPIC 3: SOURCE STORE                        │        │
#   │  │  detect_query_name → iter_rows               │        │
#   │  └──────────────┬───────────────────────────────┘        │
#   │                 │ raw rows                               │
#   │                 ▼                                        │
#   │  ┌──────────────────────────────────────────────┐        │
#   │  │ TOPIC 1: NORMALIZATION                       │        │
#   │  │  RecordNormalizer → RawRow (value kinds)     │        │
#   │  └──────────────┬───────────────────────────────┘        │
#   │                 │ tagged rows                            │
#   │                 ▼                                        │
#   │  ┌──────────────────────────────────────────────┐        │
#   │  │ TOPIC 2: CLASSIFICATION                      │        │
#   │  │  Classifier → ClassifiedPoint                │        │
#   │  └──────────────┬───────────────────────────────┘        │
#   │                 │ points                                 │
#   │                 ▼                                        │
#   │       [ PointBatcher ] → InfluxSink                      │
#   └──────────────────────────────────────────────────────────┘
#
# CANCELLATION:
#   A single threading.Event is shared by every unit of a run.
#   The first failing table sets it; siblings stop at their next
#   row or flush with RunCancelled and queued units never start.
#
# ==============================================

import logging
import threading
from concurrent.futures import CancelledError, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Optional

from metering_ingest.analysis import Classifier
from metering_ingest.config import AppConfig, get_config
from metering_ingest.discovery import SourceFile
from metering_ingest.errors import RunCancelled
from metering_ingest.storage import InfluxSink, PointBatcher, PointSink, SourceStore

logger = logging.getLogger(__name__)

SinkFactory = Callable[[], PointSink]


@dataclass
class TableResult:
    table: str
    query_name: str
    rows_read: int = 0
    points_written: int = 0
    rows_dropped: int = 0
    flushes: int = 0
    interval: Optional[int] = None


@dataclass
class FileResult:
    source: SourceFile
    tables: list[TableResult] = field(default_factory=list)

    @property
    def points_written(self) -> int:
        return sum(table.points_written for table in self.tables)


class IngestAndClassify:
    """
    Ingests every populated metering table of one SQLite snapshot.

    The file owns one sink, shared by its own table units, and one
    connection for seeding and table selection. Each table unit opens
    its own connection.
    """

    def __init__(
        self,
        source: SourceFile,
        config: Optional[AppConfig] = None,
        sink_factory: Optional[SinkFactory] = None,
        cancel_event: Optional[threading.Event] = None,
        classifier: Optional[Classifier] = None
    ):
        self._config = config or get_config()
        self._source = source
        self._sink_factory = sink_factory or (lambda: InfluxSink(self._config.influx))
        self._cancel = cancel_event or threading.Event()
        self._classifier = classifier or Classifier()

    def run(self) -> FileResult:
        """
        Seed, select and ingest all tables of the file.

        Raises:
            SchemaError / QueryError / WriteError from the first failing
            table, or RunCancelled when another unit failed first.
        """
        self._check_cancelled(f"database {self._source.path}")

        with SourceStore(self._source.path) as store:
            store.ensure_device_types()
            self._source.tables = store.select_populated_tables()

        logger.debug("found metering tables in db %s: %s", self._source.path, self._source.tables)

        sink = self._sink_factory()
        try:
            tables = self._ingest_tables(sink)
        finally:
            sink.close()

        return FileResult(source=self._source, tables=tables)

    def _ingest_tables(self, sink: PointSink) -> list[TableResult]:
        tables = self._source.tables
        if not tables:
            return []

        results: dict[str, TableResult] = {}
        first_error: Optional[BaseException] = None
        workers = min(self._config.concurrency.max_table_workers, len(tables))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="metering-table") as executor:
            futures = {
                executor.submit(self.ingest_table, table, sink): table
                for table in tables
            }
            for future in as_completed(futures):
                table = futures[future]
                try:
                    results[table] = future.result()
                    logger.info("processed metering table %s inside db: %s", table, self._source.path)
                except (CancelledError, RunCancelled):
                    logger.debug("table %s in db %s stopped after cancellation", table, self._source.path)
                except Exception as e:
                    logger.debug("hit error in db %s while querying table: %s", self._source.path, table)
                    if first_error is None:
                        first_error = e
                        self._cancel.set()
                        for pending in futures:
                            pending.cancel()

        if first_error is not None:
            raise first_error

        if len(results) < len(tables):
            raise RunCancelled(f"database {self._source.path} cancelled before all tables finished")

        return [results[table] for table in tables]

    def ingest_table(self, table: str, sink: PointSink) -> TableResult:
        """
        Stream one metering table into the sink.

        Args:
            table: One of the known metering table names.
            sink: The file's sink.

        Returns:
            TableResult with row, point and flush counts.
        """
        label = f"table {table} in database {self._source.path}"
        self._check_cancelled(label)

        with SourceStore(self._source.path) as store:
            query_name = store.detect_query_name(table)
            result = TableResult(table=table, query_name=query_name)

            logger.info(
                "ingesting table %s in database %s with record count: %d",
                table, self._source.path, store.count_rows(table)
            )

            batcher = PointBatcher(
                sink,
                capacity=self._config.batch.batch_size,
                cancel_event=self._cancel,
                label=label
            )

            for row in store.iter_rows(query_name):
                self._check_cancelled(label)
                result.rows_read += 1

                point = self._classifier.classify_row(row, self._source.source_id)
                if point is None:
                    result.rows_dropped += 1
                    continue

                if point.interval is not None:
                    result.interval = point.interval
                batcher.add(point)

            logger.info("%s reached final record %d, flushing final chunk", label, result.rows_read)
            batcher.close()

        result.points_written = batcher.points_written
        result.flushes = batcher.flush_count
        logger.debug("table %s for VPSA %s has interval: %s", table, self._source.source_id, result.interval)
        return result

    def _check_cancelled(self, label: str) -> None:
        if self._cancel.is_set():
            raise RunCancelled(f"{label} cancelled")
