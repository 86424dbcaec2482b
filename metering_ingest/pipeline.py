"""
==============================================
Metering Pipeline — Run-level Orchestrator
==============================================

Finds every metering snapshot below a root path and ingests them
concurrently, one IngestAndClassify unit per file on a bounded pool.

USAGE EXAMPLES:

1. Ingest everything below a directory:
    from metering_ingest.pipeline import MeteringPipeline

    summary = MeteringPipeline().run("/var/zsnaps/metering")
    print(summary.points_written)

2. Custom sink (tests, dry runs):
    pipeline = MeteringPipeline(config, sink_factory=lambda: MySink())
    pipeline.run(path)

Error policy: the first failing file sets the shared cancellation
token, queued files never start, running ones stop at their next
checkpoint, and the error is re-raised once the pool has drained.
A file that finishes cleanly is deleted (and its directory, when
that leaves it empty); cleanup failures are only logged.
"""

import logging
import threading
from concurrent.futures import CancelledError, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Optional

from metering_ingest.config import AppConfig, get_config
from metering_ingest.discovery import SourceFile, find_metering_files, remove_source_file
from metering_ingest.errors import CleanupError, RunCancelled
from metering_ingest.ingest_and_classify import FileResult, IngestAndClassify, SinkFactory

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    files: list[FileResult] = field(default_factory=list)

    @property
    def files_processed(self) -> int:
        return len(self.files)

    @property
    def points_written(self) -> int:
        return sum(result.points_written for result in self.files)


class MeteringPipeline:
    """
    High-level driver: discovery, file fan-out, cleanup.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        sink_factory: Optional[SinkFactory] = None,
        cleanup: bool = True
    ):
        """
        Args:
            config: Optional configuration. If None, loads from environment.
            sink_factory: Builds one sink per file. Defaults to InfluxSink.
            cleanup: Delete files (and emptied directories) after success.
        """
        self._config = config or get_config()
        self._sink_factory = sink_factory
        self._cleanup = cleanup

    def run(self, root: str) -> RunSummary:
        """
        Ingest every metering file below ``root``.

        Returns:
            RunSummary of the files that completed.

        Raises:
            NotFoundError when no files are found, otherwise the first
            error raised by any file unit.
        """
        logger.info("processing new metering files provided at: %s", root)
        sources = find_metering_files(root, self._config.file_extension)
        logger.info("metering databases to analyze: %s", [source.path for source in sources])

        summary = RunSummary()
        cancel = threading.Event()
        first_error: Optional[BaseException] = None
        workers = min(self._config.concurrency.max_file_workers, len(sources))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="metering-file") as executor:
            futures = {
                executor.submit(self.process_file, source, cancel): source
                for source in sources
            }
            for future in as_completed(futures):
                source = futures[future]
                try:
                    result = future.result()
                except (CancelledError, RunCancelled):
                    logger.debug("metering database %s stopped after cancellation", source.path)
                    continue
                except Exception as e:
                    if first_error is None:
                        first_error = e
                        cancel.set()
                        for pending in futures:
                            pending.cancel()
                    continue

                logger.info("processed metering database: %s", source.path)
                summary.files.append(result)
                if self._cleanup:
                    self._remove(source)

        if first_error is not None:
            raise first_error

        return summary

    def process_file(self, source: SourceFile, cancel_event: Optional[threading.Event] = None) -> FileResult:
        ingestor = IngestAndClassify(
            source,
            config=self._config,
            sink_factory=self._sink_factory,
            cancel_event=cancel_event
        )
        return ingestor.run()

    def _remove(self, source: SourceFile) -> None:
        try:
            remove_source_file(source)
        except CleanupError as e:
            logger.warning("%s", e)
