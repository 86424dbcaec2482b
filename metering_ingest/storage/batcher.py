# ==============================================
# PointBatcher
# ==============================================
#
# PURPOSE:
#   Accumulates classified points in arrival order and writes them
#   to the sink in bounded batches. Writing in chunks keeps memory
#   flat for both this process and the database.
#
# CLASS: PointBatcher
# -------------------
#   - add(point) -> None
#       Append; when the batch reaches capacity, flush it synchronously
#       and start a fresh one.
#   - close() -> None
#       Final flush of whatever remains, even an empty batch (the
#       sink treats that as a no-op).
#
# ==============================================

import logging
import threading
from typing import Optional, Protocol, Sequence

from metering_ingest.analysis import ClassifiedPoint
from metering_ingest.errors import RunCancelled

logger = logging.getLogger(__name__)


class PointSink(Protocol):
    def write(self, points: Sequence[ClassifiedPoint]) -> None: ...

    def close(self) -> None: ...


class PointBatcher:
    DEFAULT_CAPACITY = 10_000

    def __init__(
        self,
        sink: PointSink,
        capacity: int = DEFAULT_CAPACITY,
        cancel_event: Optional[threading.Event] = None,
        label: str = ""
    ):
        if capacity < 1:
            raise ValueError("Batch capacity must be at least 1")
        self.sink = sink
        self.capacity = capacity
        self.cancel_event = cancel_event
        self.label = label
        self._batch: list[ClassifiedPoint] = []
        self.flush_count = 0
        self.points_written = 0

    def __len__(self) -> int:
        return len(self._batch)

    def add(self, point: ClassifiedPoint) -> None:
        self._batch.append(point)
        if len(self._batch) >= self.capacity:
            self.flush()
            logger.debug("%s reached %d points", self.label, self.points_written)

    def flush(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise RunCancelled(f"{self.label} cancelled before flushing {len(self._batch)} points")

        # Fresh accumulator after every flush
        batch, self._batch = self._batch, []
        self.sink.write(batch)
        self.flush_count += 1
        self.points_written += len(batch)

    def close(self) -> None:
        self.flush()
