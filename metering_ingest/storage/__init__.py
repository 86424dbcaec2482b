# ==============================================
# TOPIC 3: STORAGE (SQLite source + InfluxDB sink)
# ==============================================
#
# This package handles every external store:
# reading the metering snapshots and writing time-series points.
#
# Modules:
# --------
# - queries.py        → Fixed metering queries and device-type reference data
# - source_store.py   → SQLite snapshot: seeding, table selection, row streaming
# - batcher.py        → Bounded batches of points, flushed to a sink
# - influx_sink.py    → InfluxDB write client
#
# ==============================================

from .batcher import PointBatcher, PointSink
from .influx_sink import InfluxSink
from .source_store import SourceStore

__all__ = [
    "PointBatcher",
    "PointSink",
    "InfluxSink",
    "SourceStore"
]
