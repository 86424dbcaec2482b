# ==============================================
# InfluxSink
# ==============================================
#
# PURPOSE:
#   Writes batches of ClassifiedPoints to one InfluxDB database
#   with whole-second precision, through the 1.x compatibility
#   endpoint of the influxdb-client library.
#
# CLASS: InfluxSink
# -----------------
#   Stateful — holds an InfluxDBClient and its synchronous write API.
#   One sink per metering file; the file's own table units share it
#   (the underlying urllib3 pool is thread-safe).
#
#   Methods:
#   --------
#   - write(points) -> None
#       Empty batches are a no-op. Any rejection raises WriteError.
#       No retries.
#   - close() -> None
#
# ==============================================

import logging
from typing import Optional, Sequence

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.exceptions import InfluxDBError
from influxdb_client.client.write_api import SYNCHRONOUS
from influxdb_client.rest import ApiException
from urllib3.exceptions import HTTPError

from metering_ingest.analysis import ClassifiedPoint
from metering_ingest.config import InfluxConfig
from metering_ingest.errors import WriteError

logger = logging.getLogger(__name__)

# 1.x compatibility endpoints ignore the organisation
_ORG = "-"


def to_influx_point(point: ClassifiedPoint) -> Point:
    record = Point(point.measurement)
    for key, value in point.tags.items():
        record.tag(key, value)
    for key, value in point.fields.items():
        record.field(key, value)
    return record.time(point.timestamp, WritePrecision.S)


class InfluxSink:
    def __init__(self, config: InfluxConfig, client: Optional[InfluxDBClient] = None):
        self.config = config
        self.client = client or InfluxDBClient(
            url=config.url,
            token=config.token,
            org=_ORG,
            timeout=config.timeout_ms
        )
        self.write_api = self.client.write_api(write_options=SYNCHRONOUS)
        logger.debug("opened influx sink at: %s (bucket %s)", config.url, config.bucket)

    def write(self, points: Sequence[ClassifiedPoint]) -> None:
        if not points:
            return
        try:
            self.write_api.write(
                bucket=self.config.bucket,
                org=_ORG,
                record=[to_influx_point(point) for point in points],
                write_precision=WritePrecision.S
            )
        except (ApiException, InfluxDBError, HTTPError, OSError) as e:
            raise WriteError(
                f"InfluxDB at {self.config.url} rejected a batch of {len(points)} points: {e}"
            ) from e

    def close(self) -> None:
        try:
            self.write_api.close()
        finally:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
