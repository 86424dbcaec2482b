# ==============================================
# Decision (Data Classes)
# ==============================================
#
# PURPOSE:
#   Data classes that represent the OUTPUT of classification:
#   the role each result column plays, and the time-series point
#   a whole row turns into.
#
# ENUMS:
# ------
# - ColumnRole(Enum): DROPPED, MEASUREMENT, TAG, TIMESTAMP, INTERVAL, FIELD
#     What a single column contributes to its point.
#
# CLASSES:
# --------
# - ClassifiedPoint (dataclass)
#     - measurement: str
#     - tags: dict[str, str]           (always holds the VPSA tag)
#     - fields: dict[str, int | float | str]
#     - timestamp: datetime | None
#     - interval: int | None           (diagnostic only, never written)
#
#     A point is only valid with a measurement, a timestamp and at
#     least one field. Invalid points are dropped, never written.
#
# ==============================================

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

# Tag key carrying the source identifier on every point
SOURCE_TAG = "vpsa"

FieldValue = Union[int, float, str]


class ColumnRole(Enum):
    """
    Role of a single result column.

    - DROPPED: null value, contributes nothing
    - MEASUREMENT: names the point
    - TAG: indexed string dimension
    - TIMESTAMP: the point's time
    - INTERVAL: sampling interval, kept for diagnostics only
    - FIELD: measured value
    """
    DROPPED = "dropped"
    MEASUREMENT = "measurement"
    TAG = "tag"
    TIMESTAMP = "timestamp"
    INTERVAL = "interval"
    FIELD = "field"


@dataclass
class ClassifiedPoint:
    measurement: str = ""
    tags: dict[str, str] = field(default_factory=dict)
    fields: dict[str, FieldValue] = field(default_factory=dict)
    timestamp: Optional[datetime] = None
    interval: Optional[int] = None

    @property
    def is_valid(self) -> bool:
        return bool(self.measurement) and self.timestamp is not None and bool(self.fields)
