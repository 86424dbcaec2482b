from typing import Any, Iterable, Optional, Sequence

from metering_ingest.errors import SchemaError
from .type_detector import NULL, RawValue, TypeDetector, ValueKind

# Ordered column name -> tagged value
RawRow = dict[str, RawValue]


class RecordNormalizer:
    """Turns a positional SQLite result row into a RawRow of tagged values."""

    def __init__(
        self,
        type_detector: Optional[TypeDetector] = None,
        timestamp_columns: Iterable[str] = ("time",)
    ):
        self.type_detector = type_detector or TypeDetector()
        self.timestamp_columns = frozenset(timestamp_columns)

    def normalize(self, columns: Sequence[str], values: Sequence[Any]) -> RawRow:
        if len(columns) != len(values):
            raise ValueError(
                f"Row has {len(values)} values for {len(columns)} columns"
            )

        row: RawRow = {}
        for name, value in zip(columns, values):
            if name in self.timestamp_columns:
                row[name] = self._timestamp(name, value)
            else:
                row[name] = self.type_detector.wrap(value)
        return row

    def _timestamp(self, name: str, value: Any) -> RawValue:
        if value is None:
            return NULL
        ts = self.type_detector.to_timestamp(value)
        if ts is None:
            raise SchemaError(f"Column '{name}' holds an unparseable timestamp: {value!r}")
        return RawValue(ValueKind.TIMESTAMP, ts)
