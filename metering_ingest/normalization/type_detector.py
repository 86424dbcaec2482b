from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union


class ValueKind(Enum):
    """Closed set of value kinds a metering column can carry."""
    NULL = "null"
    TEXT = "text"
    INTEGER = "integer"
    REAL = "real"
    TIMESTAMP = "timestamp"


@dataclass(frozen=True)
class RawValue:
    kind: ValueKind
    value: Union[None, str, int, float, datetime]

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def as_text(self) -> str:
        if isinstance(self.value, datetime):
            return self.value.isoformat()
        return str(self.value)


NULL = RawValue(ValueKind.NULL, None)


class TypeDetector:
    DATETIME_FORMATS = [
        "%Y-%m-%dT%H:%M:%SZ",
        "%Y-%m-%dT%H:%M:%S.%fZ",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%dT%H:%M:%S.%f",
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%d %H:%M:%S.%f",
        "%Y-%m-%d %H:%M:%S%z",
        "%Y-%m-%d %H:%M:%S.%f%z",
        "%Y-%m-%dT%H:%M:%S%z",
        "%Y-%m-%d %H:%M",
        "%Y-%m-%dT%H:%M",
        "%Y-%m-%d",
    ]

    EPOCH_MS_THRESHOLD = 1e12

    @classmethod
    def detect(cls, value: Any) -> ValueKind:
        if value is None:
            return ValueKind.NULL

        # sqlite3 never hands back bool, but keep it out of INTEGER regardless
        if isinstance(value, bool):
            return ValueKind.INTEGER

        if isinstance(value, int):
            return ValueKind.INTEGER

        if isinstance(value, float):
            return ValueKind.REAL

        if isinstance(value, datetime):
            return ValueKind.TIMESTAMP

        return ValueKind.TEXT

    @classmethod
    def wrap(cls, value: Any) -> RawValue:
        kind = cls.detect(value)
        if kind is ValueKind.NULL:
            return NULL
        if kind is ValueKind.TEXT:
            if isinstance(value, (bytes, bytearray, memoryview)):
                value = bytes(value).decode("utf-8", errors="replace")
            else:
                value = str(value)
        elif kind is ValueKind.INTEGER:
            value = int(value)
        elif kind is ValueKind.TIMESTAMP:
            value = cls._as_utc(value)
        return RawValue(kind, value)

    @classmethod
    def to_timestamp(cls, value: Any) -> Optional[datetime]:
        """
        Convert a stored time value into an aware UTC datetime.

        Integer / real values are UNIX seconds, or milliseconds past
        EPOCH_MS_THRESHOLD; text (or blob) values are parsed with the known
        layouts. Returns None when nothing matches or the value is out of
        range.
        """
        if value is None or isinstance(value, bool):
            return None

        if isinstance(value, datetime):
            return cls._as_utc(value)

        if isinstance(value, (int, float)):
            return cls._from_epoch(value)

        if isinstance(value, (bytes, bytearray, memoryview)):
            value = bytes(value).decode("utf-8", errors="replace")

        text = str(value).strip()
        if not text:
            return None

        if text.lstrip("-").isdigit():
            return cls._from_epoch(int(text))

        parsed = cls._parse_datetime(text)
        if parsed is None:
            return None
        return cls._as_utc(parsed)

    @classmethod
    def _from_epoch(cls, value: Union[int, float]) -> Optional[datetime]:
        # 13-digit epochs are milliseconds
        if abs(value) > cls.EPOCH_MS_THRESHOLD:
            value = value / 1000
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None

    @classmethod
    def _parse_datetime(cls, value: str) -> Optional[datetime]:
        for fmt in cls.DATETIME_FORMATS:
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue
        return None

    @staticmethod
    def _as_utc(value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
