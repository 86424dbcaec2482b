# ==============================================
# Classifier
# ==============================================
#
# PURPOSE:
#   Takes one RawRow from a metering query and decides, column by
#   column, whether it is the measurement name, a tag, a field, the
#   timestamp or the sampling interval. Builds a ClassifiedPoint.
#
# CLASS: Classifier
# -----------------
#   Stateless — rows in, points out.
#
#   Methods:
#   --------
#   - classify_column(name: str, value: RawValue) -> ColumnRole
#       Applies rules in order:
#
#       RULE 1: NULL → DROPPED
#       RULE 2: "measurement" → MEASUREMENT
#       RULE 3: TEXT → TAG
#       RULE 4: FORCED TAGS → TAG
#         dev_server_name / dev_target_name are reported as 0 for some
#         device types (rstjobs); as fields they would collide with the
#         same column arriving as a tag on other rows.
#       RULE 5: "time" → TIMESTAMP
#       RULE 6: "interval" → INTERVAL
#       RULE 7: EVERYTHING ELSE → FIELD
#
#   - classify_row(row: RawRow, source_id: str) -> ClassifiedPoint | None
#       Build a point, or None when the row has no fields.
#
# ==============================================

from typing import Optional

from metering_ingest.normalization import RawRow, RawValue, ValueKind
from .decision import SOURCE_TAG, ClassifiedPoint, ColumnRole


class Classifier:
    """Applies the tag / field rules to metering result rows."""

    MEASUREMENT_COLUMN = "measurement"
    TIME_COLUMN = "time"
    INTERVAL_COLUMN = "interval"
    FORCED_TAGS = frozenset({"dev_server_name", "dev_target_name"})

    def classify_column(self, name: str, value: RawValue) -> ColumnRole:
        if value.is_null:
            return ColumnRole.DROPPED

        if name == self.MEASUREMENT_COLUMN:
            return ColumnRole.MEASUREMENT

        if value.kind is ValueKind.TEXT or name in self.FORCED_TAGS:
            return ColumnRole.TAG

        if name == self.TIME_COLUMN:
            return ColumnRole.TIMESTAMP

        if name == self.INTERVAL_COLUMN:
            return ColumnRole.INTERVAL

        return ColumnRole.FIELD

    def classify_row(self, row: RawRow, source_id: str) -> Optional[ClassifiedPoint]:
        """
        Build a ClassifiedPoint from one row.

        Args:
            row: Tagged column values, in query order.
            source_id: VPSA name, attached as the source tag.

        Returns:
            The point, or None when it would carry no fields (or lacks a
            measurement or timestamp). Dropped rows are not errors.
        """
        point = ClassifiedPoint(tags={SOURCE_TAG: source_id})

        for name, value in row.items():
            role = self.classify_column(name, value)

            if role is ColumnRole.DROPPED:
                continue
            if role is ColumnRole.MEASUREMENT:
                point.measurement = value.as_text()
            elif role is ColumnRole.TAG:
                point.tags[name] = value.as_text()
            elif role is ColumnRole.TIMESTAMP:
                point.timestamp = value.value
            elif role is ColumnRole.INTERVAL:
                point.interval = value.value
            else:
                point.fields[name] = value.value

        if not point.is_valid:
            return None
        return point
