# ==============================================
# TOPIC 1: NORMALIZATION
# ==============================================
#
# This package turns raw SQLite result rows into rows of tagged
# values BEFORE they reach the classifier, so classification works
# over a closed set of value kinds instead of Python runtime types.
#
# Modules:
# --------
# - type_detector.py     → ValueKind / RawValue, timestamp parsing
# - record_normalizer.py → Build a RawRow from column names + values
#
# ==============================================

from .type_detector import NULL, RawValue, TypeDetector, ValueKind
from .record_normalizer import RawRow, RecordNormalizer

__all__ = ["NULL", "RawValue", "TypeDetector", "ValueKind", "RawRow", "RecordNormalizer"]
