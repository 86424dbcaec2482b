# ==============================================
# TOPIC 2: CLASSIFICATION
# ==============================================
#
# This package decides the time-series role of every column
# of a metering result row (measurement, tag, field, timestamp)
# and assembles the resulting point.
#
# Modules:
# --------
# - decision.py     → ColumnRole enum and ClassifiedPoint data class
# - classifier.py   → Apply the column rules, build points
#
# ==============================================

from .decision import SOURCE_TAG, ClassifiedPoint, ColumnRole
from .classifier import Classifier

__all__ = ["SOURCE_TAG", "ClassifiedPoint", "ColumnRole", "Classifier"]
