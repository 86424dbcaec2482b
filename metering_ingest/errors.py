# ==============================================
# Error Taxonomy
# ==============================================
#
# - NotFoundError  → no metering files, or a path too shallow to name its VPSA
# - SchemaError    → missing / malformed reference or metering table
# - QueryError     → count or select query failure
# - WriteError     → the sink rejected a batch
# - CleanupError   → removing a processed file or its directory failed
# - RunCancelled   → a unit stopped because a sibling unit failed
#
# Schema/Query/Write errors abort the table, then the file, then the run.
# CleanupError is only ever logged.
# ==============================================


class MeteringError(Exception):
    """Base class for every error raised by the ingestion pipeline."""


class NotFoundError(MeteringError):
    pass


class SchemaError(MeteringError):
    pass


class QueryError(MeteringError):
    pass


class WriteError(MeteringError):
    pass


class CleanupError(MeteringError):
    pass


class RunCancelled(MeteringError):
    """Raised inside a unit that observed the cancellation token."""
