# ==============================================
# Zadara Metering Ingestion
# ==============================================
#
# Package Structure (3 Topics + Orchestrators):
#
# metering_ingest/
# ├── normalization/    # Topic 1: Read SQLite rows into tagged value kinds
# ├── analysis/         # Topic 2: Classify columns into tags / fields
# ├── storage/          # Topic 3: SQLite source store, batching, InfluxDB sink
# ├── config.py         # Configuration management
# ├── errors.py         # Error taxonomy
# ├── discovery.py      # Find metering files, clean up after success
# ├── ingest_and_classify.py  # Per-file orchestrator (table fan-out)
# ├── pipeline.py       # Run-level orchestrator (file fan-out)
# └── cli.py            # Command line entry point
#
# ==============================================

__version__ = "0.1.0"
