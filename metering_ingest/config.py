# ==============================================
# Configuration Management
# ==============================================
#
# PURPOSE:
#   Load all configuration from environment variables / .env file.
#   Provides typed config objects to all other modules.
#
# CLASSES:
# --------
# - InfluxConfig (dataclass)
#     url: str                 (default "http://127.0.0.1:8086")
#     database: str            (default "zadara")
#     retention_policy: str    (default "autogen")
#     username: str | None     (default None)
#     password: str | None     (default None)
#     timeout_ms: int          (default 30000)
#
# - BatchConfig (dataclass)
#     batch_size: int          (default 10000)
#
# - ConcurrencyConfig (dataclass)
#     max_file_workers: int    (default 4)
#     max_table_workers: int   (default 3)
#
# - AppConfig (dataclass)
#     influx: InfluxConfig
#     batch: BatchConfig
#     concurrency: ConcurrencyConfig
#     file_extension: str      (default ".db")
#
# FUNCTION:
# ---------
# - get_config() -> AppConfig
#     Load .env using python-dotenv, construct AppConfig.
#     Returns the same singleton on repeated calls.
#
# USAGE:
# ------
#   from metering_ingest.config import get_config
#   config = get_config()
#   print(config.influx.url)
#   print(config.batch.batch_size)
#
# ==============================================

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv


@dataclass
class InfluxConfig:
    """InfluxDB sink configuration."""
    url: str = "http://127.0.0.1:8086"
    database: str = "zadara"
    retention_policy: str = "autogen"
    username: Optional[str] = None
    password: Optional[str] = None
    timeout_ms: int = 30_000

    @property
    def bucket(self) -> str:
        """Database/retention-policy pair in the form the 1.x compatibility API expects."""
        return f"{self.database}/{self.retention_policy}"

    @property
    def token(self) -> str:
        if self.username:
            return f"{self.username}:{self.password or ''}"
        return ""


@dataclass
class BatchConfig:
    """Batching of classified points before each sink write."""
    batch_size: int = 10_000


@dataclass
class ConcurrencyConfig:
    """Worker pool sizes for the file and table fan-out."""
    max_file_workers: int = 4
    max_table_workers: int = 3


@dataclass
class AppConfig:
    """Main application configuration."""
    influx: InfluxConfig = field(default_factory=InfluxConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    concurrency: ConcurrencyConfig = field(default_factory=ConcurrencyConfig)
    file_extension: str = ".db"


# Singleton instance
_config_instance: Optional[AppConfig] = None


def _positive_int(name: str, default: int) -> int:
    value = int(os.getenv(name, str(default)))
    if value < 1:
        raise ValueError(f"{name} must be a positive integer, got {value}")
    return value


def get_config() -> AppConfig:
    """
    Load configuration from environment variables / .env file.
    Returns the same singleton instance on repeated calls.

    Returns:
        AppConfig: Application configuration
    """
    global _config_instance

    if _config_instance is not None:
        return _config_instance

    # Load .env file from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    influx_config = InfluxConfig(
        url=os.getenv("INFLUX_URL", "http://127.0.0.1:8086"),
        database=os.getenv("INFLUX_DATABASE", "zadara"),
        retention_policy=os.getenv("INFLUX_RETENTION_POLICY", "autogen"),
        username=os.getenv("INFLUX_USERNAME") or None,
        password=os.getenv("INFLUX_PASSWORD") or None,
        timeout_ms=_positive_int("INFLUX_TIMEOUT_MS", 30_000)
    )

    batch_config = BatchConfig(
        batch_size=_positive_int("BATCH_SIZE", 10_000)
    )

    concurrency_config = ConcurrencyConfig(
        max_file_workers=_positive_int("MAX_FILE_WORKERS", 4),
        max_table_workers=_positive_int("MAX_TABLE_WORKERS", 3)
    )

    _config_instance = AppConfig(
        influx=influx_config,
        batch=batch_config,
        concurrency=concurrency_config,
        file_extension=os.getenv("METERING_FILE_EXTENSION", ".db")
    )

    return _config_instance


def reset_config() -> None:
    """Drop the cached singleton so the next get_config() re-reads the environment."""
    global _config_instance
    _config_instance = None
