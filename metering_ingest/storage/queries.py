# ==============================================
# Fixed metering queries and reference data
# ==============================================
#
# Every divisor is wrapped in NULLIF(x, 0): a zero operation count,
# interval or CPU total yields NULL, and the classifier drops NULL
# columns, so the derived field is simply absent from that point.
#
# Both mappings are read-only views built once at import time.
# ==============================================

from types import MappingProxyType

DEV_TYPES_TABLE = "dev_types"

DEVICE_TYPES = MappingProxyType({
    1: "VOLUME",
    2: "RAID-GROUP",
    3: "DRIVE",
    4: "POOL",
    5: "SYSTEM",
    6: "MIRROR",
    7: "ZCACHE",
    8: "DMBTRFS",
    9: "BTRFS",
    10: "BLOCK",
    11: "NOVA",
    12: "SWIFT",
    13: "MIGRATION",
    14: "OBJECT-STORAGE",
})

IO_TABLE = "metering_info"
SYS_TABLE = "metering_sys_info"
ZCACHE_TABLE = "metering_zcache_info"

# Declared order is the order tables are reported in
METERING_TABLES = (IO_TABLE, SYS_TABLE, ZCACHE_TABLE)

IO_QUERY_MS = "metering_info_ms"
IO_QUERY_US = "metering_info_us"

# Column whose presence marks the millisecond schema generation
MS_LATENCY_COLUMN = "total_resp_tm_ms"

_IO_JOINS = """
FROM
    metering_info
    INNER JOIN
        devices
        ON (metering_info.dev_dbid = devices.dev_dbid)
    INNER JOIN
        io_buckets
        ON (devices.dev_type = io_buckets.dev_type)
        AND (metering_info.bucket = io_buckets.bucket)
    INNER JOIN
        dev_types
        ON (devices.dev_type = dev_types.dev_type)
        AND (dev_types.dev_type = io_buckets.dev_type)
ORDER BY
    metering_info.time
"""

_IO_COLUMNS = """
SELECT
    'io' AS measurement,
    devices.dev_ext_name,
    devices.dev_server_name,
    devices.dev_target_name,
    io_buckets.bucket_name,
    dev_types.dev_name,
    metering_info.interval,
    ROUND(CAST(metering_info.num_ios AS real) / NULLIF(metering_info.interval, 0), 3) AS iops,
    ROUND(CAST(metering_info.bytes AS real) / NULLIF(metering_info.interval, 0), 3) AS bps,
    {latency} AS latency_ms,
    metering_info.active_ios,
    metering_info.io_errors,
    metering_info.max_cmd,
    {max_latency} AS max_latency_ms,
    metering_info.time
"""

_CPU_TOTAL = (
    "NULLIF(metering_sys_info.cpu_user + metering_sys_info.cpu_system"
    " + metering_sys_info.cpu_iowait + metering_sys_info.cpu_idle, 0)"
)


def _cpu_share(column: str) -> str:
    return (
        f"ROUND(CAST(100.0 * metering_sys_info.{column} AS real) / {_CPU_TOTAL}, 3)"
        f" AS {column}"
    )


QUERIES = MappingProxyType({
    IO_QUERY_MS: _IO_COLUMNS.format(
        latency="ROUND(CAST(metering_info.total_resp_tm_ms AS real)"
                " / NULLIF(metering_info.num_ios, 0), 3)",
        max_latency="metering_info.max_resp_tm_ms",
    ) + _IO_JOINS,
    # Real division: sub-millisecond remainders are kept rather than
    # truncated by an integer "/ 1000" before the cast.
    IO_QUERY_US: _IO_COLUMNS.format(
        latency="ROUND((metering_info.total_resp_tm_us / 1000.0)"
                " / NULLIF(metering_info.num_ios, 0), 3)",
        max_latency="ROUND(metering_info.max_resp_tm_us / 1000.0, 3)",
    ) + _IO_JOINS,
    SYS_TABLE: f"""
SELECT
    'system' AS measurement,
    dev_types.dev_name,
    metering_sys_info.interval,
    {_cpu_share("cpu_user")},
    {_cpu_share("cpu_system")},
    {_cpu_share("cpu_iowait")},
    {_cpu_share("cpu_idle")},
    metering_sys_info.mem_alloc,
    metering_sys_info.time
FROM
    metering_sys_info
    INNER JOIN
        devices
        ON (metering_sys_info.dev_dbid = devices.dev_dbid)
    INNER JOIN
        dev_types
        ON (devices.dev_type = dev_types.dev_type)
WHERE
    devices.dev_type = 5
ORDER BY
    metering_sys_info.time
""",
    ZCACHE_TABLE: """
SELECT
    'zcache' AS measurement,
    dev_types.dev_name,
    devices.dev_ext_name,
    metering_zcache_info.interval,
    metering_zcache_info.data_dirty,
    metering_zcache_info.meta_dirty,
    metering_zcache_info.data_clean,
    metering_zcache_info.meta_clean,
    metering_zcache_info.data_cb_util,
    metering_zcache_info.meta_cb_util,
    metering_zcache_info.data_read_hit,
    metering_zcache_info.meta_read_hit,
    metering_zcache_info.data_write_hit,
    metering_zcache_info.meta_write_hit,
    metering_zcache_info.time
FROM
    metering_zcache_info
    INNER JOIN
        devices
        ON (metering_zcache_info.dev_dbid = devices.dev_dbid)
    INNER JOIN
        dev_types
        ON (devices.dev_type = dev_types.dev_type)
WHERE
    devices.dev_type = 7
ORDER BY
    metering_zcache_info.time
""",
})
