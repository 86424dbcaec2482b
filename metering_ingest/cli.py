# ==============================================
# CLI — Command Line Entry Point
# ==============================================
#
# PURPOSE:
#   Ingest every metering database below a path into InfluxDB.
#
# USAGE:
# ------
#    zadara-metering path/to/metering/files
#    zadara-metering -v path/to/metering/files     # debug logging
#    zadara-metering -V                            # print version
#    python -m metering_ingest.cli path/to/metering/files
#
# EXIT CODES:
# -----------
#    0 → every file ingested
#    1 → any error, including no metering files found
#
# ==============================================

import argparse
import logging
import sys
from typing import Optional, Sequence

from metering_ingest import __version__
from metering_ingest.pipeline import MeteringPipeline

logger = logging.getLogger("metering_ingest")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zadara-metering",
        usage="%(prog)s [-v] [-V] path/to/metering/files",
        description="Ingest Zadara metering databases into InfluxDB."
    )
    parser.add_argument("path", nargs="?", help="file or directory holding metering databases")
    parser.add_argument("-v", dest="verbose", action="store_true", help="enable verbose output")
    parser.add_argument("-V", dest="show_version", action="store_true", help="display version and exit")
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.show_version:
        print(__version__)
        return 0

    if not args.path:
        parser.print_usage()
        return 1

    configure_logging(args.verbose)

    try:
        summary = MeteringPipeline().run(args.path)
    except Exception as e:
        logger.error("%s", e)
        return 1

    logger.info(
        "ingested %d metering databases, %d points written",
        summary.files_processed, summary.points_written
    )
    print("Processing of metering databases complete...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
