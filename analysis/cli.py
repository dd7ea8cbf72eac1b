"""Command-line interface for purge statistics."""
import argparse
import logging
import signal
import sys
import traceback
from typing import List, Optional

from rich.console import Console

from analysis import __version__
from analysis.purge_job import PurgeStatisticsJob
from analysis.report import render_report
from config import load_config
from storage.factory import create_storage

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownRequested(Exception):
    """Raised in the main thread when the process receives a shutdown signal."""


def signal_handler(sig, frame):
    logger.info(f"Received shutdown signal {signal.Signals(sig).name}")
    raise ShutdownRequested(f"Interrupted by {signal.Signals(sig).name}")


def non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {number}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="purge-stats",
        description="Statistics about reclaimable data for a table",
    )

    parser.add_argument("keyspace", help="Keyspace (table group) name")
    parser.add_argument("table", help="Table name")

    parser.add_argument(
        "-n",
        dest="num_partitions",
        type=non_negative_int,
        default=None,
        help="Number of partitions to display (default: from config, 10)",
    )
    parser.add_argument(
        "-r",
        dest="limit",
        type=non_negative_int,
        default=None,
        help="Limit read throughput in MB/s (default: unlimited, 0)",
    )
    parser.add_argument("-t", dest="snapshot", default=None, help="Snapshot name")
    parser.add_argument(
        "-f",
        dest="filters",
        default="",
        help="Filter to data files (comma separated, e.g. gen-3,gen-4.parquet)",
    )
    parser.add_argument("-b", dest="batch", action="store_true", help="Batch mode (no progress bar)")

    parser.add_argument("-c", "--config", default=None, help="Path to YAML config file")
    parser.add_argument("--data-dir", default=None, help="Override storage base directory")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: from config, INFO)",
    )
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        if args.data_dir:
            config.storage.base_dir = args.data_dir

        logging.basicConfig(
            level=getattr(logging, args.log_level or config.log_level.upper()),
            format=config.log_format,
            stream=sys.stderr,
        )

        analysis = config.analysis
        filters = [name.strip() for name in args.filters.split(",") if name.strip()]

        job = PurgeStatisticsJob(
            storage=create_storage(config),
            keyspace=args.keyspace,
            table=args.table,
            top_partitions=analysis.top_partitions if args.num_partitions is None else args.num_partitions,
            throughput_mb=analysis.throughput_mb if args.limit is None else args.limit,
            snapshot=args.snapshot,
            filters=filters or None,
            interactive=analysis.interactive and not args.batch,
            gc_grace_seconds=analysis.gc_grace_seconds,
        )
        # Shutdown signals raise inside job.run() so its source is released
        previous_handlers = {sig: signal.signal(sig, signal_handler) for sig in SHUTDOWN_SIGNALS}
        try:
            report = job.run()
        finally:
            for sig, handler in previous_handlers.items():
                signal.signal(sig, handler)
    except Exception as e:
        logger.error(f"Purge statistics failed: {e}")
        traceback.print_exc(file=sys.stderr)
        return 1

    render_report(report, Console(file=sys.stdout))
    return 0


if __name__ == "__main__":
    sys.exit(main())
