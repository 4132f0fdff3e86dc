"""
Command-line entry point for the queue importer.
"""

import argparse
import contextlib
import logging
import os
import sys
import uuid
from typing import List, Optional

from queue_import.config import get_settings
from queue_import.exceptions import (
    NothingToImportError,
    QueueAccessDeniedError,
    SourceFileNotFoundError,
    TransportError,
)
from queue_import.ingestion.importer import ImportSummary, QueueImporter
from queue_import.monitoring.logger_config import ImportLogger, OperationLogger
from queue_import.transport.memory import InMemoryTransport
from queue_import.transport.rabbitmq import RabbitMQTransport

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SOURCE_MISSING = 1
EXIT_TRANSPORT_FAILED = 2
EXIT_UNEXPECTED = 3
EXIT_BAD_CONFIG = 4

USAGE = "Usage: import-queue <csv_file> <queue_name>"
EXAMPLE = 'Example: import-queue "orders_export.csv" "orders;journal"'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='import-queue',
        description='Import messages from an exported CSV file into a queue'
    )
    # Validated by hand so a wrong count prints usage and exits cleanly
    parser.add_argument('paths', nargs='*', metavar='ARG',
                        help='CSV file path followed by the destination queue name')
    parser.add_argument('--amqp-url', help='Broker URL (default: AMQP_URL)')
    parser.add_argument('--progress-interval', type=int,
                        help='Report progress every N imported messages')
    parser.add_argument('--log-level', help='Logging level (default: LOG_LEVEL)')
    parser.add_argument('--log-format', choices=['json', 'console'],
                        help='Log output format (default: LOG_FORMAT)')
    parser.add_argument('--log-file', help='Also write logs to this file')
    parser.add_argument('--dry-run', action='store_true',
                        help='Parse and map records without contacting a broker')
    parser.add_argument('--pause', action='store_true',
                        help='Wait for Enter before exiting')
    return parser


def print_progress(imported: int, total: int) -> None:
    print(f"\rImported: {imported}/{total}", end='', flush=True)


def print_summary(summary: ImportSummary) -> None:
    print(f"\n✓ Successfully imported {summary.imported}/{summary.total_candidates} messages")
    if summary.errors > 0:
        print(f"⚠ {summary.errors} messages had errors and were skipped")


def run_import(
    csv_path: str,
    queue_name: str,
    amqp_url: str,
    progress_interval: int,
    dry_run: bool = False
) -> int:
    """Run one import and map its outcome onto a process exit code."""
    print(f"Reading from CSV: {os.path.abspath(csv_path)}")
    print(f"Sending to queue: {queue_name}")

    if dry_run:
        transport_context = contextlib.nullcontext(InMemoryTransport())
    else:
        transport_context = RabbitMQTransport(amqp_url)

    run_id = str(uuid.uuid4())

    try:
        with OperationLogger('queue_import', run_id, source=csv_path, destination=queue_name) as run_log:
            with transport_context as transport:
                importer = QueueImporter(
                    transport,
                    progress_interval=progress_interval,
                    reporter=print_progress
                )
                summary = importer.import_file(csv_path, queue_name)

            run_log.info(
                "Import summary",
                imported=summary.imported,
                total=summary.total_candidates,
                skipped=summary.skipped,
                failed=summary.failed,
                blank=summary.blank
            )
            for problem in summary.problems:
                run_log.warning(
                    "Record not imported",
                    line=problem.line_number,
                    status=problem.status.value,
                    reason=problem.reason
                )

        print_summary(summary)
        return EXIT_OK

    except SourceFileNotFoundError as e:
        print(f"ERROR: {e}")
        return EXIT_SOURCE_MISSING
    except NothingToImportError as e:
        print(f"Nothing to import: {e}")
        return EXIT_OK
    except QueueAccessDeniedError as e:
        print("ERROR: Access denied. Check the broker credentials and queue permissions.")
        print(f"Details: {e}")
        return EXIT_TRANSPORT_FAILED
    except TransportError as e:
        print(f"ERROR: Message Queue error: {e}")
        if e.error_code is not None:
            print(f"Error Code: {e.error_code}")
        return EXIT_TRANSPORT_FAILED
    except Exception as e:
        logger.exception("Unexpected import failure")
        print(f"ERROR: {e}")
        return EXIT_UNEXPECTED


def pause() -> None:
    try:
        input("Press Enter to exit...")
    except EOFError:
        pass


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the importer."""
    args = build_parser().parse_args(argv)

    if len(args.paths) != 2:
        print(USAGE)
        print(EXAMPLE)
        if args.pause:
            pause()
        return EXIT_OK

    try:
        settings = get_settings()
        ImportLogger.setup_logging(
            log_level=args.log_level or settings.log_level,
            log_format=args.log_format or settings.log_format,
            log_file=args.log_file or settings.log_file
        )
    except ValueError as e:
        print(f"ERROR: Invalid configuration: {e}")
        print(USAGE)
        if args.pause:
            pause()
        return EXIT_BAD_CONFIG

    csv_path, queue_name = args.paths
    exit_code = run_import(
        csv_path,
        queue_name,
        amqp_url=args.amqp_url or settings.amqp_url,
        progress_interval=args.progress_interval or settings.progress_interval,
        dry_run=args.dry_run
    )

    if args.pause:
        pause()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
