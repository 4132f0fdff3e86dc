"""
Import driver: reads an exported CSV file and sends each record to a queue.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

import pytz

from queue_import.exceptions import (
    NothingToImportError,
    QueueImportError,
    SourceFileNotFoundError,
    TransportError,
)
from queue_import.ingestion.message_mapper import MessageMapper
from queue_import.ingestion.provisioner import QueueProvisioner
from queue_import.ingestion.record_parser import parse_line
from queue_import.transport.base import DEFAULT_FORMAT, QueueHandle, QueueTransport

logger = logging.getLogger(__name__)

DEFAULT_PROGRESS_INTERVAL = 100

ProgressReporter = Callable[[int, int], None]


class RecordStatus(str, Enum):
    IMPORTED = 'imported'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass
class RecordResult:
    """Outcome of importing one data line."""

    line_number: int
    status: RecordStatus
    reason: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.status != RecordStatus.IMPORTED


@dataclass
class ImportSummary:
    """Totals for one import run."""

    source: str
    destination: str
    total_candidates: int = 0
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    blank: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    problems: List[RecordResult] = field(default_factory=list)

    @property
    def errors(self) -> int:
        return self.skipped + self.failed

    @property
    def clean(self) -> bool:
        return self.errors == 0

    def record(self, result: RecordResult) -> None:
        if result.status == RecordStatus.IMPORTED:
            self.imported += 1
        elif result.status == RecordStatus.SKIPPED:
            self.skipped += 1
            self.problems.append(result)
        else:
            self.failed += 1
            self.problems.append(result)


def log_progress(imported: int, total: int) -> None:
    logger.info(f"Imported: {imported}/{total}")


class QueueImporter:
    """Sends every record of an exporter CSV file to a destination queue.

    Records are parsed, mapped and sent one at a time. A failure in one
    record is captured as a RecordResult and never stops the batch; only
    pre-flight problems (missing file, unusable destination) raise.
    Running the same file twice sends every record twice.
    """

    def __init__(
        self,
        transport: QueueTransport,
        provisioner: Optional[QueueProvisioner] = None,
        mapper: Optional[MessageMapper] = None,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
        reporter: Optional[ProgressReporter] = None
    ):
        if progress_interval <= 0:
            raise ValueError("progress_interval must be positive")

        self.transport = transport
        self.provisioner = provisioner or QueueProvisioner(transport)
        self.mapper = mapper or MessageMapper()
        self.progress_interval = progress_interval
        self.reporter = reporter or log_progress

    def import_file(self, source_path: str, destination: str) -> ImportSummary:
        """Import all data lines of source_path into destination."""
        source = Path(source_path)
        if not source.is_file():
            raise SourceFileNotFoundError(str(source_path))

        handle = self._open_destination(destination)
        try:
            lines = self._read_lines(source)

            if len(lines) <= 1:
                raise NothingToImportError(str(source_path), len(lines))

            summary = ImportSummary(
                source=str(source_path),
                destination=destination,
                total_candidates=len(lines) - 1,
                started_at=datetime.now(pytz.UTC)
            )
            logger.info(f"Found {summary.total_candidates} messages to import")

            # Line 0 is the header
            for line_number in range(1, len(lines)):
                line = lines[line_number]
                if not line.strip():
                    summary.blank += 1
                    continue

                result = self.process_line(handle, line_number, line)
                summary.record(result)

                if (result.status == RecordStatus.IMPORTED
                        and summary.imported % self.progress_interval == 0):
                    self.reporter(summary.imported, summary.total_candidates)

            summary.finished_at = datetime.now(pytz.UTC)

        finally:
            self.transport.close(handle)

        logger.info(
            f"Import finished: {summary.imported}/{summary.total_candidates} imported, "
            f"{summary.errors} errors"
        )
        return summary

    def process_line(self, handle: QueueHandle, line_number: int, line: str) -> RecordResult:
        """Parse, map and send one line; any failure is returned, not raised."""
        try:
            fields = parse_line(line)
            message = self.mapper.map(fields)

            if message is None:
                return RecordResult(
                    line_number,
                    RecordStatus.SKIPPED,
                    f"insufficient fields: {len(fields)}"
                )

            self.transport.send(handle, message)
            return RecordResult(line_number, RecordStatus.IMPORTED)

        except Exception as e:
            logger.error(f"Error importing line {line_number}: {e}")
            return RecordResult(line_number, RecordStatus.FAILED, str(e))

    def _open_destination(self, destination: str) -> QueueHandle:
        """Provision and open the destination; failures here end the run."""
        try:
            self.provisioner.ensure_queue(destination)
            return self.transport.open(destination, DEFAULT_FORMAT)
        except QueueImportError:
            raise
        except Exception as e:
            raise TransportError(f"Failed to open destination queue {destination}: {e}") from e

    def _read_lines(self, source: Path) -> List[str]:
        logger.info(f"Reading CSV file: {source}")
        # utf-8-sig drops a leading BOM; undecodable bytes become U+FFFD
        with open(source, encoding='utf-8-sig', errors='replace') as f:
            return [line.rstrip('\n') for line in f]
