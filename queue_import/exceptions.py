"""
Exception hierarchy for fatal, pre-flight import failures.

Per-record problems never raise out of the import loop; they are reported
as RecordResult values instead. Everything here aborts the whole run.
"""

from typing import Optional


class QueueImportError(Exception):
    """Base exception for the queue importer."""


class SourceFileNotFoundError(QueueImportError):
    """Raised when the CSV source file does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"CSV file does not exist: {path}")


class NothingToImportError(QueueImportError):
    """Raised when the source holds no data lines (empty or header only)."""

    def __init__(self, path: str, line_count: int):
        self.path = path
        self.line_count = line_count
        super().__init__(f"CSV file is empty or contains only header: {path}")


class TransportError(QueueImportError):
    """Raised when the queue provider cannot be reached or used."""

    def __init__(self, message: str, error_code: Optional[int] = None):
        self.error_code = error_code
        super().__init__(message)


class QueueAccessDeniedError(TransportError):
    """Raised when the provider refuses access to the destination queue."""
