"""
Queue transport port used by the importer.

The importer only depends on this contract; concrete providers live in
sibling modules (RabbitMQ for real runs, in-memory for tests and dry runs).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Tuple, Type

from queue_import.ingestion.message_mapper import OutboundMessage

JOURNAL_MARKER = ';journal'


@dataclass(frozen=True)
class MessageFormat:
    """Payload kinds a destination handle must be able to carry."""

    payload_types: Tuple[Type, ...] = (str, bytes, object, int, datetime)


DEFAULT_FORMAT = MessageFormat()


@dataclass
class QueueHandle:
    """An open destination returned by QueueTransport.open()."""

    name: str
    message_format: MessageFormat = DEFAULT_FORMAT
    journal: bool = False
    context: Any = field(default=None, repr=False)


def split_journal_marker(name: str) -> Tuple[str, bool]:
    """Split a destination into (base name, has journal marker)."""
    if name.lower().endswith(JOURNAL_MARKER):
        return name[:-len(JOURNAL_MARKER)], True
    return name, False


class QueueTransport(ABC):
    """Capabilities the importer needs from a queue provider."""

    @abstractmethod
    def exists(self, name: str) -> bool:
        """Return True when the queue exists."""

    @abstractmethod
    def create(self, name: str) -> None:
        """Create the queue."""

    @abstractmethod
    def open(self, name: str, message_format: Optional[MessageFormat] = None) -> QueueHandle:
        """Open a destination for sending."""

    @abstractmethod
    def send(self, handle: QueueHandle, message: OutboundMessage) -> None:
        """Send one message; raise on failure."""

    def close(self, handle: QueueHandle) -> None:
        """Release a handle returned by open()."""
