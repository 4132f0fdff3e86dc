"""In-memory queue transport for tests and dry runs."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Set

from queue_import.exceptions import TransportError
from queue_import.ingestion.message_mapper import OutboundMessage
from queue_import.transport.base import (
    DEFAULT_FORMAT,
    MessageFormat,
    QueueHandle,
    QueueTransport,
    split_journal_marker,
)

logger = logging.getLogger(__name__)


@dataclass
class SentMessage:
    """Record of a sent message for test assertions."""

    destination: str
    message: OutboundMessage


class InMemoryTransport(QueueTransport):
    """
    Fake transport that keeps queues and sent messages in memory.

    Every call is recorded in ``calls`` so tests can assert on the order
    and arguments of provider operations.
    """

    def __init__(self, queues: Optional[Set[str]] = None):
        self.queues: Set[str] = set(queues or ())
        self.sent: List[SentMessage] = []
        self.calls: List[tuple] = []
        self.open_handles: List[QueueHandle] = []

    def exists(self, name: str) -> bool:
        self.calls.append(('exists', name))
        return name in self.queues

    def create(self, name: str) -> None:
        self.calls.append(('create', name))
        self.queues.add(name)

    def open(self, name: str, message_format: Optional[MessageFormat] = None) -> QueueHandle:
        self.calls.append(('open', name))
        base, journal = split_journal_marker(name)
        if base not in self.queues:
            raise TransportError(f"Queue does not exist: {base}")

        handle = QueueHandle(name, message_format or DEFAULT_FORMAT, journal)
        self.open_handles.append(handle)
        return handle

    def send(self, handle: QueueHandle, message: OutboundMessage) -> None:
        self.calls.append(('send', handle.name))
        if handle not in self.open_handles:
            raise TransportError(f"Queue handle is not open: {handle.name}")
        self.sent.append(SentMessage(handle.name, message))
        logger.debug(f"Stored message '{message.label}' for {handle.name}")

    def close(self, handle: QueueHandle) -> None:
        self.calls.append(('close', handle.name))
        if handle in self.open_handles:
            self.open_handles.remove(handle)

    def messages_for(self, destination: str) -> List[OutboundMessage]:
        return [s.message for s in self.sent if s.destination == destination]

