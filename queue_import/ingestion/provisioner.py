"""
Makes sure the destination queue exists before an import starts.
"""

import logging

from queue_import.transport.base import QueueTransport, split_journal_marker

logger = logging.getLogger(__name__)


def strip_journal_marker(name: str) -> str:
    """Return the base queue name without a trailing ';journal' marker."""
    base, _ = split_journal_marker(name)
    return base


class QueueProvisioner:
    """Creates missing destination queues.

    The journal marker selects a view of an existing queue at send time,
    so existence checks and creation always run against the base name.
    Check-then-create is not atomic.
    """

    def __init__(self, transport: QueueTransport):
        self.transport = transport

    def ensure_queue(self, destination: str) -> str:
        """Create the base queue for a destination if needed and return its name."""
        base_name = strip_journal_marker(destination)

        if not self.transport.exists(base_name):
            logger.info(f"Creating destination queue: {base_name}")
            self.transport.create(base_name)
        else:
            logger.debug(f"Destination queue exists: {base_name}")

        return base_name
