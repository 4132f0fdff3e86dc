"""
RabbitMQ queue transport built on pika's blocking connection.
"""

import logging
from typing import Callable, Optional, Set

import pika
import pika.exceptions

from queue_import.exceptions import QueueAccessDeniedError, TransportError
from queue_import.ingestion.message_mapper import MAX_PRIORITY, OutboundMessage
from queue_import.transport.base import (
    DEFAULT_FORMAT,
    MessageFormat,
    QueueHandle,
    QueueTransport,
    split_journal_marker,
)

logger = logging.getLogger(__name__)

JOURNAL_SUFFIX = '.journal'
NOT_FOUND = 404
ACCESS_REFUSED = 403

PERSISTENT = 2
TRANSIENT = 1


def journal_queue_name(base_name: str) -> str:
    return f"{base_name}{JOURNAL_SUFFIX}"


class RabbitMQTransport(QueueTransport):
    """Queue transport for a RabbitMQ broker.

    Queues are durable and declared with a maximum priority matching the
    importer's priority range. A destination carrying the ';journal'
    marker is delivered to the companion '<base>.journal' queue.
    """

    def __init__(
        self,
        amqp_url: str,
        connection_factory: Callable[..., pika.BlockingConnection] = pika.BlockingConnection,
        heartbeat: int = 30,
        blocked_connection_timeout: float = 300
    ):
        self.amqp_url = amqp_url
        self.connection_factory = connection_factory
        self.heartbeat = heartbeat
        self.blocked_connection_timeout = blocked_connection_timeout
        self.connection: Optional[pika.BlockingConnection] = None
        self._declared_journals: Set[str] = set()

    def connect(self) -> None:
        """Connect to the broker."""
        params = pika.URLParameters(self.amqp_url)
        params.heartbeat = self.heartbeat
        params.blocked_connection_timeout = self.blocked_connection_timeout

        try:
            self.connection = self.connection_factory(params)
            logger.info(f"Connected to RabbitMQ at {params.host}:{params.port}")
        except pika.exceptions.ProbableAccessDeniedError as e:
            raise QueueAccessDeniedError(
                f"Access denied connecting to RabbitMQ: {e}", ACCESS_REFUSED
            ) from e
        except pika.exceptions.AMQPError as e:
            raise TransportError(f"Failed to connect to RabbitMQ: {e}") from e

    def disconnect(self) -> None:
        """Disconnect from the broker."""
        if self.connection:
            try:
                if self.connection.is_open:
                    self.connection.close()
                    logger.info("Disconnected from RabbitMQ")
            except pika.exceptions.AMQPError as e:
                logger.error(f"Error disconnecting from RabbitMQ: {e}")
            finally:
                self.connection = None

    def _channel(self):
        if not self.connection or self.connection.is_closed:
            self.connect()
        try:
            return self.connection.channel()
        except pika.exceptions.AMQPError as e:
            raise self._translate(e, "opening a channel") from e

    def exists(self, name: str) -> bool:
        channel = self._channel()
        try:
            channel.queue_declare(queue=name, passive=True)
        except pika.exceptions.ChannelClosedByBroker as e:
            # A failed passive declare closes the channel
            if e.reply_code == NOT_FOUND:
                return False
            raise self._translate(e, f"checking queue {name}") from e
        except pika.exceptions.AMQPError as e:
            raise self._translate(e, f"checking queue {name}") from e

        self._close_channel(channel)
        return True

    def create(self, name: str) -> None:
        channel = self._channel()
        try:
            self._declare(channel, name)
        except pika.exceptions.AMQPError as e:
            raise self._translate(e, f"creating queue {name}") from e
        finally:
            self._close_channel(channel)

    def open(self, name: str, message_format: Optional[MessageFormat] = None) -> QueueHandle:
        base_name, journal = split_journal_marker(name)

        if journal:
            self._ensure_journal(base_name)

        channel = self._channel()
        logger.info(f"Opened queue {name} for sending")
        return QueueHandle(name, message_format or DEFAULT_FORMAT, journal, channel)

    def send(self, handle: QueueHandle, message: OutboundMessage) -> None:
        base_name, _ = split_journal_marker(handle.name)
        routing_key = journal_queue_name(base_name) if handle.journal else base_name

        if handle.context is None or handle.context.is_closed:
            handle.context = self._channel()

        body, properties = self.build_publish_args(message)
        copy_to_journal = message.use_journal and not handle.journal

        # Journal provisioning must succeed before anything is delivered
        if copy_to_journal:
            self._ensure_journal(base_name)

        try:
            handle.context.basic_publish(
                exchange='', routing_key=routing_key, body=body, properties=properties
            )
            if copy_to_journal:
                handle.context.basic_publish(
                    exchange='',
                    routing_key=journal_queue_name(base_name),
                    body=body,
                    properties=properties
                )
        except pika.exceptions.AMQPError as e:
            raise self._translate(e, f"sending to {handle.name}") from e

    def close(self, handle: QueueHandle) -> None:
        if handle.context is not None:
            self._close_channel(handle.context)
            handle.context = None

    @staticmethod
    def build_publish_args(message: OutboundMessage):
        """Translate an OutboundMessage into an AMQP body and properties."""
        if isinstance(message.body, bytes):
            body = message.body
            content_type = 'application/octet-stream'
        else:
            body = message.body.encode('utf-8')
            content_type = 'text/plain'

        headers = {'x-label': message.label}
        if message.app_specific is not None:
            headers['x-app-specific'] = message.app_specific
        if message.use_journal is not None:
            headers['x-use-journal'] = message.use_journal
        if message.use_dead_letter is not None:
            headers['x-use-dead-letter'] = message.use_dead_letter

        delivery_mode = None
        if message.durable is not None:
            delivery_mode = PERSISTENT if message.durable else TRANSIENT

        properties = pika.BasicProperties(
            content_type=content_type,
            delivery_mode=delivery_mode,
            priority=message.priority,
            headers=headers
        )
        return body, properties

    def _ensure_journal(self, base_name: str) -> None:
        name = journal_queue_name(base_name)
        if name in self._declared_journals:
            return

        if not self.exists(name):
            logger.info(f"Creating journal queue: {name}")
            self.create(name)
        self._declared_journals.add(name)

    @staticmethod
    def _declare(channel, name: str) -> None:
        channel.queue_declare(
            queue=name,
            durable=True,
            arguments={'x-max-priority': MAX_PRIORITY}
        )

    @staticmethod
    def _close_channel(channel) -> None:
        try:
            if channel.is_open:
                channel.close()
        except pika.exceptions.AMQPError as e:
            logger.warning(f"Error closing channel: {e}")

    @staticmethod
    def _translate(error: Exception, action: str) -> TransportError:
        reply_code = getattr(error, 'reply_code', None)
        if reply_code == ACCESS_REFUSED or isinstance(error, pika.exceptions.ProbableAccessDeniedError):
            return QueueAccessDeniedError(
                f"Access denied while {action}: {error}", ACCESS_REFUSED
            )
        return TransportError(f"Message queue error while {action}: {error}", reply_code)

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()
