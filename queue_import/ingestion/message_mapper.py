"""
Maps parsed exporter records onto outbound queue messages.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Union

from pydantic import BaseModel, field_validator

logger = logging.getLogger(__name__)

DEFAULT_LABEL = 'Imported from CSV'
MIN_PRIORITY = 0
MAX_PRIORITY = 7

# Exporter integers are signed 32-bit decimal
INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1
INT_PATTERN = re.compile(r"\s*[+-]?[0-9]+\s*", re.ASCII)

# Queue name, message id, correlation id, label and body must be present
MIN_FIELDS = 5

# Column layout written by the queue exporter, in file order
EXPORT_COLUMNS = (
    'queue_name',
    'message_id',
    'correlation_id',
    'label',
    'body',
    'priority',
    'durable',
    'app_specific',
    'sent_time',
    'arrived_time',
    'time_to_reach_queue',
    'time_to_be_received',
    'use_journal',
    'use_dead_letter',
    'imported_at',
    'original_body_type',
    'message_size',
)


def column_index(name: str) -> int:
    """Return the position of an exporter column."""
    return EXPORT_COLUMNS.index(name)


class OutboundMessage(BaseModel):
    """A message ready to hand to the queue transport.

    Optional attributes left as None keep the provider default.
    """

    body: Union[bytes, str] = ''
    label: str = DEFAULT_LABEL
    priority: Optional[int] = None
    durable: Optional[bool] = None
    app_specific: Optional[int] = None
    use_journal: Optional[bool] = None
    use_dead_letter: Optional[bool] = None

    @field_validator('priority')
    @classmethod
    def clamp_priority(cls, v):
        if v is None:
            return v
        return min(max(v, MIN_PRIORITY), MAX_PRIORITY)


def parse_body(value: str) -> Union[bytes, str]:
    """Keep non-empty bodies as raw UTF-8 bytes so content is not reinterpreted."""
    return value.encode('utf-8') if value else value


def parse_label(value: str) -> str:
    return value


def parse_flag(value: str) -> bool:
    """Only "1" or "true" (any case) count as set."""
    return value == '1' or value.lower() == 'true'


def parse_optional_int(value: str) -> Optional[int]:
    """Plain ASCII decimal within 32-bit range, otherwise None."""
    if not INT_PATTERN.fullmatch(value):
        return None
    number = int(value)
    if not INT32_MIN <= number <= INT32_MAX:
        return None
    return number


@dataclass(frozen=True)
class ColumnMapping:
    """Binds one exporter column to an OutboundMessage attribute."""

    column: str
    attribute: str
    convert: Callable[[str], Any]

    @property
    def index(self) -> int:
        return column_index(self.column)


# Columns the importer consumes; everything else is capture-time provenance
COLUMN_MAPPING = (
    ColumnMapping('label', 'label', parse_label),
    ColumnMapping('body', 'body', parse_body),
    ColumnMapping('priority', 'priority', parse_optional_int),
    ColumnMapping('durable', 'durable', parse_flag),
    ColumnMapping('app_specific', 'app_specific', parse_optional_int),
    ColumnMapping('use_journal', 'use_journal', parse_flag),
    ColumnMapping('use_dead_letter', 'use_dead_letter', parse_flag),
)


class MessageMapper:
    """Converts parsed field lists into OutboundMessage values."""

    def __init__(self, mapping=COLUMN_MAPPING, min_fields: int = MIN_FIELDS):
        self.mapping = mapping
        self.min_fields = min_fields

    def map(self, fields: List[str]) -> Optional[OutboundMessage]:
        """Build a message from one record, or None if the record is too short."""
        if len(fields) < self.min_fields:
            logger.warning(f"Skipping record - insufficient fields: {len(fields)}")
            return None

        attributes = {}
        for column in self.mapping:
            index = column.index
            # Absent or empty columns keep the message default
            if index >= len(fields) or not fields[index]:
                continue

            value = column.convert(fields[index])
            if value is not None:
                attributes[column.attribute] = value

        return OutboundMessage(**attributes)
