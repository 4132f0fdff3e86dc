"""Shared fixtures for importer tests."""

import pytest

from queue_import.ingestion.message_mapper import EXPORT_COLUMNS
from queue_import.transport.memory import InMemoryTransport

HEADER = ','.join(
    ''.join(part.capitalize() for part in column.split('_')) for column in EXPORT_COLUMNS
)


def csv_quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def make_row(**values) -> str:
    """Build a full 17-column exporter line; unspecified columns are empty."""
    fields = [str(values.get(column, '')) for column in EXPORT_COLUMNS]
    return ','.join(csv_quote(f) for f in fields)


@pytest.fixture
def transport():
    return InMemoryTransport()


@pytest.fixture
def write_csv(tmp_path):
    """Write lines to a CSV file under tmp_path and return its path."""
    def _write(lines, name='export.csv', encoding='utf-8'):
        path = tmp_path / name
        content = '\n'.join(lines)
        if lines:
            content += '\n'
        path.write_text(content, encoding=encoding)
        return path
    return _write
