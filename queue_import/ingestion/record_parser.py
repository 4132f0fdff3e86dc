"""
Line parser for the queue exporter's CSV format.
"""

from typing import List

SEPARATOR = ','
QUOTE = '"'


def parse_line(line: str) -> List[str]:
    """Split one CSV line into its fields.

    Commas inside a double-quoted span are literal, and a doubled quote
    inside a span is one literal quote. Any other quote toggles the span.
    An unterminated span simply runs to the end of the line; this never
    raises. Quoted fields spanning several physical lines are not
    supported, since the importer splits the file into lines first.
    """
    fields = []
    current = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]

        if char == QUOTE:
            if in_quotes and i + 1 < length and line[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == SEPARATOR and not in_quotes:
            fields.append(''.join(current))
            current = []
        else:
            current.append(char)

        i += 1

    # Last field has no trailing separator
    fields.append(''.join(current))
    return fields
