"""Permissive CSV parser for spreadsheet exports.

A single left-to-right scan with a quote-mode flag. Quoted fields may hold
commas, newlines and doubled quotes. Malformed input never raises: an
unterminated quote is closed implicitly at end of input, short rows are
padded with empty strings and surplus values are dropped. Strict RFC 4180
validation is intentionally not attempted.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ParsedSheet:
    """Header list plus one dict per data row, keyed by header."""
    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)


def split_rows(text: str) -> list[list[str]]:
    """Split raw CSV text into rows of trimmed cell values."""
    result: list[list[str]] = []
    row: list[str] = []
    cell: list[str] = []
    in_quotes = False
    i = 0
    n = len(text)

    while i < n:
        char = text[i]
        next_char = text[i + 1] if i + 1 < n else ""

        if in_quotes:
            if char == '"' and next_char == '"':
                cell.append('"')
                i += 1
            elif char == '"':
                in_quotes = False
            else:
                cell.append(char)
        elif char == '"':
            in_quotes = True
        elif char == ",":
            row.append("".join(cell).strip())
            cell = []
        elif char == "\n" or (char == "\r" and next_char == "\n"):
            row.append("".join(cell).strip())
            result.append(row)
            row = []
            cell = []
            if char == "\r":
                i += 1
        else:
            cell.append(char)
        i += 1

    # Flush a trailing row that has no final newline
    if cell or row:
        row.append("".join(cell).strip())
        result.append(row)

    return result


def parse_csv(text: str) -> ParsedSheet:
    """Parse CSV text into headers and records.

    The first row is the header list. Each following row is zipped against
    the headers; missing trailing cells become "" and extra cells are dropped.
    """
    table = split_rows(text)
    if not table:
        return ParsedSheet()

    headers = [h.strip() for h in table[0]]
    rows = []
    for values in table[1:]:
        rows.append({
            header: values[idx] if idx < len(values) else ""
            for idx, header in enumerate(headers)
        })

    return ParsedSheet(headers=headers, rows=rows)
