"""Quote-aware CSV tokenizer for platform exports.

Exports mix CRLF, LF and bare CR line endings and quote cells that
contain commas or newlines. Cells are trimmed and blank rows dropped.
"""

from __future__ import annotations

from typing import Sequence


def tokenize_csv(content: str) -> list[list[str]]:
    """Split CSV text into rows of trimmed cells.

    Args:
        content: Raw CSV text.

    Returns:
        Non-blank rows in file order.
    """
    rows: list[list[str]] = []
    row: list[str] = []
    cell: list[str] = []
    in_quotes = False
    index = 0
    length = len(content)
    while index < length:
        char = content[index]
        if in_quotes:
            if char == '"':
                if index + 1 < length and content[index + 1] == '"':
                    cell.append('"')
                    index += 1
                else:
                    in_quotes = False
            else:
                cell.append(char)
        elif char == '"':
            in_quotes = True
        elif char == ",":
            row.append("".join(cell).strip())
            cell = []
        elif char in "\r\n":
            if char == "\r" and index + 1 < length and content[index + 1] == "\n":
                index += 1
            row.append("".join(cell).strip())
            _append_row(rows, row)
            row, cell = [], []
        else:
            cell.append(char)
        index += 1
    if cell or row:
        row.append("".join(cell).strip())
        _append_row(rows, row)
    return rows


def row_to_record(header: Sequence[str], row: Sequence[str]) -> dict[str, str]:
    """Project a row onto the header by position; missing cells are empty."""
    return {
        column: row[position] if position < len(row) else ""
        for position, column in enumerate(header)
    }


def _append_row(rows: list[list[str]], row: list[str]) -> None:
    if any(row):
        rows.append(row)
