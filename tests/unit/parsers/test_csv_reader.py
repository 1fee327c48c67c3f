"""Unit tests for the quote-aware CSV tokenizer."""

from __future__ import annotations

from parsers.csv_reader import row_to_record, tokenize_csv


def test_tokenize_csv_handles_quoted_commas_and_escapes() -> None:
    """Quoted cells may hold commas and doubled quotes."""
    rows = tokenize_csv('name,note\n"Dana, Jr.","said ""hi"""\n')

    assert rows == [["name", "note"], ["Dana, Jr.", 'said "hi"']]


def test_tokenize_csv_accepts_mixed_line_endings() -> None:
    """CRLF, LF and bare CR should all terminate rows."""
    rows = tokenize_csv("a,b\r\n1,2\r3,4\n5,6")

    assert rows == [["a", "b"], ["1", "2"], ["3", "4"], ["5", "6"]]


def test_tokenize_csv_keeps_newlines_inside_quotes() -> None:
    """Line breaks inside quotes belong to the cell."""
    rows = tokenize_csv('body\n"line one\nline two"\n')

    assert rows == [["body"], ["line one\nline two"]]


def test_tokenize_csv_trims_cells_and_skips_blank_rows() -> None:
    """Whitespace around cells and empty rows should be dropped."""
    rows = tokenize_csv(" a , b \n\n , \n1,2\n")

    assert rows == [["a", "b"], ["1", "2"]]


def test_row_to_record_fills_missing_cells() -> None:
    """Short rows should map trailing columns to empty strings."""
    record = row_to_record(["match_id", "matched_at", "profile_name"], ["h1", "2023-01-01"])

    assert record == {"match_id": "h1", "matched_at": "2023-01-01", "profile_name": ""}

