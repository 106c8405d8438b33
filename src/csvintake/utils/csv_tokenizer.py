"""CSV tokenizing utilities.

The tokenizer is deliberately forgiving: bank exports are hand-edited in
spreadsheets, saved with mixed line endings and quoted inconsistently, so
every input produces a table and nothing here raises.
"""

import re
from typing import Iterable, Sequence

from csvintake.domain.entities import RawTable

CANDIDATE_DELIMITERS = (",", ";", "\t", "|")
DEFAULT_DELIMITER = ","

_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_BOM = "\ufeff"


def parse_csv(text: str, delimiter: str = DEFAULT_DELIMITER) -> RawTable:
    """Parse CSV text into a header row and data rows.

    Handles:
    - quoted fields containing the delimiter or line breaks
    - doubled quotes inside quoted fields ("" is a literal quote)
    - \\r\\n, \\r and \\n line endings
    - whitespace around cells (trimmed)
    - rows whose cells are all empty (dropped)

    Args:
        text: Decoded CSV text
        delimiter: Field separator

    Returns:
        RawTable whose headers are the first non-empty row. Empty or
        whitespace-only input yields an empty table.
    """
    if text.startswith(_BOM):
        text = text[1:]
    text = text.strip()
    if not text:
        return RawTable()

    rows: list[tuple[str, ...]] = []
    current_row: list[str] = []
    current_field: list[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    def end_field() -> None:
        current_row.append("".join(current_field).strip())
        current_field.clear()

    def end_row() -> None:
        end_field()
        rows.append(tuple(current_row))
        current_row.clear()

    while i < length:
        char = text[i]

        if in_quotes:
            if char == '"':
                if i + 1 < length and text[i + 1] == '"':
                    current_field.append('"')
                    i += 2
                    continue
                in_quotes = False
            else:
                current_field.append(char)
            i += 1
            continue

        if char == '"':
            in_quotes = True
        elif char == delimiter:
            end_field()
        elif char == "\r":
            end_row()
            if i + 1 < length and text[i + 1] == "\n":
                i += 1
        elif char == "\n":
            end_row()
        else:
            current_field.append(char)
        i += 1

    if current_field or current_row:
        end_row()

    non_empty = [row for row in rows if any(cell != "" for cell in row)]
    if not non_empty:
        return RawTable()

    return RawTable(headers=non_empty[0], rows=tuple(non_empty[1:]))


def detect_delimiter(text: str) -> str:
    """Guess the field separator from the first line of a CSV file.

    Counts each candidate delimiter outside quoted spans. The most frequent
    one wins; a tie for first place, or no candidate at all, gives a comma.

    Args:
        text: Decoded CSV text (only the first line is examined)

    Returns:
        The detected delimiter character
    """
    if text.startswith(_BOM):
        text = text[1:]
    first_line = _LINE_BREAK.split(text, maxsplit=1)[0]

    counts = {}
    for candidate in CANDIDATE_DELIMITERS:
        count = 0
        in_quotes = False
        for char in first_line:
            if char == '"':
                in_quotes = not in_quotes
            elif char == candidate and not in_quotes:
                count += 1
        counts[candidate] = count

    best_count = max(counts.values())
    if best_count == 0:
        return DEFAULT_DELIMITER
    winners = [d for d, count in counts.items() if count == best_count]
    if len(winners) > 1:
        return DEFAULT_DELIMITER
    return winners[0]


def _quote(cell: str, delimiter: str) -> str:
    if any(token in cell for token in (delimiter, '"', "\r", "\n")):
        return '"' + cell.replace('"', '""') + '"'
    return cell


def format_csv(
    headers: Sequence[str],
    rows: Iterable[Sequence[str]],
    delimiter: str = DEFAULT_DELIMITER,
) -> str:
    """Render a header row and data rows as CSV text readable by parse_csv."""
    lines = [delimiter.join(_quote(str(cell), delimiter) for cell in headers)]
    for row in rows:
        lines.append(delimiter.join(_quote(str(cell), delimiter) for cell in row))
    return "\n".join(lines) + "\n"
