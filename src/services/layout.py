"""
Positional scanning helpers for sheet matrices.

A matrix is the sheet as a list of rows, each a list of cell values, with
row and column indices preserved (0-based). Used by sheet scoring and
weekly-grid detection.
"""

import math
import re
from datetime import datetime

from core.config import (
    DEVELOPER_LABELS,
    LAYOUT_SCAN_ROWS,
    MIN_HEADER_MATCHES,
    MIN_WEEKDAY_COLUMNS,
    PLAUSIBLE_YEARS,
    WEEK_ANCHOR_LABELS,
)
from core.dates import NUMERIC_RE, find_embedded_date, parse_date
from services.columns import canonical_field, header_match_count, normalize_header

WEEKDAYS = {
    "mon": 0, "monday": 0,
    "tue": 1, "tues": 1, "tuesday": 1,
    "wed": 2, "weds": 2, "wednesday": 2,
    "thu": 3, "thur": 3, "thurs": 3, "thursday": 3,
    "fri": 4, "friday": 4,
    "sat": 5, "saturday": 5,
    "sun": 6, "sunday": 6,
}

INLINE_DEVELOPER_RE = re.compile(
    r"^(?:developer name|developer|employee name|employee|name)\s*:\s*(.+)$", re.IGNORECASE
)


def cell_text(value) -> str:
    """Cell value as stripped text, '' for empty cells."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.hour == value.minute == value.second == 0:
            return value.date().isoformat()
        return value.isoformat()
    return str(value).strip()


def to_number(value) -> float | None:
    """Finite numeric value of a cell (numbers or numeric strings)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and NUMERIC_RE.match(value.strip()):
        number = float(value.strip())
    else:
        return None
    return number if math.isfinite(number) else None


def plausible_date(value) -> datetime | None:
    """Parse a date and keep it only if the year is believable."""
    parsed = parse_date(value)
    low, high = PLAUSIBLE_YEARS
    if parsed and low <= parsed.year <= high:
        return parsed
    return None


def weekday_index(value) -> int | None:
    """0=Mon..6=Sun for cells like 'Mon', 'Tuesday', 'Wed 4/3'."""
    if not isinstance(value, str):
        return None
    match = re.match(r"[a-z]+", normalize_header(value))
    if not match:
        return None
    return WEEKDAYS.get(match.group(0))


def weekday_columns(row: list) -> list[tuple[int, int]]:
    """(day index, column) pairs for a row, first column per day wins."""
    seen: set[int] = set()
    columns = []
    for col, cell in enumerate(row):
        day = weekday_index(cell)
        if day is None or day in seen:
            continue
        seen.add(day)
        columns.append((day, col))
    return columns


def find_weekday_row(matrix: list[list], max_rows: int = LAYOUT_SCAN_ROWS) -> int:
    """Index of the first row naming at least five distinct weekdays, or -1."""
    for r, row in enumerate(matrix[:max_rows]):
        if len(weekday_columns(row)) >= MIN_WEEKDAY_COLUMNS:
            return r
    return -1


def next_value_right(row: list, col: int):
    """First non-empty cell to the right of col, or None."""
    for cell in row[col + 1 :]:
        if cell_text(cell):
            return cell
    return None


def cell_below(matrix: list[list], r: int, c: int):
    if r + 1 < len(matrix) and c < len(matrix[r + 1]):
        return matrix[r + 1][c]
    return None


def find_week_anchor(
    matrix: list[list], max_rows: int = LAYOUT_SCAN_ROWS
) -> tuple[bool, datetime | None]:
    """
    Look for a "Week Ending" / "Week of" label and its date.

    The date may be embedded in the label cell ("Week Ending 4/5/2024"),
    in the next non-empty cell to the right, or directly below.

    Returns:
        Tuple of (label found, anchor date or None)
    """
    found_label = False
    for r, row in enumerate(matrix[:max_rows]):
        for c, cell in enumerate(row):
            if not isinstance(cell, str):
                continue
            text = normalize_header(cell)
            if not any(label in text for label in WEEK_ANCHOR_LABELS):
                continue
            found_label = True

            embedded = find_embedded_date(cell)
            if embedded:
                return True, embedded
            for candidate in (next_value_right(row, c), cell_below(matrix, r, c)):
                anchor = plausible_date(candidate)
                if anchor:
                    return True, anchor
    return found_label, None


def _looks_like_name(text: str) -> bool:
    normalized = normalize_header(text)
    return bool(
        normalized
        and canonical_field(text) is None
        and normalized not in DEVELOPER_LABELS
        and weekday_index(text) is None
        and not any(label in normalized for label in WEEK_ANCHOR_LABELS)
        and to_number(text) is None
    )


def find_developer_label(matrix: list[list], max_rows: int = LAYOUT_SCAN_ROWS) -> str | None:
    """
    Find a sheet-level developer name such as "Name:" | "Jane Doe".

    Also accepts the label and value in one cell ("Name: Jane Doe").
    """
    for row in matrix[:max_rows]:
        # A tabular header ("Developer | Project | ...") is not a label pair
        if header_match_count(row) >= MIN_HEADER_MATCHES:
            continue
        for c, cell in enumerate(row):
            if not isinstance(cell, str):
                continue
            if normalize_header(cell) in DEVELOPER_LABELS:
                value = next_value_right(row, c)
                if isinstance(value, str) and _looks_like_name(value):
                    return value.strip()
                continue
            inline = INLINE_DEVELOPER_RE.match(cell.strip())
            if inline and _looks_like_name(inline.group(1)):
                return inline.group(1).strip()
    return None


def find_project_code_header(matrix: list[list], max_rows: int | None = None) -> tuple[int, int] | None:
    """(row, column) of a literal "Project Code" header cell."""
    for r, row in enumerate(matrix[:max_rows]):
        for c, cell in enumerate(row):
            if isinstance(cell, str) and normalize_header(cell) == "project code":
                return r, c
    return None


def collect_project_codes(matrix: list[list]) -> list[str]:
    """
    Values listed under a "Project Code" header, in sheet order.

    Skips row labels ("Daily totals:"), totals, dates and weekday names.
    """
    position = find_project_code_header(matrix)
    if position is None:
        return []
    header_row, col = position

    codes: list[str] = []
    for row in matrix[header_row + 1 :]:
        if col >= len(row):
            continue
        text = cell_text(row[col])
        if not text or text.endswith(":") or "total" in text.lower():
            continue
        if isinstance(row[col], datetime) or parse_date(text) or weekday_index(text) is not None:
            continue
        if text not in codes:
            codes.append(text)
    return codes
