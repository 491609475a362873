"""
Weekly-grid timesheets.

A grid sheet has one row per project/task and one column per weekday holding
hours worked. Detection finds the day columns and the project/task columns;
conversion rewrites each positive hours cell into a row-based entry dict with
the same canonical fields the row validator expects.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from core.config import (
    DEVELOPER_SCAN_ROWS,
    HOURS_SCAN_ROWS,
    LAYOUT_SCAN_ROWS,
    MAX_GRID_HOURS,
    MIN_WEEKDAY_COLUMNS,
)
from core.dates import find_embedded_date
from models.entries import NormalizedRow, ParseContext
from services.columns import canonical_field, normalize_header
from services.layout import (
    cell_text,
    find_developer_label,
    find_project_code_header,
    find_week_anchor,
    find_weekday_row,
    plausible_date,
    to_number,
    weekday_columns,
)

logger = logging.getLogger(__name__)

PROJECT_COLUMN_TOKENS = ("project", "client", "job")
TASK_COLUMN_TOKENS = ("task", "activity", "work item", "description", "role", "story", "card")

# Day order of the "Project Code" layout: Sat..Fri right of the task column
PROJECT_CODE_WEEK = (5, 6, 0, 1, 2, 3, 4)

DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass
class GridLayout:
    """Where the grid lives on the sheet."""

    header_row: int
    day_columns: list[tuple[int, int]]  # (day index 0=Mon..6=Sun, column), left to right
    project_col: int | None
    task_col: int | None
    anchor: str  # "header", "weekday-row" or "project-code"


@dataclass
class GridConversion:
    rows: list[tuple[int, NormalizedRow]] = field(default_factory=list)
    developer: str | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# =============================================================================
# DETECTION
# =============================================================================


def _find_column(header: list, tokens: tuple[str, ...], exclude: set[int]) -> int | None:
    for col, cell in enumerate(header):
        if col in exclude:
            continue
        text = normalize_header(cell)
        if text and any(token in text for token in tokens):
            return col
    return None


def _layout_for_row(matrix: list[list], header_row: int, day_columns, anchor: str) -> GridLayout:
    header = matrix[header_row]
    day_cols = {col for _, col in day_columns}

    project_col = _find_column(header, PROJECT_COLUMN_TOKENS, day_cols)
    task_col = None
    if project_col is not None:
        task_col = _find_column(header, TASK_COLUMN_TOKENS, day_cols | {project_col})
        if task_col is None:
            task_col = project_col + 1

    return GridLayout(
        header_row=header_row,
        day_columns=sorted(day_columns, key=lambda pair: pair[1]),
        project_col=project_col,
        task_col=task_col,
        anchor=anchor,
    )


def _is_row_based_header(header: list) -> bool:
    fields = {canonical_field(cell) for cell in header}
    return (
        "date" in fields
        or "duration_minutes" in fields
        or {"start_time", "end_time"} <= fields
    )


def detect_weekly_grid(matrix: list[list], header_row: int) -> GridLayout | None:
    """
    Decide whether a sheet is a weekly grid.

    The header row found by sheet selection is checked first: five or more
    distinct weekday names and no date, duration or start/end columns make it
    a grid header. Otherwise the matrix is rescanned for a weekday row and
    then for a "Project Code" cell. A header with a date column stays
    row-based unless it has no day columns of its own and a weekday row
    exists elsewhere on the sheet.

    Returns:
        GridLayout, or None for a row-based sheet
    """
    weekday_row = find_weekday_row(matrix, LAYOUT_SCAN_ROWS)

    if header_row >= 0:
        header = matrix[header_row]
        days = weekday_columns(header)
        if len(days) >= MIN_WEEKDAY_COLUMNS and not _is_row_based_header(header):
            return _layout_for_row(matrix, header_row, days, "header")
        header_has_date = any(canonical_field(cell) == "date" for cell in header)
        if header_has_date and (days or weekday_row < 0):
            return None

    if weekday_row >= 0:
        return _layout_for_row(matrix, weekday_row, weekday_columns(matrix[weekday_row]), "weekday-row")

    position = find_project_code_header(matrix, HOURS_SCAN_ROWS)
    if position is None:
        return None

    row, project_col = position
    header = matrix[row]
    task_col = _find_column(header, TASK_COLUMN_TOKENS, {project_col})
    if task_col is None or task_col <= project_col:
        task_col = project_col + 1
    return GridLayout(
        header_row=row,
        day_columns=[(day, task_col + 1 + i) for i, day in enumerate(PROJECT_CODE_WEEK)],
        project_col=project_col,
        task_col=task_col,
        anchor="project-code",
    )


# =============================================================================
# DATES
# =============================================================================


def _header_dates(matrix: list[list], layout: GridLayout) -> list[datetime] | None:
    header = matrix[layout.header_row]
    dates = []
    for _, col in layout.day_columns:
        cell = header[col] if col < len(header) else None
        parsed = find_embedded_date(cell) if isinstance(cell, str) else plausible_date(cell)
        if parsed is None:
            return None
        dates.append(parsed)
    return dates


def _dates_row(matrix: list[list], layout: GridLayout) -> list[datetime] | None:
    """Dates in the row right under the header, if every day cell holds one."""
    r = layout.header_row + 1
    if r >= len(matrix):
        return None
    row = matrix[r]
    dates = []
    for _, col in layout.day_columns:
        parsed = plausible_date(row[col]) if col < len(row) else None
        if parsed is None:
            return None
        dates.append(parsed)
    return dates


def resolve_day_dates(matrix: list[list], layout: GridLayout) -> tuple[list[datetime] | None, bool]:
    """
    Calendar date for each day column.

    Explicit dates (in the header cells or a dates row beneath) win. Otherwise
    the "Week Ending" anchor is taken as the date of the rightmost day column
    and the others count back one day per day column. Non-day columns sitting
    between day columns ("Mon | Tue | Notes | Wed") do not shift the dates.

    Returns:
        Tuple of (dates in day-column order or None, whether a dates row was used)
    """
    dates = _header_dates(matrix, layout)
    if dates:
        return dates, False

    dates = _dates_row(matrix, layout)
    if dates:
        return dates, True

    _, anchor = find_week_anchor(matrix, LAYOUT_SCAN_ROWS)
    if anchor is None:
        return None, False

    last = len(layout.day_columns) - 1
    return [anchor + timedelta(days=i - last) for i in range(len(layout.day_columns))], False


# =============================================================================
# CONVERSION
# =============================================================================


def _text_at(row: list, col: int | None) -> str:
    if col is None or col >= len(row):
        return ""
    return cell_text(row[col])


def _hours_at(row: list, col: int) -> float | None:
    return to_number(row[col]) if col < len(row) else None


def convert_grid(matrix: list[list], layout: GridLayout, context: ParseContext) -> GridConversion:
    """
    Rewrite a grid into numbered rows, one per positive hours cell.

    Row numbers are the 1-based sheet rows the hours came from. Any structural
    problem (no project column, no dates, no hours) returns errors and no rows.
    """
    result = GridConversion()

    developer = context.default_developer or find_developer_label(matrix, DEVELOPER_SCAN_ROWS)
    result.developer = developer
    if not developer:
        result.warnings.append("Developer name not found on sheet")

    if layout.project_col is None:
        result.errors.append(
            "Weekly grid detected but no Project column found in the header row"
        )
        return result

    dates, skip_dates_row = resolve_day_dates(matrix, layout)
    if not dates:
        result.errors.append(
            "Weekly grid detected but no dates found for the day columns "
            "(add a 'Week Ending' date or dates under the day headers)"
        )
        return result

    first_row = layout.header_row + 1 + (1 if skip_dates_row else 0)
    for r in range(first_row, len(matrix)):
        row = matrix[r]
        project = _text_at(row, layout.project_col)
        task = _text_at(row, layout.task_col)
        hours = [_hours_at(row, col) for _, col in layout.day_columns]

        if not project and not task and all(h is None for h in hours):
            continue
        label = f"{project} {task}".lower()
        if "total" in label:
            continue

        row_number = r + 1
        for (day, _), day_date, value in zip(layout.day_columns, dates, hours):
            if value is None or not math.isfinite(value) or value <= 0:
                continue
            if value > MAX_GRID_HOURS:
                result.warnings.append(
                    f"Row {row_number}: ignored implausible hours value {value:g} for {DAY_NAMES[day]}"
                )
                continue
            entry: NormalizedRow = {
                "developer": developer or "",
                "project": project,
                "task": task or None,
                "date": day_date,
                "duration_minutes": round(value * 60),
            }
            result.rows.append((row_number, entry))

    if not result.rows:
        result.errors.append("Weekly grid detected but no hours were found in the day columns")
        return result

    logger.info(
        "Converted weekly grid (%s anchor, header row %d) into %d entries",
        layout.anchor,
        layout.header_row + 1,
        len(result.rows),
    )
    return result
