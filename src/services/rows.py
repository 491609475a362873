"""
Row validation and time entry building.

Each normalized row either becomes a TimeEntryCandidate (plus a preview row)
or a single "Row {n}: ..." error. Row errors never stop the scan.
"""

import re
from datetime import datetime

from core.dates import calculate_duration, parse_date, parse_time, start_of_day
from core.validation import duration_errors
from models.entries import NormalizedRow, ParseContext, PreviewRow, TimeEntryCandidate
from services.columns import has_value

LEADING_INT_RE = re.compile(r"^[+-]?\d+")


class RowError(ValueError):
    """A single row cannot be turned into a time entry."""


def clean_text(value) -> str | None:
    """Stripped text of a cell, None when empty."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def parse_minutes(value) -> int | None:
    """
    Integer minutes from a duration cell ("90", 90, 90.0, "90 min").

    Fractions are truncated. Returns None if no leading integer is present.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = LEADING_INT_RE.match(str(value).strip())
    return int(match.group(0)) if match else None


def is_blank_row(row: NormalizedRow) -> bool:
    return not any(has_value(value) for value in row.values())


def _resolve_duration(row: NormalizedRow, day: datetime) -> tuple[int, datetime | None]:
    """Duration in minutes and the parsed start time, if one was given."""
    start = parse_time(day, row["start_time"]) if has_value(row.get("start_time")) else None

    if has_value(row.get("duration_minutes")):
        raw = row["duration_minutes"]
        minutes = parse_minutes(raw)
        if minutes is None:
            raise RowError(f"Invalid duration: {raw}")
        return minutes, start

    has_start = has_value(row.get("start_time"))
    has_end = has_value(row.get("end_time"))
    if has_start and has_end:
        end = parse_time(day, row["end_time"])
        if start is None or end is None:
            raise RowError("Invalid start or end time")
        return calculate_duration(start, end), start

    raise RowError("Must provide either duration or start/end times")


def build_entry(
    row: NormalizedRow, context: ParseContext
) -> tuple[TimeEntryCandidate, PreviewRow] | None:
    """
    Validate one normalized row.

    Returns:
        Tuple of (candidate, preview row), or None for a blank row

    Raises:
        RowError: If the row is missing data or has an invalid duration
    """
    if is_blank_row(row):
        return None

    developer = clean_text(row.get("developer")) or context.default_developer
    if not developer:
        raise RowError("Missing developer name")

    project = clean_text(row.get("project"))
    if not project:
        raise RowError("Missing project name")

    raw_date = row.get("date")
    if not has_value(raw_date):
        raise RowError("Missing date")
    day = parse_date(raw_date)
    if day is None:
        raise RowError(f"Invalid date: {clean_text(raw_date)}")

    minutes, start = _resolve_duration(row, day)
    problems = duration_errors(minutes)
    if problems:
        raise RowError(problems[0])

    start_time = start or start_of_day(day)
    task = clean_text(row.get("task"))
    notes = clean_text(row.get("notes"))

    candidate = TimeEntryCandidate(
        developer_name=developer,
        project_name=project,
        start_time=start_time,
        duration_minutes=minutes,
        task_name=task,
        description=notes,
    )
    preview: PreviewRow = {
        "developer": developer,
        "project": project,
        "task": task,
        "start_time": start_time,
        "duration_minutes": minutes,
        "notes": notes,
    }
    return candidate, preview


def validate_rows(
    rows: list[tuple[int, NormalizedRow]], context: ParseContext
) -> tuple[list[tuple[TimeEntryCandidate, PreviewRow]], list[str]]:
    """
    Build entries for numbered rows, collecting one error per failing row.

    Returns:
        Tuple of (built (candidate, preview) pairs in row order, error strings)
    """
    built = []
    errors = []
    for row_number, row in rows:
        try:
            entry = build_entry(row, context)
        except RowError as e:
            errors.append(f"Row {row_number}: {e}")
            continue
        if entry is not None:
            built.append(entry)
    return built, errors
