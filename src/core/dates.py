"""
Date and time normalization for spreadsheet cell values.

Spreadsheet cells arrive as strings, numbers (serial day counts), or the
datetime/date/time values openpyxl produces for formatted cells. Everything
returned here is a naive datetime in local time.
"""

import math
import re
from datetime import date, datetime, time, timedelta

from core.config import SERIAL_DATE_OFFSET, SERIAL_STRING_RANGE

SERIAL_EPOCH = datetime(1970, 1, 1)

ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
SLASH_DATE_RE = re.compile(r"^(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4}|\d{2})$")
NUMERIC_RE = re.compile(r"^[+-]?\d+(?:\.\d+)?$")
CLOCK_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?(?:\s*([AaPp][Mm]))?$")
COMPACT_TIME_RE = re.compile(r"^(\d{1,2})(\d{2})$")

# Used to pull a date out of free text such as "Mon 4/1/2024" or "Week Ending: 2024-04-05"
EMBEDDED_DATE_RE = re.compile(
    r"\d{4}-\d{1,2}-\d{1,2}|\d{1,2}[/.\-]\d{1,2}[/.\-](?:\d{4}|\d{2})(?!\d)"
)

FALLBACK_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%a %b %d %Y",
    "%A, %B %d, %Y",
    "%d-%b-%Y",
    "%d-%b-%y",
]


def from_serial(serial: float) -> datetime | None:
    """Convert a spreadsheet serial day count to a datetime."""
    if not math.isfinite(serial):
        return None
    try:
        return SERIAL_EPOCH + timedelta(days=serial - SERIAL_DATE_OFFSET)
    except OverflowError:
        return None


def to_serial(value: date) -> int:
    """Spreadsheet serial day count for a calendar date."""
    return (value - SERIAL_EPOCH.date()).days + SERIAL_DATE_OFFSET


def _to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _build_date(year: int, month: int, day: int) -> datetime | None:
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def parse_date(value) -> datetime | None:
    """
    Parse a date cell value.

    Numbers are spreadsheet serials. Purely numeric strings are serials only
    inside SERIAL_STRING_RANGE, otherwise unparseable, so an hours value such
    as "1" can never be read as a date. Slash dates are D/M/Y when the first
    part exceeds 12, M/D/Y otherwise (US default when ambiguous). Two-digit
    years are 20xx.

    Returns:
        Naive local datetime, or None if the value is not a date
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _to_local_naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, (int, float)):
        return from_serial(float(value))

    text = str(value).strip()
    if not text:
        return None

    if NUMERIC_RE.match(text):
        serial = float(text)
        low, high = SERIAL_STRING_RANGE
        if low <= serial <= high:
            return from_serial(serial)
        return None

    match = ISO_DATE_RE.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _build_date(year, month, day)

    match = SLASH_DATE_RE.match(text)
    if match:
        first, second, year = (int(g) for g in match.groups())
        if year < 100:
            year += 2000
        if first > 12:
            day, month = first, second
        else:
            month, day = first, second
        return _build_date(year, month, day)

    return _parse_generic(text)


def _parse_generic(text: str) -> datetime | None:
    """Fallback for ISO date-times and written-out dates."""
    iso_text = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return _to_local_naive(datetime.fromisoformat(iso_text))
    except ValueError:
        pass

    for fmt in FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def find_embedded_date(text: str) -> datetime | None:
    """Return the first parseable date inside a longer string."""
    for match in EMBEDDED_DATE_RE.finditer(text or ""):
        parsed = parse_date(match.group(0))
        if parsed:
            return parsed
    return None


def parse_time(day: datetime, value) -> datetime | None:
    """
    Combine a time-of-day cell value with a calendar day.

    Accepts H:MM, H:MM:SS, either with an optional AM/PM suffix, compact HHMM,
    time/datetime cells, and day fractions (0.375 == 09:00). Seconds are dropped.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (datetime, time)):
        hours, minutes = value.hour, value.minute
    elif isinstance(value, (int, float)) and 0 <= value < 1:
        total = round(value * 24 * 60)
        hours, minutes = divmod(total, 60)
    else:
        text = str(value).strip()
        match = CLOCK_TIME_RE.match(text)
        if match:
            hours, minutes = int(match.group(1)), int(match.group(2))
            meridiem = (match.group(4) or "").upper()
            if meridiem == "PM" and hours < 12:
                hours += 12
            elif meridiem == "AM" and hours == 12:
                hours = 0
        else:
            match = COMPACT_TIME_RE.match(text)
            if not match:
                return None
            hours, minutes = int(match.group(1)), int(match.group(2))

    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return day.replace(hour=hours, minute=minutes, second=0, microsecond=0)


def calculate_duration(start: datetime, end: datetime) -> int:
    """Whole minutes between two timestamps (floored, may be negative)."""
    return (end - start) // timedelta(minutes=1)


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def format_minutes_human_readable(minutes: int) -> str:
    """Format minutes as e.g. '1h 30m'."""
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"
