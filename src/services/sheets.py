"""
Workbook reading and sheet selection.

Every sheet is scored on how much it looks like a timesheet; the best one is
parsed. Scores are returned as a ranked list so the tie-break and the header
confidence threshold can be checked on their own.
"""

import csv
import io
import logging
import zipfile
from dataclasses import dataclass, field

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from core.config import (
    HEADER_SCAN_ROWS,
    HOURS_SCAN_ROWS,
    LAYOUT_SCAN_ROWS,
    MAX_GRID_HOURS,
    METADATA_SHEET_HINTS,
    MIN_HEADER_MATCHES,
)
from services.columns import header_match_count
from services.layout import (
    cell_text,
    find_developer_label,
    find_project_code_header,
    find_week_anchor,
    find_weekday_row,
    to_number,
)

logger = logging.getLogger(__name__)


class WorkbookError(ValueError):
    """The uploaded bytes are not a readable workbook."""


@dataclass
class Sheet:
    name: str
    rows: list[list] = field(default_factory=list)


@dataclass
class SheetScore:
    """Evidence gathered for one sheet."""

    index: int
    name: str
    header_row: int  # -1 when no row reaches MIN_HEADER_MATCHES
    header_matches: int
    has_weekday_row: bool
    has_week_ending_label: bool
    has_project_code_header: bool
    hour_like_count: int
    developer: str | None
    is_metadata_name: bool

    @property
    def score(self) -> int:
        return (
            self.header_matches
            + 3 * self.has_weekday_row
            + 2 * self.has_week_ending_label
            + 2 * self.has_project_code_header
            + 2 * (self.hour_like_count >= 3)
            + 1 * (self.developer is not None)
            - 2 * self.is_metadata_name
        )


@dataclass
class SheetSelection:
    sheet: Sheet
    score: SheetScore
    ranking: list[SheetScore]

    @property
    def header_row(self) -> int:
        return self.score.header_row

    @property
    def developer(self) -> str | None:
        return self.score.developer


# =============================================================================
# READING
# =============================================================================


def _trim_row(row) -> list:
    values = list(row)
    while values and not cell_text(values[-1]):
        values.pop()
    return values


def _trim_matrix(rows: list[list]) -> list[list]:
    while rows and not rows[-1]:
        rows.pop()
    return rows


def read_workbook(data: bytes) -> list[Sheet]:
    """
    Read every worksheet into a positional matrix.

    Zip containers are read as .xlsx with openpyxl (cached formula values);
    anything else is treated as CSV and becomes a single "Sheet1".
    """
    if data[:2] == b"PK":
        return _read_xlsx(data)
    return _read_csv(data)


def _read_xlsx(data: bytes) -> list[Sheet]:
    try:
        wb = load_workbook(io.BytesIO(data), data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError, OSError) as e:
        raise WorkbookError(f"Could not read workbook: {e}") from e

    sheets = []
    for ws in wb.worksheets:
        rows = [_trim_row(row) for row in ws.iter_rows(values_only=True)]
        sheets.append(Sheet(name=ws.title, rows=_trim_matrix(rows)))
    return sheets


def _read_csv(data: bytes) -> list[Sheet]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = data.decode("latin-1")

    try:
        reader = csv.reader(io.StringIO(text))
        rows = [_trim_row(cell if cell.strip() else None for cell in row) for row in reader]
    except csv.Error as e:
        raise WorkbookError(f"Could not read CSV: {e}") from e

    rows = _trim_matrix(rows)
    if not rows:
        return []
    return [Sheet(name="Sheet1", rows=rows)]


# =============================================================================
# SCORING
# =============================================================================


def find_header_row(matrix: list[list], max_rows: int = HEADER_SCAN_ROWS) -> tuple[int, int]:
    """
    Find the row with the most canonical header names.

    Returns:
        Tuple of (row index or -1 if below MIN_HEADER_MATCHES, match count)
    """
    best_row, best_matches = -1, 0
    for r, row in enumerate(matrix[:max_rows]):
        matches = header_match_count(row)
        if matches > best_matches:
            best_row, best_matches = r, matches

    if best_matches < MIN_HEADER_MATCHES:
        return -1, best_matches
    return best_row, best_matches


def count_hour_like_cells(matrix: list[list], max_rows: int = HOURS_SCAN_ROWS) -> int:
    """Cells holding a number in (0, 24], a proxy for an hours grid."""
    count = 0
    for row in matrix[:max_rows]:
        for cell in row:
            number = to_number(cell)
            if number is not None and 0 < number <= MAX_GRID_HOURS:
                count += 1
    return count


def is_metadata_sheet_name(name: str) -> bool:
    lowered = name.lower()
    return any(hint in lowered for hint in METADATA_SHEET_HINTS)


def score_sheet(sheet: Sheet, index: int = 0) -> SheetScore:
    matrix = sheet.rows
    header_row, header_matches = find_header_row(matrix)
    has_label, _ = find_week_anchor(matrix, LAYOUT_SCAN_ROWS)

    return SheetScore(
        index=index,
        name=sheet.name,
        header_row=header_row,
        header_matches=header_matches,
        has_weekday_row=find_weekday_row(matrix, LAYOUT_SCAN_ROWS) >= 0,
        has_week_ending_label=has_label,
        has_project_code_header=find_project_code_header(matrix, HOURS_SCAN_ROWS) is not None,
        hour_like_count=count_hour_like_cells(matrix),
        developer=find_developer_label(matrix, LAYOUT_SCAN_ROWS),
        is_metadata_name=is_metadata_sheet_name(sheet.name),
    )


def rank_sheets(sheets: list[Sheet]) -> list[SheetScore]:
    """Scores best first; ties go to more header matches, then sheet order."""
    scores = [score_sheet(sheet, i) for i, sheet in enumerate(sheets)]
    return sorted(scores, key=lambda s: (-s.score, -s.header_matches, s.index))


def select_sheet(sheets: list[Sheet]) -> SheetSelection | None:
    """Pick the sheet to parse (None only for a workbook with no sheets)."""
    if not sheets:
        return None

    ranking = rank_sheets(sheets)
    best = ranking[0]
    logger.info(
        "Selected sheet '%s' (score %d, header row %d, %d header matches) from %d sheet(s)",
        best.name,
        best.score,
        best.header_row,
        best.header_matches,
        len(sheets),
    )
    return SheetSelection(sheet=sheets[best.index], score=best, ranking=ranking)


# =============================================================================
# ROW PROJECTION
# =============================================================================


def header_keys(header: list) -> list[str]:
    """Unique dict keys for a header row; blank headers become __EMPTY_<col>."""
    keys: list[str] = []
    seen: dict[str, int] = {}
    for col, cell in enumerate(header):
        key = cell_text(cell) or f"__EMPTY_{col}"
        if key in seen:
            seen[key] += 1
            key = f"{key}_{seen[key]}"
        else:
            seen[key] = 0
        keys.append(key)
    return keys


def rows_from_matrix(matrix: list[list], header_row: int) -> list[dict]:
    """Header-keyed row dicts for every row below the header (blank rows kept)."""
    keys = header_keys(matrix[header_row])
    rows = []
    for row in matrix[header_row + 1 :]:
        rows.append({key: row[col] if col < len(row) else None for col, key in enumerate(keys)})
    return rows
