"""
Timesheet parsing and import orchestration.

parse_timesheet() is the single parse path: read the workbook, pick a sheet,
convert a weekly grid if there is one, validate rows, resolve entities with
the injected resolver and assemble the ParseResult. preview_timesheet() and
import_timesheet() pick the resolver; import also enforces that a file with
any error imports nothing.
"""

import logging
import sqlite3
from dataclasses import replace

from core.config import PREVIEW_LIMIT
from core.database import insert_time_entries
from models.entries import (
    ImportSummary,
    NormalizedRow,
    ParseContext,
    ParseResult,
    ProjectSummary,
)
from services.columns import normalize_row
from services.layout import collect_project_codes
from services.resolution import ImportResolver, PreviewResolver
from services.rows import clean_text, validate_rows
from services.sheets import read_workbook, rows_from_matrix, select_sheet
from services.weekly_grid import convert_grid, detect_weekly_grid

logger = logging.getLogger(__name__)

NO_SHEETS_ERROR = "Workbook contains no sheets"
NO_HEADER_ERROR = (
    "Could not find a header row. Expected columns such as Developer, Project, "
    "Date and Duration (or Start/End), or a weekly grid with day columns"
)


class ImportRejectedError(ValueError):
    """A timesheet with errors was submitted for import; nothing was saved."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(f"Import rejected with {len(self.errors)} error(s)")


def _assemble(
    result: ParseResult,
    rows: list[tuple[int, NormalizedRow]],
    context: ParseContext,
    resolver,
    matrix: list[list] | None = None,
    structural_errors: list[str] | None = None,
) -> ParseResult:
    built, row_errors = validate_rows(rows, context)
    candidates = [candidate for candidate, _ in built]

    result.entries = resolver.resolve_entries(candidates)
    result.preview = [preview for _, preview in built[:PREVIEW_LIMIT]]

    developers = sorted({c.developer_name for c in candidates})
    result.developers = developers
    if context.default_developer:
        result.detected_developer = context.default_developer
    elif len(developers) == 1:
        result.detected_developer = developers[0]

    # Every referenced project counts, including ones on rows that failed validation
    names = sorted({clean_text(row.get("project")) for _, row in rows} - {None})
    if not names and matrix:
        # A grid that failed to convert can still name its projects
        names = sorted(set(collect_project_codes(matrix)))
    invalid = resolver.find_invalid_projects(names)
    result.projects = ProjectSummary(all=names, invalid=invalid)

    errors = list(structural_errors or [])
    if invalid:
        errors.insert(0, f"Invalid projects ({len(invalid)}/{len(names)}): {', '.join(invalid)}")
    result.errors = errors + row_errors
    return result


def parse_rows(rows: list[dict], resolver, context: ParseContext | None = None) -> ParseResult:
    """
    Parse header-keyed row dicts that were extracted elsewhere.

    No sheet selection or grid detection happens; rows are numbered from
    context.first_row_number (2 by default, the row after a header).
    """
    context = context or ParseContext()
    numbered = [
        (context.first_row_number + i, normalize_row(row)) for i, row in enumerate(rows)
    ]
    result = ParseResult(sheet_name=context.sheet_name)
    return _assemble(result, numbered, context, resolver)


def parse_timesheet(data: bytes, resolver) -> ParseResult:
    """
    Parse an uploaded workbook into time entries.

    Args:
        data: Raw .xlsx or CSV bytes
        resolver: PreviewResolver or ImportResolver

    Returns:
        ParseResult (row and structure problems are in result.errors)

    Raises:
        WorkbookError: If the bytes are not a readable workbook
    """
    sheets = read_workbook(data)
    selection = select_sheet(sheets)
    if selection is None:
        logger.warning("Workbook has no sheets")
        return ParseResult(errors=[NO_SHEETS_ERROR])

    matrix = selection.sheet.rows
    header_row = selection.header_row
    context = ParseContext(
        default_developer=selection.developer,
        first_row_number=header_row + 2,
        sheet_name=selection.sheet.name,
    )
    result = ParseResult(sheet_name=selection.sheet.name)

    layout = detect_weekly_grid(matrix, header_row)
    if layout is not None:
        conversion = convert_grid(matrix, layout, context)
        result.warnings.extend(conversion.warnings)
        context = replace(context, default_developer=conversion.developer)
        if conversion.errors:
            logger.warning(
                "Weekly grid on sheet '%s' could not be converted: %s",
                selection.sheet.name,
                "; ".join(conversion.errors),
            )
            return _assemble(result, [], context, resolver, matrix, conversion.errors)
        _assemble(result, conversion.rows, context, resolver, matrix)
    elif header_row < 0:
        logger.warning("No header row or weekly grid found on sheet '%s'", selection.sheet.name)
        return _assemble(result, [], context, resolver, matrix, [NO_HEADER_ERROR])
    else:
        dicts = rows_from_matrix(matrix, header_row)
        numbered = [(header_row + 2 + i, normalize_row(row)) for i, row in enumerate(dicts)]
        _assemble(result, numbered, context, resolver, matrix)

    logger.info(
        "Parsed sheet '%s': %d entries, %d errors, %d warnings",
        result.sheet_name,
        len(result.entries),
        len(result.errors),
        len(result.warnings),
    )
    return result


def preview_timesheet(data: bytes, conn: sqlite3.Connection) -> ParseResult:
    """Parse without writing anything and flag unknown projects."""
    return parse_timesheet(data, PreviewResolver(conn))


def import_timesheet(data: bytes, conn: sqlite3.Connection) -> ImportSummary:
    """
    Parse and save a timesheet, all or nothing.

    Entity creation and entry insertion share one transaction. Any parse
    error rejects the whole file and rolls back whatever was created.

    Raises:
        ImportRejectedError: If the parse produced any error
        WorkbookError: If the bytes are not a readable workbook
    """
    try:
        result = parse_timesheet(data, ImportResolver(conn))
        if result.errors:
            raise ImportRejectedError(result.errors)
        imported = insert_time_entries(conn, [entry.to_record() for entry in result.entries])
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info("Imported %d time entries from sheet '%s'", imported, result.sheet_name)
    return ImportSummary(imported=imported, sheet_name=result.sheet_name, warnings=result.warnings)
