#!/usr/bin/env python3
"""
Preview or import a spreadsheet timesheet.

Picks the sheet that looks most like a timesheet, converts weekly grids,
validates every row and either shows what would be imported (preview) or
saves it all (import). A file with any error imports nothing.

Usage:
    uv run python src/scripts/import_timesheet.py <timesheet.xlsx> [--mode preview|import]

Example:
    uv run python src/scripts/import_timesheet.py JZER240405.xlsx --mode import
"""

import argparse
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH
from core.database import create_tables, get_connection
from core.dates import format_minutes_human_readable
from core.logging_config import setup_logging
from models.entries import ParseResult
from services.sheets import WorkbookError
from services.timesheets import ImportRejectedError, import_timesheet, preview_timesheet


def print_errors(errors: list[str]) -> None:
    print(f"\nErrors ({len(errors)}):")
    for error in errors:
        print(f"  - {error}")


def print_preview(result: ParseResult) -> None:
    print(f"Sheet: {result.sheet_name}")
    print(f"Developer: {result.detected_developer or '(not detected)'}")
    print(f"Entries: {len(result.entries)}")

    if result.projects.all:
        print(f"Projects: {', '.join(result.projects.all)}")
    if result.projects.invalid:
        print(f"Unknown projects: {', '.join(result.projects.invalid)}")

    if result.preview:
        print(f"\n{'Date':<17} {'Developer':<20} {'Project':<20} {'Task':<24} {'Time':>8}")
        print("-" * 93)
        for row in result.preview:
            print(
                f"{row['start_time']:%Y-%m-%d %H:%M} "
                f"{row['developer'][:20]:<20} "
                f"{row['project'][:20]:<20} "
                f"{(row['task'] or '')[:24]:<24} "
                f"{format_minutes_human_readable(row['duration_minutes']):>8}"
            )
        if len(result.entries) > len(result.preview):
            print(f"... and {len(result.entries) - len(result.preview)} more")

    for warning in result.warnings:
        print(f"Warning: {warning}")


def main():
    parser = argparse.ArgumentParser(description="Preview or import a spreadsheet timesheet")
    parser.add_argument(
        "input_file",
        type=Path,
        help="Path to the timesheet (.xlsx or .csv)",
    )
    parser.add_argument(
        "--mode",
        choices=["preview", "import"],
        default="preview",
        help="preview shows what would be imported; import saves it (default: preview)",
    )

    args = parser.parse_args()
    setup_logging("timesheet-cli")

    if not args.input_file.exists():
        print(f"Error: File not found: {args.input_file}")
        sys.exit(1)

    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(DB_PATH)
    create_tables(conn)
    data = args.input_file.read_bytes()

    try:
        if args.mode == "preview":
            result = preview_timesheet(data, conn)
            print_preview(result)
            if result.errors:
                print_errors(result.errors)
                sys.exit(1)
        else:
            summary = import_timesheet(data, conn)
            print(f"Imported {summary.imported} time entries from sheet '{summary.sheet_name}'")
            for warning in summary.warnings:
                print(f"Warning: {warning}")
    except ImportRejectedError as e:
        print("\nImport rejected; nothing was saved.")
        print_errors(e.errors)
        sys.exit(1)
    except WorkbookError as e:
        print(f"\nError: {e}")
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
