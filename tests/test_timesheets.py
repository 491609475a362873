from datetime import datetime

import pytest

from core.database import count_time_entries, create_project, list_time_entries
from fixtures.workbooks import (
    csv_bytes,
    project_code_grid_rows,
    row_based_rows,
    weekly_grid_rows,
    workbook_bytes,
)
from models.entries import ParseContext, ResolvedTimeEntry
from services.resolution import ImportResolver, PreviewResolver
from services.sheets import WorkbookError
from services.timesheets import (
    NO_HEADER_ERROR,
    NO_SHEETS_ERROR,
    ImportRejectedError,
    import_timesheet,
    parse_rows,
    preview_timesheet,
)


def _entry(developer, project, duration=60, day="2026-02-05", task="Build"):
    return [developer, project, task, day, duration, None]


def _timesheet(entries) -> bytes:
    return workbook_bytes({"Timesheet": row_based_rows(entries)})


def _count(conn, table):
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


def test_preview_row_based_timesheet(conn, developer, projects):
    for name in projects:
        create_project(conn, name)
    data = _timesheet([_entry(developer, projects[0]), _entry(developer, projects[1], 90)])

    result = preview_timesheet(data, conn)

    assert result.errors == []
    assert result.sheet_name == "Timesheet"
    assert len(result.entries) == 2
    assert result.detected_developer == developer
    assert result.developers == [developer]
    assert result.projects.all == sorted(projects)
    assert result.projects.invalid == []
    assert result.preview[1]["duration_minutes"] == 90
    assert result.preview[0]["start_time"] == datetime(2026, 2, 5)


def test_preview_is_capped_at_ten_rows(conn, developer, projects):
    create_project(conn, projects[0])
    entries = [_entry(developer, projects[0]) for _ in range(12)]
    entries.insert(5, _entry(developer, projects[0], duration=0))

    result = preview_timesheet(_timesheet(entries), conn)

    assert len(result.entries) == 12
    assert len(result.preview) == 10
    assert result.errors == ["Row 7: Duration must be greater than 0"]


def test_one_valid_and_one_zero_duration_row(conn, developer, projects):
    create_project(conn, projects[0])
    data = _timesheet([_entry(developer, projects[0]), _entry(developer, projects[0], duration=0)])

    result = preview_timesheet(data, conn)

    assert (len(result.entries), len(result.preview), len(result.errors)) == (1, 1, 1)


def test_row_numbers_follow_the_sheet(conn, developer, projects):
    create_project(conn, projects[0])
    rows = [
        ["Weekly timesheet"],
        [],
        *row_based_rows([_entry(developer, projects[0]), _entry(developer, projects[0], 37)]),
    ]
    result = preview_timesheet(workbook_bytes({"Timesheet": rows}), conn)
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Row 5: Duration must be a multiple of 15 minutes")


def test_metadata_sheet_is_skipped(conn, developer, projects):
    create_project(conn, projects[0])
    data = workbook_bytes(
        {
            "Variable": [["Status", "Active"], ["Rate", 150], ["Region", "North"]],
            "Timesheet": row_based_rows([_entry(developer, projects[0])]),
        }
    )

    result = preview_timesheet(data, conn)

    assert result.sheet_name == "Timesheet"
    assert result.errors == []
    assert len(result.entries) == 1


def test_invalid_projects_are_reported(conn, developer):
    create_project(conn, "Apollo")
    data = _timesheet([_entry(developer, "Zephyr"), _entry(developer, "Apollo")])

    result = preview_timesheet(data, conn)

    assert result.projects.all == ["Apollo", "Zephyr"]
    assert result.projects.invalid == ["Zephyr"]
    assert result.errors[0].startswith("Invalid projects (1/2)")
    assert result.errors == ["Invalid projects (1/2): Zephyr"]


def test_invalid_projects_come_before_row_errors(conn, developer):
    data = _timesheet([_entry(developer, "Zephyr"), _entry(developer, "Zephyr", 20)])
    result = preview_timesheet(data, conn)
    assert result.errors[0] == "Invalid projects (1/1): Zephyr"
    assert result.errors[1].startswith("Row 3:")


def test_projects_on_failed_rows_are_still_validated(conn, developer):
    create_project(conn, "Apollo")
    data = _timesheet([_entry(developer, "Apollo", 60), _entry(developer, "Zephyr", 37)])

    result = preview_timesheet(data, conn)

    assert len(result.entries) == 1
    assert result.projects.all == ["Apollo", "Zephyr"]
    assert result.projects.invalid == ["Zephyr"]
    assert result.errors == [
        "Invalid projects (1/2): Zephyr",
        "Row 3: Duration must be a multiple of 15 minutes (got 37)",
    ]


def test_detected_developer_needs_a_single_name(conn, projects):
    create_project(conn, projects[0])
    data = _timesheet([_entry("Zoe Adams", projects[0]), _entry("Ann Baker", projects[0])])

    result = preview_timesheet(data, conn)

    assert result.detected_developer is None
    assert result.developers == ["Ann Baker", "Zoe Adams"]


def test_weekly_grid_preview(conn, developer):
    create_project(conn, "QA Project Grid")
    matrix = weekly_grid_rows(
        developer, "2024-04-05", [["QA Project Grid", "Build parser", 1, 0, 0.25, None, 2]]
    )

    result = preview_timesheet(workbook_bytes({"Week 14": matrix}), conn)

    assert result.errors == []
    assert len(result.entries) == 3
    assert all(entry.duration_minutes % 15 == 0 for entry in result.entries)
    assert result.detected_developer == developer
    for row in result.preview:
        assert row["developer"] == developer
        assert row["project"] == "QA Project Grid"
        assert row["task"] == "Build parser"


def test_weekly_grid_under_employee_and_date_labels(conn, developer):
    create_project(conn, "Apollo")
    matrix = [
        ["Employee:", developer, "Date:", "2024-04-05"],
        ["Week Ending:", "2024-04-05"],
        [],
        ["Project", "Task", "Mon", "Tue", "Wed", "Thu", "Fri"],
        ["Apollo", "Build", 8, 7.5, None, None, 4],
    ]

    result = preview_timesheet(workbook_bytes({"Timesheet": matrix}), conn)

    assert result.errors == []
    assert result.detected_developer == developer
    assert [entry.duration_minutes for entry in result.entries] == [480, 450, 240]
    assert [entry.start_time for entry in result.entries] == [
        datetime(2024, 4, 1),
        datetime(2024, 4, 2),
        datetime(2024, 4, 5),
    ]


def test_project_code_grid_reports_unknown_codes(conn, developer):
    lines = [
        ["PROJ-001", "DEV - Feature A", None, None, 2, 1, None, None, None],
        ["PROJ-002", "QA - Bug Bash", None, None, None, None, 3.5, None, None],
    ]
    for label_days, sheet_name in ((True, "Timesheet"), (False, "Variable")):
        matrix = project_code_grid_rows(developer, datetime(2024, 4, 5), lines, label_days)
        result = preview_timesheet(workbook_bytes({sheet_name: matrix}), conn)

        assert len(result.entries) == 3
        assert result.detected_developer == developer
        assert result.projects.all == ["PROJ-001", "PROJ-002"]
        assert result.projects.invalid == ["PROJ-001", "PROJ-002"]
        assert result.errors == ["Invalid projects (2/2): PROJ-001, PROJ-002"]


def test_failed_grid_still_lists_project_codes(conn, developer):
    lines = [
        ["PROJ-001", "DEV - Feature A", None, None, 2, 1, None, None, None],
        ["PROJ-002", "QA - Bug Bash", None, None, None, None, 3.5, None, None],
        ["08/22/2025", None],
        ["Daily totals:", None],
    ]
    create_project(conn, "PROJ-002")
    matrix = project_code_grid_rows(developer, None, lines)

    result = preview_timesheet(workbook_bytes({"Sheet1": matrix}), conn)

    assert result.entries == []
    assert result.projects.all == ["PROJ-001", "PROJ-002"]
    assert result.projects.invalid == ["PROJ-001"]
    assert result.errors[0] == "Invalid projects (1/2): PROJ-001"
    assert "no dates" in result.errors[1]


def test_sheet_without_structure(conn):
    result = preview_timesheet(workbook_bytes({"Notes": [["hello"], ["world"]]}), conn)
    assert result.entries == []
    assert result.errors == [NO_HEADER_ERROR]


def test_empty_upload_has_no_sheets(conn):
    result = preview_timesheet(b"", conn)
    assert result.errors == [NO_SHEETS_ERROR]


def test_csv_upload_with_eu_and_us_dates(conn, developer):
    create_project(conn, "Apollo")
    data = csv_bytes(
        row_based_rows(
            [
                _entry(developer, "Apollo", day="13/02/2026"),
                _entry(developer, "Apollo", day="2/5/2026"),
            ]
        )
    )

    result = preview_timesheet(data, conn)

    assert result.sheet_name == "Sheet1"
    assert result.errors == []
    assert [row["start_time"] for row in result.preview] == [
        datetime(2026, 2, 13),
        datetime(2026, 2, 5),
    ]


def test_unreadable_workbook_raises(conn):
    with pytest.raises(WorkbookError):
        preview_timesheet(b"PK\x03\x04 broken", conn)


def test_import_saves_everything(conn, developer, projects):
    data = _timesheet([_entry(developer, projects[0]), _entry(developer, projects[1], 45)])

    summary = import_timesheet(data, conn)

    assert summary.imported == 2
    assert summary.sheet_name == "Timesheet"
    assert count_time_entries(conn) == 2
    assert _count(conn, "developers") == 1
    assert _count(conn, "projects") == 2
    durations = sorted(entry["duration_minutes"] for entry in list_time_entries(conn))
    assert durations == [45, 60]


def test_import_does_not_deduplicate(conn, developer, projects):
    data = _timesheet([_entry(developer, projects[0])])
    import_timesheet(data, conn)
    import_timesheet(data, conn)
    assert count_time_entries(conn) == 2
    assert _count(conn, "projects") == 1


def test_import_is_all_or_nothing(conn, developer, projects):
    data = _timesheet(
        [
            _entry(developer, projects[0]),
            _entry(developer, projects[1], duration=37),
            _entry(developer, projects[0], duration=30),
        ]
    )

    with pytest.raises(ImportRejectedError) as exc_info:
        import_timesheet(data, conn)

    assert exc_info.value.errors == ["Row 3: Duration must be a multiple of 15 minutes (got 37)"]
    assert count_time_entries(conn) == 0
    assert _count(conn, "developers") == 0
    assert _count(conn, "projects") == 0


def test_import_weekly_grid(conn, developer):
    matrix = weekly_grid_rows(developer, "2024-04-05", [["Apollo", "Build", 1, 0, 0.25, None, 2]])

    summary = import_timesheet(workbook_bytes({"Week 14": matrix}), conn)

    assert summary.imported == 3
    starts = sorted(entry["start_time"] for entry in list_time_entries(conn))
    assert starts == [datetime(2024, 4, 1), datetime(2024, 4, 3), datetime(2024, 4, 5)]


def test_import_rejects_grid_without_developer(conn):
    matrix = weekly_grid_rows("", "2024-04-05", [["Apollo", "Build", 1, 0, 0, 0, 0]])
    matrix[0] = ["Timesheet"]

    with pytest.raises(ImportRejectedError) as exc_info:
        import_timesheet(workbook_bytes({"Week 14": matrix}), conn)

    assert exc_info.value.errors == ["Row 5: Missing developer name"]


def test_parse_rows(conn, sample_rows, developer, projects):
    result = parse_rows(sample_rows, PreviewResolver(conn))

    assert len(result.entries) == 2
    assert result.entries[0].start_time == datetime(2026, 2, 5, 9, 0)
    assert result.entries[0].duration_minutes == 90
    assert result.detected_developer == developer
    assert result.projects.invalid == sorted(projects)


def test_parse_rows_numbering_follows_context(conn, sample_rows):
    sample_rows[1]["Duration"] = 10
    result = parse_rows(sample_rows, PreviewResolver(conn), ParseContext(first_row_number=10))
    assert result.errors[-1] == "Row 11: Duration must be a multiple of 15 minutes (got 10)"


def test_entries_are_resolved_on_import_path(conn, sample_rows):
    result = parse_rows(sample_rows, ImportResolver(conn))
    assert all(isinstance(entry, ResolvedTimeEntry) for entry in result.entries)
    conn.rollback()
