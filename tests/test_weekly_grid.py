from datetime import datetime

from fixtures.workbooks import project_code_grid_rows, weekly_grid_rows
from models.entries import ParseContext
from services.sheets import find_header_row
from services.weekly_grid import convert_grid, detect_weekly_grid, resolve_day_dates

WEEK_ENDING = datetime(2024, 4, 5)
PROJECT_CODE_LINES = [
    ["PROJ-001", "DEV - Feature A", None, None, 2, 1, None, None, None],
    ["PROJ-002", "QA - Bug Bash", None, None, None, None, 3.5, None, None],
]


def _convert(matrix, developer=None):
    header_row, _ = find_header_row(matrix)
    layout = detect_weekly_grid(matrix, header_row)
    assert layout is not None
    return layout, convert_grid(matrix, layout, ParseContext(default_developer=developer))


def test_mon_fri_grid_with_week_ending(developer):
    matrix = weekly_grid_rows(
        developer, "2024-04-05", [["QA Project Grid", "Build parser", 1, 0, 0.25, "", 2]]
    )
    layout, result = _convert(matrix, developer)

    assert layout.anchor == "header"
    assert (layout.project_col, layout.task_col) == (0, 1)
    assert result.errors == []
    assert [row["duration_minutes"] for _, row in result.rows] == [60, 15, 120]
    assert [row["date"] for _, row in result.rows] == [
        datetime(2024, 4, 1),
        datetime(2024, 4, 3),
        datetime(2024, 4, 5),
    ]
    for row_number, row in result.rows:
        assert row_number == 5
        assert row["developer"] == developer
        assert row["project"] == "QA Project Grid"
        assert row["task"] == "Build parser"


def test_developer_is_found_when_not_known(developer):
    matrix = weekly_grid_rows(developer, "2024-04-05", [["Apollo", "Build", 1, 1, 1, 1, 1]])
    _, result = _convert(matrix)
    assert result.developer == developer
    assert result.warnings == []


def test_missing_developer_is_a_warning():
    matrix = weekly_grid_rows("", "2024-04-05", [["Apollo", "Build", 1, 0, 0, 0, 0]])
    matrix[0] = ["Timesheet"]
    _, result = _convert(matrix)
    assert result.warnings == ["Developer name not found on sheet"]
    assert result.errors == []
    assert result.rows[0][1]["developer"] == ""


def test_project_code_layout_with_weekday_labels(developer):
    matrix = project_code_grid_rows(developer, WEEK_ENDING, PROJECT_CODE_LINES)
    layout, result = _convert(matrix)

    assert layout.anchor == "weekday-row"
    assert (layout.project_col, layout.task_col) == (2, 3)
    assert result.developer == developer
    entries = [
        (row["project"], row["task"], row["date"], row["duration_minutes"])
        for _, row in result.rows
    ]
    assert entries == [
        ("PROJ-001", "DEV - Feature A", datetime(2024, 4, 1), 120),
        ("PROJ-001", "DEV - Feature A", datetime(2024, 4, 2), 60),
        ("PROJ-002", "QA - Bug Bash", datetime(2024, 4, 3), 210),
    ]


def test_project_code_layout_without_day_labels(developer):
    matrix = project_code_grid_rows(developer, WEEK_ENDING, PROJECT_CODE_LINES, label_days=False)
    layout, result = _convert(matrix)

    assert layout.anchor == "project-code"
    assert [col for _, col in layout.day_columns] == [4, 5, 6, 7, 8, 9, 10]
    assert [day for day, _ in layout.day_columns] == [5, 6, 0, 1, 2, 3, 4]
    assert len(result.rows) == 3
    assert result.rows[0][1]["date"] == datetime(2024, 4, 1)


def test_sat_to_fri_dates_count_back_from_rightmost_column(developer):
    matrix = project_code_grid_rows(developer, WEEK_ENDING, PROJECT_CODE_LINES)
    layout = detect_weekly_grid(matrix, -1)
    dates, used_dates_row = resolve_day_dates(matrix, layout)
    assert dates[0] == datetime(2024, 3, 30)
    assert dates[-1] == WEEK_ENDING
    assert not used_dates_row


def test_dates_row_under_header_is_used_and_skipped(developer):
    matrix = [
        ["Developer", developer],
        ["Project", "Task", "Mon", "Tue", "Wed", "Thu", "Fri"],
        [None, None, *(datetime(2024, 4, day) for day in range(1, 6))],
        ["Apollo", "Build", 8, None, None, None, 4],
    ]
    _, result = _convert(matrix)
    assert result.errors == []
    assert [(n, row["date"]) for n, row in result.rows] == [
        (4, datetime(2024, 4, 1)),
        (4, datetime(2024, 4, 5)),
    ]


def test_hours_row_is_not_mistaken_for_dates(developer):
    matrix = [
        ["Name:", developer],
        ["Project", "Task", "Mon", "Tue", "Wed", "Thu", "Fri"],
        ["Apollo", "Build", 1, 2, 3, 4, 5],
    ]
    _, result = _convert(matrix)
    assert result.rows == []
    assert len(result.errors) == 1
    assert "no dates" in result.errors[0]


def test_dates_embedded_in_day_headers(developer):
    matrix = [
        ["Project", "Task", *(f"{name} 4/{day}/2024" for day, name in
                              zip(range(1, 6), ["Mon", "Tue", "Wed", "Thu", "Fri"]))],
        ["Apollo", "Build", 0.5, None, None, None, None],
    ]
    _, result = _convert(matrix, developer)
    assert result.rows == [
        (2, {
            "developer": developer,
            "project": "Apollo",
            "task": "Build",
            "date": datetime(2024, 4, 1),
            "duration_minutes": 30,
        })
    ]


def test_total_rows_and_blank_rows_are_skipped(developer):
    matrix = weekly_grid_rows(
        developer,
        "2024-04-05",
        [
            ["Apollo", "Build", 1, 1, 0, 0, 0],
            ["Subtotal", "", 1, 1, 0, 0, 0],
            [None, None, None, None, None, None, None],
            ["Daily Total", "", 8, 8, 8, 8, 8],
        ],
    )
    _, result = _convert(matrix, developer)
    assert {row["project"] for _, row in result.rows} == {"Apollo"}
    assert len(result.rows) == 2


def test_implausible_hours_are_ignored_with_a_warning(developer):
    matrix = weekly_grid_rows(developer, "2024-04-05", [["Apollo", "Build", 30, 1, 0, 0, 0]])
    _, result = _convert(matrix, developer)
    assert len(result.rows) == 1
    assert result.warnings == ["Row 5: ignored implausible hours value 30 for Mon"]


def test_grid_with_no_hours_is_an_error(developer):
    matrix = weekly_grid_rows(developer, "2024-04-05", [["Apollo", "Build", 0, 0, 0, 0, 0]])
    _, result = _convert(matrix, developer)
    assert result.rows == []
    assert "no hours" in result.errors[0]


def test_grid_without_project_column_is_an_error(developer):
    matrix = [
        ["Week Ending", "2024-04-05"],
        ["Who", "Mon", "Tue", "Wed", "Thu", "Fri"],
        [developer, 1, 1, 1, 1, 1],
    ]
    _, result = _convert(matrix, developer)
    assert result.rows == []
    assert "no Project column" in result.errors[0]


def test_row_based_sheets_are_not_grids():
    matrix = [["Developer", "Project", "Date", "Duration"], ["Jane Doe", "Apollo", "2026-02-05", 60]]
    assert detect_weekly_grid(matrix, 0) is None


def test_weekday_columns_next_to_a_date_column_are_not_a_grid():
    header = ["Project", "Date", "Mon", "Tue", "Wed", "Thu", "Fri"]
    assert detect_weekly_grid([header], 0) is None


def test_sheet_without_any_layout_is_not_a_grid():
    assert detect_weekly_grid([["hello"], ["world"]], -1) is None


def test_dated_label_row_does_not_hide_the_grid(developer):
    matrix = [
        ["Developer", developer, "Date", "2024-04-05"],
        ["Week Ending", "2024-04-05"],
        [],
        ["Project", "Task", "Mon", "Tue", "Wed", "Thu", "Fri"],
        ["Apollo", "Build", 8, None, None, None, 4],
    ]
    assert find_header_row(matrix) == (0, 2)

    layout = detect_weekly_grid(matrix, 0)

    assert layout.anchor == "weekday-row"
    assert layout.header_row == 3
    assert (layout.project_col, layout.task_col) == (0, 1)
    result = convert_grid(matrix, layout, ParseContext(default_developer=developer))
    assert [(n, row["date"]) for n, row in result.rows] == [
        (5, datetime(2024, 4, 1)),
        (5, datetime(2024, 4, 5)),
    ]


def test_week_ending_dates_skip_non_day_columns(developer):
    matrix = [
        ["Week Ending", "2024-04-05"],
        ["Project", "Task", "Mon", "Tue", "Wed", "Notes", "Thu", "Fri"],
        ["Apollo", "Build", 1, 1, 1, "late start", 1, 1],
    ]
    layout, result = _convert(matrix, developer)
    dates, _ = resolve_day_dates(matrix, layout)

    assert dates == [datetime(2024, 4, day) for day in range(1, 6)]
    assert [row["date"] for _, row in result.rows][3] == datetime(2024, 4, 4)
