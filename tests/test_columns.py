from services.columns import canonical_field, header_match_count, normalize_header, normalize_row


def test_normalize_header():
    assert normalize_header("  Developer   Name: ") == "developer name"
    assert normalize_header("START_TIME") == "start time"
    assert normalize_header(None) == ""


def test_exact_synonyms():
    assert canonical_field("Developer") == "developer"
    assert canonical_field("Employee Name") == "developer"
    assert canonical_field("Resource") == "developer"
    assert canonical_field("Project Code") == "project"
    assert canonical_field("Proj") == "project"
    assert canonical_field("Task Name") == "task"
    assert canonical_field("Date") == "date"
    assert canonical_field("Begin") == "start_time"
    assert canonical_field("Finish") == "end_time"
    assert canonical_field("Mins") == "duration_minutes"


def test_substring_synonyms():
    assert canonical_field("Work Date") == "date"
    assert canonical_field("Activity Type") == "task"
    assert canonical_field("Duration (minutes)") == "duration_minutes"
    assert canonical_field("Description") == "notes"
    assert canonical_field("Comments") == "notes"


def test_min_and_mins_match_as_words():
    assert canonical_field("Time (mins)") == "duration_minutes"
    assert canonical_field("Mins Worked") == "duration_minutes"
    assert canonical_field("Min Spent") == "duration_minutes"
    assert canonical_field("Admin") is None
    assert canonical_field("Minimum Rate") is None


def test_unknown_headers_are_ignored():
    assert canonical_field("Billable") is None
    assert canonical_field("") is None
    assert canonical_field("Mon") is None


def test_header_match_count():
    assert header_match_count(["Developer", "Project", "Date", "Duration", "Billable"]) == 4
    assert header_match_count(["Name:", "Jane Doe"]) == 0
    assert header_match_count(["Employee:", "Jane Doe", "Date:", "2024-04-05"]) == 0
    assert header_match_count(["Developer:", "Project:", "Date:", "Duration:"]) == 4


def test_normalize_row_maps_and_drops_keys():
    row = normalize_row(
        {"Employee": "Jane Doe", "Project Name": "Apollo", "Work Date": "2026-02-05",
         "Mins": 60, "Billable": "yes"}
    )
    assert row == {
        "developer": "Jane Doe",
        "project": "Apollo",
        "date": "2026-02-05",
        "duration_minutes": 60,
    }


def test_normalize_row_first_non_empty_value_wins():
    row = normalize_row({"Developer": "", "Resource": "Jane Doe", "Dev": "Someone Else"})
    assert row["developer"] == "Jane Doe"


def test_normalize_row_with_no_known_columns():
    assert normalize_row({"Foo": 1, "Bar": 2}) == {}
