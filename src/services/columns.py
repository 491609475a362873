"""
Header text to canonical field mapping.
"""

import re

from models.entries import NormalizedRow

# (field, exact header names, patterns searched in the header) -- exact names
# are tried for every field before any pattern, so "description" never loses
# to "desc" on a field listed earlier.
FIELD_SYNONYMS: list[tuple[str, set[str], tuple[str, ...]]] = [
    (
        "developer",
        {"developer", "developer name", "dev", "resource", "employee", "employee name"},
        (),
    ),
    ("project", {"project", "project name", "proj", "project code"}, ()),
    ("task", {"task", "task name"}, ("activity",)),
    ("date", {"date"}, ("work date",)),
    ("start_time", {"start", "start time", "begin"}, ()),
    ("end_time", {"end", "end time", "finish"}, ()),
    ("duration_minutes", {"mins", "min"}, ("duration", "minutes", r"\bmins?\b")),
    ("notes", set(), ("note", "desc", "comment")),
]


def normalize_header(value) -> str:
    """Lowercase, collapse whitespace and drop trailing label punctuation."""
    if value is None:
        return ""
    text = str(value).lower().replace("_", " ")
    text = re.sub(r"\s+", " ", text).strip()
    return text.rstrip(":*.").strip()


def canonical_field(header) -> str | None:
    """Map one header cell to a canonical field name, or None."""
    text = normalize_header(header)
    if not text:
        return None

    for field, exact, _ in FIELD_SYNONYMS:
        if text in exact:
            return field

    for field, _, patterns in FIELD_SYNONYMS:
        if any(re.search(pattern, text) for pattern in patterns):
            return field

    return None


def is_label_cell(cells: list, col: int) -> bool:
    """
    True for a "Label:" cell whose value sits to its right ("Date:" | 2024-04-05).

    A run of colon-terminated headers ("Project:" | "Date:") is not a label
    pair: the next filled cell is itself a field name.
    """
    cell = cells[col]
    if not isinstance(cell, str) or not cell.strip().endswith(":"):
        return False
    for value in cells[col + 1 :]:
        if not has_value(value):
            continue
        return not (isinstance(value, str) and (value.strip().endswith(":") or canonical_field(value)))
    return False


def header_match_count(cells) -> int:
    """Number of cells in a row that name a canonical field, label pairs excluded."""
    cells = list(cells)
    return sum(
        1
        for col, cell in enumerate(cells)
        if canonical_field(cell) and not is_label_cell(cells, col)
    )


def has_value(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def normalize_row(row: dict) -> NormalizedRow:
    """
    Map a header-keyed row onto the canonical field set.

    Unrecognised keys are ignored. When two columns map to the same field the
    first one holding a value wins.
    """
    result: NormalizedRow = {}
    for key, value in row.items():
        field = canonical_field(key)
        if field is None:
            continue
        if field in result and has_value(result[field]):
            continue
        result[field] = value
    return result
