"""
Data models for timesheet parsing.

Row-shaped intermediates use TypedDict; values the engine hands back to
callers are dataclasses.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypedDict


class NormalizedRow(TypedDict, total=False):
    """One input row mapped onto the canonical field set."""
    developer: Any
    project: Any
    task: Any
    date: Any
    start_time: Any
    end_time: Any
    duration_minutes: Any
    notes: Any


class PreviewRow(TypedDict):
    """Display projection of a valid row."""
    developer: str
    project: str
    task: str | None
    start_time: datetime
    duration_minutes: int
    notes: str | None


@dataclass(frozen=True)
class ParseContext:
    """Defaults shared by every row of one parse."""

    default_developer: str | None = None
    first_row_number: int = 2
    sheet_name: str | None = None


@dataclass
class TimeEntryCandidate:
    """A validated, name-keyed time entry."""

    developer_name: str
    project_name: str
    start_time: datetime
    duration_minutes: int
    task_name: str | None = None
    description: str | None = None


@dataclass
class ResolvedTimeEntry:
    """A time entry whose names have been replaced by store ids."""

    developer_id: int
    project_id: int
    start_time: datetime
    duration_minutes: int
    task_id: int | None = None
    description: str | None = None

    def to_record(self) -> dict:
        return {
            "developer_id": self.developer_id,
            "project_id": self.project_id,
            "task_id": self.task_id,
            "start_time": self.start_time,
            "duration_minutes": self.duration_minutes,
            "description": self.description,
        }


@dataclass
class ProjectSummary:
    all: list[str] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)


@dataclass
class ParseResult:
    """The engine's only output."""

    entries: list[TimeEntryCandidate | ResolvedTimeEntry] = field(default_factory=list)
    sheet_name: str | None = None
    detected_developer: str | None = None
    developers: list[str] = field(default_factory=list)
    projects: ProjectSummary = field(default_factory=ProjectSummary)
    preview: list[PreviewRow] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class ImportSummary:
    imported: int
    sheet_name: str | None
    warnings: list[str] = field(default_factory=list)
