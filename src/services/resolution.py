"""
Entity resolution for parsed entries.

Two interchangeable resolvers share one parse path:

- PreviewResolver leaves entries name-keyed and checks which referenced
  projects exist, in one batched query. It never writes.
- ImportResolver turns names into store ids with get-or-create, in row order.
  It does not commit; the import orchestrator owns the transaction.
"""

import logging
import sqlite3

from core.config import DEFAULT_PROJECT_STATUS, DEFAULT_TASK_STATUS
from core.database import (
    create_developer,
    create_project,
    create_task,
    find_developer_by_name,
    find_project_by_name,
    find_projects_by_names,
    find_task_by_name,
)
from models.entries import ResolvedTimeEntry, TimeEntryCandidate

logger = logging.getLogger(__name__)


class PreviewResolver:
    """Non-mutating resolution used for previews."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def resolve_entries(self, candidates: list[TimeEntryCandidate]) -> list[TimeEntryCandidate]:
        return list(candidates)

    def find_invalid_projects(self, names: list[str]) -> list[str]:
        """Names with no matching project, in the order given."""
        if not names:
            return []
        existing = find_projects_by_names(self.conn, names)
        return [name for name in names if name not in existing]


class ImportResolver:
    """Get-or-create resolution used for imports."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def resolve_entries(self, candidates: list[TimeEntryCandidate]) -> list[ResolvedTimeEntry]:
        """
        Replace names with ids, creating missing developers, projects and tasks.

        Names match exactly (case-sensitive). Tasks are looked up within their
        project. Lookups are cached per call so each new name is created once.
        """
        developers: dict[str, int] = {}
        projects: dict[str, int] = {}
        tasks: dict[tuple[int, str], int] = {}
        created = 0

        resolved = []
        for candidate in candidates:
            developer_id = developers.get(candidate.developer_name)
            if developer_id is None:
                developer_id = find_developer_by_name(self.conn, candidate.developer_name)
                if developer_id is None:
                    developer_id = create_developer(self.conn, candidate.developer_name)
                    created += 1
                developers[candidate.developer_name] = developer_id

            project_id = projects.get(candidate.project_name)
            if project_id is None:
                project_id = find_project_by_name(self.conn, candidate.project_name)
                if project_id is None:
                    project_id = create_project(
                        self.conn, candidate.project_name, DEFAULT_PROJECT_STATUS
                    )
                    created += 1
                projects[candidate.project_name] = project_id

            task_id = None
            if candidate.task_name:
                key = (project_id, candidate.task_name)
                task_id = tasks.get(key)
                if task_id is None:
                    task_id = find_task_by_name(self.conn, project_id, candidate.task_name)
                    if task_id is None:
                        task_id = create_task(
                            self.conn, project_id, candidate.task_name, DEFAULT_TASK_STATUS
                        )
                        created += 1
                    tasks[key] = task_id

            resolved.append(
                ResolvedTimeEntry(
                    developer_id=developer_id,
                    project_id=project_id,
                    start_time=candidate.start_time,
                    duration_minutes=candidate.duration_minutes,
                    task_id=task_id,
                    description=candidate.description,
                )
            )

        if created:
            logger.info("Created %d new developer/project/task record(s)", created)
        return resolved

    def find_invalid_projects(self, names: list[str]) -> list[str]:
        # Missing projects are created on import
        return []
