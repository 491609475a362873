"""
SQLite database operations for developers, projects, tasks and time entries.
"""

import sqlite3
from datetime import datetime

from core.config import DB_PATH, DEFAULT_PROJECT_STATUS, DEFAULT_TASK_STATUS
from core.validation import validate_project_status, validate_task_status

INSERT_BATCH_SIZE = 1000
# SQLite builds before 3.32 cap bound parameters at 999
IN_CLAUSE_CHUNK = 500

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS developers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT UNIQUE,
        hourly_rate REAL,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS projects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        description TEXT,
        estimated_hours REAL,
        start_date TEXT,
        end_date TEXT,
        status TEXT NOT NULL DEFAULT 'active'
            CHECK(status IN ('active', 'completed', 'on-hold', 'cancelled')),
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        description TEXT,
        estimated_hours REAL,
        parent_task_id INTEGER,
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK(status IN ('pending', 'in-progress', 'completed', 'blocked')),
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS time_entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER NOT NULL,
        task_id INTEGER,
        developer_id INTEGER NOT NULL,
        start_time TEXT NOT NULL,
        duration_minutes INTEGER NOT NULL
            CHECK(duration_minutes > 0 AND duration_minutes % 15 = 0),
        description TEXT,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE CASCADE,
        FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE SET NULL,
        FOREIGN KEY (developer_id) REFERENCES developers(id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX IF NOT EXISTS tasks_project_id_idx ON tasks(project_id)",
    "CREATE INDEX IF NOT EXISTS tasks_parent_task_id_idx ON tasks(parent_task_id)",
    """
    CREATE INDEX IF NOT EXISTS time_entries_project_start_time_idx
        ON time_entries(project_id, start_time)
    """,
    """
    CREATE INDEX IF NOT EXISTS time_entries_developer_start_time_idx
        ON time_entries(developer_id, start_time)
    """,
    "CREATE INDEX IF NOT EXISTS time_entries_task_id_idx ON time_entries(task_id)",
    "CREATE INDEX IF NOT EXISTS time_entries_start_time_idx ON time_entries(start_time)",
    # API request logging
    """
    CREATE TABLE IF NOT EXISTS api_requests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        request_id TEXT UNIQUE NOT NULL,
        timestamp TEXT NOT NULL,
        endpoint TEXT NOT NULL,
        method TEXT NOT NULL,
        client_ip TEXT,
        file_size_bytes INTEGER,
        file_name TEXT,
        sheet_name TEXT,
        status_code INTEGER NOT NULL,
        error_code TEXT,
        error_message TEXT,
        processing_time_ms INTEGER NOT NULL,
        entries_parsed INTEGER,
        entries_imported INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_request_details (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        request_id TEXT NOT NULL,
        detail_type TEXT NOT NULL CHECK(detail_type IN ('validation_error', 'warning')),
        message TEXT NOT NULL,
        FOREIGN KEY (request_id) REFERENCES api_requests(request_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_api_requests_timestamp ON api_requests(timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_api_requests_status ON api_requests(status_code)",
    """
    CREATE INDEX IF NOT EXISTS idx_api_request_details_request
        ON api_request_details(request_id)
    """,
]


def get_connection(db_path=DB_PATH) -> sqlite3.Connection:
    """Get a database connection (usable from the API worker thread)."""
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_tables(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes if they don't exist."""
    cursor = conn.cursor()
    for statement in SCHEMA:
        cursor.execute(statement)
    conn.commit()


# =============================================================================
# DEVELOPERS
# =============================================================================


def find_developer_by_name(conn: sqlite3.Connection, name: str) -> int | None:
    """Return the id of the developer with this exact (case-sensitive) name."""
    row = conn.execute(
        "SELECT id FROM developers WHERE name = ? ORDER BY id LIMIT 1", (name,)
    ).fetchone()
    return row[0] if row else None


def create_developer(conn: sqlite3.Connection, name: str, is_active: bool = True) -> int:
    """Insert a developer and return its id (no commit)."""
    cursor = conn.execute(
        "INSERT INTO developers (name, is_active) VALUES (?, ?)",
        (name, int(is_active)),
    )
    return cursor.lastrowid


# =============================================================================
# PROJECTS
# =============================================================================


def find_project_by_name(conn: sqlite3.Connection, name: str) -> int | None:
    row = conn.execute(
        "SELECT id FROM projects WHERE name = ? ORDER BY id LIMIT 1", (name,)
    ).fetchone()
    return row[0] if row else None


def find_projects_by_names(conn: sqlite3.Connection, names: list[str]) -> set[str]:
    """Return the subset of names that exist as projects."""
    unique = sorted(set(names))
    found: set[str] = set()
    for start in range(0, len(unique), IN_CLAUSE_CHUNK):
        chunk = unique[start : start + IN_CLAUSE_CHUNK]
        placeholders = ", ".join("?" for _ in chunk)
        rows = conn.execute(
            f"SELECT name FROM projects WHERE name IN ({placeholders})", chunk
        ).fetchall()
        found.update(name for (name,) in rows)
    return found


def create_project(
    conn: sqlite3.Connection, name: str, status: str = DEFAULT_PROJECT_STATUS
) -> int:
    """Insert a project and return its id (no commit)."""
    cursor = conn.execute(
        "INSERT INTO projects (name, status) VALUES (?, ?)",
        (name, validate_project_status(status)),
    )
    return cursor.lastrowid


# =============================================================================
# TASKS
# =============================================================================


def find_task_by_name(conn: sqlite3.Connection, project_id: int, name: str) -> int | None:
    """Tasks are unique by name within their project."""
    row = conn.execute(
        "SELECT id FROM tasks WHERE project_id = ? AND name = ? ORDER BY id LIMIT 1",
        (project_id, name),
    ).fetchone()
    return row[0] if row else None


def create_task(
    conn: sqlite3.Connection,
    project_id: int,
    name: str,
    status: str = DEFAULT_TASK_STATUS,
) -> int:
    cursor = conn.execute(
        "INSERT INTO tasks (project_id, name, status) VALUES (?, ?, ?)",
        (project_id, name, validate_task_status(status)),
    )
    return cursor.lastrowid


# =============================================================================
# TIME ENTRIES
# =============================================================================


def insert_time_entries(conn: sqlite3.Connection, entries: list[dict]) -> int:
    """
    Insert time entries in batches and return the number inserted.

    Does not commit: the caller owns the transaction so that an import
    either lands completely or not at all.
    """
    cursor = conn.cursor()
    for start in range(0, len(entries), INSERT_BATCH_SIZE):
        batch = entries[start : start + INSERT_BATCH_SIZE]
        cursor.executemany(
            """
            INSERT INTO time_entries (
                project_id, task_id, developer_id, start_time,
                duration_minutes, description
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    entry["project_id"],
                    entry["task_id"],
                    entry["developer_id"],
                    entry["start_time"].isoformat(),
                    entry["duration_minutes"],
                    entry["description"],
                )
                for entry in batch
            ],
        )
    return len(entries)


def _entry_filters(
    project_id: int | None,
    developer_id: int | None,
    task_id: int | None,
    start_date: datetime | None,
    end_date: datetime | None,
) -> tuple[str, list]:
    conditions = []
    params: list = []
    if project_id is not None:
        conditions.append("project_id = ?")
        params.append(project_id)
    if developer_id is not None:
        conditions.append("developer_id = ?")
        params.append(developer_id)
    if task_id is not None:
        conditions.append("task_id = ?")
        params.append(task_id)
    if start_date is not None:
        conditions.append("start_time >= ?")
        params.append(start_date.isoformat())
    if end_date is not None:
        conditions.append("start_time <= ?")
        params.append(end_date.isoformat())
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    return where, params


def list_time_entries(
    conn: sqlite3.Connection,
    project_id: int | None = None,
    developer_id: int | None = None,
    task_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[dict]:
    """List time entries, newest first."""
    where, params = _entry_filters(project_id, developer_id, task_id, start_date, end_date)
    cursor = conn.execute(
        f"""
        SELECT id, project_id, task_id, developer_id, start_time,
               duration_minutes, description
        FROM time_entries
        {where}
        ORDER BY start_time DESC, id DESC
        LIMIT ? OFFSET ?
        """,
        [*params, limit, offset],
    )
    return [
        {
            "id": row[0],
            "project_id": row[1],
            "task_id": row[2],
            "developer_id": row[3],
            "start_time": datetime.fromisoformat(row[4]),
            "duration_minutes": row[5],
            "description": row[6],
        }
        for row in cursor.fetchall()
    ]


def count_time_entries(
    conn: sqlite3.Connection,
    project_id: int | None = None,
    developer_id: int | None = None,
    task_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> int:
    where, params = _entry_filters(project_id, developer_id, task_id, start_date, end_date)
    row = conn.execute(f"SELECT COUNT(*) FROM time_entries {where}", params).fetchone()
    return row[0]
