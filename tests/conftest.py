"""
Pytest configuration and shared fixtures.
"""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.database import create_tables, get_connection  # noqa: E402
from fixtures.workbooks import developer_name, project_code  # noqa: E402


@pytest.fixture
def conn():
    """In-memory database with the full schema."""
    connection = get_connection(":memory:")
    create_tables(connection)
    yield connection
    connection.close()


@pytest.fixture
def developer():
    return developer_name()


@pytest.fixture
def projects():
    """Two distinct project codes."""
    return [project_code(), project_code()]


@pytest.fixture
def work_day():
    return datetime(2026, 2, 5)


@pytest.fixture
def sample_rows(developer, projects, work_day):
    """Header-keyed rows as a caller with pre-extracted data would pass them."""
    return [
        {
            "Developer": developer,
            "Project": projects[0],
            "Task": "Design",
            "Date": work_day,
            "Start Time": "09:00",
            "End Time": "10:30",
            "Notes": "Kickoff",
        },
        {
            "Developer": developer,
            "Project": projects[1],
            "Task": "Build",
            "Date": "2026-02-05",
            "Duration": 120,
        },
    ]
