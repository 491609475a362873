"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(
    os.environ.get("TIMESHEET_DB_PATH", str(PROJECT_ROOT / "data" / "db" / "timesheets.db"))
)
LOG_DIR = Path(os.environ.get("LOG_DIR", str(PROJECT_ROOT / "data" / "logs")))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# =============================================================================
# SHEET DETECTION
# =============================================================================

HEADER_SCAN_ROWS = 50  # Rows searched for a header row
LAYOUT_SCAN_ROWS = 20  # Rows searched for weekday rows and "week ending" labels
DEVELOPER_SCAN_ROWS = 30  # Rows searched for a "Name:" label on grid sheets
HOURS_SCAN_ROWS = 120  # Rows sampled for hour-like numbers
MIN_HEADER_MATCHES = 2  # Below this, a sheet has no confident header row
MIN_WEEKDAY_COLUMNS = 5  # Distinct weekday names needed to call a row a grid header

# Sheet names that usually hold lookups rather than time data
METADATA_SHEET_HINTS = ("variable", "lookup", "list", "config", "settings", "meta")

WEEK_ANCHOR_LABELS = ("week ending", "week of")
DEVELOPER_LABELS = {"name", "developer", "developer name", "employee", "employee name"}

# =============================================================================
# DATES AND DURATIONS
# =============================================================================

SERIAL_DATE_OFFSET = 25569  # Spreadsheet serial for 1970-01-01
SERIAL_STRING_RANGE = (20000, 80000)  # Numeric strings outside this are not dates
PLAUSIBLE_YEARS = (2000, 2100)  # Years accepted in an explicit grid dates row
MAX_GRID_HOURS = 24.0
DURATION_INCREMENT_MINUTES = 15

PREVIEW_LIMIT = 10

# =============================================================================
# ENTITY DEFAULTS
# =============================================================================

PROJECT_STATUSES = ("active", "completed", "on-hold", "cancelled")
TASK_STATUSES = ("pending", "in-progress", "completed", "blocked")
DEFAULT_PROJECT_STATUS = "active"
DEFAULT_TASK_STATUS = "pending"

# =============================================================================
# API CONFIGURATION
# =============================================================================

TIMESHEET_API_KEY = os.environ.get("TIMESHEET_API_KEY", "")
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
MAX_UPLOAD_SIZE_MB = int(os.environ.get("MAX_UPLOAD_SIZE_MB", "10"))
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024
ALLOWED_UPLOAD_EXTENSIONS = (".xlsx", ".xlsm", ".csv")
API_VERSION = "1.0.0"
