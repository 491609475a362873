"""
Duration and entity field validation.
"""

from core.config import DURATION_INCREMENT_MINUTES, PROJECT_STATUSES, TASK_STATUSES


def is_valid_duration(minutes: int) -> bool:
    """Check that a duration is positive and on a 15-minute boundary."""
    return minutes > 0 and minutes % DURATION_INCREMENT_MINUTES == 0


def duration_errors(minutes: int) -> list[str]:
    """
    Return the problems with a duration (empty if valid).

    Checks:
    1. Duration is greater than 0
    2. Duration is a multiple of 15 minutes
    """
    if is_valid_duration(minutes):
        return []
    if minutes <= 0:
        return ["Duration must be greater than 0"]
    return [
        f"Duration must be a multiple of {DURATION_INCREMENT_MINUTES} minutes "
        f"(got {minutes})"
    ]


def validate_project_status(status: str) -> str:
    if status not in PROJECT_STATUSES:
        raise ValueError(
            f"Invalid project status '{status}' (valid: {', '.join(PROJECT_STATUSES)})"
        )
    return status


def validate_task_status(status: str) -> str:
    if status not in TASK_STATUSES:
        raise ValueError(f"Invalid task status '{status}' (valid: {', '.join(TASK_STATUSES)})")
    return status
