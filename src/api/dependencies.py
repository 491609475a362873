"""FastAPI dependencies for authentication and the database connection."""

import secrets
import sqlite3
from collections.abc import Iterator

from fastapi import Header, HTTPException, status

from core.config import TIMESHEET_API_KEY
from core.database import get_connection


async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> str:
    """
    Verify API key from X-API-Key header.

    Raises:
        HTTPException: 401 if key is missing or invalid
    """
    if not TIMESHEET_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "API key not configured on server",
                "code": "INTERNAL_ERROR",
                "details": [],
            },
        )

    # Constant-time comparison
    if not secrets.compare_digest(x_api_key, TIMESHEET_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "Invalid or missing API key",
                "code": "UNAUTHORIZED",
                "details": [],
            },
        )

    return x_api_key


def get_db() -> Iterator[sqlite3.Connection]:
    """One connection per request, closed when the response is sent."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()
