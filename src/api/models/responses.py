"""Pydantic response models for API endpoints."""

from datetime import datetime

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    database_available: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"
    INVALID_WORKBOOK = "INVALID_WORKBOOK"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class PreviewRowModel(BaseModel):
    developer: str
    project: str
    task: str | None = None
    start_time: datetime
    duration_minutes: int
    notes: str | None = None


class ProjectsModel(BaseModel):
    all: list[str] = []
    invalid: list[str] = []


class PreviewResponse(BaseModel):
    """What an import would do, without doing it."""

    sheet_name: str | None
    entry_count: int
    detected_developer: str | None
    developers: list[str]
    projects: ProjectsModel
    preview: list[PreviewRowModel]
    errors: list[str]
    warnings: list[str]


class ImportResponse(BaseModel):
    imported: int
    sheet_name: str | None
    warnings: list[str] = []
