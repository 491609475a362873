"""API Pydantic models."""

from .responses import (
    ErrorCodes,
    ErrorResponse,
    HealthResponse,
    ImportResponse,
    PreviewResponse,
    PreviewRowModel,
    ProjectsModel,
)

__all__ = [
    "HealthResponse",
    "ErrorResponse",
    "ErrorCodes",
    "PreviewResponse",
    "PreviewRowModel",
    "ProjectsModel",
    "ImportResponse",
]
