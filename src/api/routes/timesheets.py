"""Timesheet preview and import endpoints."""

import asyncio
import logging
import sqlite3
import time
from pathlib import Path
from typing import Annotated

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Request,
    UploadFile,
    status,
)

from api.dependencies import get_db, verify_api_key
from api.logging import RequestLog, log_request
from api.models.responses import (
    ErrorCodes,
    ImportResponse,
    PreviewResponse,
    PreviewRowModel,
    ProjectsModel,
)
from core.config import ALLOWED_UPLOAD_EXTENSIONS, MAX_UPLOAD_SIZE_BYTES
from models.entries import ParseResult
from services.sheets import WorkbookError
from services.timesheets import ImportRejectedError, import_timesheet, preview_timesheet

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/timesheets")


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def _read_upload(file: UploadFile | None, request_log: RequestLog) -> bytes:
    """Check name, extension and size of the upload and return its bytes."""
    if not file or not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "No file provided",
                "code": ErrorCodes.INVALID_REQUEST,
                "details": [],
            },
        )

    if Path(file.filename).suffix.lower() not in ALLOWED_UPLOAD_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail={
                "error": "File is not a supported spreadsheet",
                "code": ErrorCodes.UNSUPPORTED_MEDIA_TYPE,
                "details": [
                    f"Received: {file.filename}",
                    f"Accepted: {', '.join(ALLOWED_UPLOAD_EXTENSIONS)}",
                ],
            },
        )

    content = await file.read()
    request_log.file_size_bytes = len(content)

    if len(content) > MAX_UPLOAD_SIZE_BYTES:
        max_mb = MAX_UPLOAD_SIZE_BYTES // (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={
                "error": f"File exceeds maximum size of {max_mb} MB",
                "code": ErrorCodes.FILE_TOO_LARGE,
                "details": [f"File size: {len(content) / (1024*1024):.1f} MB"],
            },
        )

    return content


def _preview_response(result: ParseResult) -> PreviewResponse:
    return PreviewResponse(
        sheet_name=result.sheet_name,
        entry_count=len(result.entries),
        detected_developer=result.detected_developer,
        developers=result.developers,
        projects=ProjectsModel(all=result.projects.all, invalid=result.projects.invalid),
        preview=[PreviewRowModel(**row) for row in result.preview],
        errors=result.errors,
        warnings=result.warnings,
    )


def _record_http_error(request_log: RequestLog, e: HTTPException) -> None:
    request_log.status_code = e.status_code
    if isinstance(e.detail, dict):
        request_log.error_code = e.detail.get("code")
        request_log.error_message = e.detail.get("error")
        for detail in e.detail.get("details", []):
            request_log.details.append(("validation_error", detail))
    else:
        request_log.error_message = str(e.detail)


def _workbook_error(request_log: RequestLog, e: WorkbookError) -> HTTPException:
    request_log.status_code = 422
    request_log.error_code = ErrorCodes.INVALID_WORKBOOK
    request_log.error_message = str(e)
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={
            "error": "File could not be read as a spreadsheet",
            "code": ErrorCodes.INVALID_WORKBOOK,
            "details": [str(e)],
        },
    )


def _internal_error(request_log: RequestLog, e: Exception) -> HTTPException:
    logger.exception("Unexpected error processing %s", request_log.endpoint)
    request_log.status_code = 500
    request_log.error_code = ErrorCodes.INTERNAL_ERROR
    request_log.error_message = str(e)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "Internal server error",
            "code": ErrorCodes.INTERNAL_ERROR,
            "details": [],
        },
    )


def _write_log(conn: sqlite3.Connection, request_log: RequestLog, start_time: float) -> None:
    request_log.processing_time_ms = int((time.time() - start_time) * 1000)
    try:
        log_request(conn, request_log)
    except sqlite3.Error:
        # Don't fail the request if logging fails
        logger.exception("Failed to write request log %s", request_log.request_id)


@router.post("/preview", response_model=PreviewResponse)
async def preview_timesheet_endpoint(
    request: Request,
    file: Annotated[UploadFile, File(description="Timesheet workbook (.xlsx or .csv)")],
    conn: sqlite3.Connection = Depends(get_db),
    _api_key: str = Depends(verify_api_key),
):
    """
    Parse a timesheet without saving it.

    Row errors and unknown projects are part of a 200 response; only an
    unreadable upload is an HTTP error.
    """
    start_time = time.time()
    request_log = RequestLog(
        endpoint="/v1/timesheets/preview",
        method="POST",
        client_ip=get_client_ip(request),
        file_name=file.filename if file else None,
    )

    try:
        content = await _read_upload(file, request_log)

        # Parsing is CPU-bound; keep it off the event loop
        result = await asyncio.to_thread(preview_timesheet, content, conn)

        request_log.status_code = 200
        request_log.sheet_name = result.sheet_name
        request_log.entries_parsed = len(result.entries)
        request_log.details.extend(("validation_error", e) for e in result.errors)
        request_log.details.extend(("warning", w) for w in result.warnings)
        return _preview_response(result)

    except HTTPException as e:
        _record_http_error(request_log, e)
        raise

    except WorkbookError as e:
        raise _workbook_error(request_log, e)

    except Exception as e:
        raise _internal_error(request_log, e)

    finally:
        _write_log(conn, request_log, start_time)


@router.post("/import", response_model=ImportResponse)
async def import_timesheet_endpoint(
    request: Request,
    file: Annotated[UploadFile, File(description="Timesheet workbook (.xlsx or .csv)")],
    conn: sqlite3.Connection = Depends(get_db),
    _api_key: str = Depends(verify_api_key),
):
    """
    Parse and save a timesheet.

    All or nothing: any row or structure error returns 422 with the errors
    as details, and nothing is written.
    """
    start_time = time.time()
    request_log = RequestLog(
        endpoint="/v1/timesheets/import",
        method="POST",
        client_ip=get_client_ip(request),
        file_name=file.filename if file else None,
    )

    try:
        content = await _read_upload(file, request_log)

        summary = await asyncio.to_thread(import_timesheet, content, conn)

        request_log.status_code = 200
        request_log.sheet_name = summary.sheet_name
        request_log.entries_parsed = summary.imported
        request_log.entries_imported = summary.imported
        request_log.details.extend(("warning", w) for w in summary.warnings)
        return ImportResponse(
            imported=summary.imported,
            sheet_name=summary.sheet_name,
            warnings=summary.warnings,
        )

    except HTTPException as e:
        _record_http_error(request_log, e)
        raise

    except ImportRejectedError as e:
        request_log.status_code = 422
        request_log.error_code = ErrorCodes.VALIDATION_ERROR
        request_log.error_message = str(e)
        request_log.entries_imported = 0
        request_log.details.extend(("validation_error", error) for error in e.errors)

        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "error": "Timesheet has errors; nothing was imported",
                "code": ErrorCodes.VALIDATION_ERROR,
                "details": e.errors,
            },
        )

    except WorkbookError as e:
        raise _workbook_error(request_log, e)

    except Exception as e:
        raise _internal_error(request_log, e)

    finally:
        _write_log(conn, request_log, start_time)
