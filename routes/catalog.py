"""
Catalog API routes.

Import, bulk update and export for the gemstone catalog, plus single-record
read and edit. Batch results are returned as BatchOutcome dicts with detail
lists capped at settings.report_error_limit.
"""

from io import BytesIO
from typing import Literal, Optional

import structlog
from fastapi import APIRouter, UploadFile, File
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from config import settings
from exceptions import AppError
from models.gemstone import CatalogFilter, GemstoneResponse, GemstoneUpdate
from parsers.catalog_parser import (
    decode_upload_bytes,
    generate_csv_template,
    validate_upload,
)
from services.bulk_update_service import BulkUpdateService
from services.export_service import ExportService
from services.gemstone_service import get_gemstone_service
from services.import_service import CatalogImportService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/catalog", tags=["Catalog"])


# ===================
# REQUEST MODELS
# ===================


class BulkUpdateRequest(BaseModel):
    """Same change-set applied to every listed gemstone."""

    ids: list[str] = Field(..., min_length=1)
    changes: GemstoneUpdate
    reason: str = Field(..., max_length=500)


class ExportRequest(BaseModel):
    """
    Export selection.

    Either explicit `ids` (exported in that order) or, when omitted, every
    gemstone matching `filters`.
    """

    ids: Optional[list[str]] = Field(None, min_length=1)
    filters: Optional[CatalogFilter] = None
    format: Literal["csv", "xlsx"] = "csv"


# ===================
# EXCEPTION HANDLER
# ===================


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(status_code=e.status_code, content=e.to_dict())
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            }
        },
    )


def _download(content: bytes, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ===================
# ROUTES
# ===================


@router.post("/import")
async def import_catalog(file: UploadFile = File(...)):
    """
    Import gemstones from a CSV or XLSX file.

    Every row is processed on its own: rejected rows, duplicates and failed
    inserts are reported per row while the rest are created.

    Raises:
        422: Unsupported file, unreadable file or missing required columns
    """
    logger.info(
        "catalog_upload_started",
        filename=file.filename,
        content_type=file.content_type,
    )

    try:
        content = await file.read()
        extension = validate_upload(file.filename, len(content))

        service = CatalogImportService(get_gemstone_service())
        if extension == ".xlsx":
            outcome = service.import_excel(BytesIO(content))
        else:
            outcome = service.import_batch(decode_upload_bytes(content))

        logger.info(
            "catalog_upload_completed",
            filename=file.filename,
            succeeded=outcome.succeeded,
            failed=outcome.failed,
            duplicates=outcome.duplicate_count,
        )

        return outcome.to_dict(limit=settings.report_error_limit)

    except Exception as e:
        logger.error("catalog_upload_failed", filename=file.filename, error=str(e))
        return handle_error(e)


@router.get("/import/template")
async def download_import_template():
    """CSV template with every supported column and one sample row."""
    return _download(
        generate_csv_template().encode("utf-8"),
        "gemstones-import-template.csv",
        "text/csv; charset=utf-8",
    )


@router.post("/bulk-update")
async def bulk_update(request: BulkUpdateRequest):
    """
    Apply one change-set to many gemstones.

    Only fields present in `changes` are written. Failures are reported per
    gemstone, keyed by serial number.
    """
    try:
        service = BulkUpdateService(get_gemstone_service())
        outcome = service.apply_bulk_update(request.ids, request.changes, request.reason)
        return outcome.to_dict(limit=settings.report_error_limit)
    except Exception as e:
        return handle_error(e)


@router.post("/export")
async def export_catalog(request: ExportRequest):
    """
    Export selected gemstones as a CSV or XLSX download.

    The file uses the import columns, so it can be edited and imported again.
    """
    try:
        service = ExportService(get_gemstone_service())
        export = service.export_selection(
            ids=request.ids,
            filters=request.filters,
            file_format=request.format,
        )
        return _download(export.content, export.filename, export.media_type)
    except Exception as e:
        return handle_error(e)


@router.get("/gemstones/{gemstone_id}", response_model=GemstoneResponse)
async def get_gemstone(gemstone_id: str):
    """Get a single gemstone by ID."""
    try:
        return get_gemstone_service().get_by_id(gemstone_id)
    except Exception as e:
        return handle_error(e)


@router.patch("/gemstones/{gemstone_id}", response_model=GemstoneResponse)
async def edit_gemstone(gemstone_id: str, data: GemstoneUpdate):
    """
    Edit one gemstone.

    Raises:
        404: Gemstone not found
        409: New serial number belongs to another gemstone
        422: Invalid change-set
    """
    try:
        return get_gemstone_service().edit(gemstone_id, data)
    except Exception as e:
        return handle_error(e)
