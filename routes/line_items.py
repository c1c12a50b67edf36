"""
Line item sync API routes.

Both endpoints take the workbook as a multipart upload. The uploaded copy
is not modified; run log entries come back in the structured logs only.
"""

from fastapi import APIRouter, UploadFile, File
from fastapi.responses import JSONResponse
from io import BytesIO
import structlog

from models.sync import PreviewResponse, SyncSummary
from parsers.workbook_parser import WorkbookSource
from services.revision_sync_service import get_revision_sync_service
from exceptions import AppError
from utils.run_log import RunLog

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/line-items", tags=["Line Items"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


async def _read_workbook(file: UploadFile) -> WorkbookSource:
    content = await file.read()
    return WorkbookSource(BytesIO(content))


# ===================
# ROUTES
# ===================

@router.post("/preview", response_model=PreviewResponse)
async def preview_line_items(file: UploadFile = File(...)):
    """
    Build the line item table from a workbook without contacting Salesforce.

    Returns the parsed parameters, resolved column mapping, unmatched
    labels, and the flat records that a sync would submit.

    Raises:
        422: Missing sheet or parameter, malformed parameter row
    """
    logger.info("line_item_preview_started", filename=file.filename)

    try:
        workbook = await _read_workbook(file)
        service = get_revision_sync_service()
        return service.preview(workbook, RunLog(filename=file.filename))

    except Exception as e:
        return handle_error(e)


@router.post("/sync", response_model=SyncSummary)
async def sync_line_items(file: UploadFile = File(...)):
    """
    Publish the workbook's line items to Salesforce as a new revision.

    Deactivates the current revision, then inserts the new one. Records
    Salesforce rejects are listed in `partial_failures`; the rest of the
    batch still applies.

    Raises:
        422: Missing sheet or parameter, malformed row, no parent id
        502: Salesforce auth failure, or sync interrupted after a line item was deactivated
        503: Salesforce unavailable before anything was written
    """
    logger.info("line_item_sync_started", filename=file.filename)

    try:
        workbook = await _read_workbook(file)
        service = get_revision_sync_service()
        summary = service.run(workbook, RunLog(filename=file.filename))

        logger.info(
            "line_item_sync_completed",
            parent_id=summary.parent_id,
            revision=summary.revision,
            partial_failures=len(summary.partial_failures)
        )
        return summary

    except Exception as e:
        logger.error("line_item_sync_failed", error=str(e))
        return handle_error(e)
