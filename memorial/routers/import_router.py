"""Data exchange endpoints: workbook import, column drift and import cleanup."""

import logging

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from memorial.config import settings
from memorial.database import Store
from memorial.schemas.exchange import (
    CollectionImportResponse,
    DriftResponse,
    WorkbookImportResponse,
)
from memorial.services.exchange import (
    REGISTRY,
    ImportPipeline,
    PurgeSummary,
    Workbook,
    WorkbookReadError,
    read_workbook,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Allowed file extensions
ALLOWED_EXTENSIONS = {"xlsx"}
CHUNK_SIZE = 64 * 1024


def _get_file_extension(filename: str | None) -> str:
    """Extract file extension from filename."""
    if not filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


async def _read_upload(file: UploadFile) -> bytes:
    """Validate the extension and read the upload within the size limit."""
    ext = _get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type '.{ext}'. Allowed: XLSX",
        )

    max_size = settings.max_upload_size_bytes

    # Read in chunks to avoid unbounded memory for oversized files
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_size:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File exceeds maximum size of {settings.exchange.max_upload_mb} MB",
            )
        chunks.append(chunk)
    return b"".join(chunks)


async def _load_workbook(file: UploadFile) -> Workbook:
    content = await _read_upload(file)
    try:
        return read_workbook(content)
    except WorkbookReadError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.post("/import", response_model=WorkbookImportResponse)
async def import_workbook(
    store: Store,
    file: UploadFile = File(..., description="XLSX workbook, one sheet per collection"),
) -> WorkbookImportResponse:
    """Import every known sheet of a workbook in dependency order."""
    workbook = await _load_workbook(file)
    summary = await ImportPipeline(store).import_workbook(workbook)
    logger.info(
        "Workbook import of %s: %d imported, %d skipped, %d errors",
        file.filename,
        summary.total_imported,
        summary.total_skipped,
        summary.total_errors,
    )
    return WorkbookImportResponse.from_summary(
        summary, settings.exchange.error_preview_limit
    )


@router.post("/import/{collection}", response_model=CollectionImportResponse)
async def import_collection_sheet(
    collection: str,
    store: Store,
    file: UploadFile = File(..., description="XLSX workbook; the first sheet is imported"),
) -> CollectionImportResponse:
    """Import the first sheet of a workbook into one collection."""
    if collection not in REGISTRY:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown collection: {collection}",
        )

    workbook = await _load_workbook(file)
    result = await ImportPipeline(store).import_sheet(collection, workbook)
    return CollectionImportResponse.from_result(
        collection, result, settings.exchange.error_preview_limit
    )


@router.post("/drift", response_model=DriftResponse)
async def detect_column_drift(
    store: Store,
    file: UploadFile = File(..., description="XLSX workbook to inspect"),
) -> DriftResponse:
    """Report header columns the known sheets carry beyond their schema."""
    workbook = await _load_workbook(file)
    drift = ImportPipeline(store).detect_column_drift(workbook)
    return DriftResponse(has_drift=bool(drift), drift=drift)


@router.delete("/imported", response_model=PurgeSummary)
async def purge_imported_records(store: Store) -> PurgeSummary:
    """Delete every record created by a spreadsheet import."""
    summary = await ImportPipeline(store).purge_imported_records()
    logger.info("Purged %d imported records", summary.total_deleted)
    return summary
