"""Export endpoints for downloading collection workbooks."""

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from memorial.database import Store
from memorial.services.exchange import RecordNotFoundError, UnknownCollectionError
from memorial.services.exchange.constants import XLSX_CONTENT_TYPE
from memorial.services.export_service import ExportBuilder, generate_filename

router = APIRouter()


def xlsx_response(content: bytes, kind: str) -> Response:
    """Wrap workbook bytes in a download response."""
    return Response(
        content=content,
        media_type=XLSX_CONTENT_TYPE,
        headers={"Content-Disposition": f"attachment; filename={generate_filename(kind)}"},
    )


def _not_found(e: LookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/all")
async def export_all(store: Store) -> Response:
    """Export every collection to one workbook, one sheet per collection."""
    content = await ExportBuilder(store).export_all()
    return xlsx_response(content, "all")


@router.get("/{collection}")
async def export_collection(collection: str, store: Store) -> Response:
    """Export one collection to a single-sheet workbook."""
    try:
        content = await ExportBuilder(store).export_collection(collection)
    except UnknownCollectionError as e:
        raise _not_found(e)
    return xlsx_response(content, collection)


@router.get("/{collection}/template")
async def export_template(collection: str, store: Store) -> Response:
    """Download an empty import template for one collection."""
    try:
        content = ExportBuilder(store).build_template(collection)
    except UnknownCollectionError as e:
        raise _not_found(e)
    return xlsx_response(content, f"{collection}_template")


@router.get("/{collection}/{record_id}/media")
async def export_record_media(collection: str, record_id: str, store: Store) -> Response:
    """Download every media URL of one record."""
    try:
        content = await ExportBuilder(store).export_record_media(collection, record_id)
    except (UnknownCollectionError, RecordNotFoundError) as e:
        raise _not_found(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return xlsx_response(content, f"{collection}_media")
