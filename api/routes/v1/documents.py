"""
Document endpoints.

Blobs are never exposed directly; downloads and previews are streamed through
the server after the organization check.
"""

from urllib.parse import quote

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_storage, require_auth, require_writable_org
from api.schemas.common import error_responses
from api.services import documents as document_service
from core.exceptions import UnsupportedMediaTypeError
from core.files import PDF_MIME, sanitize_filename
from core.security import SessionContext
from core.storage.base import BlobStorage
from database.engine import get_db

router = APIRouter(prefix="/documents", tags=["documents"])


def _content_disposition(disposition: str, filename: str) -> str:
    safe = sanitize_filename(filename)
    ascii_name = safe.encode("ascii", "replace").decode("ascii").replace("?", "_")
    return f"{disposition}; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(safe)}"


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Document",
    responses=error_responses(401, 403, 404, 409),
)
async def delete_document(
    document_id: str = Path(..., max_length=36),
    session: SessionContext = Depends(require_writable_org),
    db: AsyncSession = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
):
    await document_service.delete_document(db, storage, session.organization_id, document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{document_id}/download",
    summary="Download Document",
    responses=error_responses(401, 403, 404),
)
async def download_document(
    document_id: str = Path(..., max_length=36),
    session: SessionContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
):
    document = await document_service.get_document(db, session.organization_id, document_id)
    data = await document_service.read_document(storage, document)
    return Response(
        content=data,
        media_type=document.mime_type,
        headers={
            "Content-Disposition": _content_disposition("attachment", document.original_filename),
            "Cache-Control": "private, no-store",
            "X-Content-Type-Options": "nosniff",
        },
    )


@router.get(
    "/{document_id}/preview",
    summary="Preview PDF Document",
    responses=error_responses(401, 403, 404, 415),
)
async def preview_document(
    document_id: str = Path(..., max_length=36),
    session: SessionContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
):
    document = await document_service.get_document(db, session.organization_id, document_id)
    if document.mime_type != PDF_MIME:
        raise UnsupportedMediaTypeError("Inline preview is only available for PDF files")

    data = await document_service.read_document(storage, document)
    return Response(
        content=data,
        media_type=PDF_MIME,
        headers={
            "Content-Disposition": _content_disposition("inline", document.original_filename),
            "Cache-Control": "private, no-store",
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "SAMEORIGIN",
        },
    )
