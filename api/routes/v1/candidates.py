"""
Candidate endpoints.

Provides the candidate profile view and authenticated document uploads.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_storage, require_auth, require_writable_org
from api.schemas.candidates import CandidateDetail
from api.schemas.common import error_responses
from api.schemas.documents import DocumentResponse
from api.services import candidates as candidate_service
from api.services import documents as document_service
from core.exceptions import BadRequestError
from core.security import SessionContext
from core.storage.base import BlobStorage
from database.engine import get_db
from database.models.documents import DocumentType

router = APIRouter(prefix="/candidates", tags=["candidates"])


@router.get(
    "/{candidate_id}",
    response_model=CandidateDetail,
    summary="Get Candidate Details",
    description="Candidate profile with applications and documents, newest first.",
    responses=error_responses(401, 403, 404),
)
async def get_candidate(
    candidate_id: str = Path(..., max_length=36, description="Candidate ID"),
    session: SessionContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    candidate = await candidate_service.get_candidate_detail(
        db, session.organization_id, candidate_id
    )
    detail = CandidateDetail.model_validate(candidate)
    detail.applications.sort(key=lambda a: a.created_at, reverse=True)
    detail.documents.sort(key=lambda d: d.created_at, reverse=True)
    return detail


@router.post(
    "/{candidate_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Candidate Document",
    description="Attach a PDF, DOC or DOCX file (max 10 MB) to a candidate.",
    responses=error_responses(400, 401, 403, 404, 409, 413),
)
async def upload_document(
    candidate_id: str = Path(..., max_length=36, description="Candidate ID"),
    file: Optional[UploadFile] = File(None),
    type: Optional[str] = Form(None),
    session: SessionContext = Depends(require_writable_org),
    db: AsyncSession = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
):
    if file is None or not file.filename:
        raise BadRequestError("No file provided")

    try:
        document_type = DocumentType(type or DocumentType.RESUME.value)
    except ValueError:
        raise BadRequestError("Invalid document type. Must be: resume, cover_letter, or other")

    upload = await document_service.read_upload(file)
    if upload.size == 0:
        raise BadRequestError("No file provided")

    return await document_service.upload_candidate_document(
        db, storage, session.organization_id, candidate_id, upload, document_type
    )
