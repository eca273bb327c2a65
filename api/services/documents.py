"""
Document storage service.

Blobs are stored under ``{organization_id}/{candidate_id}/{document_id}.{ext}``;
nothing user-controlled ever ends up in a storage key. Upload and delete
follow different cleanup rules:

- upload: if the row insert fails after the blob was stored, the blob is
  deleted (best effort) and the insert error is re-raised.
- delete: if the blob delete fails, it is logged and the row is still removed.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from api.services.candidates import get_candidate
from core.config import settings
from core.exceptions import DocumentLimitExceeded, NotFoundError
from core.files import (
    MAX_DOCUMENTS_PER_CANDIDATE,
    MAX_FILE_SIZE,
    UploadedFile,
    extension_for,
    sanitize_filename,
    validate_file,
)
from core.parsers.document_parser import extract_document_text
from core.storage.base import BlobStorage
from database.models.documents import Document, DocumentType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    document_id: str
    storage_key: str


def build_storage_key(
    organization_id: str, candidate_id: str, document_id: str, mime_type: str
) -> str:
    return f"{organization_id}/{candidate_id}/{document_id}.{extension_for(mime_type)}"


def infer_document_type(question_label: str) -> DocumentType:
    """Guess the document type from the file question's label."""
    label = question_label.lower()
    if "resume" in label or "cv" in label:
        return DocumentType.RESUME
    if "cover letter" in label:
        return DocumentType.COVER_LETTER
    return DocumentType.OTHER


async def read_upload(upload: UploadFile, limit: int = MAX_FILE_SIZE) -> UploadedFile:
    """
    Read a multipart file part.

    At most ``limit + 1`` bytes are read: enough for the size check to reject
    an oversized file without buffering all of it.
    """
    data = await upload.read(limit + 1)
    return UploadedFile(
        data=data,
        filename=upload.filename or "",
        declared_type=upload.content_type,
    )


async def count_candidate_documents(
    db: AsyncSession, organization_id: str, candidate_id: str
) -> int:
    result = await db.execute(
        select(func.count(Document.id)).where(
            Document.organization_id == organization_id,
            Document.candidate_id == candidate_id,
        )
    )
    return result.scalar_one()


async def ensure_document_capacity(
    db: AsyncSession, organization_id: str, candidate_id: str, incoming: int = 1
) -> None:
    """Reject uploads that would push the candidate past the document ceiling."""
    existing = await count_candidate_documents(db, organization_id, candidate_id)
    if existing + incoming > MAX_DOCUMENTS_PER_CANDIDATE:
        raise DocumentLimitExceeded()


async def store_document_blob(
    storage: BlobStorage,
    organization_id: str,
    candidate_id: str,
    data: bytes,
    mime_type: str,
) -> StoredBlob:
    """Upload bytes under a fresh document id; the caller inserts the row."""
    document_id = str(uuid.uuid4())
    key = build_storage_key(organization_id, candidate_id, document_id, mime_type)
    await storage.upload(data, key, content_type=mime_type)
    return StoredBlob(document_id=document_id, storage_key=key)


async def discard_blob(storage: BlobStorage, storage_key: str) -> bool:
    """Best-effort delete; logs the outcome and never raises."""
    try:
        await storage.delete(storage_key)
    except Exception as exc:
        logger.error(f"Failed to clean up blob {storage_key}: {type(exc).__name__}: {exc}")
        return False
    logger.info(f"Cleaned up blob {storage_key}")
    return True


async def parse_document_content(data: bytes, mime_type: str) -> Optional[dict[str, Any]]:
    if not settings.document_parsing_enabled:
        return None
    text = await extract_document_text(data, mime_type)
    return {"text": text} if text else None


def build_document(
    organization_id: str,
    candidate_id: str,
    blob: StoredBlob,
    document_type: DocumentType,
    upload: UploadedFile,
    mime_type: str,
    parsed_content: Optional[dict[str, Any]] = None,
) -> Document:
    return Document(
        id=blob.document_id,
        organization_id=organization_id,
        candidate_id=candidate_id,
        type=document_type,
        storage_key=blob.storage_key,
        original_filename=sanitize_filename(upload.filename),
        mime_type=mime_type,
        size_bytes=upload.size,
        parsed_content=parsed_content,
    )


async def upload_candidate_document(
    db: AsyncSession,
    storage: BlobStorage,
    organization_id: str,
    candidate_id: str,
    upload: UploadedFile,
    document_type: DocumentType,
) -> Document:
    """
    Validate, store and record one document for an existing candidate.

    Raises:
        NotFoundError: candidate missing or in another organization
        FileTooLarge / UnsupportedFileType: rejected upload
        DocumentLimitExceeded: candidate already has the maximum
    """
    await get_candidate(db, organization_id, candidate_id)
    mime_type = validate_file(upload.data)
    await ensure_document_capacity(db, organization_id, candidate_id)

    blob = await store_document_blob(storage, organization_id, candidate_id, upload.data, mime_type)
    parsed_content = await parse_document_content(upload.data, mime_type)

    document = build_document(
        organization_id, candidate_id, blob, document_type, upload, mime_type, parsed_content
    )
    try:
        db.add(document)
        await db.commit()
    except Exception:
        await db.rollback()
        await discard_blob(storage, blob.storage_key)
        raise

    await db.refresh(document)
    logger.info(f"Stored document {document.id} for candidate {candidate_id}")
    return document


async def get_document(db: AsyncSession, organization_id: str, document_id: str) -> Document:
    result = await db.execute(
        select(Document).where(
            Document.id == document_id,
            Document.organization_id == organization_id,
        )
    )
    document = result.scalar_one_or_none()
    if document is None:
        raise NotFoundError("Document not found")
    return document


async def delete_document(
    db: AsyncSession, storage: BlobStorage, organization_id: str, document_id: str
) -> None:
    """Delete blob then row; a failed blob delete never keeps the row."""
    document = await get_document(db, organization_id, document_id)

    try:
        await storage.delete(document.storage_key)
    except Exception as exc:
        logger.error(
            f"Failed to delete blob {document.storage_key}, removing record anyway: "
            f"{type(exc).__name__}"
        )

    await db.delete(document)
    await db.commit()
    logger.info(f"Deleted document {document_id}")


async def read_document(storage: BlobStorage, document: Document) -> bytes:
    try:
        return await storage.download(document.storage_key)
    except FileNotFoundError:
        raise NotFoundError("Document file not found")
