"""
Tests for the document storage service.
"""

import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from api.services import documents as documents_service
from api.services.candidates import resolve_candidate
from api.services.documents import (
    build_storage_key,
    delete_document,
    discard_blob,
    ensure_document_capacity,
    get_document,
    infer_document_type,
    read_document,
    upload_candidate_document,
)
from core.exceptions import (
    DocumentLimitExceeded,
    FileTooLarge,
    NotFoundError,
    UnsupportedFileType,
)
from core.files import MAX_DOCUMENTS_PER_CANDIDATE, MAX_FILE_SIZE, PDF_MIME, UploadedFile
from database.models.documents import Document, DocumentType
from tests.conftest import _create_minimal_pdf


@pytest.fixture
async def candidate_id(db, organization):
    return await resolve_candidate(db, organization.id, "jane@example.com", "Jane", "Doe")


def _pdf_upload(filename="cv.pdf") -> UploadedFile:
    return UploadedFile(data=_create_minimal_pdf("Jane Doe"), filename=filename, declared_type=PDF_MIME)


async def _documents(session_factory):
    async with session_factory() as session:
        result = await session.execute(select(Document))
        return list(result.scalars().all())


class TestStorageKeys:
    def test_key_layout(self):
        assert build_storage_key("org", "cand", "doc", PDF_MIME) == "org/cand/doc.pdf"

    def test_unknown_mime_gets_bin(self):
        assert build_storage_key("o", "c", "d", "image/png") == "o/c/d.bin"


class TestInferDocumentType:
    @pytest.mark.parametrize(
        "label,expected",
        [
            ("Resume", DocumentType.RESUME),
            ("Upload your CV", DocumentType.RESUME),
            ("Cover Letter", DocumentType.COVER_LETTER),
            ("Portfolio", DocumentType.OTHER),
        ],
    )
    def test_from_label(self, label, expected):
        assert infer_document_type(label) == expected


class TestUploadCandidateDocument:
    """Test validated upload with rollback on insert failure."""

    async def test_stores_blob_and_row(self, db, session_factory, storage, organization, candidate_id):
        document = await upload_candidate_document(
            db, storage, organization.id, candidate_id, _pdf_upload("my cv.pdf"), DocumentType.RESUME
        )

        assert document.storage_key == f"{organization.id}/{candidate_id}/{document.id}.pdf"
        assert document.original_filename == "my cv.pdf"
        assert document.mime_type == PDF_MIME
        assert document.size_bytes == len(_pdf_upload().data)
        assert await storage.exists(document.storage_key)
        assert len(await _documents(session_factory)) == 1

    async def test_filename_sanitized(self, db, storage, organization, candidate_id):
        document = await upload_candidate_document(
            db, storage, organization.id, candidate_id, _pdf_upload("../../etc/passwd"), DocumentType.OTHER
        )

        assert "/" not in document.original_filename
        assert document.storage_key == f"{organization.id}/{candidate_id}/{document.id}.pdf"

    async def test_parsed_text_recorded(self, db, storage, organization, candidate_id):
        with patch.object(documents_service, "extract_document_text", AsyncMock(return_value="Jane Doe")):
            document = await upload_candidate_document(
                db, storage, organization.id, candidate_id, _pdf_upload(), DocumentType.RESUME
            )

        assert document.parsed_content == {"text": "Jane Doe"}

    async def test_parsing_disabled(self, db, storage, organization, candidate_id, monkeypatch):
        monkeypatch.setattr(documents_service.settings, "document_parsing_enabled", False)
        extract = AsyncMock(return_value="text")

        with patch.object(documents_service, "extract_document_text", extract):
            document = await upload_candidate_document(
                db, storage, organization.id, candidate_id, _pdf_upload(), DocumentType.RESUME
            )

        assert document.parsed_content is None
        extract.assert_not_awaited()

    async def test_unknown_candidate(self, db, storage, organization):
        with pytest.raises(NotFoundError):
            await upload_candidate_document(
                db, storage, organization.id, "missing", _pdf_upload(), DocumentType.RESUME
            )

    async def test_rejected_file_never_uploaded(self, db, organization, candidate_id):
        storage = AsyncMock()

        with pytest.raises(UnsupportedFileType):
            await upload_candidate_document(
                db,
                storage,
                organization.id,
                candidate_id,
                UploadedFile(data=b"plain text", filename="cv.txt"),
                DocumentType.RESUME,
            )
        with pytest.raises(FileTooLarge):
            await upload_candidate_document(
                db,
                storage,
                organization.id,
                candidate_id,
                UploadedFile(data=b"%PDF-1.4" + b"\x00" * MAX_FILE_SIZE, filename="big.pdf"),
                DocumentType.RESUME,
            )

        storage.upload.assert_not_awaited()

    async def test_insert_failure_deletes_blob(self, db, session_factory, organization, candidate_id):
        storage = AsyncMock()

        with patch.object(db, "commit", AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("boom")))):
            with pytest.raises(IntegrityError):
                await upload_candidate_document(
                    db, storage, organization.id, candidate_id, _pdf_upload(), DocumentType.RESUME
                )

        uploaded_key = storage.upload.await_args.args[1]
        storage.delete.assert_awaited_once_with(uploaded_key)
        assert await _documents(session_factory) == []

    async def test_cleanup_failure_still_raises_insert_error(self, db, organization, candidate_id):
        storage = AsyncMock()
        storage.delete.side_effect = ConnectionError("storage down")

        with patch.object(db, "commit", AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("boom")))):
            with pytest.raises(IntegrityError):
                await upload_candidate_document(
                    db, storage, organization.id, candidate_id, _pdf_upload(), DocumentType.RESUME
                )


class TestDocumentCapacity:
    async def test_limit_enforced(self, db, organization, candidate_id):
        db.add_all(
            [
                Document(
                    organization_id=organization.id,
                    candidate_id=candidate_id,
                    type=DocumentType.OTHER,
                    storage_key=f"k-{i}",
                    original_filename="f.pdf",
                    mime_type=PDF_MIME,
                )
                for i in range(MAX_DOCUMENTS_PER_CANDIDATE - 1)
            ]
        )
        await db.commit()

        await ensure_document_capacity(db, organization.id, candidate_id, incoming=1)
        with pytest.raises(DocumentLimitExceeded) as exc_info:
            await ensure_document_capacity(db, organization.id, candidate_id, incoming=2)
        assert exc_info.value.status_code == 409


class TestDeleteAndRead:
    async def test_delete_removes_blob_and_row(self, db, session_factory, storage, organization, candidate_id):
        document = await upload_candidate_document(
            db, storage, organization.id, candidate_id, _pdf_upload(), DocumentType.RESUME
        )

        await delete_document(db, storage, organization.id, document.id)

        assert not await storage.exists(document.storage_key)
        assert await _documents(session_factory) == []

    async def test_delete_row_even_when_blob_delete_fails(self, db, session_factory, storage, organization, candidate_id):
        document = await upload_candidate_document(
            db, storage, organization.id, candidate_id, _pdf_upload(), DocumentType.RESUME
        )
        failing = AsyncMock()
        failing.delete.side_effect = ConnectionError("storage down")

        await delete_document(db, failing, organization.id, document.id)

        assert await _documents(session_factory) == []

    async def test_other_organization_cannot_see_document(self, db, storage, organization, candidate_id):
        document = await upload_candidate_document(
            db, storage, organization.id, candidate_id, _pdf_upload(), DocumentType.RESUME
        )

        with pytest.raises(NotFoundError, match="Document not found"):
            await get_document(db, "other-org", document.id)

    async def test_read_missing_blob(self, db, storage, organization, candidate_id):
        document = await upload_candidate_document(
            db, storage, organization.id, candidate_id, _pdf_upload(), DocumentType.RESUME
        )
        await storage.delete(document.storage_key)

        with pytest.raises(NotFoundError, match="Document file not found"):
            await read_document(storage, document)


class TestDiscardBlob:
    async def test_success(self):
        storage = AsyncMock()
        assert await discard_blob(storage, "k") is True

    async def test_failure_swallowed(self):
        storage = AsyncMock()
        storage.delete.side_effect = FileNotFoundError("k")
        assert await discard_blob(storage, "k") is False
