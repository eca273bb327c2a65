"""Tests for document parsing utilities."""

import pytest

from core.files import DOC_MIME, DOCX_MIME, PDF_MIME
from core.parsers import document_parser as dp_module
from tests.conftest import _create_minimal_pdf, _create_ole2_doc, _create_test_docx


@pytest.mark.asyncio
async def test_extract_text_from_pdf():
    """Test PDF text extraction from raw bytes."""
    pdf_data = _create_minimal_pdf("Hello World")

    result = await dp_module.extract_document_text(pdf_data, PDF_MIME)

    assert isinstance(result, str)
    assert "Hello" in result or len(result) > 0


@pytest.mark.asyncio
async def test_extract_text_from_empty_pdf():
    """Test extraction from empty PDF returns empty string."""
    result = await dp_module.extract_document_text(_create_minimal_pdf(""), PDF_MIME)
    assert result == ""


@pytest.mark.asyncio
async def test_extract_text_from_docx_paragraphs():
    docx = _create_test_docx("Senior Designer", "Portfolio available").getvalue()

    result = await dp_module.extract_document_text(docx, DOCX_MIME)

    assert result == "Senior Designer\nPortfolio available"


@pytest.mark.asyncio
async def test_extract_text_from_docx_tables(simple_docx):
    result = await dp_module.extract_document_text(simple_docx.getvalue(), DOCX_MIME)

    assert "Test paragraph" in result
    assert "Test cell" in result


@pytest.mark.asyncio
async def test_legacy_doc_has_no_parser():
    assert await dp_module.extract_document_text(_create_ole2_doc(), DOC_MIME) is None


@pytest.mark.asyncio
async def test_corrupt_document_returns_none():
    """A broken file never fails its upload."""
    assert await dp_module.extract_document_text(b"%PDF-1.4 broken", PDF_MIME) is None
    assert await dp_module.extract_document_text(b"PK\x03\x04 broken", DOCX_MIME) is None


@pytest.mark.asyncio
async def test_unknown_mime_returns_none():
    assert await dp_module.extract_document_text(b"hello", "text/plain") is None


def test_normalize_text_collapses_blank_chunks():
    assert dp_module._normalize_text(["  a  ", "", "   ", "b"]) == "a\nb"
    assert dp_module._normalize_text([]) == ""
