import asyncio
import logging
from io import BytesIO
import re
from typing import Iterable, Optional

import pdfplumber
from docx import Document

from core.files import DOCX_MIME, PDF_MIME


logger = logging.getLogger(__name__)


async def extract_document_text(data: bytes, mime_type: str) -> Optional[str]:
    """
    Best-effort plain text of an uploaded document.

    Returns None for formats without a parser (legacy .doc) and when parsing
    fails; a broken document never fails its upload.
    """
    extractor = _EXTRACTORS.get(mime_type)
    if extractor is None:
        return None

    try:
        return await asyncio.to_thread(extractor, BytesIO(data))
    except Exception as exc:
        logger.warning("Text extraction failed for %s: %s", mime_type, type(exc).__name__)
        return None


def _extract_pdf_text_sync(file_stream: BytesIO) -> str:
    chunks: list[str] = []

    with pdfplumber.open(file_stream) as pdf:
        for idx, page in enumerate(pdf.pages, start=1):
            try:
                page_text = page.extract_text() or ""
            except Exception as exc:  # pragma: no cover - pdfplumber internals
                logger.warning("Skipping unreadable PDF page %s: %s", idx, exc)
                continue
            if page_text:
                chunks.append(page_text)

    return _normalize_text(chunks)


def _extract_docx_text_sync(file_stream: BytesIO) -> str:
    """Paragraphs first, then table cells."""
    doc = Document(file_stream)
    return _normalize_text(_iter_docx_text(doc))


def _iter_docx_text(doc) -> Iterable[str]:
    for para in doc.paragraphs:
        if para.text:
            yield para.text

    for table in doc.tables:
        for row in table.rows:
            for cell in row.cells:
                if cell.text:
                    yield cell.text


def _normalize_text(chunks: Iterable[str]) -> str:
    """Trim, drop empty chunks, and join with stable line breaks."""
    cleaned = [chunk.strip() for chunk in chunks if chunk.strip()]
    if not cleaned:
        return ""

    text = "\n".join(cleaned)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


_EXTRACTORS = {
    PDF_MIME: _extract_pdf_text_sync,
    DOCX_MIME: _extract_docx_text_sync,
}
