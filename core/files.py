"""
Uploaded file validation.

File type is decided from the magic bytes only; the client's declared
Content-Type and filename extension are never trusted.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import filetype

from core.exceptions import FileTooLarge, UnsupportedFileType

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB
MAX_DOCUMENTS_PER_CANDIDATE = 20

PDF_MIME = "application/pdf"
DOC_MIME = "application/msword"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

ALLOWED_MIME_TYPES = frozenset({PDF_MIME, DOC_MIME, DOCX_MIME})

MIME_TO_EXTENSION = {
    PDF_MIME: "pdf",
    DOC_MIME: "doc",
    DOCX_MIME: "docx",
}
FALLBACK_EXTENSION = "bin"

# Compound File Binary (legacy .doc); generic sniffers often miss it
OLE2_SIGNATURE = bytes([0xD0, 0xCF, 0x11, 0xE0, 0xA1, 0xB1, 0x1A, 0xE1])

_UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"\'/\\|?*\x00-\x1f]')
_DOT_RUNS = re.compile(r"\.{2,}")
MAX_FILENAME_LENGTH = 255


@dataclass
class UploadedFile:
    """A file part received from a client, not yet validated."""

    data: bytes
    filename: str
    declared_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


def detect_mime_type(data: bytes) -> Optional[str]:
    """
    Classify bytes by their signature.

    Args:
        data: File contents

    Returns:
        Detected MIME type, or None when the format is unknown
    """
    if data[:8] == OLE2_SIGNATURE:
        return DOC_MIME

    kind = filetype.guess(data)
    if kind is None:
        return None
    return kind.mime


def validate_file(data: bytes, max_size: int = MAX_FILE_SIZE) -> str:
    """
    Validate an uploaded file and return its MIME type.

    Size is checked before anything else so oversized payloads never reach
    the sniffer.

    Raises:
        FileTooLarge: more than ``max_size`` bytes
        UnsupportedFileType: not a PDF, DOC or DOCX document
    """
    if len(data) > max_size:
        raise FileTooLarge()

    mime_type = detect_mime_type(data)
    if mime_type not in ALLOWED_MIME_TYPES:
        logger.info(f"Rejected upload with detected type: {mime_type or 'unknown'}")
        raise UnsupportedFileType()

    return mime_type


def extension_for(mime_type: str) -> str:
    return MIME_TO_EXTENSION.get(mime_type, FALLBACK_EXTENSION)


def sanitize_filename(filename: Optional[str]) -> str:
    """Make a client-supplied filename safe for storage and headers."""
    name = _UNSAFE_FILENAME_CHARS.sub("_", filename or "")
    name = _DOT_RUNS.sub(".", name)
    name = name.strip(". \t\r\n")
    name = name[:MAX_FILENAME_LENGTH]
    return name or "unnamed"
