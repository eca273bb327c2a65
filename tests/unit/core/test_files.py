"""
Tests for uploaded file validation.
Type detection must rely on magic bytes only.
"""

import pytest

from core.exceptions import FileTooLarge, UnsupportedFileType
from core.files import (
    DOC_MIME,
    DOCX_MIME,
    MAX_FILE_SIZE,
    PDF_MIME,
    UploadedFile,
    detect_mime_type,
    extension_for,
    sanitize_filename,
    validate_file,
)
from tests.conftest import _create_minimal_pdf, _create_ole2_doc, _create_test_docx


class TestDetectMimeType:
    """Test signature-based classification."""

    def test_pdf_detected(self):
        assert detect_mime_type(_create_minimal_pdf("hello")) == PDF_MIME

    def test_docx_detected(self):
        docx = _create_test_docx("hello").getvalue()
        assert detect_mime_type(docx) == DOCX_MIME

    def test_ole2_signature_is_legacy_word(self):
        """The compound file header always maps to application/msword."""
        assert detect_mime_type(_create_ole2_doc()) == DOC_MIME

    def test_ole2_signature_only_counts_at_start(self):
        data = b"XXXX" + _create_ole2_doc()
        assert detect_mime_type(data) != DOC_MIME

    def test_unknown_bytes(self):
        assert detect_mime_type(b"just some plain text") is None

    def test_empty_bytes(self):
        assert detect_mime_type(b"") is None


class TestValidateFile:
    """Test size and type validation."""

    def test_valid_pdf_returns_mime(self):
        assert validate_file(_create_minimal_pdf("ok")) == PDF_MIME

    def test_valid_legacy_doc_returns_mime(self):
        assert validate_file(_create_ole2_doc()) == DOC_MIME

    def test_oversized_file_rejected(self):
        data = _create_minimal_pdf("big") + b"\x00" * MAX_FILE_SIZE
        with pytest.raises(FileTooLarge) as exc_info:
            validate_file(data)
        assert exc_info.value.status_code == 413
        assert exc_info.value.message == "File too large. Maximum size is 10 MB"

    def test_size_checked_before_type(self):
        """An oversized file of an unsupported type still reports size."""
        with pytest.raises(FileTooLarge):
            validate_file(b"\x00" * (MAX_FILE_SIZE + 1))

    def test_exactly_max_size_allowed(self):
        pdf = _create_minimal_pdf("edge")
        data = pdf + b"\x00" * (MAX_FILE_SIZE - len(pdf))
        assert validate_file(data) == PDF_MIME

    def test_custom_max_size(self):
        with pytest.raises(FileTooLarge):
            validate_file(_create_minimal_pdf("x"), max_size=10)

    @pytest.mark.parametrize(
        "data",
        [
            b"\x89PNG\r\n\x1a\n" + b"\x00" * 64,  # image
            b"\xff\xd8\xff\xe0" + b"\x00" * 64,  # jpeg
            b"plain text pretending to be a resume",
            b"",
        ],
    )
    def test_unsupported_types_rejected(self, data):
        with pytest.raises(UnsupportedFileType) as exc_info:
            validate_file(data)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid file type. Allowed: PDF, DOC, DOCX"


class TestExtensionFor:
    @pytest.mark.parametrize(
        "mime,expected",
        [(PDF_MIME, "pdf"), (DOC_MIME, "doc"), (DOCX_MIME, "docx"), ("image/png", "bin")],
    )
    def test_mapping(self, mime, expected):
        assert extension_for(mime) == expected


class TestSanitizeFilename:
    """Test client filename sanitization."""

    def test_plain_name_unchanged(self):
        assert sanitize_filename("resume.pdf") == "resume.pdf"

    def test_path_separators_replaced(self):
        assert "/" not in sanitize_filename("../../etc/passwd")
        assert "\\" not in sanitize_filename("..\\windows\\system32")

    def test_dot_runs_collapsed_and_stripped(self):
        assert sanitize_filename("..hidden...pdf") == "hidden.pdf"

    def test_unsafe_characters_replaced(self):
        assert sanitize_filename('my<cv>:"final"?.pdf') == "my_cv___final__.pdf"

    def test_control_characters_replaced(self):
        assert sanitize_filename("cv\r\n.pdf") == "cv__.pdf"

    def test_truncated(self):
        assert len(sanitize_filename("a" * 400 + ".pdf")) == 255

    @pytest.mark.parametrize("name", ["", None, "...", "   "])
    def test_fallback_name(self, name):
        assert sanitize_filename(name) == "unnamed"


class TestUploadedFile:
    def test_size(self):
        upload = UploadedFile(data=b"12345", filename="a.pdf")
        assert upload.size == 5
        assert upload.declared_type is None
