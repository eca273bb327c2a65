"""
Document Model

Files attached to a candidate (resumes, cover letters, ...). The blob lives in
object storage under a server-generated key; this row holds its metadata.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    ForeignKey,
    BigInteger,
    JSON,
    Enum as SQLEnum,
    Index,
)
from database.engine import Base
from database.mixins import IdMixin, CreatedAtMixin, enum_values
from enum import Enum as PyEnum
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.candidates import Candidate


# ==================== Document Enums ===================== #
class DocumentType(str, PyEnum):
    RESUME = "resume"
    COVER_LETTER = "cover_letter"
    OTHER = "other"


# ==================== Document Model ===================== #
class Document(Base, IdMixin, CreatedAtMixin):
    """Candidate document stored in blob storage."""

    __tablename__ = "documents"

    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    candidate_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[DocumentType] = mapped_column(
        SQLEnum(DocumentType, native_enum=False, length=50, values_callable=enum_values),
        nullable=False,
        default=DocumentType.RESUME,
    )
    # {organization_id}/{candidate_id}/{document_id}.{ext}, never user supplied
    storage_key: Mapped[str] = mapped_column(String(500), unique=True, nullable=False)
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size_bytes: Mapped[int | None] = mapped_column(BigInteger)
    parsed_content: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    # Relationships
    candidate: Mapped["Candidate"] = relationship("Candidate", back_populates="documents")

    __table_args__ = (Index("idx_document_candidate", "candidate_id"),)

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, type={self.type}, mime_type={self.mime_type})>"
