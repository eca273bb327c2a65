"""Document schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from database.models.documents import DocumentType


class DocumentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: DocumentType
    original_filename: str
    mime_type: str
    created_at: datetime


class DocumentResponse(DocumentSummary):
    """Metadata returned after an authenticated upload."""

    size_bytes: Optional[int] = None
