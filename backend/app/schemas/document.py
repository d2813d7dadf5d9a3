from datetime import datetime

from pydantic import Field

from app.models.document import DocumentType
from app.schemas.common import CamelModel


class DocumentCreate(CamelModel):
    filing_id: str
    document_type: DocumentType
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=500)
    file_size: int = Field(..., ge=1)
    mime_type: str = Field(..., min_length=1, max_length=100)
    notes: str | None = Field(None, max_length=2000)


class DocumentUpdate(CamelModel):
    document_type: DocumentType | None = None
    file_name: str | None = Field(None, min_length=1, max_length=255)
    notes: str | None = Field(None, max_length=2000)


class DocumentVerify(CamelModel):
    notes: str | None = Field(None, max_length=2000)


class DocumentOut(CamelModel):
    id: str
    filing_id: str
    uploaded_by: str
    verified_by: str | None
    document_type: DocumentType
    file_name: str
    file_path: str
    file_size: int
    mime_type: str
    is_verified: bool
    verified_at: datetime | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class DocumentStatsOut(CamelModel):
    total_documents: int
    verified_documents: int
    pending_verification: int
    documents_by_type: dict[str, int]
    recent_uploads: int
    total_file_size: int
