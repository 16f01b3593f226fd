"""Document schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel

from studyhub.errors import ErrorKind
from studyhub.schemas.base import BaseSchema


class DocumentRead(BaseSchema):
    """Schema for reading document metadata."""

    id: UUID
    name: str
    size: int
    url: str
    path: str
    content_type: str | None = None
    folder_id: UUID
    created_at: datetime


class UploadStatus(str, Enum):
    """Outcome of one file in an upload batch."""

    UPLOADED = "uploaded"
    REJECTED = "rejected"
    FAILED = "failed"


class UploadResultRead(BaseModel):
    """Per-file upload outcome."""

    name: str
    status: UploadStatus
    document: DocumentRead | None = None
    error: ErrorKind | None = None
    reason: str | None = None


class UploadBatchResponse(BaseModel):
    """Results for every file in the batch, in input order."""

    results: list[UploadResultRead]
    uploaded: int
    rejected: int
    failed: int
