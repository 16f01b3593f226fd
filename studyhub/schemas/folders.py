"""Folder schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from studyhub.schemas.base import BaseSchema
from studyhub.schemas.documents import DocumentRead


class FolderCreate(BaseSchema):
    """Schema for creating a folder."""

    name: str = Field(..., max_length=255)


class FolderRead(BaseSchema):
    """Schema for reading folder data."""

    id: UUID
    name: str
    created_at: datetime


class FolderWithDocuments(FolderRead):
    """Folder including its documents."""

    documents: list[DocumentRead] = Field(default_factory=list)
