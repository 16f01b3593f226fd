"""User schemas."""

from datetime import datetime
from uuid import UUID

from studyhub.schemas.base import BaseSchema


class UserRead(BaseSchema):
    """Profile of the authenticated user."""

    id: UUID
    email: str | None
    name: str
    created_at: datetime
