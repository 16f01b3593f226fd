"""Base schema configuration."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class GeneratedSchema(BaseModel):
    """
    Base for shapes produced by the generation service.

    Fields use camelCase aliases on the wire and in stored JSON; strings are
    kept verbatim so stored content round-trips exactly.
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> str:
        """Serialize with wire aliases, omitting unset optional fields."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class IDMixin(BaseModel):
    """Mixin for UUID primary key."""

    id: UUID


class CreatedAtMixin(BaseModel):
    """Mixin for created_at timestamp."""

    created_at: datetime
