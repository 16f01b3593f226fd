"""Authentication schemas."""

from pydantic import Field

from studyhub.schemas.base import BaseSchema


class GoogleAuthRequest(BaseSchema):
    """Google OAuth id_token obtained by the frontend."""

    id_token: str = Field(..., description="Google OAuth id_token from frontend")


class TokenResponse(BaseSchema):
    """Session token issued after login."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token expiry in seconds")
