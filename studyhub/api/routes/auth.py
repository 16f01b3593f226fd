"""Sign-in routes: Google login, logout and the current profile."""

import logging

from fastapi import APIRouter, Response, status

from studyhub.api.deps import CurrentUser, DbSession, create_access_token
from studyhub.config import get_settings
from studyhub.schemas.auth import GoogleAuthRequest, TokenResponse
from studyhub.schemas.user import UserRead
from studyhub.services import accounts

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


def _cookie_options() -> dict:
    # samesite="none" is only accepted on secure cookies
    return {
        "key": "access_token",
        "httponly": True,
        "secure": settings.cookie_cross_domain or settings.environment != "development",
        "samesite": "none" if settings.cookie_cross_domain else "lax",
    }


@router.post("/google", response_model=TokenResponse)
async def google_login(
    request: GoogleAuthRequest,
    response: Response,
    db: DbSession,
) -> TokenResponse:
    """Exchange a Google id_token for a session token, returned in the body and a cookie."""
    identity = accounts.verify_google_token(request.id_token)
    user = await accounts.sign_in(db, identity)

    access_token = create_access_token(user.id)
    expires_in = settings.jwt_expire_minutes * 60
    response.set_cookie(value=access_token, max_age=expires_in, **_cookie_options())
    return TokenResponse(access_token=access_token, expires_in=expires_in)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """Drop the session cookie. Tokens held elsewhere stay valid until they expire."""
    response.delete_cookie(**_cookie_options())


@router.get("/me", response_model=UserRead)
async def get_me(current_user: CurrentUser) -> UserRead:
    return UserRead.model_validate(current_user)
