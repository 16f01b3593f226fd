"""
Request dependencies: the signed-in user, the database session and
owner-scoped lookups.

Sessions are HS256 JWTs whose only claims are the user id (`sub`) and
expiry. Clients send them as a Bearer header or the `access_token` cookie
set at login. Every folder, document, plan and progress query is filtered
by the user's id, so another user's rows read as missing.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

from fastapi import Cookie, Depends, Header
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.config import get_settings
from studyhub.db.models import User
from studyhub.db.session import get_db
from studyhub.errors import AuthenticationError, FetchError, NotFoundError

settings = get_settings()


def create_access_token(user_id: UUID, now: datetime | None = None) -> str:
    """Issue a session token for `user_id`, valid for `jwt_expire_minutes`."""
    issued = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "exp": issued + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID:
    """
    Return the user id a session token was issued for.

    Raises:
        AuthenticationError: If the token is expired, tampered with or has no
            usable subject
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as e:
        raise AuthenticationError("Session token expired", context={"reason": "expired"}) from e
    except JWTError as e:
        raise AuthenticationError(f"Session token rejected: {e}", context={"reason": "invalid"}) from e

    try:
        return UUID(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise AuthenticationError("Session token has no user", context={"reason": "invalid"}) from e


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """
    The session token from a `Bearer` Authorization header, else the cookie.

    Raises:
        AuthenticationError: If neither carries a token
    """
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    if access_token:
        return access_token
    raise AuthenticationError("No session token", context={"reason": "missing"})


async def get_current_user(
    token: Annotated[str, Depends(get_token_from_request)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Resolve the session token to its user.

    Raises:
        AuthenticationError: If the token is unusable or its user is gone
        FetchError: If the user lookup fails
    """
    user_id = decode_access_token(token)
    try:
        user = await db.get(User, user_id)
    except SQLAlchemyError as e:
        raise FetchError(f"Failed to load user {user_id}: {e}") from e
    if user is None:
        raise AuthenticationError(f"Session user {user_id} no longer exists", context={"reason": "unknown_user"})
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_user_resource_or_404(
    db: AsyncSession,
    model: type,
    resource_id: UUID,
    user_id: UUID,
):
    """
    Load a row of `model` owned by `user_id`.

    Raises:
        NotFoundError: If it does not exist or belongs to someone else
    """
    result = await db.execute(
        select(model).where(model.id == resource_id, model.user_id == user_id)
    )
    resource = result.scalar_one_or_none()
    if resource is None:
        raise NotFoundError(
            f"{model.__name__} {resource_id} not found",
            context={"resource": model.__tablename__, "id": str(resource_id)},
        )
    return resource
