"""Sign-in: Google id_token verification and user resolution."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyhub.config import get_settings
from studyhub.db.models import AuthIdentity, User
from studyhub.errors import AuthenticationError, StorageError

logger = logging.getLogger(__name__)
settings = get_settings()

GOOGLE_PROVIDER = "google"
_GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


@dataclass
class GoogleIdentity:
    """Verified claims from a Google id_token."""

    subject: str
    email: str | None
    name: str


def verify_google_token(token: str) -> GoogleIdentity:
    """
    Check an id_token's signature, expiry, audience and issuer.

    An email Google has not verified is dropped, so it never links accounts.

    Raises:
        AuthenticationError: If the token is not a valid Google id_token
    """
    try:
        claims = google_id_token.verify_oauth2_token(
            token,
            google_requests.Request(),
            settings.google_client_id,
        )
    except ValueError as e:
        logger.warning("Rejected Google id_token: %s", e)
        raise AuthenticationError(f"Invalid Google id_token: {e}", context={"reason": "invalid"}) from e

    if claims.get("iss") not in _GOOGLE_ISSUERS:
        logger.warning("Rejected Google id_token from issuer %r", claims.get("iss"))
        raise AuthenticationError("Google id_token has the wrong issuer", context={"reason": "invalid"})

    email = claims.get("email")
    if email and not claims.get("email_verified", False):
        email = None
    return GoogleIdentity(
        subject=claims["sub"],
        email=email.lower() if email else None,
        name=claims.get("name") or email or "Student",
    )


async def sign_in(db: AsyncSession, identity: GoogleIdentity) -> User:
    """
    Find or create the user for a Google identity and commit.

    A known identity refreshes its last login. A new identity is linked to
    the user with the same verified email, or to a new user.

    Raises:
        StorageError: If the write fails
    """
    try:
        result = await db.execute(
            select(AuthIdentity)
            .options(selectinload(AuthIdentity.user))
            .where(
                AuthIdentity.provider == GOOGLE_PROVIDER,
                AuthIdentity.provider_user_id == identity.subject,
            )
        )
        known = result.scalar_one_or_none()

        if known is not None:
            known.last_login_at = datetime.now(timezone.utc)
            if identity.email:
                known.email = identity.email
            user = known.user
        else:
            user = await _user_for_new_identity(db, identity)
            db.add(
                AuthIdentity(
                    user_id=user.id,
                    provider=GOOGLE_PROVIDER,
                    provider_user_id=identity.subject,
                    email=identity.email,
                )
            )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise StorageError(f"Failed to sign in Google subject {identity.subject}: {e}") from e

    logger.info("User %s signed in", user.id)
    return user


async def _user_for_new_identity(db: AsyncSession, identity: GoogleIdentity) -> User:
    if identity.email:
        result = await db.execute(select(User).where(User.email == identity.email))
        existing = result.scalar_one_or_none()
        if existing is not None:
            logger.info("Linking Google identity to existing user %s", existing.id)
            return existing

    user = User(email=identity.email, name=identity.name)
    db.add(user)
    await db.flush()
    logger.info("Created user %s", user.id)
    return user
