"""Auth Service.

Issues access/refresh token pairs and manages the refresh-token store.
Refresh tokens are persisted only as SHA-256 digests and rotate on every
use.  Revoking a user's tokens ends every session the user has, which the
children router does when a PIN is reset or a child is deactivated.
"""

import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.config import settings
from chorehub.core.security import create_access_token, create_refresh_token, decode_token
from chorehub.models.user import RefreshToken, User
from chorehub.schemas.auth import TokenResponse

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


async def issue_tokens(db: AsyncSession, user: User) -> TokenResponse:
    """Create an access + refresh token pair and persist the refresh digest."""
    access_token = create_access_token(
        data={"sub": str(user.id), "family_id": str(user.family_id), "role": user.role.value}
    )
    raw_refresh = create_refresh_token(data={"sub": str(user.id)})

    db.add(RefreshToken(
        user_id=user.id,
        token_hash=hash_token(raw_refresh),
        expires_at=datetime.now(timezone.utc)
        + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    ))
    await db.flush()
    return TokenResponse(access_token=access_token, refresh_token=raw_refresh)


async def find_active_refresh_token(db: AsyncSession, raw_token: str) -> RefreshToken | None:
    result = await db.execute(
        select(RefreshToken).where(
            RefreshToken.token_hash == hash_token(raw_token),
            RefreshToken.revoked.is_(False),
        )
    )
    return result.scalar_one_or_none()


async def rotate_refresh_token(db: AsyncSession, raw_token: str) -> TokenResponse | None:
    """Exchange a refresh token for a new pair.

    Returns None when the token is malformed, unknown, revoked, expired, or
    belongs to a user who can no longer log in.  A used token is revoked.
    """
    try:
        payload = decode_token(raw_token)
        user_id = uuid.UUID(payload["sub"])
    except (JWTError, KeyError, ValueError):
        return None
    if payload.get("type") != "refresh":
        return None

    stored = await find_active_refresh_token(db, raw_token)
    if stored is None:
        return None

    expires = stored.expires_at
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    if expires < datetime.now(timezone.utc):
        return None

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        return None

    stored.revoked = True
    await db.flush()
    return await issue_tokens(db, user)


async def revoke_all_refresh_tokens(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Revoke every active refresh token of ``user_id``.  Returns the count."""
    result = await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
        .values(revoked=True)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        logger.info("Revoked %d refresh token(s) for user=%s", result.rowcount, user_id)
    return result.rowcount
