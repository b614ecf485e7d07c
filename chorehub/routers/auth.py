"""Authentication router.

Parents register (or join an existing family with its invite code) and log
in with email + password.  Children log in with
the family invite code, their name and a PIN.  Both receive the same
access/refresh token pair; see ``chorehub.services.auth_service``.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.core.dependencies import get_current_user
from chorehub.core.errors import Conflict, NotFound
from chorehub.core.rate_limit import LOGIN_LIMIT, PIN_LOGIN_LIMIT, limiter
from chorehub.core.security import get_password_hash, verify_password
from chorehub.database import get_db
from chorehub.models.enums import UserRole
from chorehub.models.family import Family
from chorehub.models.user import User
from chorehub.schemas.auth import (
    JoinFamilyRequest,
    LoginRequest,
    PinLoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
)
from chorehub.schemas.user import UserResponse
from chorehub.services import auth_service
from chorehub.services.family_service import generate_invite_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _ensure_email_free(db: AsyncSession, email: str) -> None:
    existing = await db.execute(select(User.id).where(func.lower(User.email) == email))
    if existing.first() is not None:
        raise Conflict("Email already registered")


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Return the currently authenticated user, including the points balance."""
    return current_user


# ---------------------------------------------------------------------------
# Parents
# ---------------------------------------------------------------------------


@router.post("/register", response_model=TokenResponse)
async def register(
    body: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Register a parent and create their family with a fresh invite code."""
    email = body.email.lower()
    await _ensure_email_free(db, email)

    family = Family(name=body.family_name, invite_code=await generate_invite_code(db))
    db.add(family)
    await db.flush()

    parent = User(
        family_id=family.id,
        name=body.name,
        role=UserRole.PARENT,
        email=email,
        password_hash=get_password_hash(body.password),
    )
    db.add(parent)
    await db.flush()
    return await auth_service.issue_tokens(db, parent)


@router.post("/join", response_model=TokenResponse)
async def join_family(
    body: JoinFamilyRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create an additional parent account in the family owning ``invite_code``."""
    email = body.email.lower()
    await _ensure_email_free(db, email)

    result = await db.execute(
        select(Family).where(Family.invite_code == body.invite_code.strip().upper())
    )
    family = result.scalar_one_or_none()
    if family is None:
        raise NotFound("Invalid invite code")

    parent = User(
        family_id=family.id,
        name=body.name,
        role=UserRole.PARENT,
        email=email,
        password_hash=get_password_hash(body.password),
    )
    db.add(parent)
    await db.flush()
    logger.info("Parent joined family=%s user=%s", family.id, parent.id)
    return await auth_service.issue_tokens(db, parent)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(LOGIN_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    result = await db.execute(
        select(User).where(func.lower(User.email) == body.email.strip().lower())
    )
    user = result.scalar_one_or_none()

    if (
        user is None
        or user.password_hash is None
        or not user.is_active
        or not verify_password(body.password, user.password_hash)
    ):
        raise _unauthorized("Invalid email or password")
    return await auth_service.issue_tokens(db, user)


# ---------------------------------------------------------------------------
# Children
# ---------------------------------------------------------------------------


@router.post("/login-pin", response_model=TokenResponse)
@limiter.limit(PIN_LOGIN_LIMIT)
async def login_pin(
    request: Request,
    body: PinLoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Authenticate a child with family invite code + child name + PIN.

    Every failure returns the same 401 so the endpoint does not reveal
    which part was wrong.
    """
    invalid = _unauthorized("Invalid invite code, name or PIN")

    result = await db.execute(
        select(User)
        .join(Family, User.family_id == Family.id)
        .where(
            Family.invite_code == body.invite_code.strip().upper(),
            func.lower(User.name) == body.child_name.strip().lower(),
            User.role == UserRole.CHILD,
            User.is_active.is_(True),
        )
    )
    child = result.scalar_one_or_none()
    if child is None or child.pin_hash is None:
        raise invalid
    if not verify_password(body.pin, child.pin_hash):
        raise invalid

    return await auth_service.issue_tokens(db, child)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Exchange a valid refresh token for a new token pair (rotation)."""
    tokens = await auth_service.rotate_refresh_token(db, body.refresh_token)
    if tokens is None:
        raise _unauthorized("Invalid or expired refresh token")
    return tokens


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    body: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Revoke the provided refresh token. Unknown tokens are ignored."""
    stored = await auth_service.find_active_refresh_token(db, body.refresh_token)
    if stored is not None:
        stored.revoked = True
        await db.flush()
    return None
