"""FastAPI dependencies for authentication and family scoping.

Every family-scoped route has ``family_id`` in its path.  Members of another
family get 403 before any query touches the family's data.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.core.errors import Forbidden
from chorehub.core.security import decode_token
from chorehub.database import get_db
from chorehub.models.enums import UserRole

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Resolve the bearer access token to an active ``User``.

    Raises:
        HTTPException 401: If the token is missing, invalid or not an access
            token, or the user no longer exists or has been deactivated.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(token)
        if payload.get("type") != "access":
            raise credentials_exception
        user_id = UUID(payload["sub"])
    except (JWTError, KeyError, ValueError):
        raise credentials_exception

    # Import here to avoid circular imports (models -> database -> dependencies)
    from chorehub.models.user import User

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise credentials_exception
    return user


def _require_role(role: UserRole):
    async def _check_role(current_user=Depends(get_current_user)):
        if current_user.role != role:
            raise Forbidden(f"{role.value.capitalize()} role required")
        return current_user

    return _check_role


require_parent = _require_role(UserRole.PARENT)
require_child = _require_role(UserRole.CHILD)


def ensure_same_family(current_user, family_id: UUID) -> None:
    """Raise 403 when the path's family is not the caller's family."""
    if current_user.family_id != family_id:
        raise Forbidden("You are not a member of this family")


def require_family_member():
    """Dependency factory: any authenticated member of the path's family.

    Usage::

        @router.get("/families/{family_id}/chores")
        async def list_chores(
            family_id: UUID,
            user=Depends(require_family_member()),
        ):
            ...
    """

    async def _check_family_member(
        family_id: UUID,
        current_user=Depends(get_current_user),
    ):
        ensure_same_family(current_user, family_id)
        return current_user

    return _check_family_member
