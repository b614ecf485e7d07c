"""Children router.

Endpoints for managing child users within a family.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.core.dependencies import ensure_same_family, require_family_member, require_parent
from chorehub.core.errors import Conflict
from chorehub.core.security import get_password_hash
from chorehub.database import get_db
from chorehub.models.enums import UserRole
from chorehub.models.user import User
from chorehub.schemas.user import ChildCreate, ChildPinReset, ChildUpdate, UserResponse
from chorehub.services.auth_service import revoke_all_refresh_tokens

router = APIRouter(prefix="/families/{family_id}/children", tags=["Children"])


async def _get_child(db: AsyncSession, family_id: uuid.UUID, child_id: uuid.UUID) -> User:
    result = await db.execute(
        select(User).where(
            User.id == child_id,
            User.family_id == family_id,
            User.role == UserRole.CHILD,
        )
    )
    child = result.scalar_one_or_none()

    if child is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Child not found",
        )
    return child


async def _ensure_name_free(
    db: AsyncSession, family_id: uuid.UUID, name: str, exclude_id: uuid.UUID | None = None
) -> None:
    """Child names are the PIN login handle, so they must be unique per family."""
    stmt = select(User.id).where(
        User.family_id == family_id,
        User.role == UserRole.CHILD,
        User.is_active.is_(True),
        func.lower(User.name) == name.strip().lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise Conflict(f'A child named "{name}" already exists in this family')


@router.get("/", response_model=list[UserResponse])
async def list_children(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
    include_inactive: bool = False,
):
    """List the children in a family, ordered by name."""
    stmt = select(User).where(
        User.family_id == family_id,
        User.role == UserRole.CHILD,
    )
    if not include_inactive:
        stmt = stmt.where(User.is_active.is_(True))
    result = await db.execute(stmt.order_by(User.name))
    return result.scalars().all()


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_child(
    family_id: uuid.UUID,
    body: ChildCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Add a child to the family. Requires parent role."""
    ensure_same_family(current_user, family_id)
    await _ensure_name_free(db, family_id, body.name)

    child = User(
        family_id=family_id,
        name=body.name.strip(),
        role=UserRole.CHILD,
        avatar_url=body.avatar_url,
        pin_hash=get_password_hash(body.pin),
    )
    db.add(child)
    await db.flush()
    await db.refresh(child)
    return child


@router.get("/{child_id}", response_model=UserResponse)
async def get_child(
    family_id: uuid.UUID,
    child_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """Get details of a specific child, including the points balance."""
    return await _get_child(db, family_id, child_id)


@router.put("/{child_id}", response_model=UserResponse)
async def update_child(
    family_id: uuid.UUID,
    child_id: uuid.UUID,
    body: ChildUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Update a child's profile. Requires parent role."""
    ensure_same_family(current_user, family_id)
    child = await _get_child(db, family_id, child_id)

    update_data = body.model_dump(exclude_unset=True)
    if update_data.get("name") is not None:
        await _ensure_name_free(db, family_id, update_data["name"], exclude_id=child.id)
    for field, value in update_data.items():
        if field == "name" and value is None:
            continue
        setattr(child, field, value)

    await db.flush()
    await db.refresh(child)
    return child


@router.delete("/{child_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_child(
    family_id: uuid.UUID,
    child_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Deactivate a child and end their sessions.

    History, balance and redemptions are kept.  Chores still assigned to the
    child stay assigned; a parent can reassign them.
    """
    ensure_same_family(current_user, family_id)
    child = await _get_child(db, family_id, child_id)

    child.is_active = False
    await revoke_all_refresh_tokens(db, child.id)
    await db.flush()
    return None


@router.put("/{child_id}/pin", status_code=status.HTTP_204_NO_CONTENT)
async def reset_child_pin(
    family_id: uuid.UUID,
    child_id: uuid.UUID,
    body: ChildPinReset,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Reset a child's PIN and log the child out everywhere."""
    ensure_same_family(current_user, family_id)
    child = await _get_child(db, family_id, child_id)

    child.pin_hash = get_password_hash(body.pin)
    await revoke_all_refresh_tokens(db, child.id)
    await db.flush()
    return None
