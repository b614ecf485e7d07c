"""Families router.

Endpoints for viewing and updating the family, its invite code, dashboard
statistics, and activity log.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.core.dependencies import ensure_same_family, require_family_member, require_parent
from chorehub.database import get_db
from chorehub.models.family import Family
from chorehub.models.user import User
from chorehub.schemas.family import ActivityResponse, FamilyResponse, FamilyStats, FamilyUpdate
from chorehub.schemas.user import UserResponse
from chorehub.services.activity_service import list_activity
from chorehub.services.family_service import family_stats, generate_invite_code

router = APIRouter(prefix="/families", tags=["Families"])


async def _get_family(db: AsyncSession, family_id: uuid.UUID) -> Family:
    result = await db.execute(select(Family).where(Family.id == family_id))
    family = result.scalar_one_or_none()
    if family is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Family not found",
        )
    return family


@router.get("/{family_id}", response_model=FamilyResponse)
async def get_family(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """Get family details. Requires the caller to be a family member."""
    return await _get_family(db, family_id)


@router.put("/{family_id}", response_model=FamilyResponse)
async def update_family(
    family_id: uuid.UUID,
    body: FamilyUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Rename the family. Requires parent role."""
    ensure_same_family(current_user, family_id)
    family = await _get_family(db, family_id)

    update_data = body.model_dump(exclude_unset=True)
    if update_data.get("name") is not None:
        family.name = update_data["name"]

    await db.flush()
    await db.refresh(family)
    return family


@router.post("/{family_id}/invite-code", response_model=FamilyResponse)
async def regenerate_invite_code(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Replace the family invite code. The old code stops working immediately."""
    ensure_same_family(current_user, family_id)
    family = await _get_family(db, family_id)

    family.invite_code = await generate_invite_code(db)
    await db.flush()
    await db.refresh(family)
    return family


@router.get("/{family_id}/members", response_model=list[UserResponse])
async def list_family_members(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """List all active members of a family."""
    result = await db.execute(
        select(User)
        .where(User.family_id == family_id, User.is_active.is_(True))
        .order_by(User.role, User.name)
    )
    return result.scalars().all()


@router.get("/{family_id}/stats", response_model=FamilyStats)
async def get_family_stats(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Dashboard counts. Requires parent role."""
    ensure_same_family(current_user, family_id)
    return await family_stats(db, family_id)


@router.get("/{family_id}/activity", response_model=list[ActivityResponse])
async def get_activity(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    """Newest activity log entries first. Requires parent role."""
    ensure_same_family(current_user, family_id)
    return await list_activity(db, family_id, limit=limit, offset=offset)
