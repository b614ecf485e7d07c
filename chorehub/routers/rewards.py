"""Rewards router.

Parents maintain the family's reward catalogue; every member can browse it.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.core.dependencies import ensure_same_family, require_family_member, require_parent
from chorehub.database import get_db
from chorehub.models.enums import UserRole
from chorehub.models.reward import Redemption, Reward
from chorehub.models.user import User
from chorehub.schemas.reward import RewardCreate, RewardResponse, RewardUpdate

router = APIRouter(prefix="/families/{family_id}/rewards", tags=["Rewards"])


async def _get_reward(db: AsyncSession, family_id: uuid.UUID, reward_id: uuid.UUID) -> Reward:
    result = await db.execute(
        select(Reward).where(Reward.id == reward_id, Reward.family_id == family_id)
    )
    reward = result.scalar_one_or_none()
    if reward is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Reward not found",
        )
    return reward


@router.get("/", response_model=list[RewardResponse])
async def list_rewards(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
    include_inactive: bool = False,
):
    """List rewards, cheapest first. Inactive rewards are shown to parents on request."""
    stmt = select(Reward).where(Reward.family_id == family_id)
    if not (include_inactive and current_user.role == UserRole.PARENT):
        stmt = stmt.where(Reward.is_active.is_(True))
    result = await db.execute(stmt.order_by(Reward.point_cost, Reward.name))
    return result.scalars().all()


@router.post("/", response_model=RewardResponse, status_code=status.HTTP_201_CREATED)
async def create_reward(
    family_id: uuid.UUID,
    body: RewardCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Add a reward. ``quantity_available`` empty = unlimited. Requires parent role."""
    ensure_same_family(current_user, family_id)

    reward = Reward(family_id=family_id, **body.model_dump())
    db.add(reward)
    await db.flush()
    await db.refresh(reward)
    return reward


@router.get("/{reward_id}", response_model=RewardResponse)
async def get_reward(
    family_id: uuid.UUID,
    reward_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    return await _get_reward(db, family_id, reward_id)


@router.put("/{reward_id}", response_model=RewardResponse)
async def update_reward(
    family_id: uuid.UUID,
    reward_id: uuid.UUID,
    body: RewardUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Update a reward. Pending redemptions keep the cost they were requested at."""
    ensure_same_family(current_user, family_id)
    reward = await _get_reward(db, family_id, reward_id)

    update_data = body.model_dump(exclude_unset=True)
    for field in ("name", "point_cost", "is_active"):
        if field in update_data and update_data[field] is None:
            del update_data[field]
    for field, value in update_data.items():
        setattr(reward, field, value)

    await db.flush()
    await db.refresh(reward)
    return reward


@router.delete("/{reward_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reward(
    family_id: uuid.UUID,
    reward_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Delete a reward, or deactivate it when it has redemption history."""
    ensure_same_family(current_user, family_id)
    reward = await _get_reward(db, family_id, reward_id)

    result = await db.execute(
        select(Redemption.id).where(Redemption.reward_id == reward.id).limit(1)
    )
    if result.first() is not None:
        reward.is_active = False
    else:
        await db.delete(reward)
    await db.flush()
    return None
