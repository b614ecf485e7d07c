"""Redemptions router.

Children spend points on rewards; parents approve, reject, and fulfill.
All point and stock movements happen in
``chorehub.services.redemption_service``.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.core.dependencies import (
    ensure_same_family,
    require_child,
    require_family_member,
    require_parent,
)
from chorehub.database import get_db
from chorehub.models.enums import RedemptionStatus
from chorehub.models.user import User
from chorehub.schemas.reward import (
    PendingCountResponse,
    RedemptionCreate,
    RedemptionResponse,
    RedemptionReview,
)
from chorehub.services import redemption_service

router = APIRouter(prefix="/families/{family_id}/redemptions", tags=["Redemptions"])


@router.get("/", response_model=list[RedemptionResponse])
async def list_redemptions(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
    status: RedemptionStatus | None = None,
    child_id: uuid.UUID | None = None,
):
    """Parents see every family redemption, children only their own. Newest first."""
    return await redemption_service.list_redemptions(
        db, current_user, status=status, child_id=child_id
    )


@router.get("/pending-count", response_model=PendingCountResponse)
async def get_pending_count(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    ensure_same_family(current_user, family_id)
    return PendingCountResponse(count=await redemption_service.pending_count(db, family_id))


@router.get("/{redemption_id}", response_model=RedemptionResponse)
async def get_redemption(
    family_id: uuid.UUID,
    redemption_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    return await redemption_service.get_redemption(db, current_user, redemption_id)


@router.post("/", response_model=RedemptionResponse, status_code=status.HTTP_201_CREATED)
async def request_redemption(
    family_id: uuid.UUID,
    body: RedemptionCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_child),
):
    """Spend points on a reward. The points are held until a parent reviews it."""
    ensure_same_family(current_user, family_id)
    return await redemption_service.request_redemption(
        db, current_user, body.reward_id, notes=body.notes
    )


@router.post("/{redemption_id}/review", response_model=RedemptionResponse)
async def review_redemption(
    family_id: uuid.UUID,
    redemption_id: uuid.UUID,
    body: RedemptionReview,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Approve or reject a pending redemption. Rejection refunds the points."""
    ensure_same_family(current_user, family_id)
    return await redemption_service.review_redemption(
        db, current_user, redemption_id, body.status, notes=body.notes
    )


@router.post("/{redemption_id}/fulfill", response_model=RedemptionResponse)
async def fulfill_redemption(
    family_id: uuid.UUID,
    redemption_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Mark an approved redemption as handed over."""
    ensure_same_family(current_user, family_id)
    return await redemption_service.fulfill_redemption(db, current_user, redemption_id)
