"""Chores router.

Parent management of chores, child claim/complete flow, and the parent
verification queue.  All lifecycle rules live in
``chorehub.services.chore_service``; this module only scopes requests to the
caller's family.
"""

import uuid
from datetime import datetime
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
from chorehub.models.enums import ChoreStatus
from chorehub.models.user import User
from chorehub.schemas.chore import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    ChoreComplete,
    ChoreCreate,
    ChorePhoto,
    ChoreResponse,
    ChoreUpdate,
    ChoreVerify,
)
from chorehub.services import chore_service

router = APIRouter(prefix="/families/{family_id}/chores", tags=["Chores"])


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@router.get("/", response_model=list[ChoreResponse])
async def list_chores(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
    status: ChoreStatus | None = None,
    assigned_to_id: uuid.UUID | None = None,
    category_id: uuid.UUID | None = None,
    due_before: datetime | None = None,
    due_after: datetime | None = None,
    is_bonus: bool | None = None,
):
    """List family chores, soonest due first (undated last)."""
    return await chore_service.list_chores(
        db,
        family_id,
        status=status,
        assigned_to_id=assigned_to_id,
        category_id=category_id,
        due_before=due_before,
        due_after=due_after,
        is_bonus=is_bonus,
    )


@router.get("/mine", response_model=list[ChoreResponse])
async def list_my_chores(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
    status: ChoreStatus | None = None,
):
    """Chores assigned to the caller, open ones first."""
    return await chore_service.list_my_chores(db, current_user, status=status)


@router.get("/available", response_model=list[ChoreResponse])
async def list_available_chores(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """Unassigned PENDING chores any child may claim."""
    return await chore_service.list_available_chores(db, family_id)


@router.get("/pending-verification", response_model=list[ChoreResponse])
async def list_pending_verification(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Completed chores awaiting review, oldest first. Requires parent role."""
    ensure_same_family(current_user, family_id)
    return await chore_service.list_pending_verification(db, family_id)


@router.get("/{chore_id}", response_model=ChoreResponse)
async def get_chore(
    family_id: uuid.UUID,
    chore_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    return await chore_service.get_chore(db, current_user, chore_id)


# ---------------------------------------------------------------------------
# Parent commands
# ---------------------------------------------------------------------------


@router.post("/", response_model=ChoreResponse, status_code=status.HTTP_201_CREATED)
async def create_chore(
    family_id: uuid.UUID,
    body: ChoreCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Create a chore. Leave ``assigned_to_id`` empty to make it claimable."""
    ensure_same_family(current_user, family_id)
    return await chore_service.create_chore(db, current_user, body)


@router.put("/{chore_id}", response_model=ChoreResponse)
async def update_chore(
    family_id: uuid.UUID,
    chore_id: uuid.UUID,
    body: ChoreUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    ensure_same_family(current_user, family_id)
    return await chore_service.update_chore(db, current_user, chore_id, body)


@router.delete("/{chore_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chore(
    family_id: uuid.UUID,
    chore_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Delete a chore. Verified chores cannot be deleted."""
    ensure_same_family(current_user, family_id)
    await chore_service.delete_chore(db, current_user, chore_id)
    return None


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_chores(
    family_id: uuid.UUID,
    body: BulkDeleteRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Delete several chores. Fails entirely if any of them is verified."""
    ensure_same_family(current_user, family_id)
    deleted = await chore_service.bulk_delete_chores(db, current_user, body.ids)
    return BulkDeleteResponse(deleted_count=deleted)


@router.post("/{chore_id}/verify", response_model=ChoreResponse)
async def verify_chore(
    family_id: uuid.UUID,
    chore_id: uuid.UUID,
    body: ChoreVerify,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Approve (award points) or reject (optional penalty) a completed chore."""
    ensure_same_family(current_user, family_id)
    return await chore_service.verify_chore(
        db,
        current_user,
        chore_id,
        approved=body.approved,
        feedback=body.feedback,
        points_penalty=body.points_penalty,
    )


@router.post("/{chore_id}/reset", response_model=ChoreResponse)
async def reset_chore(
    family_id: uuid.UUID,
    chore_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Return a rejected chore to PENDING. Requires parent role."""
    ensure_same_family(current_user, family_id)
    return await chore_service.reset_chore(db, current_user, chore_id)


# ---------------------------------------------------------------------------
# Child commands
# ---------------------------------------------------------------------------


@router.post("/{chore_id}/claim", response_model=ChoreResponse)
async def claim_chore(
    family_id: uuid.UUID,
    chore_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_child),
):
    ensure_same_family(current_user, family_id)
    return await chore_service.claim_chore(db, current_user, chore_id)


@router.post("/{chore_id}/complete", response_model=ChoreResponse)
async def complete_chore(
    family_id: uuid.UUID,
    chore_id: uuid.UUID,
    body: ChoreComplete,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_child),
):
    """Mark the caller's chore as done (or resubmit a rejected one)."""
    ensure_same_family(current_user, family_id)
    return await chore_service.complete_chore(
        db, current_user, chore_id, photo_url=body.photo_url, notes=body.notes
    )


@router.post("/{chore_id}/photo", response_model=ChoreResponse)
async def add_chore_photo(
    family_id: uuid.UUID,
    chore_id: uuid.UUID,
    body: ChorePhoto,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_child),
):
    """Attach a photo (uploaded via ``/uploads/photo``) to a completed chore."""
    ensure_same_family(current_user, family_id)
    return await chore_service.add_photo(db, current_user, chore_id, body.photo_url)
