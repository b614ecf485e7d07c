"""Chore Service.

Business logic for the chore lifecycle: creation and editing by parents,
claiming and completion by children, and verification, which is the only
place chore points enter the ledger.

Every command follows the order described in ``chorehub.services.transaction``
and checks its guards in a fixed order: family scope, role capability,
assignee identity, finalized, transition legality, then business
preconditions.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.core.errors import (
    InsufficientPoints,
    InvalidStateTransition,
    NotFound,
    ValidationError,
)
from chorehub.models.category import Category
from chorehub.models.chore import Chore
from chorehub.models.enums import ChoreStatus, UserRole
from chorehub.models.user import User
from chorehub.services import activity_service as activity
from chorehub.services.ledger import adjust_balance
from chorehub.services.notification_service import (
    NotificationEvent,
    NotificationType,
    queue_event,
)
from chorehub.services.permissions import require_capability
from chorehub.services.state_machine import (
    ChoreAction,
    guard_chore_transition,
    guard_claim,
)
from chorehub.services.transaction import compare_and_set, locked_one

logger = logging.getLogger(__name__)

TARGET_CHORE = "chore"


# ---------------------------------------------------------------------------
# Loading and validation helpers
# ---------------------------------------------------------------------------


async def _lock_chore(db: AsyncSession, actor: User, chore_id: uuid.UUID) -> Chore:
    chore = await locked_one(
        db,
        select(Chore).where(Chore.id == chore_id, Chore.family_id == actor.family_id),
    )
    if chore is None:
        raise NotFound("Chore not found")
    return chore


async def get_chore(db: AsyncSession, actor: User, chore_id: uuid.UUID) -> Chore:
    result = await db.execute(
        select(Chore).where(Chore.id == chore_id, Chore.family_id == actor.family_id)
    )
    chore = result.scalar_one_or_none()
    if chore is None:
        raise NotFound("Chore not found")
    return chore


async def _validate_assignee(
    db: AsyncSession, family_id: uuid.UUID, user_id: uuid.UUID
) -> User:
    result = await db.execute(
        select(User).where(
            User.id == user_id,
            User.family_id == family_id,
            User.role == UserRole.CHILD,
            User.is_active.is_(True),
        )
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise ValidationError("Assigned child not found in this family")
    return user


async def _validate_category(
    db: AsyncSession, family_id: uuid.UUID, category_id: uuid.UUID
) -> None:
    result = await db.execute(
        select(Category.id).where(
            Category.id == category_id, Category.family_id == family_id
        )
    )
    if result.scalar_one_or_none() is None:
        raise ValidationError("Category not found in this family")


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Parent commands
# ---------------------------------------------------------------------------


async def create_chore(db: AsyncSession, actor: User, data) -> Chore:
    """Create a PENDING chore.  ``assigned_to_id=None`` makes it claimable."""
    require_capability(actor, ChoreAction.CREATE)

    assignee_name = None
    if data.assigned_to_id is not None:
        assignee = await _validate_assignee(db, actor.family_id, data.assigned_to_id)
        assignee_name = assignee.name
    if data.category_id is not None:
        await _validate_category(db, actor.family_id, data.category_id)

    chore = Chore(
        family_id=actor.family_id,
        name=data.name,
        description=data.description,
        point_value=data.point_value,
        assigned_to_id=data.assigned_to_id,
        category_id=data.category_id,
        due_date=data.due_date,
        is_bonus=data.is_bonus,
        status=ChoreStatus.PENDING,
    )
    db.add(chore)
    await db.flush()

    activity.record_activity(
        db, actor, activity.CHORE_CREATED, TARGET_CHORE, chore.id,
        {"chore_name": chore.name, "assigned_to": assignee_name, "points": chore.point_value},
    )
    await db.flush()
    await db.refresh(chore)
    return chore


async def update_chore(
    db: AsyncSession, actor: User, chore_id: uuid.UUID, data
) -> Chore:
    """Apply field updates.  Never touches status, points or verification fields."""
    chore = await _lock_chore(db, actor, chore_id)
    require_capability(actor, ChoreAction.UPDATE, chore)
    guard_chore_transition(chore.status, ChoreAction.UPDATE)

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("assigned_to_id") is not None:
        await _validate_assignee(db, actor.family_id, update_data["assigned_to_id"])
    if update_data.get("category_id") is not None:
        await _validate_category(db, actor.family_id, update_data["category_id"])
    for field in ("name", "point_value", "is_bonus"):
        if field in update_data and update_data[field] is None:
            raise ValidationError(f"{field} cannot be null")

    for field, value in update_data.items():
        setattr(chore, field, value)

    activity.record_activity(
        db, actor, activity.CHORE_UPDATED, TARGET_CHORE, chore.id,
        {"chore_name": chore.name, "fields": sorted(update_data)},
    )
    await db.flush()
    await db.refresh(chore)
    return chore


async def delete_chore(db: AsyncSession, actor: User, chore_id: uuid.UUID) -> None:
    chore = await _lock_chore(db, actor, chore_id)
    require_capability(actor, ChoreAction.DELETE, chore)
    guard_chore_transition(chore.status, ChoreAction.DELETE)

    activity.record_activity(
        db, actor, activity.CHORE_DELETED, TARGET_CHORE, chore.id,
        {"chore_name": chore.name},
    )
    await db.delete(chore)
    await db.flush()


async def bulk_delete_chores(
    db: AsyncSession, actor: User, chore_ids: list[uuid.UUID]
) -> int:
    """Delete several chores at once.

    All-or-nothing: if any of the family's chores in ``chore_ids`` is
    VERIFIED nothing is deleted.  Ids outside the family are ignored.
    """
    require_capability(actor, ChoreAction.DELETE)
    if not chore_ids:
        raise ValidationError("ids must be a non-empty list")

    result = await db.execute(
        select(Chore)
        .where(Chore.id.in_(chore_ids), Chore.family_id == actor.family_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    chores = list(result.scalars().all())

    for chore in chores:
        guard_chore_transition(chore.status, ChoreAction.DELETE)

    for chore in chores:
        await db.delete(chore)

    activity.record_activity(
        db, actor, activity.CHORES_BULK_DELETED, TARGET_CHORE, None,
        {"count": len(chores), "chore_ids": [str(c.id) for c in chores]},
    )
    await db.flush()
    return len(chores)


async def verify_chore(
    db: AsyncSession,
    actor: User,
    chore_id: uuid.UUID,
    approved: bool,
    feedback: str | None = None,
    points_penalty: int = 0,
) -> Chore:
    """Approve or reject a completed chore.

    Approval credits ``point_value`` to the assignee.  Rejection debits
    ``points_penalty`` (if any), which may not exceed the assignee's balance.
    The status write and the ledger write commit together or not at all.
    """
    chore = await _lock_chore(db, actor, chore_id)
    action = ChoreAction.APPROVE if approved else ChoreAction.REJECT
    require_capability(actor, action, chore)
    transition = guard_chore_transition(chore.status, action)

    if chore.assigned_to_id is None:
        raise InvalidStateTransition("Chore has no assignee to credit")
    if points_penalty < 0:
        raise ValidationError("points_penalty must be >= 0")

    child = await locked_one(db, select(User).where(User.id == chore.assigned_to_id))
    if child is None:
        raise InvalidStateTransition("Chore has no assignee to credit")

    penalty = 0 if approved else points_penalty
    if penalty > child.points_balance:
        raise InsufficientPoints(
            f"Penalty of {penalty} points exceeds {child.name}'s balance of "
            f"{child.points_balance}"
        )

    now = _now()
    values = {
        "status": transition.target,
        "verified_at": now,
        "verified_by_id": actor.id,
        "verification_notes": feedback,
    }
    if not approved:
        values["completed_at"] = None

    if not await compare_and_set(
        db, Chore, chore.id, Chore.status == ChoreStatus.COMPLETED, **values
    ):
        raise InvalidStateTransition("Chore is no longer awaiting verification")

    if approved:
        awarded = chore.point_value
        new_balance = await adjust_balance(db, child.id, awarded)
        details = {
            "chore_name": chore.name,
            "child_name": child.name,
            "points_awarded": awarded,
        }
        activity.record_activity(
            db, actor, activity.CHORE_VERIFIED, TARGET_CHORE, chore.id, details
        )
        queue_event(db, NotificationEvent(
            type=NotificationType.CHORE_VERIFIED,
            family_id=actor.family_id,
            recipient_id=child.id,
            title="Chore approved",
            message=f'"{chore.name}" was approved',
            data={"chore_id": str(chore.id)},
        ))
        if awarded > 0:
            queue_event(db, NotificationEvent(
                type=NotificationType.POINTS_AWARDED,
                family_id=actor.family_id,
                recipient_id=child.id,
                title="Points earned",
                message=f'You earned {awarded} points for "{chore.name}"',
                data={"chore_id": str(chore.id), "points": awarded, "balance": new_balance},
            ))
        logger.info("Chore verified: chore=%s child=%s +%d", chore.id, child.id, awarded)
    else:
        if penalty > 0:
            await adjust_balance(db, child.id, -penalty)
        details = {
            "chore_name": chore.name,
            "child_name": child.name,
            "points_penalty": penalty,
            "feedback": feedback,
        }
        activity.record_activity(
            db, actor, activity.CHORE_REJECTED, TARGET_CHORE, chore.id, details
        )
        queue_event(db, NotificationEvent(
            type=NotificationType.CHORE_REJECTED,
            family_id=actor.family_id,
            recipient_id=child.id,
            title="Chore needs another try",
            message=feedback or f'"{chore.name}" was not approved',
            data={"chore_id": str(chore.id), "points_penalty": penalty},
        ))
        logger.info("Chore rejected: chore=%s child=%s -%d", chore.id, child.id, penalty)

    await db.flush()
    await db.refresh(chore)
    return chore


async def reset_chore(db: AsyncSession, actor: User, chore_id: uuid.UUID) -> Chore:
    """Return a REJECTED chore to PENDING and wipe its completion data."""
    chore = await _lock_chore(db, actor, chore_id)
    require_capability(actor, ChoreAction.RESET, chore)
    transition = guard_chore_transition(chore.status, ChoreAction.RESET)

    if not await compare_and_set(
        db, Chore, chore.id, Chore.status == ChoreStatus.REJECTED,
        status=transition.target,
        completed_at=None,
        photo_url=None,
        completion_notes=None,
        verified_at=None,
        verified_by_id=None,
        verification_notes=None,
    ):
        raise InvalidStateTransition("Chore is no longer rejected")

    activity.record_activity(
        db, actor, activity.CHORE_RESET, TARGET_CHORE, chore.id,
        {"chore_name": chore.name},
    )
    await db.flush()
    await db.refresh(chore)
    return chore


# ---------------------------------------------------------------------------
# Child commands
# ---------------------------------------------------------------------------


async def claim_chore(db: AsyncSession, actor: User, chore_id: uuid.UUID) -> Chore:
    """Take an unassigned PENDING chore.  At most one claim can succeed."""
    chore = await _lock_chore(db, actor, chore_id)
    require_capability(actor, ChoreAction.CLAIM, chore)
    guard_claim(chore)

    if not await compare_and_set(
        db, Chore, chore.id,
        Chore.status == ChoreStatus.PENDING,
        Chore.assigned_to_id.is_(None),
        assigned_to_id=actor.id,
        claimed_at=_now(),
    ):
        raise InvalidStateTransition("Chore has already been claimed or assigned")

    activity.record_activity(
        db, actor, activity.CHORE_CLAIMED, TARGET_CHORE, chore.id,
        {"chore_name": chore.name, "child_name": actor.name},
    )
    queue_event(db, NotificationEvent(
        type=NotificationType.CHORE_CLAIMED,
        family_id=actor.family_id,
        title="Chore claimed",
        message=f'{actor.name} claimed "{chore.name}"',
        data={"chore_id": str(chore.id), "child_id": str(actor.id)},
    ))
    await db.flush()
    await db.refresh(chore)
    return chore


async def complete_chore(
    db: AsyncSession,
    actor: User,
    chore_id: uuid.UUID,
    photo_url: str | None = None,
    notes: str | None = None,
) -> Chore:
    """Mark a PENDING or REJECTED chore as COMPLETED (REJECTED = resubmission).

    An existing photo is kept unless a new one is supplied.
    """
    chore = await _lock_chore(db, actor, chore_id)
    require_capability(actor, ChoreAction.COMPLETE, chore)
    transition = guard_chore_transition(chore.status, ChoreAction.COMPLETE)

    previous = chore.status
    if not await compare_and_set(
        db, Chore, chore.id,
        Chore.status == previous,
        Chore.assigned_to_id == actor.id,
        status=transition.target,
        completed_at=_now(),
        completion_notes=notes,
        photo_url=photo_url if photo_url is not None else chore.photo_url,
        verified_at=None,
        verified_by_id=None,
    ):
        raise InvalidStateTransition("Chore changed while completing it")

    resubmitted = previous == ChoreStatus.REJECTED
    activity.record_activity(
        db, actor,
        activity.CHORE_RESUBMITTED if resubmitted else activity.CHORE_COMPLETED,
        TARGET_CHORE, chore.id,
        {"chore_name": chore.name, "child_name": actor.name, "has_photo": bool(photo_url or chore.photo_url)},
    )
    queue_event(db, NotificationEvent(
        type=NotificationType.CHORE_COMPLETED,
        family_id=actor.family_id,
        title="Chore ready for review",
        message=f'{actor.name} {"resubmitted" if resubmitted else "completed"} "{chore.name}"',
        data={"chore_id": str(chore.id), "child_id": str(actor.id)},
    ))
    await db.flush()
    await db.refresh(chore)
    return chore


async def add_photo(
    db: AsyncSession, actor: User, chore_id: uuid.UUID, photo_url: str
) -> Chore:
    """Attach or replace the photo on a COMPLETED or REJECTED chore."""
    chore = await _lock_chore(db, actor, chore_id)
    require_capability(actor, ChoreAction.ADD_PHOTO, chore)
    guard_chore_transition(chore.status, ChoreAction.ADD_PHOTO)

    if not await compare_and_set(
        db, Chore, chore.id, Chore.status == chore.status, photo_url=photo_url
    ):
        raise InvalidStateTransition("Chore changed while adding the photo")

    activity.record_activity(
        db, actor, activity.CHORE_PHOTO_ADDED, TARGET_CHORE, chore.id,
        {"chore_name": chore.name},
    )
    await db.flush()
    await db.refresh(chore)
    return chore


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_chores(
    db: AsyncSession,
    family_id: uuid.UUID,
    status: ChoreStatus | None = None,
    assigned_to_id: uuid.UUID | None = None,
    category_id: uuid.UUID | None = None,
    due_before: datetime | None = None,
    due_after: datetime | None = None,
    is_bonus: bool | None = None,
) -> list[Chore]:
    stmt = select(Chore).where(Chore.family_id == family_id)
    if status is not None:
        stmt = stmt.where(Chore.status == status)
    if assigned_to_id is not None:
        stmt = stmt.where(Chore.assigned_to_id == assigned_to_id)
    if category_id is not None:
        stmt = stmt.where(Chore.category_id == category_id)
    if due_before is not None:
        stmt = stmt.where(Chore.due_date <= due_before)
    if due_after is not None:
        stmt = stmt.where(Chore.due_date >= due_after)
    if is_bonus is not None:
        stmt = stmt.where(Chore.is_bonus.is_(is_bonus))

    stmt = stmt.order_by(Chore.due_date.asc().nulls_last(), Chore.created_at.desc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_my_chores(
    db: AsyncSession,
    actor: User,
    status: ChoreStatus | None = None,
) -> list[Chore]:
    """Chores assigned to ``actor``; open work (PENDING, REJECTED) first."""
    stmt = select(Chore).where(
        Chore.family_id == actor.family_id,
        Chore.assigned_to_id == actor.id,
    )
    if status is not None:
        stmt = stmt.where(Chore.status == status)

    open_first = case(
        (Chore.status.in_([ChoreStatus.PENDING, ChoreStatus.REJECTED]), 0),
        else_=1,
    )
    stmt = stmt.order_by(
        open_first, Chore.due_date.asc().nulls_last(), Chore.created_at.desc()
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_available_chores(db: AsyncSession, family_id: uuid.UUID) -> list[Chore]:
    result = await db.execute(
        select(Chore)
        .where(
            Chore.family_id == family_id,
            Chore.assigned_to_id.is_(None),
            Chore.status == ChoreStatus.PENDING,
        )
        .order_by(Chore.created_at.asc())
    )
    return list(result.scalars().all())


async def list_pending_verification(
    db: AsyncSession, family_id: uuid.UUID
) -> list[Chore]:
    """Completed chores awaiting review, oldest completion first."""
    result = await db.execute(
        select(Chore)
        .where(Chore.family_id == family_id, Chore.status == ChoreStatus.COMPLETED)
        .order_by(Chore.completed_at.asc())
    )
    return list(result.scalars().all())


async def count_by_status(db: AsyncSession, family_id: uuid.UUID) -> dict[ChoreStatus, int]:
    result = await db.execute(
        select(Chore.status, func.count(Chore.id))
        .where(Chore.family_id == family_id)
        .group_by(Chore.status)
    )
    counts = {s: 0 for s in ChoreStatus}
    for status, count in result.all():
        counts[ChoreStatus(status)] = count
    return counts
