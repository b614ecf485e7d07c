"""Redemption Service.

A child spends points on a reward.  Points (and one unit of a limited reward)
are reserved at request time, so a pending redemption can never be paid for
twice.  Rejection hands both back; approval and fulfillment only move status.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.core.errors import (
    InsufficientPoints,
    InvalidStateTransition,
    NotFound,
    OutOfStock,
    ValidationError,
)
from chorehub.models.enums import RedemptionStatus, UserRole
from chorehub.models.reward import Redemption, Reward
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
    RedemptionAction,
    guard_redemption_transition,
)
from chorehub.services.transaction import compare_and_set, locked_one

logger = logging.getLogger(__name__)

TARGET_REDEMPTION = "redemption"

_REVIEW_ACTIONS = {
    RedemptionStatus.APPROVED: RedemptionAction.APPROVE,
    RedemptionStatus.REJECTED: RedemptionAction.REJECT,
}


async def _lock_redemption(
    db: AsyncSession, actor: User, redemption_id: uuid.UUID
) -> Redemption:
    family_children = select(User.id).where(User.family_id == actor.family_id)
    redemption = await locked_one(
        db,
        select(Redemption).where(
            Redemption.id == redemption_id,
            Redemption.child_id.in_(family_children),
        ),
    )
    if redemption is None:
        raise NotFound("Redemption not found")
    return redemption


async def _reward_name(db: AsyncSession, reward_id: uuid.UUID | None) -> str | None:
    if reward_id is None:
        return None
    result = await db.execute(select(Reward.name).where(Reward.id == reward_id))
    return result.scalar_one_or_none()


async def request_redemption(
    db: AsyncSession,
    actor: User,
    reward_id: uuid.UUID,
    notes: str | None = None,
) -> Redemption:
    """Reserve points and stock for a reward and open a PENDING redemption."""
    require_capability(actor, RedemptionAction.REQUEST)

    reward = await locked_one(
        db,
        select(Reward).where(
            Reward.id == reward_id,
            Reward.family_id == actor.family_id,
            Reward.is_active.is_(True),
        ),
    )
    if reward is None:
        raise NotFound("Reward not found or no longer available")

    limited = reward.quantity_available is not None
    if limited and reward.quantity_available <= 0:
        raise OutOfStock(f'"{reward.name}" is out of stock')

    child = await locked_one(db, select(User).where(User.id == actor.id))
    if child.points_balance < reward.point_cost:
        raise InsufficientPoints(
            f"You need {reward.point_cost} points but only have {child.points_balance}"
        )

    if limited and not await compare_and_set(
        db, Reward, reward.id,
        Reward.quantity_available > 0,
        quantity_available=Reward.quantity_available - 1,
    ):
        raise OutOfStock(f'"{reward.name}" is out of stock')

    new_balance = await adjust_balance(db, child.id, -reward.point_cost)

    redemption = Redemption(
        child_id=child.id,
        reward_id=reward.id,
        points_spent=reward.point_cost,
        status=RedemptionStatus.PENDING,
        notes=notes,
        inventory_reserved=limited,
        requested_at=datetime.now(timezone.utc),
    )
    db.add(redemption)
    await db.flush()

    activity.record_activity(
        db, actor, activity.REDEMPTION_REQUESTED, TARGET_REDEMPTION, redemption.id,
        {
            "reward_name": reward.name,
            "child_name": child.name,
            "points_spent": reward.point_cost,
        },
    )
    queue_event(db, NotificationEvent(
        type=NotificationType.REDEMPTION_REQUESTED,
        family_id=actor.family_id,
        title="Reward requested",
        message=f'{child.name} wants "{reward.name}" ({reward.point_cost} points)',
        data={"redemption_id": str(redemption.id), "reward_id": str(reward.id)},
    ))
    logger.info(
        "Redemption requested: redemption=%s child=%s reward=%s -%d (balance %d)",
        redemption.id, child.id, reward.id, reward.point_cost, new_balance,
    )

    await db.flush()
    await db.refresh(redemption)
    await db.refresh(reward)
    return redemption


async def review_redemption(
    db: AsyncSession,
    actor: User,
    redemption_id: uuid.UUID,
    decision: RedemptionStatus,
    notes: str | None = None,
) -> Redemption:
    """Approve or reject a PENDING redemption.

    Rejection refunds ``points_spent`` and returns the reserved unit of a
    limited reward, exactly once.
    """
    action = _REVIEW_ACTIONS.get(decision)
    if action is None:
        raise ValidationError("status must be APPROVED or REJECTED")

    redemption = await _lock_redemption(db, actor, redemption_id)
    require_capability(actor, action)
    transition = guard_redemption_transition(redemption.status, action)

    reward = None
    if redemption.reward_id is not None:
        reward = await locked_one(db, select(Reward).where(Reward.id == redemption.reward_id))

    if not await compare_and_set(
        db, Redemption, redemption.id,
        Redemption.status == RedemptionStatus.PENDING,
        status=transition.target,
        reviewed_at=datetime.now(timezone.utc),
        reviewed_by_id=actor.id,
        review_notes=notes,
    ):
        raise InvalidStateTransition("Redemption has already been reviewed")

    reward_name = reward.name if reward is not None else None
    details = {
        "reward_name": reward_name,
        "points_spent": redemption.points_spent,
        "notes": notes,
    }

    if decision == RedemptionStatus.REJECTED:
        if redemption.inventory_reserved and reward is not None:
            await db.execute(
                update(Reward)
                .where(Reward.id == reward.id, Reward.quantity_available.is_not(None))
                .values(quantity_available=Reward.quantity_available + 1)
                .execution_options(synchronize_session=False)
            )
            await db.refresh(reward)
        await adjust_balance(db, redemption.child_id, redemption.points_spent)

        activity.record_activity(
            db, actor, activity.REDEMPTION_REJECTED, TARGET_REDEMPTION, redemption.id,
            {**details, "points_refunded": redemption.points_spent},
        )
        queue_event(db, NotificationEvent(
            type=NotificationType.REDEMPTION_REJECTED,
            family_id=actor.family_id,
            recipient_id=redemption.child_id,
            title="Reward request declined",
            message=notes or f"{redemption.points_spent} points were returned to you",
            data={"redemption_id": str(redemption.id), "points_refunded": redemption.points_spent},
        ))
        logger.info(
            "Redemption rejected: redemption=%s child=%s +%d refunded",
            redemption.id, redemption.child_id, redemption.points_spent,
        )
    else:
        activity.record_activity(
            db, actor, activity.REDEMPTION_APPROVED, TARGET_REDEMPTION, redemption.id,
            details,
        )
        queue_event(db, NotificationEvent(
            type=NotificationType.REDEMPTION_APPROVED,
            family_id=actor.family_id,
            recipient_id=redemption.child_id,
            title="Reward approved",
            message=f'Your request for "{reward_name}" was approved',
            data={"redemption_id": str(redemption.id)},
        ))

    await db.flush()
    await db.refresh(redemption)
    return redemption


async def fulfill_redemption(
    db: AsyncSession, actor: User, redemption_id: uuid.UUID
) -> Redemption:
    redemption = await _lock_redemption(db, actor, redemption_id)
    require_capability(actor, RedemptionAction.FULFILL)
    transition = guard_redemption_transition(redemption.status, RedemptionAction.FULFILL)

    if not await compare_and_set(
        db, Redemption, redemption.id,
        Redemption.status == RedemptionStatus.APPROVED,
        status=transition.target,
        fulfilled_at=datetime.now(timezone.utc),
    ):
        raise InvalidStateTransition("Redemption is no longer approved")

    reward_name = await _reward_name(db, redemption.reward_id)
    activity.record_activity(
        db, actor, activity.REDEMPTION_FULFILLED, TARGET_REDEMPTION, redemption.id,
        {"reward_name": reward_name, "points_spent": redemption.points_spent},
    )
    queue_event(db, NotificationEvent(
        type=NotificationType.REDEMPTION_FULFILLED,
        family_id=actor.family_id,
        recipient_id=redemption.child_id,
        title="Reward delivered",
        message=f'Enjoy "{reward_name}"!',
        data={"redemption_id": str(redemption.id)},
    ))

    await db.flush()
    await db.refresh(redemption)
    return redemption


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_redemptions(
    db: AsyncSession,
    actor: User,
    status: RedemptionStatus | None = None,
    child_id: uuid.UUID | None = None,
) -> list[Redemption]:
    """Parents see the whole family's redemptions, children only their own."""
    stmt = select(Redemption).join(User, Redemption.child_id == User.id).where(
        User.family_id == actor.family_id
    )
    if actor.role == UserRole.CHILD:
        stmt = stmt.where(Redemption.child_id == actor.id)
    elif child_id is not None:
        stmt = stmt.where(Redemption.child_id == child_id)
    if status is not None:
        stmt = stmt.where(Redemption.status == status)

    result = await db.execute(stmt.order_by(Redemption.requested_at.desc()))
    return list(result.scalars().all())


async def get_redemption(
    db: AsyncSession, actor: User, redemption_id: uuid.UUID
) -> Redemption:
    stmt = select(Redemption).join(User, Redemption.child_id == User.id).where(
        Redemption.id == redemption_id, User.family_id == actor.family_id
    )
    if actor.role == UserRole.CHILD:
        stmt = stmt.where(Redemption.child_id == actor.id)
    result = await db.execute(stmt)
    redemption = result.scalar_one_or_none()
    if redemption is None:
        raise NotFound("Redemption not found")
    return redemption


async def pending_count(db: AsyncSession, family_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count(Redemption.id))
        .join(User, Redemption.child_id == User.id)
        .where(
            User.family_id == family_id,
            Redemption.status == RedemptionStatus.PENDING,
        )
    )
    return result.scalar_one()
