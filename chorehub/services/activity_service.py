"""Activity log writer and reader."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.models.activity_log import ActivityLog

# Audit actions
CHORE_CREATED = "CHORE_CREATED"
CHORE_UPDATED = "CHORE_UPDATED"
CHORE_DELETED = "CHORE_DELETED"
CHORES_BULK_DELETED = "CHORES_BULK_DELETED"
CHORE_CLAIMED = "CHORE_CLAIMED"
CHORE_COMPLETED = "CHORE_COMPLETED"
CHORE_RESUBMITTED = "CHORE_RESUBMITTED"
CHORE_PHOTO_ADDED = "CHORE_PHOTO_ADDED"
CHORE_VERIFIED = "CHORE_VERIFIED"
CHORE_REJECTED = "CHORE_REJECTED"
CHORE_RESET = "CHORE_RESET"
REDEMPTION_REQUESTED = "REDEMPTION_REQUESTED"
REDEMPTION_APPROVED = "REDEMPTION_APPROVED"
REDEMPTION_REJECTED = "REDEMPTION_REJECTED"
REDEMPTION_FULFILLED = "REDEMPTION_FULFILLED"


def record_activity(
    db: AsyncSession,
    actor,
    action: str,
    target_type: str,
    target_id: uuid.UUID | None,
    details: dict | None = None,
) -> ActivityLog:
    """Add an audit row to the current transaction.

    The row is flushed together with the state change it describes, so it is
    committed or rolled back with it.
    """
    entry = ActivityLog(
        family_id=actor.family_id,
        user_id=actor.id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=details,
    )
    db.add(entry)
    return entry


async def list_activity(
    db: AsyncSession,
    family_id: uuid.UUID,
    limit: int = 50,
    offset: int = 0,
) -> list[ActivityLog]:
    result = await db.execute(
        select(ActivityLog)
        .where(ActivityLog.family_id == family_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id)
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())
