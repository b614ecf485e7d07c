"""Family Service.

Invite codes and the parent dashboard statistics.
"""

import secrets
import string
import uuid

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.models.enums import ChoreStatus, UserRole
from chorehub.models.family import Family
from chorehub.models.user import User
from chorehub.services.chore_service import count_by_status
from chorehub.services.redemption_service import pending_count

INVITE_CODE_LENGTH = 6
_ALPHABET = string.ascii_uppercase + string.digits


def _generate_code() -> str:
    """Generate an invite code like 'K7Q2XB'."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


async def generate_invite_code(db: AsyncSession) -> str:
    """Generate a unique invite code, retrying on collision."""
    for _ in range(10):
        code = _generate_code()
        result = await db.execute(select(Family.id).where(Family.invite_code == code))
        if result.scalar_one_or_none() is None:
            return code

    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Could not generate a unique invite code",
    )


async def family_stats(db: AsyncSession, family_id: uuid.UUID) -> dict:
    result = await db.execute(
        select(User.role, func.count(User.id))
        .where(User.family_id == family_id, User.is_active.is_(True))
        .group_by(User.role)
    )
    members = {UserRole(role): count for role, count in result.all()}
    chores = await count_by_status(db, family_id)

    return {
        "parents": members.get(UserRole.PARENT, 0),
        "children": members.get(UserRole.CHILD, 0),
        "chores": {
            "pending": chores[ChoreStatus.PENDING],
            "awaiting_verification": chores[ChoreStatus.COMPLETED],
            "completed": chores[ChoreStatus.VERIFIED],
            "rejected": chores[ChoreStatus.REJECTED],
        },
        "pending_redemptions": await pending_count(db, family_id),
    }
