"""Ledger Primitive.

The only code path that writes ``User.points_balance``.  It is imported by the
chore and redemption services and nowhere else; there is no API that awards
or deducts points on its own.
"""

import logging
import uuid

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.models.user import User

logger = logging.getLogger(__name__)


async def adjust_balance(
    db: AsyncSession,
    user_id: uuid.UUID,
    delta: int,
) -> int:
    """Apply ``delta`` to a user's balance and return the new balance.

    Must run inside the transaction that also records the causing chore or
    redemption change.  The primitive does not clamp at zero: callers check
    the balance against a locked row before debiting.
    """
    if not db.in_transaction():
        raise RuntimeError("adjust_balance called outside a transaction")

    if delta != 0:
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(points_balance=User.points_balance + delta)
            .execution_options(synchronize_session=False)
        )

    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        raise RuntimeError(f"adjust_balance: user {user_id} does not exist")

    logger.debug("Ledger: user=%s delta=%+d balance=%d", user_id, delta, user.points_balance)
    return user.points_balance
