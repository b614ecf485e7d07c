"""Transaction Coordinator.

Every mutating chore/redemption command runs inside the request's single
database transaction (see ``chorehub.database.get_db``) and follows the same
sequence:

1. load the rows it will touch with ``SELECT ... FOR UPDATE`` (``locked_one``),
2. check every precondition against that locked state, writing nothing,
3. write the status change as a compare-and-set ``UPDATE`` guarded by the
   status that was just checked (``compare_and_set``),
4. apply ledger and inventory adjustments as in-database arithmetic,
5. append the audit row and flush.

A failure in steps 1-3 leaves nothing behind.  A failure after step 3
propagates to ``get_db``, which rolls back the whole request.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import Select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


async def locked_one(db: AsyncSession, stmt: Select) -> Any | None:
    """Execute ``stmt`` with a row lock and return the single entity or None.

    The in-session copy is refreshed from the database so checks always run
    against the latest committed state.  Dialects without row locks (SQLite)
    ignore ``FOR UPDATE``; they serialize writers at the database level.
    """
    result = await db.execute(
        stmt.with_for_update().execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def compare_and_set(
    db: AsyncSession,
    model: type,
    row_id: uuid.UUID,
    *conditions,
    **values,
) -> bool:
    """Update one row only if it still matches ``conditions``.

    Returns True when exactly one row was written.  The caller turns False
    into a domain error; nothing has been written in that case.
    """
    stmt = (
        update(model)
        .where(model.id == row_id, *conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount != 1:
        logger.debug(
            "Compare-and-set missed: %s id=%s (%d rows)",
            model.__name__, row_id, result.rowcount,
        )
        return False
    return True
