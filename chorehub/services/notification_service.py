"""Notification events for chore and redemption transitions.

Services queue events on the request's session with ``queue_event``.
``get_db`` calls ``publish_pending_events`` only after the transaction has
committed, so subscribers never hear about state that was rolled back.
Events go out as JSON on the per-family Redis channel
``{EVENTS_CHANNEL_PREFIX}:{family_id}:events``.  Publishing is best effort:
a missing Redis or a publish error is logged and never reaches the caller.
"""

import enum
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.config import settings
from chorehub.core.redis_client import get_redis

logger = logging.getLogger(__name__)

_PENDING_KEY = "pending_events"


class NotificationType(str, enum.Enum):
    CHORE_CLAIMED = "CHORE_CLAIMED"
    CHORE_COMPLETED = "CHORE_COMPLETED"
    CHORE_VERIFIED = "CHORE_VERIFIED"
    CHORE_REJECTED = "CHORE_REJECTED"
    POINTS_AWARDED = "POINTS_AWARDED"
    REDEMPTION_REQUESTED = "REDEMPTION_REQUESTED"
    REDEMPTION_APPROVED = "REDEMPTION_APPROVED"
    REDEMPTION_REJECTED = "REDEMPTION_REJECTED"
    REDEMPTION_FULFILLED = "REDEMPTION_FULFILLED"


@dataclass
class NotificationEvent:
    type: NotificationType
    family_id: uuid.UUID
    title: str
    message: str
    # None = all parents of the family
    recipient_id: uuid.UUID | None = None
    data: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def channel(self) -> str:
        return f"{settings.EVENTS_CHANNEL_PREFIX}:{self.family_id}:events"

    def to_json(self) -> str:
        return json.dumps({
            "type": self.type.value,
            "family_id": str(self.family_id),
            "recipient_id": str(self.recipient_id) if self.recipient_id else None,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "created_at": self.created_at.isoformat(),
        }, default=str)


def queue_event(db: AsyncSession, event: NotificationEvent) -> None:
    db.info.setdefault(_PENDING_KEY, []).append(event)


def pending_events(db: AsyncSession) -> list[NotificationEvent]:
    return list(db.info.get(_PENDING_KEY, []))


def discard_pending_events(db: AsyncSession) -> None:
    db.info.pop(_PENDING_KEY, None)


async def publish_event(event: NotificationEvent) -> bool:
    """Publish one event.  Returns False when it could not be delivered."""
    redis = await get_redis()
    if redis is None:
        logger.debug("Redis unavailable, dropping %s event", event.type.value)
        return False
    try:
        await redis.publish(event.channel, event.to_json())
    except Exception:
        logger.exception("Failed to publish %s event to %s", event.type.value, event.channel)
        return False
    return True


async def publish_pending_events(db: AsyncSession) -> int:
    """Publish and clear the events queued on ``db``.  Returns the number sent."""
    events = db.info.pop(_PENDING_KEY, [])
    sent = 0
    for event in events:
        if await publish_event(event):
            sent += 1
    return sent
