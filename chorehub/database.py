import logging

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from chorehub.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for all SQLAlchemy ORM models."""
    pass


async def get_db() -> AsyncSession:
    """FastAPI dependency that yields an async database session.

    The session is the request's single transaction: it commits when the
    endpoint returns and rolls back on any exception.  Notification events
    queued during the request are published only after the commit succeeded.
    """
    from chorehub.services.notification_service import (
        discard_pending_events,
        publish_pending_events,
    )

    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception as exc:
            await session.rollback()
            discard_pending_events(session)
            if not isinstance(exc, HTTPException):
                logger.exception("Request failed, transaction rolled back")
            raise
        await publish_pending_events(session)
