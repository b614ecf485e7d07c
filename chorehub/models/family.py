import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chorehub.database import Base


class Family(Base):
    __tablename__ = "families"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    invite_code: Mapped[str] = mapped_column(String(12), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    users: Mapped[list["User"]] = relationship(  # noqa: F821
        back_populates="family", cascade="all, delete-orphan", passive_deletes=True
    )
    categories: Mapped[list["Category"]] = relationship(  # noqa: F821
        back_populates="family", cascade="all, delete-orphan", passive_deletes=True
    )
    chores: Mapped[list["Chore"]] = relationship(  # noqa: F821
        back_populates="family", cascade="all, delete-orphan", passive_deletes=True
    )
    rewards: Mapped[list["Reward"]] = relationship(  # noqa: F821
        back_populates="family", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Family(id={self.id}, name={self.name!r})>"
