import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean, CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, String, Text, Uuid, false, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chorehub.database import Base
from chorehub.models.enums import RedemptionStatus


class Reward(Base):
    __tablename__ = "rewards"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    family_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("families.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    point_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # NULL = unlimited
    quantity_available: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_rewards_family_active", "family_id", "is_active"),
        CheckConstraint("point_cost >= 1", name="ck_rewards_point_cost_positive"),
        CheckConstraint(
            "quantity_available IS NULL OR quantity_available >= 0",
            name="ck_rewards_quantity_non_negative",
        ),
    )

    # Relationships
    family: Mapped["Family"] = relationship(back_populates="rewards")  # noqa: F821
    redemptions: Mapped[list["Redemption"]] = relationship(back_populates="reward")

    def __repr__(self) -> str:
        return f"<Reward(id={self.id}, name={self.name!r}, cost={self.point_cost})>"


class Redemption(Base):
    __tablename__ = "redemptions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    child_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reward_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("rewards.id", ondelete="SET NULL"), nullable=True
    )
    # Snapshot of Reward.point_cost at request time
    points_spent: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[RedemptionStatus] = mapped_column(
        Enum(RedemptionStatus, native_enum=False, length=20),
        nullable=False,
        default=RedemptionStatus.PENDING,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # True when the request took one unit of a limited reward
    inventory_reserved: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, server_default=false()
    )
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reviewed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    fulfilled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_redemptions_child_status", "child_id", "status"),
    )

    # Relationships
    reward: Mapped["Reward | None"] = relationship(back_populates="redemptions")
    child: Mapped["User"] = relationship(foreign_keys=[child_id])  # noqa: F821
    reviewed_by: Mapped["User | None"] = relationship(foreign_keys=[reviewed_by_id])  # noqa: F821

    def __repr__(self) -> str:
        return f"<Redemption(id={self.id}, status={self.status!r})>"
