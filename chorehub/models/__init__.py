"""SQLAlchemy ORM models.

All models are imported here so that Alembic can discover them
via ``Base.metadata`` when generating migrations.
"""

from chorehub.models.activity_log import ActivityLog  # noqa: F401
from chorehub.models.category import Category  # noqa: F401
from chorehub.models.chore import Chore  # noqa: F401
from chorehub.models.enums import ChoreStatus, RedemptionStatus, UserRole  # noqa: F401
from chorehub.models.family import Family  # noqa: F401
from chorehub.models.reward import Redemption, Reward  # noqa: F401
from chorehub.models.user import RefreshToken, User  # noqa: F401

__all__ = [
    "ActivityLog",
    "Category",
    "Chore",
    "ChoreStatus",
    "Family",
    "Redemption",
    "RedemptionStatus",
    "RefreshToken",
    "Reward",
    "User",
    "UserRole",
]
