"""Status and role enumerations shared by models, schemas and services."""

import enum


class UserRole(str, enum.Enum):
    PARENT = "PARENT"
    CHILD = "CHILD"


class ChoreStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class RedemptionStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    FULFILLED = "FULFILLED"
