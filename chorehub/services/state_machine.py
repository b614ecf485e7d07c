"""Chore and redemption lifecycles.

Both lifecycles are data: a table mapping each action to the statuses it may
start from and the status it leads to.  Services call the guard functions
before writing anything; the compare-and-set update that follows re-checks the
same source status at the database level.

Chore lifecycle::

    PENDING --complete--> COMPLETED --approve--> VERIFIED (terminal)
       ^                      |
       |                   reject
       |                      v
       +------reset------ REJECTED --complete (resubmit)--> COMPLETED

Redemption lifecycle::

    PENDING --approve--> APPROVED --fulfill--> FULFILLED (terminal)
       |
       +--reject--> REJECTED (terminal)
"""

import enum
import uuid
from dataclasses import dataclass

from chorehub.core.errors import ChoreFinalized, InvalidStateTransition
from chorehub.models.enums import ChoreStatus, RedemptionStatus


class ChoreAction(enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CLAIM = "claim"
    COMPLETE = "complete"
    ADD_PHOTO = "add_photo"
    APPROVE = "approve"
    REJECT = "reject"
    RESET = "reset"


class RedemptionAction(enum.Enum):
    REQUEST = "request"
    APPROVE = "approve"
    REJECT = "reject"
    FULFILL = "fulfill"


@dataclass(frozen=True)
class Transition:
    sources: frozenset
    # None = the action does not change status
    target: enum.Enum | None = None


_EDITABLE = frozenset({ChoreStatus.PENDING, ChoreStatus.COMPLETED, ChoreStatus.REJECTED})

CHORE_TRANSITIONS: dict[ChoreAction, Transition] = {
    ChoreAction.UPDATE: Transition(_EDITABLE),
    ChoreAction.DELETE: Transition(_EDITABLE),
    ChoreAction.CLAIM: Transition(frozenset({ChoreStatus.PENDING})),
    ChoreAction.COMPLETE: Transition(
        frozenset({ChoreStatus.PENDING, ChoreStatus.REJECTED}), ChoreStatus.COMPLETED
    ),
    ChoreAction.ADD_PHOTO: Transition(
        frozenset({ChoreStatus.COMPLETED, ChoreStatus.REJECTED})
    ),
    ChoreAction.APPROVE: Transition(frozenset({ChoreStatus.COMPLETED}), ChoreStatus.VERIFIED),
    ChoreAction.REJECT: Transition(frozenset({ChoreStatus.COMPLETED}), ChoreStatus.REJECTED),
    ChoreAction.RESET: Transition(frozenset({ChoreStatus.REJECTED}), ChoreStatus.PENDING),
}

REDEMPTION_TRANSITIONS: dict[RedemptionAction, Transition] = {
    RedemptionAction.APPROVE: Transition(
        frozenset({RedemptionStatus.PENDING}), RedemptionStatus.APPROVED
    ),
    RedemptionAction.REJECT: Transition(
        frozenset({RedemptionStatus.PENDING}), RedemptionStatus.REJECTED
    ),
    RedemptionAction.FULFILL: Transition(
        frozenset({RedemptionStatus.APPROVED}), RedemptionStatus.FULFILLED
    ),
}


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Unassigned:
    """The chore is available for any child in the family to claim."""


@dataclass(frozen=True)
class AssignedTo:
    user_id: uuid.UUID


Assignment = Unassigned | AssignedTo


def assignment_of(chore) -> Assignment:
    if chore.assigned_to_id is None:
        return Unassigned()
    return AssignedTo(chore.assigned_to_id)


def is_assignee(chore, user_id: uuid.UUID) -> bool:
    return assignment_of(chore) == AssignedTo(user_id)


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


def guard_chore_transition(status: ChoreStatus, action: ChoreAction) -> Transition:
    """Return the transition for ``action`` or raise.

    VERIFIED is terminal: any mutation of a verified chore raises
    ``ChoreFinalized`` regardless of the action.
    """
    transition = CHORE_TRANSITIONS[action]
    if status == ChoreStatus.VERIFIED:
        raise ChoreFinalized("Chore has already been verified and can no longer be changed")
    if status not in transition.sources:
        raise InvalidStateTransition(
            f"Cannot {action.value.replace('_', ' ')} a chore with status {status.value}"
        )
    return transition


def guard_claim(chore) -> Transition:
    transition = guard_chore_transition(chore.status, ChoreAction.CLAIM)
    if isinstance(assignment_of(chore), AssignedTo):
        raise InvalidStateTransition("Chore has already been claimed or assigned")
    return transition


def guard_redemption_transition(
    status: RedemptionStatus, action: RedemptionAction
) -> Transition:
    transition = REDEMPTION_TRANSITIONS[action]
    if status not in transition.sources:
        raise InvalidStateTransition(
            f"Cannot {action.value} a redemption with status {status.value}"
        )
    return transition
