"""Role capabilities for chore and redemption actions.

Routers still gate parent-only endpoints with ``require_parent``; the services
re-check with ``require_capability`` so the rules hold for any caller.
"""

from chorehub.core.errors import Forbidden
from chorehub.models.enums import UserRole
from chorehub.services.state_machine import ChoreAction, RedemptionAction, is_assignee

CAPABILITIES: dict[UserRole, frozenset] = {
    UserRole.PARENT: frozenset({
        ChoreAction.CREATE,
        ChoreAction.UPDATE,
        ChoreAction.DELETE,
        ChoreAction.APPROVE,
        ChoreAction.REJECT,
        ChoreAction.RESET,
        RedemptionAction.APPROVE,
        RedemptionAction.REJECT,
        RedemptionAction.FULFILL,
    }),
    UserRole.CHILD: frozenset({
        ChoreAction.CLAIM,
        ChoreAction.COMPLETE,
        ChoreAction.ADD_PHOTO,
        RedemptionAction.REQUEST,
    }),
}

# Actions a child may only take on chores assigned to them.
ASSIGNEE_ONLY = frozenset({ChoreAction.COMPLETE, ChoreAction.ADD_PHOTO})


def actor_can(actor, action, chore=None) -> bool:
    if action not in CAPABILITIES.get(actor.role, frozenset()):
        return False
    if action in ASSIGNEE_ONLY:
        return chore is not None and is_assignee(chore, actor.id)
    return True


def require_capability(actor, action, chore=None) -> None:
    if actor_can(actor, action, chore):
        return
    if action in ASSIGNEE_ONLY and action in CAPABILITIES.get(actor.role, frozenset()):
        raise Forbidden("This chore is not assigned to you")
    raise Forbidden(f"Your role cannot {action.value.replace('_', ' ')}")
