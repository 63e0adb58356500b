"""Role-based access policy for leave request actions.

Everything here is pure: callers resolve the request owner (and, when team
scoping is on, the owner's manager) before asking.
"""

# ruff: noqa: TC003
from __future__ import annotations

import enum
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from leavedesk.config import get_settings
from leavedesk.exceptions import AuthorizationError
from leavedesk.schemas.auth import Principal


class LeaveAction(enum.StrEnum):
    SUBMIT = "submit"
    DECIDE = "decide"
    CANCEL = "cancel"
    VIEW = "view"


@dataclass(frozen=True)
class RequestOwner:
    """The user a leave request belongs to, with their reporting line."""

    user_id: uuid.UUID
    manager_id: uuid.UUID | None = None


# Decides whether a manager may act on a given owner's requests.
TeamPredicate = Callable[[Principal, RequestOwner], bool]


def any_team(principal: Principal, owner: RequestOwner) -> bool:
    return True


def direct_reports_only(principal: Principal, owner: RequestOwner) -> bool:
    return owner.manager_id == principal.user_id


def default_team_predicate() -> TeamPredicate:
    """Team predicate selected by the ``restrict_managers_to_team`` setting."""
    if get_settings().restrict_managers_to_team:
        return direct_reports_only
    return any_team


def can_perform(
    principal: Principal,
    action: LeaveAction,
    owner: RequestOwner,
    team_predicate: TeamPredicate = any_team,
) -> bool:
    """Return whether ``principal`` may perform ``action`` on ``owner``'s request."""
    is_owner = owner.user_id == principal.user_id

    if action is LeaveAction.SUBMIT:
        return is_owner or principal.is_admin

    if action is LeaveAction.DECIDE:
        if principal.is_admin:
            return True
        # Managers never decide their own requests.
        if not principal.is_approver or is_owner:
            return False
        return team_predicate(principal, owner)

    # CANCEL and VIEW
    if is_owner or principal.is_admin:
        return True
    return principal.is_approver and team_predicate(principal, owner)


_DENIAL_MESSAGES = {
    LeaveAction.SUBMIT: "You can only submit leave requests for yourself",
    LeaveAction.DECIDE: "You do not have permission to decide this leave request",
    LeaveAction.CANCEL: "You do not have permission to cancel this leave request",
    LeaveAction.VIEW: "You do not have permission to view this leave request",
}


def ensure_can_perform(
    principal: Principal,
    action: LeaveAction,
    owner: RequestOwner,
    team_predicate: TeamPredicate = any_team,
) -> None:
    """Raise AuthorizationError unless ``can_perform`` allows the action."""
    if not can_perform(principal, action, owner, team_predicate):
        raise AuthorizationError(_DENIAL_MESSAGES[action])
