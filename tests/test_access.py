"""Access policy matrix."""

from __future__ import annotations

import uuid

import pytest

from leavedesk.config import get_settings
from leavedesk.exceptions import AuthorizationError
from leavedesk.models.enums import Role
from leavedesk.schemas.auth import Principal
from leavedesk.services.access import (
    LeaveAction,
    RequestOwner,
    TeamPredicate,
    any_team,
    can_perform,
    default_team_predicate,
    direct_reports_only,
    ensure_can_perform,
)

OWNER_ID = uuid.uuid4()
MANAGER_ID = uuid.uuid4()

OWNER = Principal(user_id=OWNER_ID, role=Role.EMPLOYEE)
COLLEAGUE = Principal(user_id=uuid.uuid4(), role=Role.EMPLOYEE)
OWN_MANAGER = Principal(user_id=MANAGER_ID, role=Role.MANAGER)
OTHER_MANAGER = Principal(user_id=uuid.uuid4(), role=Role.MANAGER)
ADMIN = Principal(user_id=uuid.uuid4(), role=Role.ADMIN)

REQUEST_OWNER = RequestOwner(user_id=OWNER_ID, manager_id=MANAGER_ID)


@pytest.mark.parametrize(
    ("principal", "action", "expected"),
    [
        (OWNER, LeaveAction.SUBMIT, True),
        (COLLEAGUE, LeaveAction.SUBMIT, False),
        (OWN_MANAGER, LeaveAction.SUBMIT, False),
        (ADMIN, LeaveAction.SUBMIT, True),
        (OWNER, LeaveAction.DECIDE, False),
        (COLLEAGUE, LeaveAction.DECIDE, False),
        (OWN_MANAGER, LeaveAction.DECIDE, True),
        (OTHER_MANAGER, LeaveAction.DECIDE, True),
        (ADMIN, LeaveAction.DECIDE, True),
        (OWNER, LeaveAction.CANCEL, True),
        (COLLEAGUE, LeaveAction.CANCEL, False),
        (OTHER_MANAGER, LeaveAction.CANCEL, True),
        (ADMIN, LeaveAction.CANCEL, True),
        (OWNER, LeaveAction.VIEW, True),
        (COLLEAGUE, LeaveAction.VIEW, False),
        (OTHER_MANAGER, LeaveAction.VIEW, True),
        (ADMIN, LeaveAction.VIEW, True),
    ],
)
def test_default_matrix(principal: Principal, action: LeaveAction, expected: bool) -> None:
    assert can_perform(principal, action, REQUEST_OWNER) is expected


@pytest.mark.parametrize(
    ("principal", "action", "expected"),
    [
        (OWN_MANAGER, LeaveAction.DECIDE, True),
        (OTHER_MANAGER, LeaveAction.DECIDE, False),
        (OTHER_MANAGER, LeaveAction.CANCEL, False),
        (OTHER_MANAGER, LeaveAction.VIEW, False),
        (ADMIN, LeaveAction.DECIDE, True),
        (OWNER, LeaveAction.CANCEL, True),
    ],
)
def test_direct_reports_only_matrix(principal: Principal, action: LeaveAction, expected: bool) -> None:
    assert can_perform(principal, action, REQUEST_OWNER, direct_reports_only) is expected


def test_manager_cannot_decide_without_reporting_line() -> None:
    owner = RequestOwner(user_id=OWNER_ID, manager_id=None)
    assert can_perform(OWN_MANAGER, LeaveAction.DECIDE, owner, direct_reports_only) is False


@pytest.mark.parametrize("team_predicate", [any_team, direct_reports_only])
def test_manager_cannot_decide_own_request(team_predicate: TeamPredicate) -> None:
    owner = RequestOwner(user_id=OWN_MANAGER.user_id, manager_id=OWN_MANAGER.user_id)
    assert can_perform(OWN_MANAGER, LeaveAction.DECIDE, owner, team_predicate) is False
    assert can_perform(OWN_MANAGER, LeaveAction.CANCEL, owner, team_predicate) is True


def test_admin_may_decide_own_request() -> None:
    owner = RequestOwner(user_id=ADMIN.user_id)
    assert can_perform(ADMIN, LeaveAction.DECIDE, owner) is True


def test_default_team_predicate_follows_setting(monkeypatch: pytest.MonkeyPatch) -> None:
    assert default_team_predicate() is any_team
    monkeypatch.setattr(get_settings(), "restrict_managers_to_team", True)
    assert default_team_predicate() is direct_reports_only


def test_ensure_can_perform_raises() -> None:
    with pytest.raises(AuthorizationError, match="cancel"):
        ensure_can_perform(COLLEAGUE, LeaveAction.CANCEL, REQUEST_OWNER)


def test_ensure_can_perform_allows() -> None:
    ensure_can_perform(ADMIN, LeaveAction.DECIDE, REQUEST_OWNER)
