# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from leavedesk.db import SessionDep
from leavedesk.exceptions import AuthorizationError
from leavedesk.models.enums import Role
from leavedesk.schemas.auth import Principal
from leavedesk.services.access import LeaveAction, RequestOwner, can_perform, default_team_predicate
from leavedesk.services.directory import DirectoryService, get_directory_service
from leavedesk.services.lifecycle import LeaveLifecycle
from leavedesk.services.notifications import Notifier, get_notifier


async def get_principal(
    x_user_id: uuid.UUID = Header(),
    x_role: str = Header(default=Role.EMPLOYEE.value),
) -> Principal:
    """Build the principal from the dev auth headers."""
    try:
        role = Role(x_role.strip().lower())
    except ValueError:
        raise AuthorizationError(f"Unknown role '{x_role}'") from None
    return Principal(user_id=x_user_id, role=role)


PrincipalDep = Annotated[Principal, Depends(get_principal)]


async def require_admin(principal: PrincipalDep) -> Principal:
    """Require admin role for the request."""
    if not principal.is_admin:
        raise AuthorizationError("Admin access required")
    return principal


AdminDep = Annotated[Principal, Depends(require_admin)]

DirectoryDep = Annotated[DirectoryService, Depends(get_directory_service)]


async def ensure_can_view_user(principal: Principal, user_id: uuid.UUID, directory: DirectoryService) -> None:
    """Allow the user themselves, admins, and managers passing the team predicate."""
    employee = await directory.get_employee(user_id)
    owner = RequestOwner(user_id=user_id, manager_id=employee.manager_id if employee else None)
    if not can_perform(principal, LeaveAction.VIEW, owner, default_team_predicate()):
        raise AuthorizationError("You do not have permission to view this user's balances")


async def get_lifecycle(
    session: SessionDep,
    directory: DirectoryDep,
    notifier: Notifier = Depends(get_notifier),
) -> LeaveLifecycle:
    return LeaveLifecycle(session, notifier=notifier, directory=directory)


LifecycleDep = Annotated[LeaveLifecycle, Depends(get_lifecycle)]
