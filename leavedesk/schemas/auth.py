# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel

from leavedesk.models.enums import Role


class Principal(BaseModel):
    """Authenticated actor supplied by the authentication layer."""

    model_config = {"frozen": True}

    user_id: uuid.UUID
    role: Role = Role.EMPLOYEE

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_approver(self) -> bool:
        return self.role in (Role.MANAGER, Role.ADMIN)
