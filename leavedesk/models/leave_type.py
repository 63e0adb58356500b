from __future__ import annotations

import sqlalchemy as sa
from sqlmodel import Field

from leavedesk.models.base import TimestampMixin, UUIDBase
from leavedesk.models.enums import LeaveCategory


class LeaveType(UUIDBase, TimestampMixin, table=True):
    """A named category of absence with approval and balance policy flags."""

    __tablename__ = "leave_type"
    __table_args__ = (sa.UniqueConstraint("name", name="uq_leave_type_name"),)

    name: str = Field(max_length=100)
    category: str = Field(
        default=LeaveCategory.OTHER, max_length=50, sa_column_kwargs={"server_default": LeaveCategory.OTHER.value}
    )
    requires_approval: bool = True
    deducts_balance: bool = True
    description: str | None = Field(default=None, max_length=255)
