# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from leavedesk.models.enums import RequestStatus

logger = logging.getLogger(__name__)


class TransitionEvent(BaseModel):
    """A committed leave request transition."""

    request_id: uuid.UUID
    user_id: uuid.UUID
    leave_type_id: uuid.UUID
    actor_id: uuid.UUID | None
    from_status: RequestStatus | None  # None on submission
    to_status: RequestStatus
    occurred_at: datetime


@runtime_checkable
class Notifier(Protocol):
    """Fire-and-forget recipient of transition events."""

    async def notify(self, event: TransitionEvent) -> None: ...


class LoggingNotifier:
    """Default notifier: writes each transition to the application log."""

    async def notify(self, event: TransitionEvent) -> None:
        logger.info(
            "Leave request %s for user %s: %s -> %s (actor=%s)",
            event.request_id,
            event.user_id,
            event.from_status.value if event.from_status else "-",
            event.to_status.value,
            event.actor_id,
        )


_notifier: Notifier = LoggingNotifier()


def get_notifier() -> Notifier:
    return _notifier


def set_notifier(notifier: Notifier) -> None:
    """Override the notifier (for testing or production wiring)."""
    global _notifier
    _notifier = notifier
