"""Leave request lifecycle: the only place a request changes status.

Every operation runs in a single ``atomic`` transaction. The status change is a
compare-and-swap in the request store and the balance effect goes through the
ledger, so either both persist or neither does.
"""

# ruff: noqa: TC003
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from leavedesk.config import get_settings
from leavedesk.db import atomic
from leavedesk.exceptions import AuthorizationError, ConflictError, StateError, ValidationError
from leavedesk.models.base import now_utc
from leavedesk.models.enums import AuditAction, AuditEntityType, DecisionOutcome, RequestStatus
from leavedesk.models.request import LeaveRequest
from leavedesk.schemas.request import LeaveRequestListResponse, LeaveRequestResponse
from leavedesk.services import balance as ledger
from leavedesk.services import request_store
from leavedesk.services.access import (
    LeaveAction,
    RequestOwner,
    TeamPredicate,
    default_team_predicate,
    ensure_can_perform,
)
from leavedesk.services.audit import model_to_audit_dict, write_audit_log
from leavedesk.services.directory import DirectoryService, get_directory_service
from leavedesk.services.duration import calculate_duration
from leavedesk.services.leave_type import get_leave_type_model
from leavedesk.services.notifications import Notifier, TransitionEvent, get_notifier

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leavedesk.schemas.auth import Principal
    from leavedesk.schemas.request import SubmitLeavePayload

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 500
MAX_COMMENTS_LENGTH = 500

ALLOWED_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED}),
    RequestStatus.APPROVED: frozenset({RequestStatus.CANCELLED}),
    RequestStatus.REJECTED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}

_VERBS = {
    RequestStatus.APPROVED: "approve",
    RequestStatus.REJECTED: "reject",
    RequestStatus.CANCELLED: "cancel",
}


def is_transition_allowed(current: RequestStatus, target: RequestStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def _assert_transition(current: RequestStatus, target: RequestStatus) -> None:
    if not is_transition_allowed(current, target):
        raise StateError(f"Cannot {_VERBS[target]} leave request with status {current.value}")


def _build_request_response(leave_request: LeaveRequest) -> LeaveRequestResponse:
    """Map a request model to its response schema."""
    return LeaveRequestResponse(
        id=leave_request.id,
        user_id=leave_request.user_id,
        leave_type_id=leave_request.leave_type_id,
        start_date=leave_request.start_date,
        end_date=leave_request.end_date,
        duration=leave_request.duration,
        reason=leave_request.reason,
        status=RequestStatus(leave_request.status),
        comments=leave_request.comments,
        submitted_at=leave_request.submitted_at,
        decided_at=leave_request.decided_at,
        decided_by=leave_request.decided_by,
        cancelled_at=leave_request.cancelled_at,
        cancelled_by=leave_request.cancelled_by,
        idempotency_key=leave_request.idempotency_key,
        created_at=leave_request.created_at,
        updated_at=leave_request.updated_at,
    )


def _build_list_response(items: list[LeaveRequest], total: int) -> LeaveRequestListResponse:
    return LeaveRequestListResponse(items=[_build_request_response(r) for r in items], total=total)


def _replay(existing: LeaveRequest) -> LeaveRequestResponse:
    """Response for a repeated submission with an already used idempotency key."""
    if existing.deleted_at is not None:
        raise ConflictError("Idempotency key belongs to a deleted leave request")
    return _build_request_response(existing)


def _clean_reason(reason: str) -> str:
    cleaned = reason.strip()
    if not cleaned:
        raise ValidationError("A reason is required")
    if len(cleaned) > MAX_REASON_LENGTH:
        raise ValidationError(f"Reason must be at most {MAX_REASON_LENGTH} characters")
    return cleaned


class LeaveLifecycle:
    """Submit, decide and cancel leave requests on behalf of a principal.

    Collaborators default to the process-wide instances but can be injected,
    which is how tests swap in recording notifiers and seeded directories.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        notifier: Notifier | None = None,
        directory: DirectoryService | None = None,
        team_predicate: TeamPredicate | None = None,
    ) -> None:
        self.session = session
        self.notifier = notifier if notifier is not None else get_notifier()
        self.directory = directory if directory is not None else get_directory_service()
        self.team_predicate = team_predicate if team_predicate is not None else default_team_predicate()

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _resolve_owner(self, user_id: uuid.UUID) -> RequestOwner:
        employee = await self.directory.get_employee(user_id)
        return RequestOwner(user_id=user_id, manager_id=employee.manager_id if employee else None)

    async def _authorize(self, principal: Principal, action: LeaveAction, user_id: uuid.UUID) -> None:
        owner = await self._resolve_owner(user_id)
        ensure_can_perform(principal, action, owner, self.team_predicate)

    async def _notify(
        self,
        leave_request: LeaveRequest,
        actor_id: uuid.UUID | None,
        from_status: RequestStatus | None,
    ) -> None:
        """Tell the notifier about a committed transition. Failures and timeouts are logged only."""
        event = TransitionEvent(
            request_id=leave_request.id,
            user_id=leave_request.user_id,
            leave_type_id=leave_request.leave_type_id,
            actor_id=actor_id,
            from_status=from_status,
            to_status=RequestStatus(leave_request.status),
            occurred_at=now_utc(),
        )
        timeout = get_settings().notification_timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                await self.notifier.notify(event)
        except TimeoutError:
            logger.warning("Notifier timed out after %gs for leave request %s", timeout, leave_request.id)
        except Exception:
            logger.exception("Notifier failed for leave request %s", leave_request.id)

    async def _audit(
        self,
        actor_id: uuid.UUID | None,
        leave_request: LeaveRequest,
        action: AuditAction,
        before_json: dict | None = None,
    ) -> None:
        await write_audit_log(
            self.session,
            actor_id=actor_id,
            entity_type=AuditEntityType.LEAVE_REQUEST,
            entity_id=leave_request.id,
            action=action,
            before_json=before_json,
            after_json=model_to_audit_dict(leave_request),
        )

    # -----------------------------------------------------------------------
    # Transitions
    # -----------------------------------------------------------------------

    async def submit(self, principal: Principal, payload: SubmitLeavePayload) -> LeaveRequestResponse:
        """Create a leave request.

        Types that do not require approval are approved on creation and, when
        they deduct, reserve the balance in the same transaction. A repeated
        ``idempotency_key`` returns the request created by the first call.
        """
        user_id = payload.user_id or principal.user_id
        await self._authorize(principal, LeaveAction.SUBMIT, user_id)

        reason = _clean_reason(payload.reason)
        duration = calculate_duration(payload.start_date, payload.end_date)

        if payload.idempotency_key is not None:
            existing = await request_store.find_by_idempotency_key(self.session, user_id, payload.idempotency_key)
            if existing is not None:
                return _replay(existing)

        try:
            async with atomic(self.session):
                leave_type = await get_leave_type_model(self.session, payload.leave_type_id)

                overlapping = await request_store.find_overlapping(
                    self.session, user_id, payload.start_date, payload.end_date
                )
                if overlapping is not None:
                    raise ConflictError(
                        f"Request overlaps leave request {overlapping.id} "
                        f"({overlapping.start_date} to {overlapping.end_date})"
                    )

                auto_approved = not leave_type.requires_approval
                now = now_utc()
                leave_request = await request_store.create_request(
                    self.session,
                    LeaveRequest(
                        user_id=user_id,
                        leave_type_id=leave_type.id,
                        start_date=payload.start_date,
                        end_date=payload.end_date,
                        duration=duration,
                        reason=reason,
                        status=(RequestStatus.APPROVED if auto_approved else RequestStatus.PENDING).value,
                        submitted_at=now,
                        decided_at=now if auto_approved else None,
                        idempotency_key=payload.idempotency_key,
                    ),
                )

                if auto_approved and leave_type.deducts_balance:
                    await ledger.reserve(self.session, user_id, leave_type, duration, leave_request.id)

                await self._audit(principal.user_id, leave_request, AuditAction.SUBMIT)
        except IntegrityError:
            # A concurrent retry with the same key committed first.
            if payload.idempotency_key is not None:
                existing = await request_store.find_by_idempotency_key(
                    self.session, user_id, payload.idempotency_key
                )
                if existing is not None:
                    return _replay(existing)
            raise ConflictError("Duplicate leave request") from None

        logger.info(
            "Leave request %s submitted for user %s (%d day(s), %s)",
            leave_request.id,
            user_id,
            duration,
            leave_request.status,
        )
        await self._notify(leave_request, principal.user_id, None)
        return _build_request_response(leave_request)

    async def decide(
        self,
        principal: Principal,
        request_id: uuid.UUID,
        outcome: DecisionOutcome,
        comments: str | None = None,
    ) -> LeaveRequestResponse:
        """Approve or reject a pending request.

        Approval of a deducting type reserves the balance before the commit;
        if the reservation fails the request stays pending.
        """
        if not principal.is_approver:
            raise AuthorizationError("Only managers and admins can decide leave requests")
        if comments is not None and len(comments) > MAX_COMMENTS_LENGTH:
            raise ValidationError(f"Comments must be at most {MAX_COMMENTS_LENGTH} characters")

        target = RequestStatus.APPROVED if outcome is DecisionOutcome.APPROVE else RequestStatus.REJECTED

        async with atomic(self.session):
            leave_request = await request_store.get_request(self.session, request_id)
            await self._authorize(principal, LeaveAction.DECIDE, leave_request.user_id)

            current = RequestStatus(leave_request.status)
            _assert_transition(current, target)
            before_dict = model_to_audit_dict(leave_request)

            swapped = await request_store.transition_status(
                self.session,
                request_id,
                current,
                target,
                decided_at=now_utc(),
                decided_by=principal.user_id,
                comments=comments,
            )
            if not swapped:
                raise StateError(f"Cannot {_VERBS[target]} leave request: it was changed by another operation")

            if target is RequestStatus.APPROVED:
                leave_type = await get_leave_type_model(self.session, leave_request.leave_type_id)
                if leave_type.deducts_balance:
                    await ledger.reserve(
                        self.session, leave_request.user_id, leave_type, leave_request.duration, leave_request.id
                    )

            await self.session.refresh(leave_request)
            action = AuditAction.APPROVE if target is RequestStatus.APPROVED else AuditAction.REJECT
            await self._audit(principal.user_id, leave_request, action, before_dict)

        logger.info("Leave request %s %s by %s", request_id, target.value, principal.user_id)
        await self._notify(leave_request, principal.user_id, current)
        return _build_request_response(leave_request)

    async def approve(
        self, principal: Principal, request_id: uuid.UUID, comments: str | None = None
    ) -> LeaveRequestResponse:
        return await self.decide(principal, request_id, DecisionOutcome.APPROVE, comments)

    async def reject(
        self, principal: Principal, request_id: uuid.UUID, comments: str | None = None
    ) -> LeaveRequestResponse:
        return await self.decide(principal, request_id, DecisionOutcome.REJECT, comments)

    async def cancel(self, principal: Principal, request_id: uuid.UUID) -> LeaveRequestResponse:
        """Cancel a pending or approved request.

        Cancelling an approved request gives back exactly what its approval
        reserved.
        """
        async with atomic(self.session):
            leave_request = await request_store.get_request(self.session, request_id)
            await self._authorize(principal, LeaveAction.CANCEL, leave_request.user_id)

            current = RequestStatus(leave_request.status)
            _assert_transition(current, RequestStatus.CANCELLED)
            before_dict = model_to_audit_dict(leave_request)

            swapped = await request_store.transition_status(
                self.session,
                request_id,
                current,
                RequestStatus.CANCELLED,
                cancelled_at=now_utc(),
                cancelled_by=principal.user_id,
            )
            if not swapped:
                raise StateError("Cannot cancel leave request: it was changed by another operation")

            if current is RequestStatus.APPROVED:
                leave_type = await get_leave_type_model(self.session, leave_request.leave_type_id)
                restored = await ledger.release(self.session, leave_request.user_id, leave_type, request_id)
                logger.info("Released %d day(s) for cancelled leave request %s", restored, request_id)

            await self.session.refresh(leave_request)
            await self._audit(principal.user_id, leave_request, AuditAction.CANCEL, before_dict)

        logger.info("Leave request %s cancelled by %s", request_id, principal.user_id)
        await self._notify(leave_request, principal.user_id, current)
        return _build_request_response(leave_request)

    async def delete(self, principal: Principal, request_id: uuid.UUID) -> None:
        """Soft-delete a request that holds no balance (admin only)."""
        if not principal.is_admin:
            raise AuthorizationError("Only admins can delete leave requests")

        async with atomic(self.session):
            leave_request = await request_store.get_request(self.session, request_id)
            if leave_request.status == RequestStatus.APPROVED:
                raise StateError("Approved leave requests must be cancelled before they can be deleted")

            before_dict = model_to_audit_dict(leave_request)
            if not await request_store.soft_delete(self.session, request_id):
                raise StateError("Leave request was already deleted")

            await write_audit_log(
                self.session,
                actor_id=principal.user_id,
                entity_type=AuditEntityType.LEAVE_REQUEST,
                entity_id=request_id,
                action=AuditAction.DELETE,
                before_json=before_dict,
            )

        logger.info("Leave request %s deleted by %s", request_id, principal.user_id)

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    async def get(self, principal: Principal, request_id: uuid.UUID) -> LeaveRequestResponse:
        leave_request = await request_store.get_request(self.session, request_id)
        await self._authorize(principal, LeaveAction.VIEW, leave_request.user_id)
        return _build_request_response(leave_request)

    async def list_own(
        self,
        principal: Principal,
        *,
        status: RequestStatus | None = None,
        leave_type_id: uuid.UUID | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> LeaveRequestListResponse:
        items, total = await request_store.list_requests(
            self.session,
            user_id=principal.user_id,
            status=status,
            leave_type_id=leave_type_id,
            offset=offset,
            limit=limit,
        )
        return _build_list_response(items, total)

    async def list_team(
        self,
        principal: Principal,
        *,
        status: RequestStatus | None = None,
        leave_type_id: uuid.UUID | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> LeaveRequestListResponse:
        """Requests of the principal's direct reports, per the staff directory."""
        if not principal.is_approver:
            raise AuthorizationError("Only managers and admins can view team leave requests")

        reports = await self.directory.list_direct_reports(principal.user_id)
        items, total = await request_store.list_requests(
            self.session,
            user_ids=[employee.id for employee in reports],
            status=status,
            leave_type_id=leave_type_id,
            offset=offset,
            limit=limit,
        )
        return _build_list_response(items, total)

    async def list_all(
        self,
        principal: Principal,
        *,
        user_id: uuid.UUID | None = None,
        status: RequestStatus | None = None,
        leave_type_id: uuid.UUID | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> LeaveRequestListResponse:
        if not principal.is_admin:
            raise AuthorizationError("Only admins can list all leave requests")

        items, total = await request_store.list_requests(
            self.session,
            user_id=user_id,
            status=status,
            leave_type_id=leave_type_id,
            offset=offset,
            limit=limit,
        )
        return _build_list_response(items, total)
