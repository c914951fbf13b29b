from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from app.core.config import Settings
from app.core.exceptions import (
    AuthorizationError,
    ConcurrentUpdateError,
    NoApplicableRuleError,
    NotFoundError,
    ValidationError,
)
from app.db.models import (
    ActionType,
    ClarificationTarget,
    ProcurementRequest,
    RequestHistoryEntry,
    RequestStatus,
    Role,
    User,
)
from app.schemas.requests import (
    ActionSubmission,
    HistoryEntryResponse,
    ProcurementRequestCreate,
    ProcurementRequestDetailResponse,
    ProcurementRequestListResponse,
    ProcurementRequestResponse,
    ProgressResponse,
)
from app.services import workflow
from app.services.history_service import record_action
from app.services.observability_service import ObservabilityService

logger = logging.getLogger(__name__)


def _to_request_response(request: ProcurementRequest) -> ProcurementRequestResponse:
    return ProcurementRequestResponse(
        id=request.id,
        title=request.title,
        description=request.description,
        amount=request.amount,
        requester_id=request.requester_id,
        status=request.status,
        status_label=workflow.STATUS_LABELS[request.status],
        version=request.version,
        attachments=list(request.attachments or []),
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


def _to_history_entry(entry: RequestHistoryEntry) -> HistoryEntryResponse:
    return HistoryEntryResponse(
        id=entry.id,
        action=entry.action,
        actor_id=entry.actor_id,
        actor_name=entry.actor.full_name if entry.actor else None,
        actor_role=entry.actor_role,
        previous_status=entry.previous_status,
        new_status=entry.new_status,
        notes=entry.notes,
        budget_available=entry.budget_available,
        forwarded_message=entry.forwarded_message,
        target=entry.target,
        attachments=entry.attachments,
        timestamp=entry.created_at,
    )


def _to_detail_response(
    request: ProcurementRequest,
) -> ProcurementRequestDetailResponse:
    expedited = workflow.is_expedited_path(request)
    step = workflow.progress(request.status)
    base = _to_request_response(request).model_dump()
    return ProcurementRequestDetailResponse(
        **base,
        requester_name=request.requester.full_name if request.requester else None,
        expedited=expedited,
        awaiting_clarification=workflow.is_clarification_status(request.status),
        progress=ProgressResponse(step=step.step, total=step.total),
        required_approvers=sorted(
            workflow.required_approvers(request.status), key=lambda role: role.value
        ),
        workflow_steps=list(workflow.workflow_steps(expedited)),
        history=[_to_history_entry(entry) for entry in request.history],
    )


def _load_request(db: Session, request_id: str) -> ProcurementRequest:
    request = db.scalar(
        select(ProcurementRequest)
        .where(ProcurementRequest.id == request_id)
        .options(
            selectinload(ProcurementRequest.requester),
            selectinload(ProcurementRequest.history).selectinload(
                RequestHistoryEntry.actor
            ),
        )
    )
    if not request:
        raise NotFoundError("Request not found")
    return request


def create_request(
    *,
    payload: ProcurementRequestCreate,
    db: Session,
    current_user: User,
) -> ProcurementRequestDetailResponse:
    request = ProcurementRequest(
        title=payload.title,
        description=payload.description,
        amount=payload.amount,
        requester_id=current_user.id,
        status=RequestStatus.SUBMITTED,
        version=1,
        attachments=list(payload.attachments),
    )
    db.add(request)
    db.commit()

    logger.info("Request %s submitted by %s", request.id, current_user.id)
    return _to_detail_response(_load_request(db, request.id))


def list_requests(
    *,
    status_filter: RequestStatus | None,
    db: Session,
    current_user: User,
) -> ProcurementRequestListResponse:
    query = select(ProcurementRequest).order_by(ProcurementRequest.created_at.desc())

    if current_user.role == Role.REQUESTER:
        query = query.where(ProcurementRequest.requester_id == current_user.id)
    else:
        query = query.where(
            ProcurementRequest.status.in_(
                workflow.actionable_statuses(current_user.role)
            )
        )

    if status_filter:
        query = query.where(ProcurementRequest.status == status_filter)

    requests = db.scalars(query).all()
    return ProcurementRequestListResponse(
        items=[_to_request_response(request) for request in requests]
    )


def get_request(*, request_id: str, db: Session) -> ProcurementRequestDetailResponse:
    return _to_detail_response(_load_request(db, request_id))


def submit_action(
    *,
    request_id: str,
    payload: ActionSubmission,
    db: Session,
    current_user: User,
    settings: Settings,
    observability: ObservabilityService,
) -> ProcurementRequestDetailResponse:
    action = _parse_action(payload.action)
    request = _load_request(db, request_id)

    previous_status = request.status
    if not workflow.can_act(previous_status, current_user.role):
        raise AuthorizationError("Not authorized to approve this request")

    with observability.trace(
        name="workflow_decision",
        input_data={
            "request_id": request.id,
            "action": action.value,
            "status": previous_status.value,
            "role": current_user.role.value,
        },
        metadata={"user_id": current_user.id},
    ) as span:
        next_status = _decide(
            request=request,
            action=action,
            role=current_user.role,
            payload=payload,
            strict=settings.strict_transitions,
        )

        logger.info(
            "Request %s: %s -> %s (%s by %s)",
            request.id,
            previous_status.value,
            next_status.value,
            action.value,
            current_user.role.value,
            extra={
                "request_id": request.id,
                "actor_id": current_user.id,
                "previous_status": previous_status.value,
                "next_status": next_status.value,
            },
        )

        attachments = list(request.attachments or [])
        if action != ActionType.FORWARD and payload.attachments:
            attachments.extend(payload.attachments)

        record_action(
            db,
            request=request,
            actor=current_user,
            action=action,
            previous_status=previous_status,
            new_status=next_status,
            payload=payload,
        )
        _compare_and_swap(
            db,
            request_id=request.id,
            expected_version=request.version,
            next_status=next_status,
            attachments=attachments,
        )
        db.commit()

        observability.annotate(
            span,
            {
                "from_status": previous_status.value,
                "to_status": next_status.value,
                "budget_available": payload.budget_available,
            },
        )

    return _to_detail_response(_load_request(db, request_id))


def _decide(
    *,
    request: ProcurementRequest,
    action: ActionType,
    role: Role,
    payload: ActionSubmission,
    strict: bool,
) -> RequestStatus:
    current = request.status

    # A responder's clarify at its own clarification stage answers it.
    if action == ActionType.CLARIFY and workflow.is_clarification_response(
        current, role
    ):
        action = ActionType.APPROVE

    if (
        action == ActionType.APPROVE
        and workflow.requires_budget_decision(current, role)
        and payload.budget_available is None
    ):
        raise ValidationError("Budget availability must be specified by Accountant")

    context: workflow.DecisionContext | None = None
    if action == ActionType.APPROVE:
        context = workflow.ApproveContext(
            budget_available=payload.budget_available,
            expedited=workflow.is_expedited_path(request),
        )
    elif action == ActionType.CLARIFY:
        context = workflow.ClarifyContext(target=_parse_target(role, payload.target))
    elif action == ActionType.FORWARD:
        context = workflow.ForwardContext(
            expedited=workflow.is_expedited_path(request)
        )

    next_status = workflow.resolve(current, action, role, context)

    unmatched = next_status is None or (
        action == ActionType.FORWARD and next_status == current
    )
    if unmatched:
        if strict:
            raise NoApplicableRuleError(
                f"No {action.value} transition from {current.value} "
                f"for role {role.value}"
            )
        return current
    return next_status


def _compare_and_swap(
    db: Session,
    *,
    request_id: str,
    expected_version: int,
    next_status: RequestStatus,
    attachments: list[str],
) -> None:
    result = db.execute(
        update(ProcurementRequest)
        .where(
            ProcurementRequest.id == request_id,
            ProcurementRequest.version == expected_version,
        )
        .values(
            status=next_status,
            version=expected_version + 1,
            attachments=attachments,
            updated_at=datetime.now(UTC),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise ConcurrentUpdateError()


def _parse_action(raw: str) -> ActionType:
    try:
        return ActionType(raw)
    except ValueError as exc:
        raise ValidationError("Invalid action") from exc


def _parse_target(role: Role, raw: str | None) -> ClarificationTarget | None:
    if not raw:
        return None
    # Deans only ever ask the department reviewers.
    if role == Role.DEAN:
        return ClarificationTarget.DEPARTMENT
    try:
        return ClarificationTarget(raw)
    except ValueError:
        return None
