from sqlalchemy.orm import Session

from app.db.models import (
    ActionType,
    ProcurementRequest,
    RequestHistoryEntry,
    RequestStatus,
    User,
)
from app.schemas.requests import ActionSubmission


def record_action(
    db: Session,
    *,
    request: ProcurementRequest,
    actor: User,
    action: ActionType,
    previous_status: RequestStatus,
    new_status: RequestStatus,
    payload: ActionSubmission,
) -> RequestHistoryEntry:
    """Append one entry to the request history.

    Forward entries carry the forwarded message and their own attachments;
    every other action keeps notes and the budget decision, with attachments
    going to the request itself.
    """
    entry = RequestHistoryEntry(
        request_id=request.id,
        sequence=len(request.history) + 1,
        action=action,
        actor_id=actor.id,
        actor_role=actor.role,
        previous_status=previous_status,
        new_status=new_status,
        target=payload.target if action == ActionType.CLARIFY else None,
    )

    if action == ActionType.FORWARD:
        entry.forwarded_message = payload.forwarded_message or payload.notes or ""
        if payload.attachments:
            entry.attachments = list(payload.attachments)
    else:
        entry.notes = payload.notes or None
        entry.budget_available = payload.budget_available

    db.add(entry)
    return entry
