from fastapi import APIRouter, Depends

from app.api.deps import get_current_user
from app.db.models import User
from app.schemas.workflow import TransitionRuleResponse, WorkflowRulesResponse
from app.services import workflow

router = APIRouter(prefix="/workflow", tags=["workflow"])


@router.get("/rules", response_model=WorkflowRulesResponse)
def get_rules(_current_user: User = Depends(get_current_user)) -> WorkflowRulesResponse:
    return WorkflowRulesResponse(
        rules=[
            TransitionRuleResponse(
                from_status=rule.from_status,
                required_role=rule.required_role,
                to_status=rule.to_status,
                action=rule.action,
                condition=rule.description,
            )
            for rule in workflow.APPROVAL_RULES
        ],
        required_approvers={
            status: sorted(
                workflow.required_approvers(status), key=lambda role: role.value
            )
            for status in workflow.STATUS_LABELS
        },
        canonical_sequence=list(workflow.CANONICAL_SEQUENCE),
        status_labels=dict(workflow.STATUS_LABELS),
    )
