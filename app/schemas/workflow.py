from pydantic import BaseModel

from app.db.models import ActionType, RequestStatus, Role


class TransitionRuleResponse(BaseModel):
    from_status: RequestStatus
    required_role: Role
    to_status: RequestStatus
    action: ActionType
    condition: str | None


class WorkflowRulesResponse(BaseModel):
    rules: list[TransitionRuleResponse]
    required_approvers: dict[RequestStatus, list[Role]]
    canonical_sequence: list[RequestStatus]
    status_labels: dict[RequestStatus, str]
