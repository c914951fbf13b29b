from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.db.models import ActionType, RequestStatus, Role


class ProcurementRequestCreate(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=8, max_length=5000)
    amount: Decimal | None = Field(default=None, ge=0)
    attachments: list[str] = Field(default_factory=list)


class ActionSubmission(BaseModel):
    # Kept as plain strings so unknown values surface as 400, not 422.
    action: str
    notes: str | None = Field(default=None, max_length=2000)
    budget_available: bool | None = None
    forwarded_message: str | None = Field(default=None, max_length=2000)
    attachments: list[str] | None = None
    target: str | None = Field(default=None, max_length=40)


class ProgressResponse(BaseModel):
    step: int
    total: int


class HistoryEntryResponse(BaseModel):
    id: str
    action: ActionType
    actor_id: str | None
    actor_name: str | None
    actor_role: Role
    previous_status: RequestStatus
    new_status: RequestStatus
    notes: str | None
    budget_available: bool | None
    forwarded_message: str | None
    target: str | None
    attachments: list[str] | None
    timestamp: datetime


class ProcurementRequestResponse(BaseModel):
    id: str
    title: str
    description: str
    amount: Decimal | None
    requester_id: str
    status: RequestStatus
    status_label: str
    version: int
    attachments: list[str]
    created_at: datetime
    updated_at: datetime


class ProcurementRequestDetailResponse(ProcurementRequestResponse):
    requester_name: str | None
    expedited: bool
    awaiting_clarification: bool
    progress: ProgressResponse
    required_approvers: list[Role]
    workflow_steps: list[RequestStatus]
    history: list[HistoryEntryResponse]


class ProcurementRequestListResponse(BaseModel):
    items: list[ProcurementRequestResponse]
