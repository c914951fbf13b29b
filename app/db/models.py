from __future__ import annotations

import enum
from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class Role(str, enum.Enum):
    REQUESTER = "requester"
    INSTITUTION_MANAGER = "institution_manager"
    SOP_VERIFIER = "sop_verifier"
    ACCOUNTANT = "accountant"
    VP = "vp"
    HEAD_OF_INSTITUTION = "head_of_institution"
    DEAN = "dean"
    MMA = "mma"
    HR = "hr"
    AUDIT = "audit"
    IT = "it"
    CHIEF_DIRECTOR = "chief_director"
    CHAIRMAN = "chairman"


class RequestStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    MANAGER_REVIEW = "manager_review"
    SOP_VERIFICATION = "sop_verification"
    BUDGET_CHECK = "budget_check"
    NO_BUDGET = "no_budget"
    INSTITUTION_VERIFIED = "institution_verified"
    VP_APPROVAL = "vp_approval"
    HOI_APPROVAL = "hoi_approval"
    DEAN_REVIEW = "dean_review"
    DEPARTMENT_CHECKS = "department_checks"
    DEAN_VERIFICATION = "dean_verification"
    CHIEF_DIRECTOR_APPROVAL = "chief_director_approval"
    CHAIRMAN_APPROVAL = "chairman_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    CLARIFICATION_REQUIRED = "clarification_required"
    SOP_CLARIFICATION = "sop_clarification"
    BUDGET_CLARIFICATION = "budget_clarification"
    DEPARTMENT_CLARIFICATION = "department_clarification"


class ActionType(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    CLARIFY = "clarify"
    FORWARD = "forward"


class ClarificationTarget(str, enum.Enum):
    SOP = "sop"
    ACCOUNTANT = "accountant"
    DEPARTMENT = "department"


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    role: Mapped[Role] = mapped_column(Enum(Role, name="role_enum"), nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )


class ProcurementRequest(Base):
    __tablename__ = "procurement_requests"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    requester_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus, name="request_status_enum"),
        nullable=False,
        default=RequestStatus.SUBMITTED,
        index=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    attachments: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    requester: Mapped[User] = relationship()
    history: Mapped[list[RequestHistoryEntry]] = relationship(
        back_populates="request",
        cascade="all,delete",
        order_by="RequestHistoryEntry.sequence",
    )


class RequestHistoryEntry(Base):
    __tablename__ = "request_history"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    request_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("procurement_requests.id"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[ActionType] = mapped_column(
        Enum(ActionType, name="action_type_enum"), nullable=False
    )
    actor_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=True
    )
    actor_role: Mapped[Role] = mapped_column(
        Enum(Role, name="role_enum"), nullable=False
    )
    previous_status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus, name="request_status_enum"), nullable=False
    )
    new_status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus, name="request_status_enum"), nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    budget_available: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    forwarded_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    target: Mapped[str | None] = mapped_column(String(40), nullable=True)
    attachments: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    request: Mapped[ProcurementRequest] = relationship(back_populates="history")
    actor: Mapped[User | None] = relationship()
