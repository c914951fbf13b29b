"""Approval state machine for procurement requests.

The rule table, the resolver and the lookups below are pure: they hold no
mutable state and never touch the database. Authorization is the caller's
job (``can_act``); ``resolve`` trusts that it has already been checked.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Protocol

from app.db.models import ActionType, ClarificationTarget, RequestStatus, Role

_DEPARTMENT_ROLES = (Role.MMA, Role.HR, Role.AUDIT, Role.IT)


@dataclass(frozen=True)
class ApproveContext:
    budget_available: bool | None = None
    expedited: bool = False


@dataclass(frozen=True)
class ClarifyContext:
    target: ClarificationTarget | None = None


@dataclass(frozen=True)
class ForwardContext:
    expedited: bool = False


DecisionContext = ApproveContext | ClarifyContext | ForwardContext

_DEFAULT_CONTEXTS: dict[ActionType, DecisionContext] = {
    ActionType.APPROVE: ApproveContext(),
    ActionType.CLARIFY: ClarifyContext(),
    ActionType.FORWARD: ForwardContext(),
}


@dataclass(frozen=True)
class TransitionRule:
    from_status: RequestStatus
    required_role: Role
    to_status: RequestStatus
    action: ActionType = ActionType.APPROVE
    condition: Callable[[DecisionContext], bool] | None = None
    description: str | None = None

    def applies(self, context: DecisionContext) -> bool:
        return self.condition is None or self.condition(context)


@dataclass(frozen=True)
class Progress:
    step: int
    total: int


class _HistoryLike(Protocol):
    previous_status: RequestStatus | None
    new_status: RequestStatus


class _RequestLike(Protocol):
    status: RequestStatus
    history: Iterable[_HistoryLike]


def _budget_available(ctx: DecisionContext) -> bool:
    return getattr(ctx, "budget_available", None) is True


def _budget_unavailable(ctx: DecisionContext) -> bool:
    return getattr(ctx, "budget_available", None) is False


def _expedited(ctx: DecisionContext) -> bool:
    return getattr(ctx, "expedited", False) is True


def _each(
    from_status: RequestStatus,
    roles: Iterable[Role],
    to_status: RequestStatus,
    action: ActionType = ActionType.APPROVE,
) -> tuple[TransitionRule, ...]:
    return tuple(
        TransitionRule(from_status, role, to_status, action) for role in roles
    )


def _manager_clarification_requests(
    from_status: RequestStatus,
) -> tuple[TransitionRule, ...]:
    return tuple(
        TransitionRule(from_status, Role.INSTITUTION_MANAGER, to_status)
        for to_status in (
            RequestStatus.SOP_CLARIFICATION,
            RequestStatus.BUDGET_CLARIFICATION,
        )
    )


APPROVAL_RULES: tuple[TransitionRule, ...] = (
    TransitionRule(
        RequestStatus.SUBMITTED, Role.INSTITUTION_MANAGER, RequestStatus.MANAGER_REVIEW
    ),
    TransitionRule(
        RequestStatus.MANAGER_REVIEW,
        Role.INSTITUTION_MANAGER,
        RequestStatus.SOP_VERIFICATION,
    ),
    # Clarification requests sit after the primary row of their status.
    *_manager_clarification_requests(RequestStatus.MANAGER_REVIEW),
    # Clarification responses return the request to the reviewer who asked.
    TransitionRule(
        RequestStatus.SOP_CLARIFICATION, Role.SOP_VERIFIER, RequestStatus.MANAGER_REVIEW
    ),
    TransitionRule(
        RequestStatus.BUDGET_CLARIFICATION,
        Role.ACCOUNTANT,
        RequestStatus.NO_BUDGET,
        condition=_budget_unavailable,
        description="budget_available is false",
    ),
    TransitionRule(
        RequestStatus.BUDGET_CLARIFICATION,
        Role.ACCOUNTANT,
        RequestStatus.MANAGER_REVIEW,
        condition=_budget_available,
        description="budget_available is true",
    ),
    *_each(
        RequestStatus.DEPARTMENT_CLARIFICATION,
        _DEPARTMENT_ROLES,
        RequestStatus.DEAN_REVIEW,
    ),
    *_each(
        RequestStatus.SOP_VERIFICATION,
        (*_DEPARTMENT_ROLES, Role.SOP_VERIFIER),
        RequestStatus.BUDGET_CHECK,
    ),
    *_manager_clarification_requests(RequestStatus.SOP_VERIFICATION),
    TransitionRule(
        RequestStatus.BUDGET_CHECK,
        Role.ACCOUNTANT,
        RequestStatus.INSTITUTION_VERIFIED,
        condition=_budget_available,
        description="budget_available is true",
    ),
    TransitionRule(
        RequestStatus.BUDGET_CHECK,
        Role.ACCOUNTANT,
        RequestStatus.NO_BUDGET,
        condition=_budget_unavailable,
        description="budget_available is false",
    ),
    *_manager_clarification_requests(RequestStatus.BUDGET_CHECK),
    TransitionRule(
        RequestStatus.INSTITUTION_VERIFIED,
        Role.INSTITUTION_MANAGER,
        RequestStatus.VP_APPROVAL,
    ),
    TransitionRule(
        RequestStatus.NO_BUDGET, Role.INSTITUTION_MANAGER, RequestStatus.DEAN_REVIEW
    ),
    TransitionRule(RequestStatus.VP_APPROVAL, Role.VP, RequestStatus.HOI_APPROVAL),
    TransitionRule(
        RequestStatus.HOI_APPROVAL, Role.HEAD_OF_INSTITUTION, RequestStatus.DEAN_REVIEW
    ),
    TransitionRule(
        RequestStatus.DEAN_REVIEW, Role.DEAN, RequestStatus.DEPARTMENT_CHECKS
    ),
    # Shadowed by the row above for approve; forward carries the expedited hop.
    TransitionRule(
        RequestStatus.DEAN_REVIEW,
        Role.DEAN,
        RequestStatus.CHAIRMAN_APPROVAL,
        condition=_expedited,
        description="expedited path",
    ),
    TransitionRule(
        RequestStatus.DEAN_REVIEW, Role.DEAN, RequestStatus.DEAN_VERIFICATION
    ),
    TransitionRule(
        RequestStatus.DEAN_REVIEW, Role.DEAN, RequestStatus.DEPARTMENT_CLARIFICATION
    ),
    *_each(
        RequestStatus.DEPARTMENT_CHECKS,
        _DEPARTMENT_ROLES,
        RequestStatus.DEAN_VERIFICATION,
    ),
    TransitionRule(
        RequestStatus.DEAN_VERIFICATION,
        Role.DEAN,
        RequestStatus.CHIEF_DIRECTOR_APPROVAL,
    ),
    TransitionRule(
        RequestStatus.CHIEF_DIRECTOR_APPROVAL,
        Role.CHIEF_DIRECTOR,
        RequestStatus.CHAIRMAN_APPROVAL,
    ),
    TransitionRule(
        RequestStatus.CHAIRMAN_APPROVAL, Role.CHAIRMAN, RequestStatus.APPROVED
    ),
    # Forward ladder.
    TransitionRule(
        RequestStatus.NO_BUDGET,
        Role.INSTITUTION_MANAGER,
        RequestStatus.DEAN_REVIEW,
        ActionType.FORWARD,
    ),
    TransitionRule(
        RequestStatus.INSTITUTION_VERIFIED,
        Role.INSTITUTION_MANAGER,
        RequestStatus.VP_APPROVAL,
        ActionType.FORWARD,
    ),
    TransitionRule(
        RequestStatus.VP_APPROVAL, Role.VP, RequestStatus.HOI_APPROVAL, ActionType.FORWARD
    ),
    TransitionRule(
        RequestStatus.HOI_APPROVAL,
        Role.HEAD_OF_INSTITUTION,
        RequestStatus.DEAN_REVIEW,
        ActionType.FORWARD,
    ),
    TransitionRule(
        RequestStatus.DEAN_REVIEW,
        Role.DEAN,
        RequestStatus.CHAIRMAN_APPROVAL,
        ActionType.FORWARD,
        condition=_expedited,
        description="expedited path",
    ),
    TransitionRule(
        RequestStatus.DEAN_REVIEW,
        Role.DEAN,
        RequestStatus.DEPARTMENT_CHECKS,
        ActionType.FORWARD,
    ),
    TransitionRule(
        RequestStatus.DEAN_VERIFICATION,
        Role.DEAN,
        RequestStatus.CHIEF_DIRECTOR_APPROVAL,
        ActionType.FORWARD,
    ),
    TransitionRule(
        RequestStatus.CHIEF_DIRECTOR_APPROVAL,
        Role.CHIEF_DIRECTOR,
        RequestStatus.CHAIRMAN_APPROVAL,
        ActionType.FORWARD,
    ),
)

_CLARIFICATION_ROUTES: dict[tuple[Role, ClarificationTarget], RequestStatus] = {
    (Role.INSTITUTION_MANAGER, ClarificationTarget.SOP): RequestStatus.SOP_CLARIFICATION,
    (
        Role.INSTITUTION_MANAGER,
        ClarificationTarget.ACCOUNTANT,
    ): RequestStatus.BUDGET_CLARIFICATION,
    (Role.DEAN, ClarificationTarget.DEPARTMENT): RequestStatus.DEPARTMENT_CLARIFICATION,
}

_CLARIFICATION_RESPONDERS: dict[RequestStatus, frozenset[Role]] = {
    RequestStatus.SOP_CLARIFICATION: frozenset({Role.SOP_VERIFIER}),
    RequestStatus.BUDGET_CLARIFICATION: frozenset({Role.ACCOUNTANT}),
    RequestStatus.DEPARTMENT_CLARIFICATION: frozenset(_DEPARTMENT_ROLES),
}

_REQUIRED_APPROVERS: dict[RequestStatus, frozenset[Role]] = {
    RequestStatus.SUBMITTED: frozenset({Role.INSTITUTION_MANAGER}),
    RequestStatus.MANAGER_REVIEW: frozenset({Role.INSTITUTION_MANAGER}),
    RequestStatus.SOP_VERIFICATION: frozenset(
        {*_DEPARTMENT_ROLES, Role.SOP_VERIFIER}
    ),
    RequestStatus.BUDGET_CHECK: frozenset({Role.ACCOUNTANT}),
    RequestStatus.NO_BUDGET: frozenset({Role.INSTITUTION_MANAGER}),
    RequestStatus.INSTITUTION_VERIFIED: frozenset({Role.INSTITUTION_MANAGER}),
    RequestStatus.VP_APPROVAL: frozenset({Role.VP}),
    RequestStatus.HOI_APPROVAL: frozenset({Role.HEAD_OF_INSTITUTION}),
    RequestStatus.DEAN_REVIEW: frozenset({Role.DEAN}),
    RequestStatus.DEPARTMENT_CHECKS: frozenset(_DEPARTMENT_ROLES),
    RequestStatus.DEAN_VERIFICATION: frozenset({Role.DEAN}),
    RequestStatus.CHIEF_DIRECTOR_APPROVAL: frozenset({Role.CHIEF_DIRECTOR}),
    RequestStatus.CHAIRMAN_APPROVAL: frozenset({Role.CHAIRMAN}),
    RequestStatus.APPROVED: frozenset(),
    RequestStatus.REJECTED: frozenset(),
    RequestStatus.CLARIFICATION_REQUIRED: frozenset({Role.REQUESTER}),
    RequestStatus.SOP_CLARIFICATION: frozenset(
        {Role.SOP_VERIFIER, *_DEPARTMENT_ROLES}
    ),
    RequestStatus.BUDGET_CLARIFICATION: frozenset({Role.ACCOUNTANT}),
    RequestStatus.DEPARTMENT_CLARIFICATION: frozenset(_DEPARTMENT_ROLES),
}

TERMINAL_STATUSES = frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED})

CLARIFICATION_STATUSES = frozenset(
    {
        RequestStatus.CLARIFICATION_REQUIRED,
        RequestStatus.SOP_CLARIFICATION,
        RequestStatus.BUDGET_CLARIFICATION,
        RequestStatus.DEPARTMENT_CLARIFICATION,
    }
)

CANONICAL_SEQUENCE: tuple[RequestStatus, ...] = (
    RequestStatus.SUBMITTED,
    RequestStatus.MANAGER_REVIEW,
    RequestStatus.SOP_VERIFICATION,
    RequestStatus.BUDGET_CHECK,
    RequestStatus.INSTITUTION_VERIFIED,
    RequestStatus.VP_APPROVAL,
    RequestStatus.HOI_APPROVAL,
    RequestStatus.DEAN_REVIEW,
    RequestStatus.DEPARTMENT_CHECKS,
    RequestStatus.DEAN_VERIFICATION,
    RequestStatus.CHIEF_DIRECTOR_APPROVAL,
    RequestStatus.CHAIRMAN_APPROVAL,
    RequestStatus.APPROVED,
)

_DISPLAY_PATH: tuple[RequestStatus, ...] = (
    RequestStatus.SUBMITTED,
    RequestStatus.MANAGER_REVIEW,
    RequestStatus.SOP_VERIFICATION,
    RequestStatus.BUDGET_CHECK,
    RequestStatus.INSTITUTION_VERIFIED,
    RequestStatus.VP_APPROVAL,
    RequestStatus.HOI_APPROVAL,
    RequestStatus.DEAN_REVIEW,
    RequestStatus.CHIEF_DIRECTOR_APPROVAL,
    RequestStatus.CHAIRMAN_APPROVAL,
    RequestStatus.APPROVED,
)

_EXPEDITED_DISPLAY_PATH: tuple[RequestStatus, ...] = (
    RequestStatus.SUBMITTED,
    RequestStatus.MANAGER_REVIEW,
    RequestStatus.SOP_VERIFICATION,
    RequestStatus.BUDGET_CHECK,
    RequestStatus.NO_BUDGET,
    RequestStatus.DEAN_REVIEW,
    RequestStatus.CHAIRMAN_APPROVAL,
    RequestStatus.APPROVED,
)

STATUS_LABELS: dict[RequestStatus, str] = {
    RequestStatus.SUBMITTED: "Submitted",
    RequestStatus.MANAGER_REVIEW: "Manager Review",
    RequestStatus.SOP_VERIFICATION: "SOP Verification",
    RequestStatus.BUDGET_CHECK: "Budget Check",
    RequestStatus.NO_BUDGET: "No Budget Available",
    RequestStatus.INSTITUTION_VERIFIED: "Institution Verified",
    RequestStatus.VP_APPROVAL: "VP Approval",
    RequestStatus.HOI_APPROVAL: "HOI Approval",
    RequestStatus.DEAN_REVIEW: "Dean Review",
    RequestStatus.DEPARTMENT_CHECKS: "Department Checks",
    RequestStatus.DEAN_VERIFICATION: "Dean Verification",
    RequestStatus.CHIEF_DIRECTOR_APPROVAL: "Chief Director Approval",
    RequestStatus.CHAIRMAN_APPROVAL: "Chairman Approval",
    RequestStatus.APPROVED: "Approved",
    RequestStatus.REJECTED: "Rejected",
    RequestStatus.CLARIFICATION_REQUIRED: "Clarification Required",
    RequestStatus.SOP_CLARIFICATION: "SOP Clarification",
    RequestStatus.BUDGET_CLARIFICATION: "Budget Clarification",
    RequestStatus.DEPARTMENT_CLARIFICATION: "Department Clarification",
}


def resolve(
    current_status: RequestStatus,
    action: ActionType,
    actor_role: Role,
    context: DecisionContext | None = None,
) -> RequestStatus | None:
    """Return the status a request moves to, or ``None`` if no approve rule matches.

    Dispatch is by action first: reject always lands on REJECTED, clarify is
    keyed on role and target only, forward leaves the status unchanged when
    nothing in the ladder applies, and approve walks the rule table in order.
    """
    if action == ActionType.REJECT:
        return RequestStatus.REJECTED

    ctx = context if context is not None else _DEFAULT_CONTEXTS[action]

    if action == ActionType.CLARIFY:
        target = ctx.target if isinstance(ctx, ClarifyContext) else None
        if target is None:
            return RequestStatus.CLARIFICATION_REQUIRED
        return _CLARIFICATION_ROUTES.get(
            (actor_role, target), RequestStatus.CLARIFICATION_REQUIRED
        )

    rule = _first_matching_rule(current_status, action, actor_role, ctx)
    if rule is not None:
        return rule.to_status
    if action == ActionType.FORWARD:
        return current_status
    return None


def _first_matching_rule(
    current_status: RequestStatus,
    action: ActionType,
    actor_role: Role,
    context: DecisionContext,
) -> TransitionRule | None:
    for rule in APPROVAL_RULES:
        if (
            rule.action == action
            and rule.from_status == current_status
            and rule.required_role == actor_role
            and rule.applies(context)
        ):
            return rule
    return None


def rules_for(
    status: RequestStatus, action: ActionType | None = None
) -> list[TransitionRule]:
    return [
        rule
        for rule in APPROVAL_RULES
        if rule.from_status == status and (action is None or rule.action == action)
    ]


def required_approvers(status: RequestStatus) -> frozenset[Role]:
    return _REQUIRED_APPROVERS.get(status, frozenset())


def can_act(status: RequestStatus, role: Role) -> bool:
    return role in required_approvers(status)


def requires_budget_decision(status: RequestStatus, role: Role) -> bool:
    """Accountant decisions at the budget stages must state budget availability."""
    return role == Role.ACCOUNTANT and status in {
        RequestStatus.BUDGET_CHECK,
        RequestStatus.BUDGET_CLARIFICATION,
    }


def is_clarification_response(status: RequestStatus, role: Role) -> bool:
    return role in _CLARIFICATION_RESPONDERS.get(status, frozenset())


def is_clarification_status(status: RequestStatus) -> bool:
    return status in CLARIFICATION_STATUSES


def is_terminal(status: RequestStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_expedited_path(request: _RequestLike) -> bool:
    """True once the request has touched NO_BUDGET anywhere in its history."""
    history = list(request.history or [])
    if not history:
        return request.status == RequestStatus.NO_BUDGET
    return any(
        RequestStatus.NO_BUDGET in (entry.previous_status, entry.new_status)
        for entry in history
    )


def progress(status: RequestStatus) -> Progress:
    total = len(CANONICAL_SEQUENCE)
    try:
        step = CANONICAL_SEQUENCE.index(status) + 1
    except ValueError:
        step = 0
    return Progress(step=max(step, 1), total=total)


def workflow_steps(expedited: bool) -> tuple[RequestStatus, ...]:
    return _EXPEDITED_DISPLAY_PATH if expedited else _DISPLAY_PATH


def actionable_statuses(role: Role) -> list[RequestStatus]:
    return [status for status in RequestStatus if can_act(status, role)]
