from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import (
    get_app_settings,
    get_current_user,
    get_observability,
    require_roles,
)
from app.core.config import Settings
from app.db.models import RequestStatus, Role, User
from app.db.session import get_db
from app.schemas.requests import (
    ActionSubmission,
    ProcurementRequestCreate,
    ProcurementRequestDetailResponse,
    ProcurementRequestListResponse,
)
from app.services import request_service
from app.services.observability_service import ObservabilityService

router = APIRouter(prefix="/requests", tags=["requests"])


@router.post("", response_model=ProcurementRequestDetailResponse, status_code=201)
def create_request(
    payload: ProcurementRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.REQUESTER)),
) -> ProcurementRequestDetailResponse:
    return request_service.create_request(
        payload=payload, db=db, current_user=current_user
    )


@router.get("", response_model=ProcurementRequestListResponse)
def list_requests(
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ProcurementRequestListResponse:
    return request_service.list_requests(
        status_filter=status_filter, db=db, current_user=current_user
    )


@router.get("/{request_id}", response_model=ProcurementRequestDetailResponse)
def get_request(
    request_id: str,
    db: Session = Depends(get_db),
    _current_user: User = Depends(get_current_user),
) -> ProcurementRequestDetailResponse:
    return request_service.get_request(request_id=request_id, db=db)


@router.post("/{request_id}/approve", response_model=ProcurementRequestDetailResponse)
def submit_action(
    request_id: str,
    payload: ActionSubmission,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    observability: ObservabilityService = Depends(get_observability),
) -> ProcurementRequestDetailResponse:
    return request_service.submit_action(
        request_id=request_id,
        payload=payload,
        db=db,
        current_user=current_user,
        settings=settings,
        observability=observability,
    )
