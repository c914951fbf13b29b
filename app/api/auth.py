from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.db.models import User
from app.db.session import get_db
from app.schemas.auth import LoginRequest, MeResponse, TokenResponse
from app.services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Exchange credentials for a bearer token",
)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    return auth_service.login(payload=payload, db=db)


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Current user and the stages they act on",
)
def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    return auth_service.me(user=current_user)
