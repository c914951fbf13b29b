from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.security import create_access_token, verify_password
from app.db.models import User
from app.schemas.auth import LoginRequest, MeResponse, TokenResponse
from app.services.workflow import actionable_statuses

logger = logging.getLogger(__name__)


def login(*, payload: LoginRequest, db: Session) -> TokenResponse:
    user = db.scalar(select(User).where(User.email == payload.email))
    if (
        not user
        or not user.is_active
        or not verify_password(payload.password, user.hashed_password)
    ):
        logger.info("Rejected login for %s", payload.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )

    token = create_access_token(subject=user.id, role=user.role)
    return TokenResponse(access_token=token, role=user.role)


def me(*, user: User) -> MeResponse:
    return MeResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        actionable_statuses=actionable_statuses(user.role),
    )
