from pydantic import BaseModel, EmailStr

from app.db.models import RequestStatus, Role


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role


class MeResponse(BaseModel):
    id: str
    email: EmailStr
    full_name: str
    role: Role
    actionable_statuses: list[RequestStatus]
