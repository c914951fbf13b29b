from app.api.auth import router as auth_router
from app.api.requests import router as requests_router
from app.api.workflow import router as workflow_router

__all__ = [
    "auth_router",
    "requests_router",
    "workflow_router",
]
