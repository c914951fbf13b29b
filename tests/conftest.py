"""
Shared fixtures for the approval service tests.

The environment is configured before the app is imported so the cached
settings and engine point at a throwaway SQLite database.
"""

import os
import tempfile
from collections.abc import Callable, Iterator

import pytest

_DB_DIR = tempfile.mkdtemp(prefix="approval-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/approval.db"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["APP_ENV"] = "test"
os.environ["SEED_DEFAULT_USERS"] = "false"
os.environ["LANGFUSE_ENABLED"] = "false"
os.environ["STRICT_TRANSITIONS"] = "true"

from fastapi.testclient import TestClient  # noqa: E402
from httpx import Response  # noqa: E402

from app.core.security import get_password_hash  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.models import Role, User  # noqa: E402
from app.db.session import get_engine, get_session_factory  # noqa: E402
from app.main import app  # noqa: E402

PASSWORD = "correct-horse-battery"
_PASSWORD_HASH = get_password_hash(PASSWORD)


def email_for(role: Role) -> str:
    return f"{role.value}@university.edu"


@pytest.fixture(scope="session")
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def _reset_db(client) -> Iterator[None]:
    engine = get_engine()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    with get_session_factory()() as session:
        yield session


@pytest.fixture
def users(db_session) -> dict[Role, User]:
    """One active user per role."""
    created = {}
    for role in Role:
        user = User(
            email=email_for(role),
            full_name=f"Test {role.value.replace('_', ' ').title()}",
            role=role,
            hashed_password=_PASSWORD_HASH,
        )
        db_session.add(user)
        created[role] = user
    db_session.commit()
    return created


@pytest.fixture
def auth_headers(client, users) -> Callable[[Role], dict[str, str]]:
    tokens: dict[Role, str] = {}

    def _headers(role: Role) -> dict[str, str]:
        if role not in tokens:
            response = client.post(
                "/api/v1/auth/login",
                json={"email": email_for(role), "password": PASSWORD},
            )
            assert response.status_code == 200, response.text
            tokens[role] = response.json()["access_token"]
        return {"Authorization": f"Bearer {tokens[role]}"}

    return _headers


@pytest.fixture
def new_request(client, auth_headers) -> Callable[..., dict]:
    def _create(title: str = "Lab microscopes", **extra) -> dict:
        body = {
            "title": title,
            "description": "Two microscopes for the biology teaching lab",
            "amount": "4200.00",
            **extra,
        }
        response = client.post(
            "/api/v1/requests", json=body, headers=auth_headers(Role.REQUESTER)
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def act(client, auth_headers) -> Callable[..., Response]:
    """Submit an action as ``role`` and return the raw response."""

    def _act(request_id: str, role: Role, action: str, **body):
        return client.post(
            f"/api/v1/requests/{request_id}/approve",
            json={"action": action, **body},
            headers=auth_headers(role),
        )

    return _act
