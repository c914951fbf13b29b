from app.core.security import create_access_token, decode_access_token
from app.db.models import Role

from tests.conftest import PASSWORD, email_for


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_login_returns_bearer_token(client, users):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": email_for(Role.DEAN), "password": PASSWORD},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["role"] == "dean"
    assert decode_access_token(body["access_token"])["sub"] == users[Role.DEAN].id


def test_login_rejects_wrong_password(client, users):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": email_for(Role.DEAN), "password": "not-the-password"},
    )
    assert response.status_code == 401


def test_me_lists_actionable_statuses(client, auth_headers):
    response = client.get("/api/v1/auth/me", headers=auth_headers(Role.DEAN))

    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "dean"
    assert body["actionable_statuses"] == ["dean_review", "dean_verification"]


def test_invalid_token_is_unauthorized(client, users):
    response = client.get(
        "/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


def test_token_round_trip_keeps_role():
    token = create_access_token(subject="user-1", role=Role.ACCOUNTANT)
    payload = decode_access_token(token)
    assert payload["sub"] == "user-1"
    assert payload["role"] == "accountant"


def test_workflow_rules_are_published(client, auth_headers):
    response = client.get(
        "/api/v1/workflow/rules", headers=auth_headers(Role.REQUESTER)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["canonical_sequence"][0] == "submitted"
    assert body["canonical_sequence"][-1] == "approved"
    assert body["required_approvers"]["approved"] == []
    assert body["required_approvers"]["budget_check"] == ["accountant"]

    budget_rules = [
        rule
        for rule in body["rules"]
        if rule["from_status"] == "budget_check"
        and rule["action"] == "approve"
        and rule["required_role"] == "accountant"
    ]
    assert [(rule["to_status"], rule["condition"]) for rule in budget_rules] == [
        ("institution_verified", "budget_available is true"),
        ("no_budget", "budget_available is false"),
    ]


def test_published_rules_include_clarification_requests(client, auth_headers):
    body = client.get(
        "/api/v1/workflow/rules", headers=auth_headers(Role.DEAN)
    ).json()

    edges = {
        (rule["from_status"], rule["required_role"], rule["to_status"])
        for rule in body["rules"]
    }
    assert ("dean_review", "dean", "department_clarification") in edges
    assert ("budget_check", "institution_manager", "budget_clarification") in edges
