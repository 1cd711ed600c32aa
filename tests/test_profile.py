"""Profile module tests — own record and self-service password change."""

from __future__ import annotations

from sqlalchemy import select

from leave_portal.auth.service import check_password
from leave_portal.common.constants import UserRole
from leave_portal.common.models import AuditLog
from leave_portal.users.models import User
from tests.conftest import TestSessionFactory, auth_headers_for, role_headers


async def test_get_profile(client, employee):
    resp = await client.get("/api/profile", headers=auth_headers_for(employee))
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "data": {
            "employeeId": employee["employee_id"],
            "firstName": "Somchai",
            "lastName": "Dee",
            "email": "somchai.dee@example.com",
            "company": "ACME",
            "department": "Engineering",
            "role": "EMPLOYEE",
            "gender": "F",
            "startDate": "2022-04-01",
        },
    }


async def test_get_profile_for_deleted_row_is_404(client):
    resp = await client.get("/api/profile", headers=role_headers(UserRole.EMPLOYEE, user_id=777))
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


async def test_get_profile_anonymous_is_401(client, gateway):
    resp = await client.get("/api/profile")
    assert resp.status_code == 401
    assert gateway.calls == []


async def test_change_password(client, employee):
    resp = await client.post(
        "/api/profile/password",
        json={"currentPassword": "secret123", "newPassword": "better-secret"},
        headers=auth_headers_for(employee),
    )
    assert resp.status_code == 200

    async with TestSessionFactory() as session:
        user = await session.get(User, employee["id"])
        audit = (await session.execute(select(AuditLog))).scalar_one()
    assert check_password("better-secret", user.password)
    assert audit.action == "CHANGE_PASSWORD"
    assert audit.target_id == employee["id"]


async def test_change_password_wrong_current(client, employee):
    resp = await client.post(
        "/api/profile/password",
        json={"currentPassword": "nope", "newPassword": "better-secret"},
        headers=auth_headers_for(employee),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_current_password"


async def test_change_password_too_short(client, employee, gateway):
    resp = await client.post(
        "/api/profile/password",
        json={"currentPassword": "secret123", "newPassword": "12345"},
        headers=auth_headers_for(employee),
    )
    assert resp.status_code == 400
    assert "newPassword" in resp.json()["errors"]
    assert gateway.calls == []
