"""
Integration tests for authentication endpoints.

Covers the full session flow through the HTTP layer: login, /me,
logout, and a session that dies when its account is deactivated.
"""

import pytest

from helpdesk.dao.user import UserDAO
from helpdesk.models.user import UserStatus
from tests.factories import DEFAULT_PASSWORD, UserFactory


async def _login(client, username, password=DEFAULT_PASSWORD):
    return await client.post("/api/auth/login", json={"username": username, "password": password})


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_success(self, client, db_session):
        await UserFactory.create_admin(db_session, username="jdoe")

        response = await _login(client, "jdoe")

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["username"] == "jdoe"
        assert data["user"]["role"] == "admin"
        assert "hashed_password" not in data["user"]
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_rejections_are_indistinguishable(self, client, db_session):
        await UserFactory.create_admin(db_session, username="jdoe")
        await UserFactory.create_admin(db_session, username="retired", status=UserStatus.INACTIVE)

        unknown = await _login(client, "nobody")
        wrong = await _login(client, "jdoe", "Wrong#Pass1")
        inactive = await _login(client, "retired")

        assert unknown.status_code == wrong.status_code == inactive.status_code == 401
        assert unknown.json() == wrong.json() == inactive.json()

    @pytest.mark.asyncio
    async def test_failed_attempt_persists_counter(self, client, db_session):
        user = await UserFactory.create_admin(db_session, username="jdoe")

        await _login(client, "jdoe", "Wrong#Pass1")

        refreshed = await UserDAO(db_session).get_by_id(user.id)
        assert refreshed.login_attempts == 1

    @pytest.mark.asyncio
    async def test_missing_fields(self, client):
        response = await client.post("/api/auth/login", json={"username": "jdoe"})

        assert response.status_code == 400
        fields = [e["field"] for e in response.json()["details"]["errors"]]
        assert "body.password" in fields


class TestSession:

    @pytest.mark.asyncio
    async def test_me_requires_session(self, client):
        response = await client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["message"] == "Please log in to access this page"

    @pytest.mark.asyncio
    async def test_me_and_logout(self, client, db_session):
        await UserFactory.create_department(db_session, username="radiology")
        token = (await _login(client, "radiology")).json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        me = await client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json()["role"] == "department"

        assert (await client.post("/api/auth/logout", headers=headers)).status_code == 204
        assert (await client.get("/api/auth/me", headers=headers)).status_code == 401

    @pytest.mark.asyncio
    async def test_deactivated_account_session_denied(self, client, db_session):
        user = await UserFactory.create_department(db_session, username="radiology")
        token = (await _login(client, "radiology")).json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        await UserDAO(db_session).update(user.id, status=UserStatus.INACTIVE)
        await db_session.commit()

        response = await client.get("/api/client/tickets", headers=headers)
        assert response.status_code == 403
        assert response.json()["details"] is None

        # The session is gone, so the next request is simply unauthenticated
        assert (await client.get("/api/auth/me", headers=headers)).status_code == 401
