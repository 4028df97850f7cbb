"""
Integration tests for account management endpoints.
"""

import pytest

from tests.factories import UserFactory, auth_headers


NEW_USER = {
    "username": "lab_desk",
    "email": "lab@example.com",
    "password": "Secure#Pass1",
    "role": "department",
    "department": "Laboratory",
}


class TestUsersAccess:

    @pytest.mark.asyncio
    async def test_plain_admin_denied(self, client, db_session):
        admin = await UserFactory.create_admin(db_session)
        headers = await auth_headers(db_session, admin)

        assert (await client.get("/api/users", headers=headers)).status_code == 403


class TestUsersCrud:

    @pytest.mark.asyncio
    async def test_create_and_list(self, client, db_session):
        root = await UserFactory.create_super_admin(db_session)
        headers = await auth_headers(db_session, root)

        created = await client.post("/api/users", json=NEW_USER, headers=headers)
        assert created.status_code == 201
        assert "hashed_password" not in created.json()
        assert "password" not in created.json()

        listed = await client.get("/api/users", headers=headers)
        assert "lab_desk" in [u["username"] for u in listed.json()]

    @pytest.mark.asyncio
    async def test_weak_password_rejected(self, client, db_session):
        root = await UserFactory.create_super_admin(db_session)
        headers = await auth_headers(db_session, root)

        response = await client.post(
            "/api/users", json={**NEW_USER, "password": "password"}, headers=headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_duplicate_username_conflict(self, client, db_session):
        root = await UserFactory.create_super_admin(db_session)
        await UserFactory.create(db_session, username="lab_desk")
        headers = await auth_headers(db_session, root)

        response = await client.post("/api/users", json=NEW_USER, headers=headers)

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_demoted_admin_loses_access_immediately(self, client, db_session):
        root = await UserFactory.create_super_admin(db_session)
        other_root = await UserFactory.create_super_admin(db_session)
        root_headers = await auth_headers(db_session, root)
        other_headers = await auth_headers(db_session, other_root)

        response = await client.patch(
            f"/api/users/{other_root.id}", json={"role": "admin"}, headers=root_headers
        )
        assert response.status_code == 200

        assert (await client.get("/api/users", headers=other_headers)).status_code == 401

    @pytest.mark.asyncio
    async def test_last_super_admin_guard(self, client, db_session):
        root = await UserFactory.create_super_admin(db_session)
        headers = await auth_headers(db_session, root)

        response = await client.post(f"/api/users/{root.id}/toggle-status", headers=headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_delete_and_unlock_and_reset(self, client, db_session):
        root = await UserFactory.create_super_admin(db_session)
        locked = await UserFactory.create_admin(db_session, login_attempts=5)
        doomed = await UserFactory.create_admin(db_session)
        headers = await auth_headers(db_session, root)

        unlocked = await client.post(f"/api/users/{locked.id}/unlock", headers=headers)
        assert unlocked.json()["login_attempts"] == 0

        reset = await client.post(
            f"/api/users/{locked.id}/reset-password",
            json={"new_password": "Fresh#Start9"},
            headers=headers,
        )
        assert reset.status_code == 200

        deleted = await client.delete(f"/api/users/{doomed.id}", headers=headers)
        assert deleted.json()["status"] == "deleted"

        assert (await client.get(f"/api/users/{doomed.id}", headers=headers)).status_code == 200
        assert (await client.delete(f"/api/users/{doomed.id}", headers=headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_locked_user_can_log_in_after_unlock(self, client, db_session):
        root = await UserFactory.create_super_admin(db_session)
        await UserFactory.create_admin(db_session, username="locked_out", login_attempts=5)
        headers = await auth_headers(db_session, root)
        credentials = {"username": "locked_out", "password": "Secure#Pass1"}

        assert (await client.post("/api/auth/login", json=credentials)).status_code == 401

        target = [
            u for u in (await client.get("/api/users", headers=headers)).json()
            if u["username"] == "locked_out"
        ][0]
        await client.post(f"/api/users/{target['id']}/unlock", headers=headers)

        assert (await client.post("/api/auth/login", json=credentials)).status_code == 200
