"""
Integration tests for the admin console endpoints.
"""

import pytest

from helpdesk.models.ticket import CommentVisibility, TicketStatus
from helpdesk.models.user import UserStatus
from tests.factories import CommentFactory, TicketFactory, UserFactory, auth_headers


class TestAdminAccess:

    @pytest.mark.asyncio
    async def test_department_denied(self, client, db_session):
        user = await UserFactory.create_department(db_session)
        headers = await auth_headers(db_session, user)

        response = await client.get("/api/admin/tickets", headers=headers)

        assert response.status_code == 403
        assert response.json()["message"] == "You do not have permission to access this page"

    @pytest.mark.asyncio
    async def test_anonymous_denied(self, client):
        assert (await client.get("/api/admin/tickets")).status_code == 401


class TestAdminTickets:

    @pytest.mark.asyncio
    async def test_list_with_status_filter(self, client, db_session):
        admin = await UserFactory.create_admin(db_session)
        await TicketFactory.create(db_session, status=TicketStatus.OPEN)
        await TicketFactory.create(db_session, status=TicketStatus.CLOSED)
        headers = await auth_headers(db_session, admin)

        response = await client.get("/api/admin/tickets?status=closed", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["status"] == "closed"

    @pytest.mark.asyncio
    async def test_create_ticket(self, client, db_session):
        admin = await UserFactory.create_admin(db_session, username="desk_admin")
        headers = await auth_headers(db_session, admin)

        response = await client.post(
            "/api/admin/tickets",
            json={
                "title": "Quarterly printer service",
                "description": "Service all printers on floor 3.",
                "reporter_department": "Facilities",
                "priority": "low",
            },
            headers=headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["is_admin_created"] is True
        assert data["reporter_name"] == "desk_admin"
        assert data["priority"] == "low"

    @pytest.mark.asyncio
    async def test_patch_assign_inactive_conflict(self, client, db_session):
        admin = await UserFactory.create_admin(db_session)
        inactive = await UserFactory.create_admin(db_session, status=UserStatus.INACTIVE)
        ticket = await TicketFactory.create(db_session)
        headers = await auth_headers(db_session, admin)

        response = await client.patch(
            f"/api/admin/tickets/{ticket.id}",
            json={"status": "in_progress", "assigned_to": inactive.id},
            headers=headers,
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Cannot assign to inactive or non-existent user"

        fetched = await client.get(f"/api/admin/tickets/{ticket.id}", headers=headers)
        assert fetched.json()["status"] == "open"

    @pytest.mark.asyncio
    async def test_patch_and_audit_trail(self, client, db_session):
        admin = await UserFactory.create_admin(db_session)
        ticket = await TicketFactory.create(db_session)
        headers = await auth_headers(db_session, admin)

        response = await client.patch(
            f"/api/admin/tickets/{ticket.id}",
            json={"status": "in_progress", "priority": "high", "assigned_to": admin.id},
            headers=headers,
        )
        assert response.status_code == 200

        trail = await client.get(f"/api/admin/audit/targets/ticket/{ticket.id}", headers=headers)
        assert trail.status_code == 200
        entry = trail.json()["items"][0]
        assert entry["action"] == "TICKET_UPDATED"
        assert set(entry["details"]["changes"]) == {"status", "priority", "assigned_to_id"}

    @pytest.mark.asyncio
    async def test_unknown_ticket(self, client, db_session):
        admin = await UserFactory.create_admin(db_session)
        headers = await auth_headers(db_session, admin)

        response = await client.get("/api/admin/tickets/999", headers=headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_status_value(self, client, db_session):
        admin = await UserFactory.create_admin(db_session)
        ticket = await TicketFactory.create(db_session)
        headers = await auth_headers(db_session, admin)

        response = await client.patch(
            f"/api/admin/tickets/{ticket.id}", json={"status": "escalated"}, headers=headers
        )

        assert response.status_code == 400


class TestAdminComments:

    @pytest.mark.asyncio
    async def test_internal_note_visible_to_admin(self, client, db_session):
        admin = await UserFactory.create_admin(db_session)
        ticket = await TicketFactory.create(db_session)
        headers = await auth_headers(db_session, admin)

        created = await client.post(
            f"/api/admin/tickets/{ticket.id}/comments",
            json={"content": "Waiting on vendor", "visibility": "internal"},
            headers=headers,
        )
        assert created.status_code == 201

        listed = await client.get(f"/api/admin/tickets/{ticket.id}/comments", headers=headers)
        assert [c["visibility"] for c in listed.json()] == ["internal"]

    @pytest.mark.asyncio
    async def test_audit_by_actor(self, client, db_session):
        admin = await UserFactory.create_admin(db_session)
        ticket = await TicketFactory.create(db_session)
        await CommentFactory.create(db_session, ticket, visibility=CommentVisibility.PUBLIC)
        headers = await auth_headers(db_session, admin)

        await client.post(
            f"/api/admin/tickets/{ticket.id}/comments",
            json={"content": "Checked the cable"},
            headers=headers,
        )
        response = await client.get(f"/api/admin/audit/actors/{admin.id}", headers=headers)

        assert response.status_code == 200
        assert response.json()["items"][0]["action"] == "COMMENT_ADDED"

    @pytest.mark.asyncio
    async def test_invalid_audit_target_type(self, client, db_session):
        admin = await UserFactory.create_admin(db_session)
        headers = await auth_headers(db_session, admin)

        response = await client.get("/api/admin/audit/targets/invoice/1", headers=headers)

        assert response.status_code == 400
