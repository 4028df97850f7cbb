"""
Integration tests for the department portal endpoints.
"""

import pytest

from helpdesk.models.ticket import CommentVisibility, TicketStatus
from tests.factories import CommentFactory, TicketFactory, UserFactory, auth_headers


class TestClientTickets:

    @pytest.mark.asyncio
    async def test_admin_denied(self, client, db_session):
        admin = await UserFactory.create_admin(db_session)
        headers = await auth_headers(db_session, admin)

        assert (await client.get("/api/client/tickets", headers=headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_create_overrides_priority_and_department(self, client, db_session):
        user = await UserFactory.create_department(db_session, department="Radiology")
        headers = await auth_headers(db_session, user)

        response = await client.post(
            "/api/client/tickets",
            json={
                "title": "PACS viewer slow",
                "description": "Images take a minute to load.",
                "reporter_name": "Chief Of Staff",
                "priority": "critical",
                "reporter_department": "Cardiology",
            },
            headers=headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["priority"] == "unset"
        assert data["status"] == "open"
        assert data["reporter_department"] == "Radiology"
        assert data["reporter_name"] == user.username

    @pytest.mark.asyncio
    async def test_lists_only_own_tickets(self, client, db_session):
        user = await UserFactory.create_department(db_session)
        other = await UserFactory.create_department(db_session, department="Pharmacy")
        await TicketFactory.create(db_session, reporter=user)
        await TicketFactory.create(db_session, reporter=other)
        headers = await auth_headers(db_session, user)

        response = await client.get("/api/client/tickets", headers=headers)

        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_foreign_ticket_not_found(self, client, db_session):
        user = await UserFactory.create_department(db_session)
        other = await UserFactory.create_department(db_session, department="Pharmacy")
        ticket = await TicketFactory.create(db_session, reporter=other)
        headers = await auth_headers(db_session, user)

        assert (await client.get(f"/api/client/tickets/{ticket.id}", headers=headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_status_in_progress_rejected(self, client, db_session):
        user = await UserFactory.create_department(db_session)
        ticket = await TicketFactory.create(db_session, reporter=user)
        headers = await auth_headers(db_session, user)

        response = await client.patch(
            f"/api/client/tickets/{ticket.id}/status",
            json={"status": "in_progress"},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Department users cannot set status to: in_progress"

    @pytest.mark.asyncio
    async def test_close_own_ticket(self, client, db_session):
        user = await UserFactory.create_department(db_session)
        ticket = await TicketFactory.create(db_session, reporter=user)
        headers = await auth_headers(db_session, user)

        response = await client.patch(
            f"/api/client/tickets/{ticket.id}/status",
            json={"status": "closed"},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "closed"


class TestClientComments:

    @pytest.mark.asyncio
    async def test_internal_notes_hidden(self, client, db_session):
        user = await UserFactory.create_department(db_session)
        ticket = await TicketFactory.create(db_session, reporter=user)
        await CommentFactory.create(db_session, ticket, content="We replaced the cable")
        await CommentFactory.create(
            db_session, ticket, content="User unplugged it", visibility=CommentVisibility.INTERNAL
        )
        headers = await auth_headers(db_session, user)

        response = await client.get(f"/api/client/tickets/{ticket.id}/comments", headers=headers)

        assert response.status_code == 200
        assert [c["content"] for c in response.json()] == ["We replaced the cable"]

    @pytest.mark.asyncio
    async def test_comment_moves_ticket_to_waiting_on_admin(self, client, db_session):
        user = await UserFactory.create_department(db_session)
        ticket = await TicketFactory.create(
            db_session, reporter=user, status=TicketStatus.WAITING_ON_DEPARTMENT
        )
        headers = await auth_headers(db_session, user)

        response = await client.post(
            f"/api/client/tickets/{ticket.id}/comments",
            json={"content": "Here is the serial number", "visibility": "internal"},
            headers=headers,
        )

        assert response.status_code == 201
        assert response.json()["visibility"] == "public"
        fetched = await client.get(f"/api/client/tickets/{ticket.id}", headers=headers)
        assert fetched.json()["status"] == "waiting_on_admin"

    @pytest.mark.asyncio
    async def test_empty_comment_rejected(self, client, db_session):
        user = await UserFactory.create_department(db_session)
        ticket = await TicketFactory.create(db_session, reporter=user)
        headers = await auth_headers(db_session, user)

        response = await client.post(
            f"/api/client/tickets/{ticket.id}/comments", json={"content": ""}, headers=headers
        )

        assert response.status_code == 400
