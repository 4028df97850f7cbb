"""
Integration tests for anonymous ticket submission.
"""

import pytest

from helpdesk.dao.ticket import TicketDAO
from helpdesk.models.ticket import TicketPriority, TicketStatus


VALID_SUBMISSION = {
    "title": "Badge reader broken",
    "description": "The badge reader at the east entrance rejects every card.",
    "reporter_name": "Sam Lee",
    "reporter_department": "Security",
    "reporter_phone": "+1 (555) 010-2000",
}


class TestPublicSubmission:

    @pytest.mark.asyncio
    async def test_submit_returns_receipt_only(self, client, db_session):
        response = await client.post("/api/public/tickets", json=VALID_SUBMISSION)

        assert response.status_code == 201
        data = response.json()
        assert set(data) == {"id", "status", "created_at"}
        assert data["status"] == "open"

        ticket = await TicketDAO(db_session).get_by_id(data["id"])
        assert ticket.priority == TicketPriority.UNSET
        assert ticket.status == TicketStatus.OPEN

    @pytest.mark.asyncio
    async def test_title_too_long(self, client):
        response = await client.post(
            "/api/public/tickets", json={**VALID_SUBMISSION, "title": "x" * 201}
        )

        assert response.status_code == 400
        fields = [e["field"] for e in response.json()["details"]["errors"]]
        assert "body.title" in fields

    @pytest.mark.asyncio
    async def test_whitespace_only_description_rejected(self, client):
        response = await client.post(
            "/api/public/tickets", json={**VALID_SUBMISSION, "description": "   "}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_phone_rejected(self, client):
        response = await client.post(
            "/api/public/tickets", json={**VALID_SUBMISSION, "reporter_phone": "call me maybe"}
        )

        assert response.status_code == 400
