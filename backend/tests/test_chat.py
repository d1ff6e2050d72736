"""Tests for the load chat gate."""

from datetime import timedelta

import pytest

from freightboard.config import settings
from freightboard.models import ChatMessage, LoadStatus
from freightboard.services.chat import is_chat_open
from freightboard.utils.clock import utcnow


def chat_url(load) -> str:
    return f"/api/loads/{load.id}/chat"


@pytest.mark.api
@pytest.mark.asyncio
class TestChatGate:
    async def test_closed_until_carrier_assigned(self, client, posted_load, shipper_headers):
        assert not is_chat_open(posted_load)
        read = await client.get(chat_url(posted_load), headers=shipper_headers)
        write = await client.post(
            chat_url(posted_load), json={"message": "hello?"}, headers=shipper_headers,
        )
        for response in (read, write):
            assert response.status_code == 409
            assert response.json()["error"]["code"] == "CHAT_CLOSED"

    async def test_closed_once_delivered(self, client, db_session, assigned_load, carrier_a_headers):
        assigned_load.status = LoadStatus.DELIVERED
        await db_session.flush()
        response = await client.post(
            chat_url(assigned_load), json={"message": "Delivered!"}, headers=carrier_a_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CHAT_CLOSED"

    async def test_open_while_delivery_pending(self, db_session, assigned_load):
        assigned_load.status = LoadStatus.DELIVERED_PENDING
        assert is_chat_open(assigned_load)

    async def test_non_participant_rejected(self, client, assigned_load, carrier_b_headers):
        response = await client.get(chat_url(assigned_load), headers=carrier_b_headers)
        assert response.status_code == 403


@pytest.mark.api
@pytest.mark.asyncio
class TestChatMessages:
    async def test_conversation(
        self, client, assigned_load, shipper, carrier_a,
        shipper_headers, carrier_a_headers, driver_headers, admin_headers,
    ):
        first = await client.post(
            chat_url(assigned_load), json={"message": "  Dock 4, after 8am  "},
            headers=shipper_headers,
        )
        assert first.status_code == 201
        assert first.json()["message"] == "Dock 4, after 8am"
        assert first.json()["sender_id"] == shipper.id

        reply = await client.post(
            chat_url(assigned_load), json={"message": "Copy that"}, headers=carrier_a_headers,
        )
        assert reply.status_code == 201

        for headers in (shipper_headers, driver_headers, admin_headers):
            response = await client.get(chat_url(assigned_load), headers=headers)
            assert response.status_code == 200
            messages = response.json()["messages"]
            assert [m["sender_id"] for m in messages] == [shipper.id, carrier_a.id]

    async def test_since_filter(self, client, db_session, assigned_load, shipper, shipper_headers):
        now = utcnow()
        for minutes, text in ((30, "old"), (10, "recent"), (1, "latest")):
            db_session.add(ChatMessage(
                load_id=assigned_load.id,
                sender_id=shipper.id,
                message=text,
                created_at=now - timedelta(minutes=minutes),
            ))
        await db_session.flush()

        since = (now - timedelta(minutes=15)).isoformat()
        response = await client.get(
            chat_url(assigned_load), params={"since": since}, headers=shipper_headers,
        )
        body = response.json()
        assert [m["message"] for m in body["messages"]] == ["recent", "latest"]
        assert body["since"] is not None

    async def test_empty_message(self, client, assigned_load, shipper_headers):
        response = await client.post(
            chat_url(assigned_load), json={"message": "   "}, headers=shipper_headers,
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_INPUT"

    async def test_message_too_long(self, client, assigned_load, shipper_headers):
        response = await client.post(
            chat_url(assigned_load),
            json={"message": "x" * (settings.chat_max_message_length + 1)},
            headers=shipper_headers,
        )
        assert response.status_code == 422
