from __future__ import annotations

import pytest
from channels.db import database_sync_to_async
from channels.testing import WebsocketCommunicator
from django.conf import settings
from django.contrib.auth.models import User
from django.test import Client

from config.asgi import application
from support.models import SupportTicket, TicketMessage
from support.services import create_ticket


@database_sync_to_async
def _setup():
    owner = User.objects.create_user(username="ws_owner", password="pw")
    staff = User.objects.create_user(username="ws_staff", password="pw")
    staff.profile.role = "admin"; staff.profile.save(update_fields=["role"])
    User.objects.create_user(username="ws_other", password="pw")
    ticket = create_ticket(owner, subject="Live help", description="Hello?")
    return ticket.id


@database_sync_to_async
def _sessionid(username: str) -> str:
    c = Client()
    assert c.login(username=username, password="pw")
    return c.cookies.get(settings.SESSION_COOKIE_NAME).value


@database_sync_to_async
def _ticket_state(ticket_id: int):
    ticket = SupportTicket.objects.get(pk=ticket_id)
    return ticket.status, TicketMessage.objects.filter(ticket=ticket).count()


async def _connect(ticket_id: int, sessionid: str | None):
    headers = [(b"origin", b"http://testserver")]
    if sessionid:
        headers.append((b"cookie", f"sessionid={sessionid}".encode()))
    comm = WebsocketCommunicator(application, f"/ws/support/tickets/{ticket_id}/", headers=headers)
    connected, code = await comm.connect()
    return connected, code, comm


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
@pytest.mark.ws
async def test_only_owner_and_staff_can_join():
    ticket_id = await _setup()
    ok, _, owner = await _connect(ticket_id, await _sessionid("ws_owner"))
    assert ok
    await owner.disconnect()
    ok, _, staff = await _connect(ticket_id, await _sessionid("ws_staff"))
    assert ok
    await staff.disconnect()
    ok, code, _ = await _connect(ticket_id, await _sessionid("ws_other"))
    assert not ok and code == 4001
    ok, code, _ = await _connect(ticket_id, None)
    assert not ok and code == 4001


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
@pytest.mark.ws
async def test_staff_reply_is_broadcast_and_persisted():
    ticket_id = await _setup()
    _, _, owner = await _connect(ticket_id, await _sessionid("ws_owner"))
    _, _, staff = await _connect(ticket_id, await _sessionid("ws_staff"))

    await staff.send_json_to({"message": "On it"})
    seen_by_owner = await owner.receive_json_from(timeout=2)
    seen_by_staff = await staff.receive_json_from(timeout=2)
    assert seen_by_owner["type"] == "ticket.message"
    assert seen_by_owner["message"] == "On it"
    assert seen_by_owner["sender"] == "ws_staff"
    assert seen_by_owner["status"] == "in_progress"
    assert seen_by_staff["id"] == seen_by_owner["id"]

    # Blank messages are ignored
    await owner.send_json_to({"message": "   "})
    assert await owner.receive_nothing(timeout=0.2)

    await owner.disconnect()
    await staff.disconnect()
    status, count = await _ticket_state(ticket_id)
    assert status == "in_progress"
    assert count == 2


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
@pytest.mark.ws
async def test_rate_limit_allows_five_messages_per_window():
    ticket_id = await _setup()
    _, _, owner = await _connect(ticket_id, await _sessionid("ws_owner"))
    for i in range(6):
        await owner.send_json_to({"message": f"m{i}"})

    received = [await owner.receive_json_from(timeout=2) for _ in range(6)]
    await owner.disconnect()
    errors = [m for m in received if m.get("type") == "error"]
    echoes = [m for m in received if m.get("type") == "ticket.message"]
    assert len(echoes) == 5
    assert errors == [{"type": "error", "detail": "Slow down."}]
    _, count = await _ticket_state(ticket_id)
    assert count == 6  # opening message + five accepted
