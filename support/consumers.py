from __future__ import annotations

import time

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from .models import SupportTicket
from .services import add_message, can_access

MAX_MESSAGE = 2000
RATE_WINDOW = 5.0
RATE_LIMIT = 5


@database_sync_to_async
def _ticket_auth(user, ticket_id: int) -> tuple[bool, SupportTicket | None]:
    if not user or isinstance(user, AnonymousUser):
        return False, None
    ticket = SupportTicket.objects.filter(pk=ticket_id).first()
    if ticket is None or not can_access(user, ticket):
        return False, None
    return True, ticket


@database_sync_to_async
def _persist_message(ticket_id: int, sender, text: str) -> dict:
    # Reload so status transitions see the latest row
    ticket = SupportTicket.objects.get(pk=ticket_id)
    msg = add_message(ticket, sender, text[:MAX_MESSAGE])
    return {
        "id": msg.pk,
        "ticket": ticket.pk,
        "sender": sender.username,
        "message": msg.message,
        "status": ticket.status,
        "created_at": msg.created_at.isoformat(),
    }


class SupportTicketConsumer(AsyncJsonWebsocketConsumer):
    """Live thread for one ticket; the owner and staff may join."""

    async def connect(self):
        self.ticket_id = int(self.scope["url_route"]["kwargs"]["ticket_id"])
        ok, _ticket = await _ticket_auth(self.scope.get("user"), self.ticket_id)
        if not ok:
            await self.close(code=4001)
            return
        self.group_name = f"ticket_{self.ticket_id}"
        # Simple per-connection rate limiter: RATE_LIMIT messages per RATE_WINDOW seconds
        self._rate_ts: list[float] = []
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def receive_json(self, content, **kwargs):
        msg = str((content or {}).get("message", "")).strip()
        if not msg:
            return
        now = time.monotonic()
        self._rate_ts = [t for t in self._rate_ts if now - t < RATE_WINDOW]
        if len(self._rate_ts) >= RATE_LIMIT:
            await self.send_json({"type": "error", "detail": "Slow down."})
            return
        self._rate_ts.append(now)
        data = await _persist_message(self.ticket_id, self.scope.get("user"), msg)
        await self.channel_layer.group_send(
            self.group_name, {"type": "ticket_message", "payload": {"type": "ticket.message", **data}}
        )

    async def ticket_message(self, event):
        await self.send_json(event["payload"])

    async def disconnect(self, code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
