"""
Vidstream API — WebSocket route for live notifications.

One room per recipient: a session joins the room of the user id the
gateway forwarded (header, or ``user_id`` query param for browsers that
cannot set WebSocket headers). Frames sent to the client:

  {"event": "notification_received", "data": {...NotificationEvent...}}
  {"type": "pong"}                    (reply to {"type": "ping"})
"""
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from app.api.deps import get_hub
from app.core.config import get_settings
from app.core.events import NOTIFICATION_EVENT_NAME, NotificationConnection, NotificationHub
from app.schemas.schemas import NotificationStats

logger = logging.getLogger(__name__)
router = APIRouter(tags=["WebSocket"])
settings = get_settings()


def _hub_from_ws(ws: WebSocket) -> NotificationHub:
    return ws.app.state.hub


async def _pump_notifications(ws: WebSocket, handle: NotificationConnection):
    while True:
        event = await handle.receive()
        await ws.send_json({"event": NOTIFICATION_EVENT_NAME, "data": event.to_dict()})


async def _read_client(ws: WebSocket):
    while True:
        data = await ws.receive_text()
        try:
            msg = json.loads(data)
        except json.JSONDecodeError:
            continue
        if isinstance(msg, dict) and msg.get("type") == "ping":
            await ws.send_json({"type": "pong"})


@router.websocket("/ws/notifications")
async def notifications_websocket(
    ws: WebSocket,
    user_id: Optional[str] = Query(None),
):
    """Stream notifications addressed to the connected user."""
    raw = ws.headers.get(settings.user_header) or user_id
    try:
        recipient_id = str(uuid.UUID(raw or ""))
    except ValueError:
        await ws.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    hub = _hub_from_ws(ws)
    # Registered before accept so the room exists once the client sees the socket open
    handle = hub.subscribe(recipient_id)
    tasks = []
    try:
        await ws.accept()
        tasks = [
            asyncio.create_task(_pump_notifications(ws, handle)),
            asyncio.create_task(_read_client(ws)),
        ]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error(f"Notification socket error for {recipient_id}: {exc}")
    except WebSocketDisconnect:
        pass
    finally:
        for task in tasks:
            task.cancel()
        hub.unsubscribe(handle)
        await asyncio.gather(*tasks, return_exceptions=True)


@router.get("/ws/stats", response_model=NotificationStats)
async def websocket_stats(hub: NotificationHub = Depends(get_hub)):
    """Notification hub connection and delivery counters."""
    return hub.get_stats()
