"""
Vidstream Notification Hub — per-recipient real-time event fan-out.

Each open WebSocket session registers a connection handle for the user it
belongs to. Publishing pushes the event into every handle of the recipient:

  - at-most-once: nothing is buffered for offline recipients, nothing retried
  - fan-out: all handles of a recipient get the event
  - non-blocking: a handle whose queue is full drops the event for itself only

The hub is owned by the application factory (``app.state.hub``), not a
module global.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Set

from app.core.metrics import NOTIFICATION_CONNECTIONS, NOTIFICATIONS

logger = logging.getLogger(__name__)

NOTIFICATION_EVENT_NAME = "notification_received"


# ═══════════════════════════════════════════════════════════════════════════
# Event Types
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class NotificationSender:
    id: str
    display_name: str
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class NotificationEvent:
    type: str                # SUBSCRIPTION
    message: str
    sender: NotificationSender
    recipient_id: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ═══════════════════════════════════════════════════════════════════════════
# Connection Handle
# ═══════════════════════════════════════════════════════════════════════════

class NotificationConnection:
    """One live session of a recipient. Owns a bounded inbox."""

    def __init__(self, recipient_id: str, queue_size: int):
        self.id = str(uuid.uuid4())
        self.recipient_id = recipient_id
        self.connected_at = time.time()
        self._queue: asyncio.Queue[NotificationEvent] = asyncio.Queue(maxsize=queue_size)

    def offer(self, event: NotificationEvent) -> bool:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    async def receive(self) -> NotificationEvent:
        return await self._queue.get()

    def pending(self) -> int:
        return self._queue.qsize()

    def __repr__(self) -> str:
        return f"NotificationConnection(id={self.id!r}, recipient_id={self.recipient_id!r})"


# ═══════════════════════════════════════════════════════════════════════════
# Hub
# ═══════════════════════════════════════════════════════════════════════════

class NotificationHub:
    """
    Process-wide map of recipient id -> open connection handles.

    Subscribe/unsubscribe happen from many connection lifecycles at once, so
    the map is guarded by a lock. ``publish`` only does ``put_nowait`` calls
    and never awaits a receiver.
    """

    def __init__(self, queue_size: int = 100):
        self._queue_size = queue_size
        self._connections: Dict[str, Set[NotificationConnection]] = {}
        self._lock = threading.Lock()
        self._stats = {
            "total_published": 0,
            "total_delivered": 0,
            "total_dropped": 0,
        }

    # ── Connection Lifecycle ─────────────────────────────────────────────

    def subscribe(self, recipient_id: str) -> NotificationConnection:
        handle = NotificationConnection(str(recipient_id), self._queue_size)
        with self._lock:
            self._connections.setdefault(handle.recipient_id, set()).add(handle)
            total = self._count_locked()
        NOTIFICATION_CONNECTIONS.inc()
        logger.info(f"Notification handle opened for {handle.recipient_id} (total={total})")
        return handle

    def unsubscribe(self, handle: NotificationConnection) -> bool:
        with self._lock:
            handles = self._connections.get(handle.recipient_id)
            if not handles or handle not in handles:
                return False
            handles.discard(handle)
            if not handles:
                del self._connections[handle.recipient_id]
            total = self._count_locked()
        NOTIFICATION_CONNECTIONS.dec()
        logger.info(f"Notification handle closed for {handle.recipient_id} (total={total})")
        return True

    # ── Publishing ───────────────────────────────────────────────────────

    def publish(self, recipient_id: str, event: NotificationEvent) -> int:
        """Offer ``event`` to every handle of ``recipient_id``.

        Returns the number of handles that accepted it. With no handles
        the event is dropped and nothing is kept.
        """
        with self._lock:
            handles: List[NotificationConnection] = list(self._connections.get(str(recipient_id), ()))
            self._stats["total_published"] += 1

        delivered = 0
        for handle in handles:
            if handle.offer(event):
                delivered += 1
            else:
                logger.warning(f"Notification inbox full, dropping event for handle {handle.id}")

        dropped = len(handles) - delivered
        with self._lock:
            self._stats["total_delivered"] += delivered
            self._stats["total_dropped"] += dropped
        if delivered:
            NOTIFICATIONS.labels(result="delivered").inc(delivered)
        if dropped:
            NOTIFICATIONS.labels(result="dropped").inc(dropped)
        return delivered

    # ── Introspection ────────────────────────────────────────────────────

    def connection_count(self, recipient_id: Optional[str] = None) -> int:
        with self._lock:
            if recipient_id is None:
                return self._count_locked()
            return len(self._connections.get(str(recipient_id), ()))

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                **self._stats,
                "active_recipients": len(self._connections),
                "active_connections": self._count_locked(),
            }

    def _count_locked(self) -> int:
        return sum(len(h) for h in self._connections.values())
