"""
Vidstream Toggle Coordinator — atomic like / subscribe toggles.

    toggle(actor, target, kind)
      1. reject self-subscription
      2. target must exist in the table ``kind`` points at
      3. insert ── ok ──────────────────────────────▶ created=True
            └─ ConflictError ─▶ delete_if_exists ─▶ created=False
                                   └─ nothing deleted ─▶ retry insert
      4. commit, then (subscriptions only) notify the channel owner

Steps 2–4 run under a lock keyed by (actor, target, kind), so toggles on
the same tuple from this process are serialized end to end. Across
processes the ledger's unique constraint does the same job through the
conflict branch.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import ConflictError, InvalidOperationError, NotFoundError
from app.core.events import NotificationEvent, NotificationHub, NotificationSender
from app.core.locks import KeyedLock
from app.core.metrics import TOGGLES
from app.models.models import KIND_TARGET_MODELS, RelationKind, User
from app.services.engagement.relation_ledger import RelationLedger

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class ToggleResult:
    created: bool


class ToggleCoordinator:

    def __init__(
        self,
        hub: Optional[NotificationHub] = None,
        locks: Optional[KeyedLock] = None,
        max_attempts: Optional[int] = None,
    ):
        self.hub = hub
        self.locks = locks or KeyedLock()
        self.max_attempts = max_attempts or settings.toggle_max_attempts

    # ── Public API ───────────────────────────────────────────────────────

    async def toggle(
        self,
        db: AsyncSession,
        actor_id: uuid.UUID,
        target_id: uuid.UUID,
        kind: RelationKind,
    ) -> ToggleResult:
        if kind == RelationKind.SUBSCRIPTION and actor_id == target_id:
            raise InvalidOperationError(
                "You cannot subscribe to your own channel",
                actor_id=actor_id, kind=kind.value,
            )

        async with self.locks.hold((actor_id, target_id, kind)):
            try:
                await self._ensure_target(db, target_id, kind)
                created = await self._flip(RelationLedger(db), actor_id, target_id, kind)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        TOGGLES.labels(kind=kind.value, outcome="created" if created else "removed").inc()
        logger.info(
            f"Toggled {kind.value} {actor_id} -> {target_id}: "
            f"{'created' if created else 'removed'}"
        )

        if created and kind == RelationKind.SUBSCRIPTION:
            await self._notify_subscription(db, actor_id, target_id)

        return ToggleResult(created=created)

    # ── Internals ────────────────────────────────────────────────────────

    async def _ensure_target(self, db: AsyncSession, target_id: uuid.UUID, kind: RelationKind):
        model = KIND_TARGET_MODELS[kind]
        found = await db.scalar(select(model.id).where(model.id == target_id))
        if found is None:
            raise NotFoundError(
                f"{model.__name__} not found",
                target_id=target_id, kind=kind.value,
            )

    async def _flip(
        self,
        ledger: RelationLedger,
        actor_id: uuid.UUID,
        target_id: uuid.UUID,
        kind: RelationKind,
    ) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                await ledger.insert(actor_id, target_id, kind)
                return True
            except ConflictError as e:
                if await ledger.delete_if_exists(actor_id, target_id, kind):
                    return False
                # Row vanished between our insert and delete: another
                # writer removed it, so the insert is worth retrying.
                logger.debug(f"Toggle retry {attempt}/{self.max_attempts}: {e}")

        # Still contended; report whatever state the store holds now
        state = await ledger.exists(actor_id, target_id, kind)
        logger.warning(
            f"Toggle on {kind.value} {actor_id} -> {target_id} exhausted "
            f"{self.max_attempts} attempts, settled on exists={state}"
        )
        return state

    async def _notify_subscription(self, db: AsyncSession, actor_id: uuid.UUID, channel_id: uuid.UUID):
        """Best-effort push to the channel owner. Never raises."""
        if self.hub is None:
            return
        try:
            actor = await db.get(User, actor_id)
            if actor is None:
                return
            event = NotificationEvent(
                type="SUBSCRIPTION",
                message=f"{actor.username} subscribed to your channel!",
                sender=NotificationSender(
                    id=str(actor.id),
                    display_name=actor.username,
                    avatar_url=actor.avatar_url,
                ),
                recipient_id=str(channel_id),
            )
            delivered = self.hub.publish(str(channel_id), event)
            logger.debug(f"Subscription notice for {channel_id} reached {delivered} connection(s)")
        except Exception as e:
            logger.warning(f"Subscription notification for {channel_id} failed: {e}")
