"""
Vidstream Aggregation Service — channel statistics and relation listings.

Everything here is read-only and computed fresh per call. Reads take no
locks; a toggle landing mid-computation may or may not be reflected.

Channel stats are computed in stages so each video is counted exactly once:
  owner ─▶ subscriber count
        └▶ owner's videos (id, views) ─▶ like counts per video ─▶ fold
"""
from __future__ import annotations

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidArgumentError, NotComputableError
from app.models.models import Relation, RelationKind, User, Video
from app.schemas.schemas import ChannelStats, FeedEntry, ProfileSchema, SubscriberEntry
from app.services.engagement.relation_ledger import RelationLedger
from app.services.feed.feed_planner import feed_entry

logger = logging.getLogger(__name__)


class AggregationService:

    # ── Dashboard ────────────────────────────────────────────────────────

    async def channel_stats(self, db: AsyncSession, owner_id: uuid.UUID) -> ChannelStats:
        owner = await db.get(User, owner_id)
        if owner is None:
            raise NotComputableError("Stats could not be calculated", owner_id=owner_id)

        ledger = RelationLedger(db)
        subscriber_count = await ledger.count_for_target(owner_id, RelationKind.SUBSCRIPTION)

        videos = (await db.execute(
            select(Video.id, Video.view_count).where(Video.owner_id == owner_id)
        )).all()
        views_by_video = {video_id: views or 0 for video_id, views in videos}

        likes_by_video = await ledger.count_by_targets(views_by_video.keys(), RelationKind.LIKE_VIDEO)

        stats = ChannelStats(
            owner=ProfileSchema.from_user(owner),
            subscriber_count=subscriber_count,
            video_count=len(views_by_video),
            total_views=sum(views_by_video.values()),
            total_likes=sum(likes_by_video.get(video_id, 0) for video_id in views_by_video),
        )
        logger.debug(
            f"Stats for {owner_id}: subs={stats.subscriber_count} videos={stats.video_count} "
            f"views={stats.total_views} likes={stats.total_likes}"
        )
        return stats

    # ── Likes ────────────────────────────────────────────────────────────

    async def liked_targets(
        self,
        db: AsyncSession,
        actor_id: uuid.UUID,
        kind: RelationKind = RelationKind.LIKE_VIDEO,
    ) -> List[FeedEntry]:
        """Videos the actor liked, most recent like first.

        Likes whose video no longer exists drop out of the inner join; the
        stale relation rows themselves are left alone.
        """
        if kind != RelationKind.LIKE_VIDEO:
            raise InvalidArgumentError("Only liked videos can be listed", kind=kind.value)

        rows = await db.execute(
            select(Video, User)
            .join(Relation, Relation.target_id == Video.id)
            .join(User, User.id == Video.owner_id)
            .where(Relation.actor_id == actor_id, Relation.kind == kind)
            .order_by(Relation.created_at.desc(), Relation.id.desc())
        )
        return [feed_entry(video, owner) for video, owner in rows.all()]

    # ── Subscriptions ────────────────────────────────────────────────────

    async def subscribers(self, db: AsyncSession, channel_id: uuid.UUID) -> List[SubscriberEntry]:
        """Users subscribed to ``channel_id``."""
        rows = await db.execute(
            select(User, Relation.created_at)
            .join(Relation, Relation.actor_id == User.id)
            .where(Relation.target_id == channel_id, Relation.kind == RelationKind.SUBSCRIPTION)
            .order_by(Relation.created_at.desc(), Relation.id.desc())
        )
        return [
            SubscriberEntry(profile=ProfileSchema.from_user(user), subscribed_at=created_at)
            for user, created_at in rows.all()
        ]

    async def subscribed_channels(self, db: AsyncSession, user_id: uuid.UUID) -> List[SubscriberEntry]:
        """Channels ``user_id`` is subscribed to."""
        rows = await db.execute(
            select(User, Relation.created_at)
            .join(Relation, Relation.target_id == User.id)
            .where(Relation.actor_id == user_id, Relation.kind == RelationKind.SUBSCRIPTION)
            .order_by(Relation.created_at.desc(), Relation.id.desc())
        )
        return [
            SubscriberEntry(profile=ProfileSchema.from_user(user), subscribed_at=created_at)
            for user, created_at in rows.all()
        ]


aggregation_service = AggregationService()
