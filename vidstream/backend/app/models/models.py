"""
Vidstream ORM Models — content entities and the relation ledger.

Likes and subscriptions share one ``relations`` table. A row is identified
by the tuple (actor_id, target_id, kind); ``kind`` says which entity table
``target_id`` points into, so there is no foreign key on it.
"""
from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean, DateTime, Enum, ForeignKey, Index,
    Integer, String, Text, UniqueConstraint, Uuid, func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════

class RelationKind(str, enum.Enum):
    LIKE_VIDEO = "like_video"
    LIKE_COMMENT = "like_comment"
    LIKE_TWEET = "like_tweet"
    SUBSCRIPTION = "subscription"


# ═══════════════════════════════════════════════════════════════════════
# Identity / Profile
# ═══════════════════════════════════════════════════════════════════════

class User(Base):
    """A registered user. Every user is also a channel others can subscribe to."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(256))
    avatar_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())


# ═══════════════════════════════════════════════════════════════════════
# Content
# ═══════════════════════════════════════════════════════════════════════

class Video(Base):
    __tablename__ = "videos"
    __table_args__ = (
        Index("ix_videos_owner", "owner_id"),
        Index("ix_videos_created_at", "created_at"),
        Index("ix_videos_published", "is_published"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))

    title: Mapped[str] = mapped_column(String(512))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    video_url: Mapped[str] = mapped_column(String(1024))
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Maintained by the playback service; read-only here
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    is_published: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=func.now()
    )


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_video", "video_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    video_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("videos.id", ondelete="CASCADE"))
    owner_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())


class Tweet(Base):
    __tablename__ = "tweets"
    __table_args__ = (
        Index("ix_tweets_owner", "owner_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())


# ═══════════════════════════════════════════════════════════════════════
# Relation Ledger
# ═══════════════════════════════════════════════════════════════════════

class Relation(Base):
    """Toggle-style fact: ``actor`` liked / subscribed to ``target``."""
    __tablename__ = "relations"
    __table_args__ = (
        UniqueConstraint("actor_id", "target_id", "kind", name="uq_relations_actor_target_kind"),
        Index("ix_relations_target_kind", "target_id", "kind"),
        Index("ix_relations_actor_kind", "actor_id", "kind"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    actor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    kind: Mapped[RelationKind] = mapped_column(Enum(RelationKind, name="relation_kind"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    def __repr__(self) -> str:
        return f"Relation(actor_id={self.actor_id}, target_id={self.target_id}, kind={self.kind.value})"


# Entity table a relation kind's target_id refers to
KIND_TARGET_MODELS = {
    RelationKind.LIKE_VIDEO: Video,
    RelationKind.LIKE_COMMENT: Comment,
    RelationKind.LIKE_TWEET: Tweet,
    RelationKind.SUBSCRIPTION: User,
}
