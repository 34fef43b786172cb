"""
Vidstream API Schemas — Pydantic v2 models for request/response validation.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ═══════════════════════════════════════════════════════════════════════
# Profiles
# ═══════════════════════════════════════════════════════════════════════

class ProfileSchema(BaseModel):
    """Public profile fields of a user / channel."""
    id: str
    username: str
    full_name: str
    avatar_url: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> "ProfileSchema":
        return cls(
            id=str(user.id),
            username=user.username,
            full_name=user.full_name,
            avatar_url=user.avatar_url,
        )


class SubscriberEntry(BaseModel):
    profile: ProfileSchema
    subscribed_at: datetime


# ═══════════════════════════════════════════════════════════════════════
# Feed
# ═══════════════════════════════════════════════════════════════════════

class FeedEntry(BaseModel):
    """A video projected with its owner's public profile."""
    id: str
    title: str
    description: Optional[str] = None
    video_url: str
    thumbnail_url: Optional[str] = None
    duration_seconds: Optional[int] = None
    view_count: int = 0
    is_published: bool = True
    created_at: datetime
    owner: ProfileSchema


class FeedPage(BaseModel):
    items: List[FeedEntry]
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool


# ═══════════════════════════════════════════════════════════════════════
# Engagement
# ═══════════════════════════════════════════════════════════════════════

class LikeToggleResponse(BaseModel):
    is_liked: bool


class SubscriptionToggleResponse(BaseModel):
    subscribed: bool


class ChannelStats(BaseModel):
    owner: ProfileSchema
    subscriber_count: int = Field(0, ge=0)
    video_count: int = Field(0, ge=0)
    total_views: int = Field(0, ge=0)
    total_likes: int = Field(0, ge=0)


# ═══════════════════════════════════════════════════════════════════════
# Notifications
# ═══════════════════════════════════════════════════════════════════════

class NotificationStats(BaseModel):
    total_published: int
    total_delivered: int
    total_dropped: int
    active_recipients: int
    active_connections: int


# ═══════════════════════════════════════════════════════════════════════
# Health
# ═══════════════════════════════════════════════════════════════════════

class HealthcheckResponse(BaseModel):
    status: str
    uptime_seconds: int
    database: bool
    message: str
