"""
Vidstream API — Creator dashboard routes (own channel only).
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.core.config import get_settings
from app.core.database import get_db
from app.models.models import User
from app.schemas.schemas import ChannelStats, FeedPage
from app.services.engagement.aggregation_service import aggregation_service
from app.services.feed.feed_planner import FeedQuery, feed_planner

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])
settings = get_settings()


@router.get("/stats", response_model=ChannelStats)
async def get_channel_stats(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Subscribers, videos, views and likes for the current user's channel."""
    return await aggregation_service.channel_stats(db, user.id)


@router.get("/videos", response_model=FeedPage)
async def get_channel_videos(
    page: str = Query("1"),
    page_size: str = Query(str(settings.feed_default_page_size)),
    sort_by: str = Query("created_at"),
    sort_type: str = Query("desc"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """All of the current user's videos, unpublished ones included."""
    query = FeedQuery(
        owner_id=user.id,
        published_only=False,
        sort_by=sort_by,
        sort_type=sort_type,
        page=page,
        page_size=page_size,
    )
    return await feed_planner.query_videos(db, query)
