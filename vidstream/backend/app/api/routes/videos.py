"""
Vidstream API — Public video listing.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import parse_id
from app.core.config import get_settings
from app.core.database import get_db
from app.schemas.schemas import FeedPage
from app.services.feed.feed_planner import FeedQuery, feed_planner

router = APIRouter(prefix="/videos", tags=["Videos"])
settings = get_settings()


@router.get("", response_model=FeedPage)
async def list_videos(
    q: Optional[str] = Query(None, max_length=256, description="Search in title and description"),
    owner_id: Optional[str] = None,
    page: str = Query("1"),
    page_size: str = Query(str(settings.feed_default_page_size)),
    sort_by: str = Query("created_at"),
    sort_type: str = Query("desc"),
    db: AsyncSession = Depends(get_db),
):
    """List published videos with search, sorting and pagination."""
    query = FeedQuery(
        text=q,
        owner_id=parse_id(owner_id, "owner_id") if owner_id else None,
        published_only=True,
        sort_by=sort_by,
        sort_type=sort_type,
        page=page,
        page_size=page_size,
    )
    return await feed_planner.query_videos(db, query)
