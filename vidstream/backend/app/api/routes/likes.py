"""
Vidstream API — Like routes.
"""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_coordinator, get_current_user, parse_id
from app.core.database import get_db
from app.models.models import RelationKind, User
from app.schemas.schemas import FeedEntry, LikeToggleResponse
from app.services.engagement.aggregation_service import aggregation_service
from app.services.engagement.toggle_coordinator import ToggleCoordinator

router = APIRouter(prefix="/like", tags=["Likes"])


async def _toggle_like(
    db: AsyncSession,
    coordinator: ToggleCoordinator,
    user: User,
    raw_id: str,
    kind: RelationKind,
    label: str,
) -> LikeToggleResponse:
    target_id = parse_id(raw_id, label)
    result = await coordinator.toggle(db, user.id, target_id, kind)
    return LikeToggleResponse(is_liked=result.created)


@router.post("/video/{video_id}", response_model=LikeToggleResponse)
async def toggle_video_like(
    video_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    coordinator: ToggleCoordinator = Depends(get_coordinator),
):
    """Like the video, or remove the like if already present."""
    return await _toggle_like(db, coordinator, user, video_id, RelationKind.LIKE_VIDEO, "video_id")


@router.post("/comment/{comment_id}", response_model=LikeToggleResponse)
async def toggle_comment_like(
    comment_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    coordinator: ToggleCoordinator = Depends(get_coordinator),
):
    return await _toggle_like(db, coordinator, user, comment_id, RelationKind.LIKE_COMMENT, "comment_id")


@router.post("/tweet/{tweet_id}", response_model=LikeToggleResponse)
async def toggle_tweet_like(
    tweet_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    coordinator: ToggleCoordinator = Depends(get_coordinator),
):
    return await _toggle_like(db, coordinator, user, tweet_id, RelationKind.LIKE_TWEET, "tweet_id")


@router.get("/videos", response_model=List[FeedEntry])
async def get_liked_videos(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Videos liked by the current user, most recent first."""
    return await aggregation_service.liked_targets(db, user.id, RelationKind.LIKE_VIDEO)
