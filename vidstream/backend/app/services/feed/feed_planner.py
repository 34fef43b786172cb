"""
Vidstream Feed Query Planner — filtered, sorted, paginated video listings.

Pipeline (one SQL statement per page, plus one count):
  1. text filter     — case-insensitive substring on title OR description
  2. owner filter    — optional
  3. published only  — forced on for public listings
  4. sort            — whitelisted key, then created_at desc, then id desc
  5. offset paging   — skip (page-1)*page_size, take page_size
  6. owner join      — public profile fields attached to every entry

The trailing tie-breaks make the ordering total, so consecutive pages
never repeat or skip a row when the primary key has duplicates.
"""
from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, replace
from typing import Optional, Union

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import InvalidArgumentError
from app.models.models import User, Video
from app.schemas.schemas import FeedEntry, FeedPage, ProfileSchema

logger = logging.getLogger(__name__)
settings = get_settings()

SORT_FIELDS = {
    "created_at": Video.created_at,
    "views": Video.view_count,
    "duration": Video.duration_seconds,
}
SORT_TYPES = ("asc", "desc")


def feed_entry(video: Video, owner: User) -> FeedEntry:
    return FeedEntry(
        id=str(video.id),
        title=video.title,
        description=video.description,
        video_url=video.video_url,
        thumbnail_url=video.thumbnail_url,
        duration_seconds=video.duration_seconds,
        view_count=video.view_count or 0,
        is_published=video.is_published,
        created_at=video.created_at,
        owner=ProfileSchema.from_user(owner),
    )


def _as_int(value: Union[int, str], label: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{label} must be an integer", **{label: str(value)[:32]})


@dataclass(frozen=True)
class FeedQuery:
    text: Optional[str] = None
    owner_id: Optional[uuid.UUID] = None
    published_only: bool = True
    sort_by: str = "created_at"
    sort_type: str = "desc"
    page: Union[int, str] = 1
    page_size: Union[int, str] = settings.feed_default_page_size

    def validate(self) -> "FeedQuery":
        """Check paging and sort parameters; raw query-string values are parsed here."""
        page = _as_int(self.page, "page")
        page_size = _as_int(self.page_size, "page_size")
        if page < 1:
            raise InvalidArgumentError("page must be >= 1", page=page)
        if page_size < 1:
            raise InvalidArgumentError("page_size must be >= 1", page_size=page_size)
        if page_size > settings.feed_max_page_size:
            raise InvalidArgumentError(
                f"page_size must be <= {settings.feed_max_page_size}", page_size=page_size
            )
        if self.sort_by not in SORT_FIELDS:
            raise InvalidArgumentError(
                f"sort_by must be one of {', '.join(SORT_FIELDS)}", sort_by=self.sort_by
            )
        if self.sort_type not in SORT_TYPES:
            raise InvalidArgumentError("sort_type must be 'asc' or 'desc'", sort_type=self.sort_type)
        text = (self.text or "").strip() or None
        return replace(self, text=text, page=page, page_size=page_size)


class FeedPlanner:

    @staticmethod
    def _conditions(query: FeedQuery):
        conditions = []
        if query.text:
            conditions.append(or_(
                Video.title.icontains(query.text, autoescape=True),
                Video.description.icontains(query.text, autoescape=True),
            ))
        if query.owner_id is not None:
            conditions.append(Video.owner_id == query.owner_id)
        if query.published_only:
            conditions.append(Video.is_published.is_(True))
        return conditions

    @staticmethod
    def _ordering(query: FeedQuery):
        column = SORT_FIELDS[query.sort_by]
        primary = column.asc() if query.sort_type == "asc" else column.desc()
        order = [primary.nulls_last()]
        if query.sort_by != "created_at":
            order.append(Video.created_at.desc())
        order.append(Video.id.desc())
        return order

    async def query_videos(self, db: AsyncSession, query: FeedQuery) -> FeedPage:
        query = query.validate()
        conditions = self._conditions(query)

        total = await db.scalar(
            select(func.count(Video.id))
            .join(User, User.id == Video.owner_id)
            .where(*conditions)
        ) or 0

        rows = await db.execute(
            select(Video, User)
            .join(User, User.id == Video.owner_id)
            .where(*conditions)
            .order_by(*self._ordering(query))
            .offset((query.page - 1) * query.page_size)
            .limit(query.page_size)
        )
        items = [feed_entry(video, owner) for video, owner in rows.all()]

        total_pages = math.ceil(total / query.page_size) if total else 0
        logger.debug(
            f"Feed page {query.page}/{total_pages} sort={query.sort_by} {query.sort_type} "
            f"returned {len(items)} of {total}"
        )
        return FeedPage(
            items=items,
            page=query.page,
            page_size=query.page_size,
            total=total,
            total_pages=total_pages,
            has_next=query.page < total_pages,
        )


feed_planner = FeedPlanner()
