from __future__ import annotations

import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import pytest

# Settings are read at import time; point the app at SQLite before any app import
_TMP = Path(tempfile.mkdtemp(prefix="vidstream-tests-"))
os.environ.setdefault("VIDSTREAM_DATABASE_URL_OVERRIDE", f"sqlite+aiosqlite:///{_TMP / 'app.db'}")
os.environ.setdefault("VIDSTREAM_LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from app.core.database import Base, get_db  # noqa: E402
from app.core.events import NotificationHub  # noqa: E402
from app.models.models import Comment, Relation, RelationKind, Tweet, User, Video  # noqa: E402
from app.services.engagement.toggle_coordinator import ToggleCoordinator  # noqa: E402

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class Seeder:
    """Creates committed rows for a test."""

    def __init__(self, factory: async_sessionmaker):
        self._factory = factory
        self._counter = 0

    async def _save(self, obj: Any) -> Any:
        async with self._factory() as db:
            db.add(obj)
            await db.commit()
        return obj

    async def user(self, username: Optional[str] = None, **kw) -> User:
        self._counter += 1
        username = username or f"user{self._counter}"
        return await self._save(User(
            username=username,
            full_name=kw.pop("full_name", username.title()),
            avatar_url=kw.pop("avatar_url", f"https://cdn.example/{username}.png"),
            **kw,
        ))

    async def video(self, owner: User, title: Optional[str] = None, minutes: int = 0, **kw) -> Video:
        self._counter += 1
        return await self._save(Video(
            owner_id=owner.id,
            title=title or f"video {self._counter}",
            video_url=f"https://cdn.example/v/{self._counter}.mp4",
            created_at=BASE_TIME + timedelta(minutes=minutes),
            **kw,
        ))

    async def comment(self, video: Video, owner: User, content: str = "nice") -> Comment:
        return await self._save(Comment(video_id=video.id, owner_id=owner.id, content=content))

    async def tweet(self, owner: User, content: str = "hello") -> Tweet:
        return await self._save(Tweet(owner_id=owner.id, content=content))

    async def relation(self, actor: User, target_id: uuid.UUID, kind: RelationKind) -> Relation:
        return await self._save(Relation(actor_id=actor.id, target_id=target_id, kind=kind))

    async def delete(self, model, obj_id: uuid.UUID) -> None:
        async with self._factory() as db:
            obj = await db.get(model, obj_id)
            await db.delete(obj)
            await db.commit()


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
def hub() -> NotificationHub:
    return NotificationHub(queue_size=10)


@pytest.fixture
def coordinator(hub) -> ToggleCoordinator:
    return ToggleCoordinator(hub=hub)


@pytest.fixture
def api_app(session_factory):
    from app.main import create_app

    application = create_app()

    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = _get_test_db
    return application


@pytest.fixture
def client(api_app):
    with TestClient(api_app) as c:
        yield c


@pytest.fixture
def auth():
    def _headers(user: User) -> dict:
        return {"X-User-Id": str(user.id)}
    return _headers
