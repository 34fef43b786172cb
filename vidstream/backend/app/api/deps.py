"""
Vidstream API — shared request dependencies.

Authentication lives upstream: the gateway verifies the session and
forwards the caller's user id in ``settings.user_header``.
"""
from __future__ import annotations

import uuid

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db
from app.core.errors import AuthenticationError, InvalidArgumentError
from app.core.events import NotificationHub
from app.models.models import User
from app.services.engagement.toggle_coordinator import ToggleCoordinator

settings = get_settings()


def parse_id(value: str, label: str = "id") -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise InvalidArgumentError(f"Invalid {label}", **{label: value[:64]})


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
    raw = request.headers.get(settings.user_header)
    if not raw:
        raise AuthenticationError("User not authenticated")
    try:
        user_id = uuid.UUID(raw)
    except ValueError:
        raise AuthenticationError("User not authenticated")
    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not authenticated", user_id=user_id)
    return user


def get_hub(request: Request) -> NotificationHub:
    return request.app.state.hub


def get_coordinator(request: Request) -> ToggleCoordinator:
    return request.app.state.coordinator
