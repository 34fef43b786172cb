"""
Vidstream API — Subscription routes.

Subscribing pushes a ``notification_received`` event to the channel
owner's open WebSocket sessions (see websocket.py).
"""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_coordinator, get_current_user, parse_id
from app.core.database import get_db
from app.models.models import RelationKind, User
from app.schemas.schemas import SubscriberEntry, SubscriptionToggleResponse
from app.services.engagement.aggregation_service import aggregation_service
from app.services.engagement.toggle_coordinator import ToggleCoordinator

router = APIRouter(prefix="/subscription", tags=["Subscriptions"])


@router.post("/{channel_id}", response_model=SubscriptionToggleResponse)
async def toggle_subscription(
    channel_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    coordinator: ToggleCoordinator = Depends(get_coordinator),
):
    """Subscribe to a channel, or unsubscribe if already subscribed."""
    target_id = parse_id(channel_id, "channel_id")
    result = await coordinator.toggle(db, user.id, target_id, RelationKind.SUBSCRIPTION)
    return SubscriptionToggleResponse(subscribed=result.created)


@router.get("/subscribers/{channel_id}", response_model=List[SubscriberEntry])
async def list_channel_subscribers(
    channel_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await aggregation_service.subscribers(db, parse_id(channel_id, "channel_id"))


@router.get("/subscribed/{user_id}", response_model=List[SubscriberEntry])
async def list_subscribed_channels(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await aggregation_service.subscribed_channels(db, parse_id(user_id, "user_id"))
