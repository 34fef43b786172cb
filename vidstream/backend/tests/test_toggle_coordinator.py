from __future__ import annotations

import asyncio
import uuid

import pytest

from app.core.errors import ConflictError, InvalidOperationError, NotFoundError
from app.core.events import NotificationHub
from app.models.models import RelationKind
from app.services.engagement.relation_ledger import RelationLedger
from app.services.engagement.toggle_coordinator import ToggleCoordinator


async def test_toggle_twice_restores_original_state(db, seed, coordinator):
    actor, owner = await seed.user(), await seed.user()
    video = await seed.video(owner)

    first = await coordinator.toggle(db, actor.id, video.id, RelationKind.LIKE_VIDEO)
    second = await coordinator.toggle(db, actor.id, video.id, RelationKind.LIKE_VIDEO)

    assert first.created is True
    assert second.created is False
    assert await RelationLedger(db).exists(actor.id, video.id, RelationKind.LIKE_VIDEO) is False


@pytest.mark.parametrize("kind, make_target", [
    (RelationKind.LIKE_COMMENT, "comment"),
    (RelationKind.LIKE_TWEET, "tweet"),
    (RelationKind.SUBSCRIPTION, "user"),
])
async def test_toggle_each_kind(db, seed, coordinator, kind, make_target):
    actor, owner = await seed.user(), await seed.user()
    if make_target == "comment":
        target = await seed.comment(await seed.video(owner), owner)
    elif make_target == "tweet":
        target = await seed.tweet(owner)
    else:
        target = owner

    result = await coordinator.toggle(db, actor.id, target.id, kind)

    assert result.created is True
    assert await RelationLedger(db).exists(actor.id, target.id, kind) is True


async def test_self_subscription_always_fails(db, seed, coordinator):
    user = await seed.user()
    ghost = uuid.uuid4()

    for identity in (user.id, ghost):
        with pytest.raises(InvalidOperationError):
            await coordinator.toggle(db, identity, identity, RelationKind.SUBSCRIPTION)

    assert await RelationLedger(db).exists(user.id, user.id, RelationKind.SUBSCRIPTION) is False


async def test_missing_target_is_not_found(db, seed, coordinator):
    actor = await seed.user()

    with pytest.raises(NotFoundError) as exc_info:
        await coordinator.toggle(db, actor.id, uuid.uuid4(), RelationKind.LIKE_VIDEO)
    assert exc_info.value.context["kind"] == "like_video"


async def test_target_must_match_kind(db, seed, coordinator):
    actor, owner = await seed.user(), await seed.user()
    video = await seed.video(owner)

    # A video id is not a comment id
    with pytest.raises(NotFoundError):
        await coordinator.toggle(db, actor.id, video.id, RelationKind.LIKE_COMMENT)


@pytest.mark.parametrize("n", [1, 2, 5, 6])
async def test_concurrent_toggles_leave_parity(session_factory, seed, coordinator, n):
    actor, owner = await seed.user(), await seed.user()
    video = await seed.video(owner)

    async def one_request():
        async with session_factory() as session:
            return await coordinator.toggle(session, actor.id, video.id, RelationKind.LIKE_VIDEO)

    results = await asyncio.gather(*(one_request() for _ in range(n)))

    assert sum(r.created for r in results) == (n + 1) // 2
    async with session_factory() as session:
        remaining = await RelationLedger(session).count_for_target(video.id, RelationKind.LIKE_VIDEO)
    assert remaining == n % 2
    assert len(coordinator.locks) == 0


async def test_subscription_notifies_channel_owner(db, seed, hub, coordinator):
    fan = await seed.user("fan", avatar_url="https://cdn.example/fan.png")
    channel = await seed.user("channel")
    handle = hub.subscribe(str(channel.id))

    await coordinator.toggle(db, fan.id, channel.id, RelationKind.SUBSCRIPTION)
    event = await asyncio.wait_for(handle.receive(), timeout=1)

    assert event.type == "SUBSCRIPTION"
    assert event.message == "fan subscribed to your channel!"
    assert event.sender.id == str(fan.id)
    assert event.sender.avatar_url == "https://cdn.example/fan.png"
    assert event.recipient_id == str(channel.id)

    # Unsubscribing is silent
    result = await coordinator.toggle(db, fan.id, channel.id, RelationKind.SUBSCRIPTION)
    assert result.created is False
    assert handle.pending() == 0


async def test_likes_do_not_notify(db, seed, hub, coordinator):
    actor, owner = await seed.user(), await seed.user()
    video = await seed.video(owner)
    handle = hub.subscribe(str(owner.id))

    await coordinator.toggle(db, actor.id, video.id, RelationKind.LIKE_VIDEO)

    assert handle.pending() == 0


async def test_notification_failure_does_not_fail_toggle(db, seed):
    class BrokenHub(NotificationHub):
        def publish(self, recipient_id, event):
            raise RuntimeError("socket layer down")

    coordinator = ToggleCoordinator(hub=BrokenHub())
    fan, channel = await seed.user(), await seed.user()

    result = await coordinator.toggle(db, fan.id, channel.id, RelationKind.SUBSCRIPTION)

    assert result.created is True
    assert await RelationLedger(db).exists(fan.id, channel.id, RelationKind.SUBSCRIPTION) is True


class _ScriptedLedger:
    """Ledger double replaying a fixed sequence of insert/delete outcomes."""

    def __init__(self, inserts, deletes, exists=False):
        self.inserts = list(inserts)
        self.deletes = list(deletes)
        self.exists_value = exists
        self.calls = []

    async def insert(self, actor_id, target_id, kind):
        self.calls.append("insert")
        if self.inserts.pop(0):
            return object()
        raise ConflictError("Relation already exists", kind=kind.value)

    async def delete_if_exists(self, actor_id, target_id, kind):
        self.calls.append("delete")
        return self.deletes.pop(0)

    async def exists(self, actor_id, target_id, kind):
        self.calls.append("exists")
        return self.exists_value


async def test_conflict_resolves_as_delete():
    ledger = _ScriptedLedger(inserts=[False], deletes=[True])

    created = await ToggleCoordinator()._flip(ledger, uuid.uuid4(), uuid.uuid4(), RelationKind.LIKE_VIDEO)

    assert created is False
    assert ledger.calls == ["insert", "delete"]


async def test_conflict_with_vanished_row_retries_insert():
    ledger = _ScriptedLedger(inserts=[False, True], deletes=[False])

    created = await ToggleCoordinator()._flip(ledger, uuid.uuid4(), uuid.uuid4(), RelationKind.LIKE_VIDEO)

    assert created is True
    assert ledger.calls == ["insert", "delete", "insert"]


async def test_exhausted_attempts_report_observed_state():
    ledger = _ScriptedLedger(inserts=[False, False], deletes=[False, False], exists=True)
    coordinator = ToggleCoordinator(max_attempts=2)

    created = await coordinator._flip(ledger, uuid.uuid4(), uuid.uuid4(), RelationKind.LIKE_TWEET)

    assert created is True
    assert ledger.calls == ["insert", "delete", "insert", "delete", "exists"]
