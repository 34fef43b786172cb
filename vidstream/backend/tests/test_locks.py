from __future__ import annotations

import asyncio

from app.core.locks import KeyedLock


async def test_same_key_is_serialized():
    locks = KeyedLock()
    active = 0
    peak = 0

    async def worker():
        nonlocal active, peak
        async with locks.hold(("a", "b", "like")):
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

    await asyncio.gather(*(worker() for _ in range(5)))

    assert peak == 1
    assert len(locks) == 0


async def test_different_keys_do_not_block_each_other():
    locks = KeyedLock()
    inside_first = asyncio.Event()
    release_first = asyncio.Event()

    async def holder():
        async with locks.hold("first"):
            inside_first.set()
            await release_first.wait()

    task = asyncio.create_task(holder())
    await inside_first.wait()

    # Would hang if "second" waited on "first"
    async with locks.hold("second"):
        assert locks.is_locked("first")
        assert locks.is_locked("second")

    release_first.set()
    await task
    assert len(locks) == 0


async def test_lock_entry_released_after_error():
    locks = KeyedLock()

    try:
        async with locks.hold("k"):
            raise ValueError("boom")
    except ValueError:
        pass

    assert len(locks) == 0
    assert not locks.is_locked("k")
