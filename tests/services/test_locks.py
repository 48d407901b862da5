from __future__ import annotations

import asyncio

from learnhub.services.locks import InMemoryKeyedLock, KeyedLock


def test_in_memory_lock_satisfies_protocol() -> None:
    assert isinstance(InMemoryKeyedLock(), KeyedLock)


def test_same_key_is_serialized() -> None:
    locks = InMemoryKeyedLock()
    events: list[str] = []

    async def worker(name: str) -> None:
        async with locks.hold("enrollment:u1:c1"):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    async def run() -> None:
        await asyncio.gather(worker("a"), worker("b"))

    asyncio.run(run())
    assert events == ["a-in", "a-out", "b-in", "b-out"]


def test_different_keys_do_not_block() -> None:
    locks = InMemoryKeyedLock()
    events: list[str] = []

    async def worker(key: str) -> None:
        async with locks.hold(key):
            events.append(f"{key}-in")
            await asyncio.sleep(0.01)
            events.append(f"{key}-out")

    async def run() -> None:
        await asyncio.gather(worker("k1"), worker("k2"))

    asyncio.run(run())
    assert events[:2] == ["k1-in", "k2-in"]


def test_released_keys_are_forgotten() -> None:
    locks = InMemoryKeyedLock()

    async def run() -> None:
        async with locks.hold("course-rating:c1"):
            assert "course-rating:c1" in locks._locks
        await asyncio.gather(*(_touch(locks, f"k{i}") for i in range(10)))

    asyncio.run(run())
    assert locks._locks == {}
    assert locks._users == {}


def test_lock_released_on_error() -> None:
    locks = InMemoryKeyedLock()

    async def failing() -> None:
        async with locks.hold("purchase:u1:c1"):
            raise RuntimeError("boom")

    async def run() -> bool:
        try:
            await failing()
        except RuntimeError:
            pass
        async with locks.hold("purchase:u1:c1"):
            return True

    assert asyncio.run(run()) is True


async def _touch(locks: InMemoryKeyedLock, key: str) -> None:
    async with locks.hold(key):
        await asyncio.sleep(0)
