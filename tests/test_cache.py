import asyncio

import pytest

from shared.cache import MISSING, AsyncTTLCache, cached


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class CountingRepo:
    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock or FakeClock()
        self.cache = AsyncTTLCache(maxsize=8, ttl=60, timer=self.clock)
        self.calls = 0
        self.fail = False

    @cached(key_func=lambda self, key: f"item:{key}")
    async def get(self, key: str) -> str | None:
        self.calls += 1
        await asyncio.sleep(0)
        if self.fail:
            raise ConnectionError("database unreachable")
        return None if key == "none" else f"value-{key}"


def test_set_get_invalidate():
    cache = AsyncTTLCache(maxsize=2, ttl=60)
    cache.set("a", 1)

    assert cache.get("a") == 1
    assert len(cache) == 1

    cache.invalidate("a")
    assert cache.get("a") is MISSING
    assert cache.get_stale("a") is MISSING


def test_expired_entry_stays_stale():
    clock = FakeClock()
    cache = AsyncTTLCache(maxsize=2, ttl=60, timer=clock)
    cache.set("a", 1)

    clock.now = 61

    assert cache.get("a") is MISSING
    assert cache.get_stale("a") == 1


def test_stale_tier_is_bounded():
    cache = AsyncTTLCache(maxsize=2, ttl=60)
    for key in ("a", "b", "c"):
        cache.set(key, key)

    assert cache.get_stale("a") is MISSING
    assert cache.get_stale("c") == "c"


@pytest.mark.asyncio
async def test_results_are_cached():
    repo = CountingRepo()

    assert await repo.get("x") == "value-x"
    assert await repo.get("x") == "value-x"
    assert repo.calls == 1


@pytest.mark.asyncio
async def test_none_is_cached():
    repo = CountingRepo()

    assert await repo.get("none") is None
    assert await repo.get("none") is None
    assert repo.calls == 1


@pytest.mark.asyncio
async def test_concurrent_misses_collapse():
    repo = CountingRepo()

    results = await asyncio.gather(*(repo.get("x") for _ in range(5)))

    assert results == ["value-x"] * 5
    assert repo.calls == 1


@pytest.mark.asyncio
async def test_stale_value_served_on_failure_after_expiry():
    repo = CountingRepo()
    await repo.get("x")
    repo.clock.now = 61
    repo.fail = True

    assert await repo.get("x") == "value-x"
    assert repo.calls == 2


@pytest.mark.asyncio
async def test_no_stale_fallback_after_invalidation():
    repo = CountingRepo()
    await repo.get("x")
    repo.cache.invalidate("item:x")
    repo.fail = True

    with pytest.raises(ConnectionError):
        await repo.get("x")


@pytest.mark.asyncio
async def test_failure_without_stale_value_raises():
    repo = CountingRepo()
    repo.fail = True

    with pytest.raises(ConnectionError):
        await repo.get("x")
