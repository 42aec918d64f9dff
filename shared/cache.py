"""In-process TTL cache with stale fallback for repository reads.

Built on cachetools.TTLCache. Every repository owns its cache instance,
so nothing is shared across processes or between repositories.

When the database is unreachable, cached reads fall back to the last
known value (even if its TTL has expired) instead of failing outright.
"""

import asyncio
import functools
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any, TypeVar

from cachetools import TTLCache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

# Distinguishes "not cached" from a cached None
MISSING = object()

F = TypeVar("F", bound=Callable[..., Any])


class AsyncTTLCache:
    """Fresh TTL tier plus a bounded last-known-good tier.

    Entries leave the fresh tier on TTL expiry but stay in the stale tier,
    which is read only by :func:`cached` when the wrapped call raises.
    ``invalidate`` drops both tiers, so a write is never
    followed by a fallback to the value it replaced.
    """

    def __init__(
        self,
        maxsize: int = 128,
        ttl: float = 60.0,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._maxsize = maxsize
        self._fresh: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._stale: OrderedDict[str, Any] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            if len(self._locks) >= self._maxsize * 2:
                # Drop locks nobody is holding
                self._locks = {k: v for k, v in self._locks.items() if v.locked()}
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def get(self, key: str) -> Any:
        return self._fresh.get(key, MISSING)

    def get_stale(self, key: str) -> Any:
        value = self._stale.get(key, MISSING)
        if value is not MISSING:
            self._stale.move_to_end(key)
        return value

    def set(self, key: str, value: Any) -> None:
        self._fresh[key] = value
        self._stale[key] = value
        self._stale.move_to_end(key)
        while len(self._stale) > self._maxsize:
            self._stale.popitem(last=False)

    def invalidate(self, key: str) -> None:
        self._fresh.pop(key, None)
        self._stale.pop(key, None)

    def __len__(self) -> int:
        return len(self._fresh)


def cached(key_func: Callable[..., str], *, cache_attr: str = "cache"):
    """Cache an async method's result in ``getattr(self, cache_attr)``.

    *key_func* receives the same arguments as the method (including
    ``self``) and returns the cache key. Concurrent misses on one key are
    collapsed behind a per-key lock. If the call raises and a stale value
    exists, the stale value is returned and a warning logged; otherwise the
    exception propagates.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            cache: AsyncTTLCache = getattr(self, cache_attr)
            key = key_func(self, *args, **kwargs)

            result = cache.get(key)
            if result is not MISSING:
                return result

            async with cache.lock_for(key):
                result = cache.get(key)
                if result is not MISSING:
                    return result

                try:
                    result = await func(self, *args, **kwargs)
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    stale = cache.get_stale(key)
                    if stale is MISSING:
                        raise
                    logger.warning(f"Serving stale data for {key} ({type(exc).__name__})")
                    return stale

                cache.set(key, result)
                return result

        return wrapper  # type: ignore[return-value]

    return decorator
