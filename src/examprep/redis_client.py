"""Redis connection pool and the shared rank-recalculation lock."""

import redis.asyncio as redis
from redis.asyncio.lock import Lock

from examprep.config import get_settings
from examprep.leaderboard.rank_lock import lock_name

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Initialize the Redis connection pool."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


def recalc_lock(series: str | None) -> Lock | None:
    """Cross-process lock for recalculating ``series``, or None without Redis.

    Callers fall back to the in-process lock registry when this returns None.
    """
    if _pool is None:
        return None
    return _pool.lock(lock_name(series), timeout=get_settings().recalc_lock_timeout_seconds)
