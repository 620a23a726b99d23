"""Leaderboard arq worker: scheduled rank recalculation and mission expiry.

Recalculation takes a Redis lock named ``leaderboard:recalc:{series}`` so
that concurrent workers (and overlapping cron runs) serialize per series.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from arq import cron
from arq.connections import RedisSettings

from examprep.config import get_settings
from examprep.database import close_db, get_session_factory, init_db
from examprep.leaderboard.rank_engine import recalculate_ranks
from examprep.leaderboard.rank_lock import lock_name
from examprep.progress.store import ProgressStore
from examprep.time_utils import utcnow

logger = logging.getLogger(__name__)


async def recalculate_leaderboard(ctx: dict, series: str | None = None) -> int:
    """Recompute global ranks for ``series`` (every entry when None)."""
    settings = get_settings()
    redis_client: aioredis.Redis = ctx["redis"]
    lock = redis_client.lock(lock_name(series), timeout=settings.recalc_lock_timeout_seconds)

    async with get_session_factory()() as db:
        result = await recalculate_ranks(ProgressStore(db), series=series, lock=lock)
    logger.info("Leaderboard recalculated: %d entries (series=%s)", result.updated_count, series)
    return result.updated_count


async def deactivate_expired_missions(ctx: dict) -> int:
    """Flag missions past their expiry as inactive."""
    async with get_session_factory()() as db:
        store = ProgressStore(db)
        count = await store.deactivate_expired_missions(utcnow())
        await store.commit()
    if count:
        logger.info("Deactivated %d expired missions", count)
    return count


async def leaderboard_startup(ctx: dict) -> None:
    """Initialize Redis + DB connections on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url)
    ctx["redis"] = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    logger.info("Leaderboard worker started")


async def leaderboard_shutdown(ctx: dict) -> None:
    """Clean up on worker shutdown."""
    redis_client = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Leaderboard worker shut down")


def cron_minutes(interval: int) -> set[int]:
    """Minutes past the hour for an every-``interval``-minutes schedule."""
    if interval <= 0 or interval >= 60:
        return {0}
    return set(range(0, 60, interval))


class LeaderboardWorkerSettings:
    """arq worker settings for leaderboard maintenance."""

    functions = [recalculate_leaderboard, deactivate_expired_missions]
    cron_jobs = [
        cron(recalculate_leaderboard, minute=cron_minutes(get_settings().recalc_interval_minutes)),
        cron(deactivate_expired_missions, minute={5, 35}),
    ]
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    on_startup = leaderboard_startup
    on_shutdown = leaderboard_shutdown
    max_jobs = 4
    job_timeout = 300  # 5 minutes max per job
