"""Liveness, readiness and version endpoints.

Readiness depends on the database schema only. Redis backs the cross-process
recalculation lock, and without it recalculation falls back to the in-process
lock, so a missing or failing Redis marks the service degraded, not unready.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from examprep.config import get_settings
from examprep.database import get_session
from examprep.db.models import Achievement, LeaderboardEntry, Mission, TopicProgress
from examprep.redis_client import get_redis

router = APIRouter(tags=["Health"])

_TRACKED_TABLES = (TopicProgress, Achievement, Mission, LeaderboardEntry)


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


async def _check_schema(db: AsyncSession) -> str:
    for model in _TRACKED_TABLES:
        await db.execute(select(model.id).limit(1))
    return "ok"


async def _check_lock_backend() -> str:
    try:
        redis = get_redis()
    except RuntimeError:
        return "disabled"
    await redis.ping()
    return "ok"


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> JSONResponse:
    """Report schema availability and which recalculation lock is in use."""
    checks: dict[str, str] = {}

    try:
        checks["database"] = await _check_schema(db)
    except Exception as exc:  # noqa: BLE001
        checks["database"] = f"error: {exc}"

    try:
        checks["redis"] = await _check_lock_backend()
    except Exception as exc:  # noqa: BLE001
        checks["redis"] = f"error: {exc}"

    if checks["database"] != "ok":
        status, code = "unavailable", 503
    elif checks["redis"] == "ok":
        status, code = "ready", 200
    else:
        status, code = "degraded", 200

    return JSONResponse(
        status_code=code,
        content={
            "status": status,
            "checks": checks,
            "rank_lock": "redis" if checks["redis"] == "ok" else "in-process",
        },
    )


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
