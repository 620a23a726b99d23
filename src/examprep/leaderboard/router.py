"""Leaderboard API endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query

from examprep.dependencies import get_store
from examprep.errors import NotFoundError
from examprep.leaderboard import rank_engine
from examprep.leaderboard.schemas import (
    EntryCreate,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    LeaderboardStatisticsResponse,
    RankUpdateRequest,
    RecalculationResponse,
    UserRankResponse,
)
from examprep.progress.store import ProgressStore
from examprep.redis_client import recalc_lock

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/leaderboard", tags=["Leaderboard"])


def _listing(entries: list) -> LeaderboardResponse:
    items = [LeaderboardEntryResponse.model_validate(e) for e in entries]
    return LeaderboardResponse(entries=items, total=len(items))


@router.get("", response_model=LeaderboardResponse)
async def get_global_leaderboard(
    limit: int = Query(50, ge=1, le=100),
    series: str | None = Query(None),
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    """Global leaderboard ordered by global rank."""
    entries = await rank_engine.get_global_leaderboard(store, limit=limit, series=series)
    return _listing(entries)


@router.get("/national/{country}", response_model=LeaderboardResponse)
async def get_national_leaderboard(
    country: str,
    limit: int = Query(50, ge=1, le=100),
    series: str | None = Query(None),
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    entries = await rank_engine.get_national_leaderboard(store, country.upper(), limit=limit, series=series)
    return _listing(entries)


@router.get("/regional/{region}", response_model=LeaderboardResponse)
async def get_regional_leaderboard(
    region: str,
    limit: int = Query(50, ge=1, le=100),
    series: str | None = Query(None),
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    entries = await rank_engine.get_regional_leaderboard(store, region, limit=limit, series=series)
    return _listing(entries)


@router.get("/statistics", response_model=LeaderboardStatisticsResponse)
async def get_leaderboard_statistics(
    series: str | None = Query(None),
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    return await rank_engine.get_statistics(store, series)


@router.post("/recalculate", response_model=RecalculationResponse)
async def recalculate(
    series: str | None = Query(None),
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    """Recompute dense global ranks for a series (all entries when omitted)."""
    result = await rank_engine.recalculate_ranks(store, series=series, lock=recalc_lock(series))
    logger.info("ranks_recalculated", series=series, updated=result.updated_count)
    return RecalculationResponse(updated=result.updated_count, series=result.series)


@router.put("/users/{user_id}", response_model=LeaderboardEntryResponse)
async def get_or_create_entry(
    user_id: int,
    body: EntryCreate,
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    """Fetch the user's entry for a series, creating it unranked if absent."""
    entry = await rank_engine.get_or_create_entry(
        store,
        user_id,
        series=body.series,
        country=body.country.upper() if body.country else None,
        region=body.region,
    )
    await store.commit()
    return LeaderboardEntryResponse.model_validate(entry)


@router.get("/users/{user_id}", response_model=UserRankResponse)
async def get_user_rank(
    user_id: int,
    series: str | None = Query(None),
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    rank = await rank_engine.get_user_rank(store, user_id, series)
    if rank is None:
        raise NotFoundError("Leaderboard entry not found")
    return rank


@router.patch("/users/{user_id}", response_model=LeaderboardEntryResponse)
async def update_rank(
    user_id: int,
    body: RankUpdateRequest,
    series: str | None = Query(None),
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    """Apply rank and counter changes, recording the previous rank in history."""
    entry = await rank_engine.update_rank(store, user_id, body.model_dump(exclude_none=True), series=series)
    await store.commit()
    return LeaderboardEntryResponse.model_validate(entry)
