"""Leaderboard rank engine.

Two write paths touch ranks:

- ``update_rank`` is the per-user path. It snapshots the current global rank
  and points into a bounded history, applies the submitted fields and
  recomputes the performance flags.
- ``recalculate_ranks`` is the batch path. It re-sorts the whole population
  and rewrites every global rank densely (1..N) in one transaction, under a
  lock named after the series.

Ranking: total points DESC, badge count DESC, streak DESC, user id ASC.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from examprep.config import get_settings
from examprep.db.models import UNRANKED, LeaderboardEntry
from examprep.errors import NotFoundError, ValidationError
from examprep.leaderboard.rank_lock import RankLock, default_registry
from examprep.progress.store import ProgressStore
from examprep.time_utils import utcnow

logger = logging.getLogger(__name__)

RANK_FIELDS = frozenset({"global_rank", "national_rank", "regional_rank"})
COUNTER_FIELDS = frozenset({"badge_count", "streak", "total_points"})
UPDATABLE_FIELDS = RANK_FIELDS | COUNTER_FIELDS


@dataclass
class RecalculationResult:
    updated_count: int
    series: str | None = None


def _validate_changes(changes: Mapping[str, Any]) -> dict[str, int]:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown leaderboard fields: {', '.join(sorted(unknown))}")

    clean: dict[str, int] = {}
    for field, value in changes.items():
        if value is None:
            continue
        if value < 0:
            raise ValidationError(f"{field} cannot be negative")
        if field in RANK_FIELDS and value < 1:
            raise ValidationError(f"{field} must be at least 1")
        clean[field] = int(value)
    return clean


def is_most_improved(history: Sequence[Mapping[str, Any]], global_rank: int, delta: int) -> bool:
    """Compare against the snapshot immediately preceding the latest one."""
    if len(history) < 2:
        return False
    return history[-2]["rank"] - global_rank >= delta


def rank_improvement(entry: LeaderboardEntry) -> int:
    """Positions gained since the last snapshot; positive means moved up."""
    if not entry.history:
        return 0
    return entry.history[-1]["rank"] - entry.global_rank


def performance_trend(entry: LeaderboardEntry) -> str:
    improvement = rank_improvement(entry)
    if improvement > 0:
        return "improving"
    if improvement < 0:
        return "declining"
    return "stable"


async def get_or_create_entry(
    store: ProgressStore,
    user_id: int,
    series: str | None = None,
    country: str | None = None,
    region: str | None = None,
) -> LeaderboardEntry:
    """Get or lazily create the (user, series) entry. New entries start unranked."""
    entry = await store.get_leaderboard_entry(user_id, series)
    if entry is None:
        entry = await store.add_leaderboard_entry(
            user_id=user_id,
            series=series,
            country=country,
            region=region,
            global_rank=UNRANKED,
            national_rank=UNRANKED,
            regional_rank=UNRANKED,
            badge_count=0,
            streak=0,
            longest_streak=0,
            total_points=0,
            top_performance=False,
            most_improved=False,
        )
        logger.info("Leaderboard entry created for user %s (series=%s)", user_id, series)
    return entry


async def update_rank(
    store: ProgressStore,
    user_id: int,
    changes: Mapping[str, Any],
    series: str | None = None,
    now: datetime | None = None,
) -> LeaderboardEntry:
    """Apply a per-user rank/counter update.

    ``changes`` may hold any of global_rank, national_rank, regional_rank,
    badge_count, streak and total_points. Absent or ``None`` values are left
    alone. ``streak`` only ever raises ``longest_streak``.

    Raises:
        ValidationError: unknown field, negative value, or rank below 1.
        NotFoundError: no entry for (user, series).
    """
    clean = _validate_changes(changes)
    if now is None:
        now = utcnow()
    settings = get_settings()

    entry = await store.get_leaderboard_entry(user_id, series)
    if entry is None:
        raise NotFoundError("Leaderboard entry not found")

    history = [
        *entry.history,
        {"date": now.isoformat(), "rank": entry.global_rank, "points": entry.total_points},
    ]

    for field, value in clean.items():
        setattr(entry, field, value)
    if "streak" in clean and clean["streak"] > entry.longest_streak:
        entry.longest_streak = clean["streak"]

    entry.top_performance = entry.global_rank <= settings.top_performance_cutoff
    entry.most_improved = is_most_improved(history, entry.global_rank, settings.most_improved_delta)
    entry.history = history[-settings.history_limit:]
    entry.updated_at = now

    await store.flush()
    return entry


def _ranking_key(entry: LeaderboardEntry) -> tuple[int, int, int, int]:
    return (-entry.total_points, -entry.badge_count, -entry.streak, entry.user_id)


def rank_entries(entries: Sequence[LeaderboardEntry]) -> list[tuple[LeaderboardEntry, int]]:
    """Pair each entry with its dense 1-based rank. Pure, deterministic."""
    ordered = sorted(entries, key=_ranking_key)
    return [(entry, position) for position, entry in enumerate(ordered, start=1)]


async def recalculate_ranks(
    store: ProgressStore,
    series: str | None = None,
    lock: RankLock | None = None,
    now: datetime | None = None,
) -> RecalculationResult:
    """Recompute global ranks for the whole series population.

    ``series=None`` ranks every entry regardless of series. The new ranking is
    built in memory first and written as one batch in one commit, so readers
    never observe a partially ranked population. Re-running without changes
    yields the same ranks.
    """
    if lock is None:
        lock = default_registry.for_series(series)
    if now is None:
        now = utcnow()
    settings = get_settings()

    async with lock:
        entries = await store.list_entries_for_ranking(series)
        ranking = rank_entries(entries)
        await store.apply_global_ranks(ranking, settings.top_performance_cutoff, now)

    logger.info("Recalculated ranks for %d entries (series=%s)", len(ranking), series)
    return RecalculationResult(updated_count=len(ranking), series=series)


# ── Reads ──


async def get_global_leaderboard(
    store: ProgressStore, limit: int = 50, series: str | None = None
) -> list[LeaderboardEntry]:
    return await store.list_leaderboard("global_rank", limit=limit, series=series)


async def get_national_leaderboard(
    store: ProgressStore, country: str, limit: int = 50, series: str | None = None
) -> list[LeaderboardEntry]:
    return await store.list_leaderboard("national_rank", limit=limit, series=series, country=country)


async def get_regional_leaderboard(
    store: ProgressStore, region: str, limit: int = 50, series: str | None = None
) -> list[LeaderboardEntry]:
    return await store.list_leaderboard("regional_rank", limit=limit, series=series, region=region)


async def get_user_rank(store: ProgressStore, user_id: int, series: str | None = None) -> dict | None:
    """Rank summary for one user, ``None`` if they have no entry."""
    entry = await store.get_leaderboard_entry(user_id, series)
    if entry is None:
        return None
    return {
        "user_id": entry.user_id,
        "series": entry.series,
        "global_rank": entry.global_rank,
        "national_rank": entry.national_rank,
        "regional_rank": entry.regional_rank,
        "badge_count": entry.badge_count,
        "streak": entry.streak,
        "longest_streak": entry.longest_streak,
        "total_points": entry.total_points,
        "top_performance": entry.top_performance,
        "most_improved": entry.most_improved,
        "rank_improvement": rank_improvement(entry),
        "performance_trend": performance_trend(entry),
    }


async def get_statistics(store: ProgressStore, series: str | None = None) -> dict[str, Any]:
    return await store.leaderboard_statistics(series)
