"""Typed read/write access to progress, gamification and leaderboard records.

The engine never touches ``AsyncSession`` directly; every query goes through
``ProgressStore`` so a caller can swap the persistence layer. The store only
flushes. Committing is the caller's job, except for the batch rank apply which
must land in a single transaction.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from examprep.db.models import (
    Achievement,
    LeaderboardEntry,
    Mission,
    PracticeSessionArchive,
    TopicProgress,
)
from examprep.time_utils import parse_iso, utcnow


def _series_clause(column: Any, series: str | None) -> Any:
    return column.is_(None) if series is None else column == series


class ProgressStore:
    """Store adapter over an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # --- Topic progress ---

    async def get_topic_progress(self, user_id: int, topic_id: str) -> TopicProgress | None:
        result = await self.db.execute(
            select(TopicProgress).where(
                TopicProgress.user_id == user_id,
                TopicProgress.topic_id == topic_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create_topic_progress(
        self,
        user_id: int,
        topic_id: str,
        series: str | None = None,
        subject_id: str | None = None,
    ) -> TopicProgress:
        """Get or lazily create the record, starting at beginner."""
        progress = await self.get_topic_progress(user_id, topic_id)
        if progress is None:
            now = utcnow()
            progress = TopicProgress(
                user_id=user_id,
                topic_id=topic_id,
                series=series,
                subject_id=subject_id,
                mastery_level="beginner",
                time_spent=0.0,
                total_sessions=0,
                total_score=0.0,
                practice_sessions=[],
                weak_areas=[],
                strong_areas=[],
                created_at=now,
                updated_at=now,
            )
            self.db.add(progress)
            await self.db.flush()
        return progress

    async def list_topic_progress(
        self,
        user_id: int,
        series: str | None = None,
        mastery_level: str | None = None,
        topic_id: str | None = None,
        limit: int | None = 50,
        skip: int = 0,
    ) -> list[TopicProgress]:
        """User's topic records, most recently studied first."""
        stmt = select(TopicProgress).where(TopicProgress.user_id == user_id)
        if series is not None:
            stmt = stmt.where(TopicProgress.series == series)
        if mastery_level is not None:
            stmt = stmt.where(TopicProgress.mastery_level == mastery_level)
        if topic_id is not None:
            stmt = stmt.where(TopicProgress.topic_id == topic_id)
        stmt = stmt.order_by(TopicProgress.last_studied.desc(), TopicProgress.id).offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def increment_topic_totals(
        self, progress: TopicProgress, time_spent: float, score: float
    ) -> None:
        """Apply ``col = col + delta`` for the aggregate counters in one UPDATE."""
        await self.db.execute(
            update(TopicProgress)
            .where(TopicProgress.id == progress.id)
            .values(
                time_spent=TopicProgress.time_spent + time_spent,
                total_sessions=TopicProgress.total_sessions + 1,
                total_score=TopicProgress.total_score + score,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.refresh(progress, attribute_names=["time_spent", "total_sessions", "total_score"])

    async def archive_sessions(
        self, progress: TopicProgress, sessions: Iterable[dict[str, Any]]
    ) -> int:
        """Move sessions evicted from the hot window into the archive table."""
        now = utcnow()
        count = 0
        for session in sessions:
            self.db.add(PracticeSessionArchive(
                user_id=progress.user_id,
                topic_id=progress.topic_id,
                session_date=parse_iso(session["date"]),
                score=session["score"],
                time_spent=session["time_spent"],
                archived_at=now,
            ))
            count += 1
        return count

    async def count_archived_sessions(self, user_id: int, topic_id: str) -> int:
        result = await self.db.execute(
            select(func.count(PracticeSessionArchive.id)).where(
                PracticeSessionArchive.user_id == user_id,
                PracticeSessionArchive.topic_id == topic_id,
            )
        )
        return result.scalar_one()

    async def delete_topic_progress(self, progress: TopicProgress) -> None:
        await self.db.delete(progress)
        await self.db.flush()

    # --- Achievements ---

    async def get_achievement(self, achievement_id: int, user_id: int | None = None) -> Achievement | None:
        """Fetch by id, scoped to the owner when ``user_id`` is given."""
        stmt = select(Achievement).where(Achievement.id == achievement_id)
        if user_id is not None:
            stmt = stmt.where(Achievement.user_id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_achievements(
        self,
        user_id: int,
        subject_id: str | None = None,
        series: str | None = None,
        completed: bool | None = None,
    ) -> list[Achievement]:
        stmt = select(Achievement).where(Achievement.user_id == user_id)
        if subject_id is not None:
            stmt = stmt.where(Achievement.subject_id == subject_id)
        if series is not None:
            stmt = stmt.where(Achievement.series == series)
        if completed is not None:
            stmt = stmt.where(Achievement.completed.is_(completed))
        stmt = stmt.order_by(Achievement.earned_date.desc(), Achievement.id.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def add_achievement(self, **fields: Any) -> Achievement:
        achievement = Achievement(created_at=utcnow(), **fields)
        self.db.add(achievement)
        await self.db.flush()
        return achievement

    # --- Missions ---

    async def get_mission(self, mission_id: int, user_id: int | None = None) -> Mission | None:
        stmt = select(Mission).where(Mission.id == mission_id)
        if user_id is not None:
            stmt = stmt.where(Mission.user_id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_missions(
        self,
        user_id: int,
        mission_type: str | None = None,
        category: str | None = None,
        completed: bool | None = None,
        active_at: datetime | None = None,
    ) -> list[Mission]:
        """User's missions. ``active_at`` hides missions that expired before it."""
        stmt = select(Mission).where(Mission.user_id == user_id)
        if mission_type is not None:
            stmt = stmt.where(Mission.mission_type == mission_type)
        if category is not None:
            stmt = stmt.where(Mission.category == category)
        if completed is not None:
            stmt = stmt.where(Mission.completed.is_(completed))
        if active_at is not None:
            stmt = stmt.where(Mission.is_active.is_(True), Mission.expires_at > active_at)
        stmt = stmt.order_by(Mission.expires_at, Mission.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def add_mission(self, **fields: Any) -> Mission:
        mission = Mission(created_at=utcnow(), **fields)
        self.db.add(mission)
        await self.db.flush()
        return mission

    async def deactivate_expired_missions(self, now: datetime) -> int:
        """Flag every active mission past ``expires_at`` as inactive."""
        result = await self.db.execute(
            update(Mission)
            .where(Mission.expires_at < now, Mission.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    # --- Leaderboard ---

    async def get_leaderboard_entry(self, user_id: int, series: str | None = None) -> LeaderboardEntry | None:
        result = await self.db.execute(
            select(LeaderboardEntry).where(
                LeaderboardEntry.user_id == user_id,
                _series_clause(LeaderboardEntry.series, series),
            )
        )
        return result.scalar_one_or_none()

    async def add_leaderboard_entry(self, **fields: Any) -> LeaderboardEntry:
        now = utcnow()
        entry = LeaderboardEntry(history=[], created_at=now, updated_at=now, **fields)
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def list_entries_for_ranking(self, series: str | None = None) -> list[LeaderboardEntry]:
        """Every entry in the population, ``None`` meaning all series.

        Sorted by the ranking keys so the store does the heavy lifting; the
        engine re-sorts in memory to guarantee the tie-breaker.
        """
        stmt = select(LeaderboardEntry)
        if series is not None:
            stmt = stmt.where(LeaderboardEntry.series == series)
        stmt = stmt.order_by(
            LeaderboardEntry.total_points.desc(),
            LeaderboardEntry.badge_count.desc(),
            LeaderboardEntry.streak.desc(),
            LeaderboardEntry.user_id,
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def apply_global_ranks(
        self,
        ranking: Sequence[tuple[LeaderboardEntry, int]],
        top_cutoff: int,
        now: datetime,
    ) -> None:
        """Write a precomputed ranking in one flush and one commit.

        ``ranked_at`` always changes, so every row in the population is
        rewritten even when its rank did not move.
        """
        try:
            for entry, rank in ranking:
                entry.global_rank = rank
                entry.top_performance = rank <= top_cutoff
                entry.ranked_at = now
            await self.db.flush()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def list_leaderboard(
        self,
        rank_field: str,
        limit: int = 50,
        series: str | None = None,
        country: str | None = None,
        region: str | None = None,
    ) -> list[LeaderboardEntry]:
        """Entries ordered ascending by one of the rank columns."""
        column = getattr(LeaderboardEntry, rank_field)
        stmt = select(LeaderboardEntry)
        if series is not None:
            stmt = stmt.where(LeaderboardEntry.series == series)
        if country is not None:
            stmt = stmt.where(LeaderboardEntry.country == country)
        if region is not None:
            stmt = stmt.where(LeaderboardEntry.region == region)
        stmt = stmt.order_by(column.asc(), LeaderboardEntry.user_id).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def leaderboard_statistics(self, series: str | None = None) -> dict[str, Any]:
        """Aggregate counters over a series population, ``None`` meaning all series."""
        stmt = select(
            func.count(LeaderboardEntry.id).label("total_users"),
            func.avg(LeaderboardEntry.badge_count).label("average_badges"),
            func.avg(LeaderboardEntry.streak).label("average_streak"),
            func.max(LeaderboardEntry.longest_streak).label("max_streak"),
            func.sum(case((LeaderboardEntry.top_performance.is_(True), 1), else_=0)).label("top_performers"),
            func.sum(case((LeaderboardEntry.most_improved.is_(True), 1), else_=0)).label("most_improved"),
            func.sum(LeaderboardEntry.total_points).label("total_points"),
        )
        if series is not None:
            stmt = stmt.where(LeaderboardEntry.series == series)
        row = (await self.db.execute(stmt)).one()
        return {
            "total_users": row.total_users or 0,
            "average_badges": float(row.average_badges or 0),
            "average_streak": float(row.average_streak or 0),
            "max_streak": row.max_streak or 0,
            "top_performers": row.top_performers or 0,
            "most_improved": row.most_improved or 0,
            "total_points": row.total_points or 0,
        }

    # --- Unit of work ---

    async def flush(self) -> None:
        await self.db.flush()

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()
