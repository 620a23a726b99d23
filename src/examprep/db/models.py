"""ORM models for progress, gamification and leaderboard records.

JSON columns hold the document-shaped parts of each record (session window,
focus areas, rank history). They are always reassigned, never mutated in
place, so the unit of work sees the change.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from examprep.db.base import Base

UNRANKED = 999_999


# ---------------------------------------------------------------------------
# Topic progress
# ---------------------------------------------------------------------------


class TopicProgress(Base):
    """Per (user, topic) mastery record with a bounded window of practice sessions."""

    __tablename__ = "topic_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "topic_id", name="topic_progress_user_topic_key"),
        Index("ix_topic_progress_user_series", "user_id", "series"),
        Index("ix_topic_progress_last_studied", "last_studied"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    topic_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    subject_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    series: Mapped[str | None] = mapped_column(String(32), nullable=True)
    mastery_level: Mapped[str] = mapped_column(
        String(16), nullable=False, default="beginner", server_default="beginner"
    )
    time_spent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    practice_sessions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    weak_areas: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    strong_areas: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    last_studied: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def average_score(self) -> int:
        """All-time rounded mean score, including archived sessions."""
        if not self.total_sessions:
            return 0
        return round(self.total_score / self.total_sessions)


class PracticeSessionArchive(Base):
    """Append-only store for sessions evicted from the hot window. Never read on the hot path."""

    __tablename__ = "practice_session_archive"
    __table_args__ = (
        Index("ix_practice_archive_user_topic_date", "user_id", "topic_id", "session_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    topic_id: Mapped[str] = mapped_column(String(64), nullable=False)
    session_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    time_spent: Mapped[float] = mapped_column(Float, nullable=False)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Target-progress records
# ---------------------------------------------------------------------------


class Achievement(Base):
    """Progress-vs-target achievement. ``earned_date`` is stamped once, on completion."""

    __tablename__ = "achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    color: Mapped[str | None] = mapped_column(String(16), nullable=True)
    subject_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    series: Mapped[str | None] = mapped_column(String(32), nullable=True)
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    target: Mapped[float] = mapped_column(Float, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    earned_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def completed_at(self) -> datetime | None:
        return self.earned_date

    @completed_at.setter
    def completed_at(self, value: datetime | None) -> None:
        self.earned_date = value


class Mission(Base):
    """Progress-vs-target mission. Immutable once completed or past ``expires_at``."""

    __tablename__ = "missions"
    __table_args__ = (
        Index("ix_missions_user_expires", "user_id", "expires_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    mission_type: Mapped[str] = mapped_column(String(16), nullable=False, default="custom")
    reward: Mapped[str | None] = mapped_column(String(100), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    category: Mapped[str | None] = mapped_column(String(16), nullable=True)
    difficulty: Mapped[str | None] = mapped_column(String(16), nullable=True)
    subject_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    series: Mapped[str | None] = mapped_column(String(32), nullable=True)
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    target: Mapped[float] = mapped_column(Float, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------


class LeaderboardEntry(Base):
    """One row per (user, series). Ranks stay at UNRANKED until the first recalculation."""

    __tablename__ = "leaderboard_entries"
    __table_args__ = (
        UniqueConstraint("user_id", "series", name="leaderboard_entries_user_series_key"),
        Index("ix_leaderboard_series_points", "series", "total_points"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    series: Mapped[str | None] = mapped_column(String(32), nullable=True)
    country: Mapped[str | None] = mapped_column(String(2), nullable=True)
    region: Mapped[str | None] = mapped_column(String(64), nullable=True)
    global_rank: Mapped[int] = mapped_column(Integer, nullable=False, default=UNRANKED)
    national_rank: Mapped[int] = mapped_column(Integer, nullable=False, default=UNRANKED)
    regional_rank: Mapped[int] = mapped_column(Integer, nullable=False, default=UNRANKED)
    badge_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_points: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    history: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    top_performance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    most_improved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    ranked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
