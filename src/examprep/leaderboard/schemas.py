"""Pydantic models for leaderboard endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class EntryCreate(BaseModel):
    series: str | None = Field(None, max_length=32)
    country: str | None = Field(None, min_length=2, max_length=2)
    region: str | None = Field(None, max_length=64)


class RankUpdateRequest(BaseModel):
    """Fields left out (or null) are not touched."""

    global_rank: int | None = Field(None, ge=1)
    national_rank: int | None = Field(None, ge=1)
    regional_rank: int | None = Field(None, ge=1)
    badge_count: int | None = Field(None, ge=0)
    streak: int | None = Field(None, ge=0)
    total_points: int | None = Field(None, ge=0)

    model_config = {"extra": "forbid"}


class RankSnapshot(BaseModel):
    date: datetime
    rank: int
    points: int


class LeaderboardEntryResponse(BaseModel):
    user_id: int
    series: str | None = None
    country: str | None = None
    region: str | None = None
    global_rank: int
    national_rank: int
    regional_rank: int
    badge_count: int
    streak: int
    longest_streak: int
    total_points: int
    top_performance: bool
    most_improved: bool
    history: list[RankSnapshot]
    ranked_at: datetime | None = None

    model_config = {"from_attributes": True}


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntryResponse]
    total: int


class UserRankResponse(BaseModel):
    user_id: int
    series: str | None = None
    global_rank: int
    national_rank: int
    regional_rank: int
    badge_count: int
    streak: int
    longest_streak: int
    total_points: int
    top_performance: bool
    most_improved: bool
    rank_improvement: int
    performance_trend: str


class LeaderboardStatisticsResponse(BaseModel):
    total_users: int
    average_badges: float
    average_streak: float
    max_streak: int
    top_performers: int
    most_improved: int
    total_points: int


class RecalculationResponse(BaseModel):
    updated: int
    series: str | None = None
