"""Pydantic request/response models for progress endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

MissionType = Literal["daily", "weekly", "monthly", "custom"]


# ── Topic progress ──


class SessionCreate(BaseModel):
    score: float = Field(..., ge=0, le=100)
    time_spent: float = Field(..., ge=0, description="Minutes")
    weak_areas: list[str] = Field(default_factory=list)
    strong_areas: list[str] = Field(default_factory=list)
    series: str | None = Field(None, max_length=32)


class AreasUpdate(BaseModel):
    weak_areas: list[str] = Field(default_factory=list)
    strong_areas: list[str] = Field(default_factory=list)


class PracticeSessionResponse(BaseModel):
    date: datetime
    score: float
    time_spent: float


class TopicProgressResponse(BaseModel):
    id: int
    user_id: int
    topic_id: str
    subject_id: str | None = None
    series: str | None = None
    mastery_level: str
    time_spent: float
    total_sessions: int
    average_score: int
    practice_sessions: list[PracticeSessionResponse]
    weak_areas: list[str]
    strong_areas: list[str]
    last_studied: datetime | None = None

    model_config = {"from_attributes": True}


class SessionRecordedResponse(BaseModel):
    progress: TopicProgressResponse
    previous_level: str
    mastery_changed: bool


class TopicProgressListResponse(BaseModel):
    items: list[TopicProgressResponse]
    total: int


class BasicInfo(BaseModel):
    topic_id: str
    mastery_level: str
    progress_percentage: int
    total_time_spent: float
    last_studied: datetime | None = None


class SessionAnalytics(BaseModel):
    total_sessions: int
    average_score: int
    study_streak: int
    recent_performance: list[PracticeSessionResponse]


class TopicAnalyticsResponse(BaseModel):
    basic_info: BasicInfo
    session_analytics: SessionAnalytics
    strengths: list[str]
    weaknesses: list[str]
    recommendations: list[str]


class SubjectBreakdown(BaseModel):
    total_topics: int
    mastered_topics: int
    time_spent: float


class ProgressStatisticsResponse(BaseModel):
    total_topics: int
    mastery_distribution: dict[str, int]
    total_time_spent: float
    total_sessions: int
    average_score: int
    subject_progress: dict[str, SubjectBreakdown]


# ── Target progress ──


class ProgressUpdateRequest(BaseModel):
    progress: float = Field(..., ge=0)


class AchievementCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: str = ""
    target: float = Field(..., gt=0)
    icon: str | None = None
    color: str | None = None
    subject_id: str | None = None
    series: str | None = None


class AchievementResponse(BaseModel):
    id: int
    user_id: int
    name: str
    description: str
    icon: str | None = None
    color: str | None = None
    subject_id: str | None = None
    series: str | None = None
    progress: float
    target: float
    completed: bool
    earned_date: datetime | None = None

    model_config = {"from_attributes": True}


class AchievementProgressResponse(BaseModel):
    achievement: AchievementResponse
    became_completed: bool


class AchievementStatisticsResponse(BaseModel):
    total_achievements: int
    completed_achievements: int
    total_progress: float
    total_targets: float
    completion_rate: int
    overall_progress: int


class MissionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    mission_type: MissionType = "custom"
    target: float = Field(..., gt=0)
    expires_at: datetime
    reward: str | None = Field(None, max_length=100)
    icon: str | None = None
    points: int = Field(0, ge=0)
    category: str | None = None
    difficulty: str | None = None
    subject_id: str | None = None
    series: str | None = None


class MissionResponse(BaseModel):
    id: int
    user_id: int
    title: str
    description: str
    mission_type: str
    reward: str | None = None
    icon: str | None = None
    points: int
    category: str | None = None
    difficulty: str | None = None
    progress: float
    target: float
    completed: bool
    completed_at: datetime | None = None
    is_active: bool
    expires_at: datetime

    model_config = {"from_attributes": True}


class MissionProgressResponse(BaseModel):
    mission: MissionResponse
    became_completed: bool


class MissionOverall(BaseModel):
    total_missions: int
    completed_missions: int
    active_missions: int
    expired_missions: int
    total_points: int
    average_progress: float


class MissionTypeCount(BaseModel):
    type: str
    count: int
    completed: int


class MissionCategoryCount(BaseModel):
    category: str
    count: int
    completed: int


class MissionStatisticsResponse(BaseModel):
    overall: MissionOverall
    by_type: list[MissionTypeCount]
    by_category: list[MissionCategoryCount]
