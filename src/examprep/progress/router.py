"""Progress API endpoints: topic sessions, achievements, missions."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query, Response

from examprep.dependencies import get_store
from examprep.errors import NotFoundError
from examprep.progress import session_recorder
from examprep.progress.schemas import (
    AchievementCreate,
    AchievementProgressResponse,
    AchievementResponse,
    AchievementStatisticsResponse,
    AreasUpdate,
    MissionCreate,
    MissionProgressResponse,
    MissionResponse,
    MissionStatisticsResponse,
    MissionType,
    ProgressStatisticsResponse,
    ProgressUpdateRequest,
    SessionCreate,
    SessionRecordedResponse,
    TopicAnalyticsResponse,
    TopicProgressListResponse,
    TopicProgressResponse,
)
from examprep.progress.statistics import (
    get_topic_progress_analytics,
    get_user_progress_statistics,
    summarize_achievements,
    summarize_missions,
)
from examprep.progress.store import ProgressStore
from examprep.progress.target_tracker import update_achievement_progress, update_mission_progress
from examprep.time_utils import utcnow

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Progress"])


# ── Topic progress ──


@router.post(
    "/progress/{user_id}/topics/{topic_id}/sessions",
    response_model=SessionRecordedResponse,
    status_code=201,
)
async def record_session(
    user_id: int,
    topic_id: str,
    body: SessionCreate,
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    """Record a completed practice session and re-evaluate mastery."""
    recorded = await session_recorder.record_session(
        store,
        user_id,
        topic_id,
        score=body.score,
        time_spent=body.time_spent,
        weak_areas=body.weak_areas,
        strong_areas=body.strong_areas,
        series=body.series,
    )
    await store.commit()
    if recorded.mastery_changed:
        logger.info(
            "mastery_changed",
            user_id=user_id,
            topic_id=topic_id,
            previous=recorded.previous_level.value,
            current=recorded.progress.mastery_level,
        )
    return SessionRecordedResponse(
        progress=TopicProgressResponse.model_validate(recorded.progress),
        previous_level=recorded.previous_level.value,
        mastery_changed=recorded.mastery_changed,
    )


@router.get("/progress/{user_id}/topics", response_model=TopicProgressListResponse)
async def list_topic_progress(
    user_id: int,
    series: str | None = Query(None),
    mastery_level: str | None = Query(None),
    topic_id: str | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    skip: int = Query(0, ge=0),
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    """User's topic progress, most recently studied first."""
    records = await store.list_topic_progress(
        user_id, series=series, mastery_level=mastery_level, topic_id=topic_id, limit=limit, skip=skip,
    )
    items = [TopicProgressResponse.model_validate(r) for r in records]
    return TopicProgressListResponse(items=items, total=len(items))


@router.get("/progress/{user_id}/statistics", response_model=ProgressStatisticsResponse)
async def get_progress_statistics(
    user_id: int,
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    """Mastery distribution and study totals across all topics."""
    return await get_user_progress_statistics(store, user_id)


@router.get("/progress/{user_id}/topics/{topic_id}", response_model=TopicProgressResponse)
async def get_topic_progress(
    user_id: int,
    topic_id: str,
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    progress = await store.get_topic_progress(user_id, topic_id)
    if progress is None:
        raise NotFoundError("Topic progress not found")
    return TopicProgressResponse.model_validate(progress)


@router.get("/progress/{user_id}/topics/{topic_id}/analytics", response_model=TopicAnalyticsResponse)
async def get_topic_analytics(
    user_id: int,
    topic_id: str,
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    """Session analytics, focus areas and study recommendations for one topic."""
    analytics = await get_topic_progress_analytics(store, user_id, topic_id)
    if analytics is None:
        raise NotFoundError("Topic progress not found")
    return analytics


@router.put("/progress/{user_id}/topics/{topic_id}/areas", response_model=TopicProgressResponse)
async def update_areas(
    user_id: int,
    topic_id: str,
    body: AreasUpdate,
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    """Replace the weak and strong area sets."""
    progress = await session_recorder.update_areas_of_focus(
        store, user_id, topic_id, weak_areas=body.weak_areas, strong_areas=body.strong_areas,
    )
    await store.commit()
    return TopicProgressResponse.model_validate(progress)


@router.delete("/progress/{user_id}/topics/{topic_id}", status_code=204)
async def delete_topic_progress(
    user_id: int,
    topic_id: str,
    store: ProgressStore = Depends(get_store),  # noqa: B008
) -> Response:
    await session_recorder.delete_topic_progress(store, user_id, topic_id)
    await store.commit()
    return Response(status_code=204)


# ── Achievements ──


@router.post("/achievements/{user_id}", response_model=AchievementResponse, status_code=201)
async def create_achievement(
    user_id: int,
    body: AchievementCreate,
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    achievement = await store.add_achievement(user_id=user_id, progress=0.0, completed=False, **body.model_dump())
    await store.commit()
    return AchievementResponse.model_validate(achievement)


@router.get("/achievements/{user_id}", response_model=list[AchievementResponse])
async def list_achievements(
    user_id: int,
    subject_id: str | None = Query(None),
    series: str | None = Query(None),
    completed: bool | None = Query(None),
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    records = await store.list_achievements(user_id, subject_id=subject_id, series=series, completed=completed)
    return [AchievementResponse.model_validate(a) for a in records]


@router.get("/achievements/{user_id}/statistics", response_model=AchievementStatisticsResponse)
async def get_achievement_statistics(
    user_id: int,
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    """Completion rate and overall progress across the user's achievements."""
    records = await store.list_achievements(user_id)
    return summarize_achievements(records)


@router.patch(
    "/achievements/{user_id}/{achievement_id}/progress",
    response_model=AchievementProgressResponse,
)
async def set_achievement_progress(
    user_id: int,
    achievement_id: int,
    body: ProgressUpdateRequest,
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    """Set achievement progress; values above the target are clamped."""
    update = await update_achievement_progress(store, achievement_id, body.progress, user_id=user_id)
    await store.commit()
    if update.became_completed:
        logger.info("achievement_completed", user_id=user_id, achievement_id=achievement_id)
    return AchievementProgressResponse(
        achievement=AchievementResponse.model_validate(update.record),
        became_completed=update.became_completed,
    )


# ── Missions ──


@router.post("/missions/{user_id}", response_model=MissionResponse, status_code=201)
async def create_mission(
    user_id: int,
    body: MissionCreate,
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    mission = await store.add_mission(
        user_id=user_id, progress=0.0, completed=False, is_active=True, **body.model_dump(),
    )
    await store.commit()
    return MissionResponse.model_validate(mission)


@router.get("/missions/{user_id}", response_model=list[MissionResponse])
async def list_missions(
    user_id: int,
    mission_type: MissionType | None = Query(None),
    category: str | None = Query(None),
    completed: bool | None = Query(None),
    active_only: bool = Query(False),
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    """User's missions, soonest expiry first. ``active_only`` hides expired ones."""
    records = await store.list_missions(
        user_id,
        mission_type=mission_type,
        category=category,
        completed=completed,
        active_at=utcnow() if active_only else None,
    )
    return [MissionResponse.model_validate(m) for m in records]


@router.get("/missions/{user_id}/statistics", response_model=MissionStatisticsResponse)
async def get_mission_statistics(
    user_id: int,
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    records = await store.list_missions(user_id)
    return summarize_missions(records, utcnow())


@router.patch("/missions/{user_id}/{mission_id}/progress", response_model=MissionProgressResponse)
async def set_mission_progress(
    user_id: int,
    mission_id: int,
    body: ProgressUpdateRequest,
    store: ProgressStore = Depends(get_store),  # noqa: B008
):
    """Set mission progress. Completed or expired missions reject updates."""
    update = await update_mission_progress(store, mission_id, body.progress, user_id=user_id)
    await store.commit()
    if update.became_completed:
        logger.info("mission_completed", user_id=user_id, mission_id=mission_id, points=update.record.points)
    return MissionProgressResponse(
        mission=MissionResponse.model_validate(update.record),
        became_completed=update.became_completed,
    )
