"""Progress-vs-target completion shared by achievements and missions.

``apply_progress`` is the shared rule: clamp to ``[0, target]``, derive
``completed``, stamp the completion time exactly once. Missions add two
gates on top of it (already completed, expired) that achievements skip.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from examprep.db.models import Achievement, Mission
from examprep.errors import AlreadyCompletedError, ExpiredError, NotFoundError, ValidationError
from examprep.progress.store import ProgressStore
from examprep.time_utils import as_utc, utcnow

logger = logging.getLogger(__name__)


class TargetRecord(Protocol):
    progress: float
    target: float
    completed: bool
    completed_at: datetime | None


@dataclass
class ProgressUpdate:
    """Mutated record plus whether this call flipped it to completed."""

    record: Achievement | Mission
    became_completed: bool


def validate_progress(new_progress: float) -> None:
    if new_progress is None or new_progress < 0:
        raise ValidationError("Progress cannot be negative")


def apply_progress(record: TargetRecord, new_progress: float, now: datetime | None = None) -> bool:
    """Clamp and apply ``new_progress``. Returns True if completion flipped on this call.

    Values above ``target`` are clamped, never rejected. ``completed`` always
    mirrors ``progress >= target``; the completion timestamp is set only once.
    """
    validate_progress(new_progress)
    if now is None:
        now = utcnow()

    was_completed = bool(record.completed)
    record.progress = min(new_progress, record.target)
    record.completed = record.progress >= record.target

    became_completed = record.completed and not was_completed
    if record.completed and record.completed_at is None:
        record.completed_at = now
    return became_completed


def is_expired(mission: Mission, now: datetime) -> bool:
    return as_utc(now) > as_utc(mission.expires_at)


async def update_achievement_progress(
    store: ProgressStore,
    achievement_id: int,
    new_progress: float,
    user_id: int | None = None,
    now: datetime | None = None,
) -> ProgressUpdate:
    """Set achievement progress. Raises NotFoundError if missing or owned by another user."""
    validate_progress(new_progress)
    achievement = await store.get_achievement(achievement_id, user_id)
    if achievement is None:
        raise NotFoundError("Achievement not found")

    became_completed = apply_progress(achievement, new_progress, now)
    await store.flush()

    logger.info(
        "Achievement progress updated: %s - %s/%s",
        achievement.name, achievement.progress, achievement.target,
    )
    return ProgressUpdate(record=achievement, became_completed=became_completed)


async def update_mission_progress(
    store: ProgressStore,
    mission_id: int,
    new_progress: float,
    user_id: int | None = None,
    now: datetime | None = None,
) -> ProgressUpdate:
    """Set mission progress.

    Raises:
        NotFoundError: mission missing or owned by another user.
        AlreadyCompletedError: mission already completed.
        ExpiredError: ``now`` is past ``expires_at``.
    """
    validate_progress(new_progress)
    if now is None:
        now = utcnow()

    mission = await store.get_mission(mission_id, user_id)
    if mission is None:
        raise NotFoundError("Mission not found")
    if mission.completed:
        raise AlreadyCompletedError("Mission already completed")
    if is_expired(mission, now):
        raise ExpiredError("Mission has expired")

    became_completed = apply_progress(mission, new_progress, now)
    await store.flush()

    if became_completed:
        logger.info("Mission completed: %s (user %s)", mission.title, mission.user_id)
    return ProgressUpdate(record=mission, became_completed=became_completed)
