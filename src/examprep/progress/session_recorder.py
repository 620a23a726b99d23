"""Session recording: appends practice sessions and re-evaluates mastery."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from examprep.config import get_settings
from examprep.db.models import TopicProgress
from examprep.errors import NotFoundError, ValidationError
from examprep.progress.mastery import MasteryLevel, evaluate_mastery
from examprep.progress.store import ProgressStore
from examprep.time_utils import utcnow

logger = logging.getLogger(__name__)

MAX_SCORE = 100


@dataclass
class RecordedSession:
    """Result of ``record_session``; ``mastery_changed`` drives notifications upstream."""

    progress: TopicProgress
    previous_level: MasteryLevel
    mastery_changed: bool


def merge_areas(existing: Sequence[str], incoming: Iterable[str]) -> list[str]:
    """Insertion-ordered, case-sensitive set union."""
    return list(dict.fromkeys([*existing, *incoming]))


def _validate_session(score: float, time_spent: float) -> None:
    if score is None or score < 0 or score > MAX_SCORE:
        raise ValidationError(f"Score must be between 0 and {MAX_SCORE}")
    if time_spent is None or time_spent < 0:
        raise ValidationError("Time spent cannot be negative")


async def record_session(
    store: ProgressStore,
    user_id: int,
    topic_id: str,
    score: float,
    time_spent: float,
    weak_areas: Iterable[str] = (),
    strong_areas: Iterable[str] = (),
    series: str | None = None,
    now: datetime | None = None,
) -> RecordedSession:
    """Record one completed practice session on the user's topic record.

    1. Load or lazily create the record (beginner)
    2. Bump time / session / score totals with an atomic UPDATE
    3. Append the session, archiving anything beyond the hot window
    4. Merge weak and strong areas
    5. Re-evaluate mastery and assign the result
    """
    _validate_session(score, time_spent)
    if now is None:
        now = utcnow()
    settings = get_settings()

    progress = await store.get_or_create_topic_progress(user_id, topic_id, series)
    previous_level = MasteryLevel(progress.mastery_level)

    await store.increment_topic_totals(progress, time_spent, score)

    sessions = [
        *progress.practice_sessions,
        {"date": now.isoformat(), "score": score, "time_spent": time_spent},
    ]
    overflow = len(sessions) - settings.session_window
    if overflow > 0:
        await store.archive_sessions(progress, sessions[:overflow])
        sessions = sessions[overflow:]
    progress.practice_sessions = sessions

    progress.last_studied = now
    progress.updated_at = now
    progress.weak_areas = merge_areas(progress.weak_areas, weak_areas)
    progress.strong_areas = merge_areas(progress.strong_areas, strong_areas)

    new_level = evaluate_mastery(
        previous_level,
        sessions,
        total_sessions=progress.total_sessions,
        window=settings.mastery_window,
    )
    progress.mastery_level = new_level.value
    await store.flush()

    mastery_changed = new_level != previous_level
    if mastery_changed:
        logger.info(
            "Mastery level for user %s topic %s: %s -> %s",
            user_id, topic_id, previous_level.value, new_level.value,
        )
    return RecordedSession(progress=progress, previous_level=previous_level, mastery_changed=mastery_changed)


async def update_areas_of_focus(
    store: ProgressStore,
    user_id: int,
    topic_id: str,
    weak_areas: Iterable[str] = (),
    strong_areas: Iterable[str] = (),
) -> TopicProgress:
    """Replace both focus-area sets, deduplicated."""
    progress = await store.get_topic_progress(user_id, topic_id)
    if progress is None:
        raise NotFoundError("Topic progress not found")

    progress.weak_areas = merge_areas([], weak_areas)
    progress.strong_areas = merge_areas([], strong_areas)
    progress.updated_at = utcnow()
    await store.flush()
    return progress


async def delete_topic_progress(store: ProgressStore, user_id: int, topic_id: str) -> TopicProgress:
    progress = await store.get_topic_progress(user_id, topic_id)
    if progress is None:
        raise NotFoundError("Topic progress not found")
    await store.delete_topic_progress(progress)
    return progress
