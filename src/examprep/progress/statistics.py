"""User-level roll-ups of topic, achievement and mission state."""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from examprep.config import get_settings
from examprep.db.models import Achievement, Mission, TopicProgress
from examprep.progress.mastery import MASTERY_ORDER, progress_percentage
from examprep.progress.recommendations import generate_recommendations
from examprep.progress.store import ProgressStore
from examprep.progress.target_tracker import is_expired
from examprep.time_utils import as_utc, parse_iso, utcnow

RECENT_PERFORMANCE_SIZE = 10


def _percent(part: float, whole: float) -> int:
    return round(part / whole * 100) if whole > 0 else 0


def study_streak(sessions: Sequence[Mapping[str, Any]], now: datetime | None = None) -> int:
    """Count sessions walking back from ``now`` while each gap is at most one day."""
    if now is None:
        now = utcnow()
    dates = sorted((parse_iso(s["date"]) for s in sessions), reverse=True)

    streak = 0
    cursor = as_utc(now)
    for session_date in dates:
        if (cursor - session_date).days <= 1:
            streak += 1
            cursor = session_date
        else:
            break
    return streak


def summarize_topic_progress(
    records: Sequence[TopicProgress],
    subject_of: Mapping[str, str] | None = None,
) -> dict:
    """Mastery distribution, totals and all-time average score across topics.

    ``subject_of`` maps topic ids to subject ids; topic content lives outside
    the engine so the caller supplies it when a per-subject breakdown is wanted.
    """
    distribution = {level.value: 0 for level in MASTERY_ORDER}
    subject_progress: dict[str, dict[str, float]] = {}
    total_time = 0.0
    total_sessions = 0
    total_score = 0.0

    for record in records:
        distribution[record.mastery_level] += 1
        total_time += record.time_spent
        total_sessions += record.total_sessions
        total_score += record.total_score

        subject_id = (subject_of or {}).get(record.topic_id) or record.subject_id
        if subject_id:
            bucket = subject_progress.setdefault(
                subject_id, {"total_topics": 0, "mastered_topics": 0, "time_spent": 0.0}
            )
            bucket["total_topics"] += 1
            if record.mastery_level == "mastered":
                bucket["mastered_topics"] += 1
            bucket["time_spent"] += record.time_spent

    return {
        "total_topics": len(records),
        "mastery_distribution": distribution,
        "total_time_spent": total_time,
        "total_sessions": total_sessions,
        "average_score": round(total_score / total_sessions) if total_sessions else 0,
        "subject_progress": subject_progress,
    }


def summarize_achievements(records: Sequence[Achievement]) -> dict:
    completed = sum(1 for a in records if a.progress >= a.target)
    total_progress = sum(a.progress for a in records)
    total_targets = sum(a.target for a in records)
    return {
        "total_achievements": len(records),
        "completed_achievements": completed,
        "total_progress": total_progress,
        "total_targets": total_targets,
        "completion_rate": _percent(completed, len(records)),
        "overall_progress": _percent(total_progress, total_targets),
    }


def summarize_missions(records: Sequence[Mission], now: datetime | None = None) -> dict:
    if now is None:
        now = utcnow()

    by_type: Counter[str] = Counter()
    by_type_completed: Counter[str] = Counter()
    by_category: Counter[str] = Counter()
    by_category_completed: Counter[str] = Counter()
    for m in records:
        by_type[m.mission_type] += 1
        by_category[m.category or "uncategorized"] += 1
        if m.completed:
            by_type_completed[m.mission_type] += 1
            by_category_completed[m.category or "uncategorized"] += 1

    return {
        "overall": {
            "total_missions": len(records),
            "completed_missions": sum(1 for m in records if m.completed),
            "active_missions": sum(1 for m in records if m.is_active),
            "expired_missions": sum(1 for m in records if is_expired(m, now)),
            "total_points": sum(m.points for m in records),
            "average_progress": (sum(m.progress for m in records) / len(records)) if records else 0,
        },
        "by_type": [
            {"type": t, "count": n, "completed": by_type_completed[t]} for t, n in sorted(by_type.items())
        ],
        "by_category": [
            {"category": c, "count": n, "completed": by_category_completed[c]}
            for c, n in sorted(by_category.items())
        ],
    }


async def get_user_progress_statistics(
    store: ProgressStore,
    user_id: int,
    subject_of: Mapping[str, str] | None = None,
) -> dict:
    records = await store.list_topic_progress(user_id, limit=None)
    return summarize_topic_progress(records, subject_of)


async def get_topic_progress_analytics(
    store: ProgressStore,
    user_id: int,
    topic_id: str,
    now: datetime | None = None,
) -> dict | None:
    """Read-side view of one topic: basics, session analytics, focus areas, advice."""
    progress = await store.get_topic_progress(user_id, topic_id)
    if progress is None:
        return None
    if now is None:
        now = utcnow()

    return {
        "basic_info": {
            "topic_id": progress.topic_id,
            "mastery_level": progress.mastery_level,
            "progress_percentage": progress_percentage(progress.mastery_level),
            "total_time_spent": progress.time_spent,
            "last_studied": progress.last_studied,
        },
        "session_analytics": {
            "total_sessions": progress.total_sessions,
            "average_score": progress.average_score,
            "study_streak": study_streak(progress.practice_sessions, now),
            "recent_performance": progress.practice_sessions[-RECENT_PERFORMANCE_SIZE:],
        },
        "strengths": list(progress.strong_areas),
        "weaknesses": list(progress.weak_areas),
        "recommendations": generate_recommendations(progress, now, get_settings().stale_after_days),
    }
