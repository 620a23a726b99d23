"""Advisory text derived from a topic's mastery, focus areas, recency and trend.

Every rule is evaluated and may append one line; the order of the output is
the order of the rules below.
"""

from __future__ import annotations

from datetime import datetime

from examprep.db.models import TopicProgress
from examprep.progress.mastery import MasteryLevel
from examprep.progress.trend import Trend, classify_trend
from examprep.time_utils import as_utc, utcnow

FOUNDATION_SESSION_LIMIT = 5
MAX_WEAK_AREAS_NAMED = 3
STALE_AFTER_DAYS = 7
TREND_WINDOW = 5

FOUNDATION_ADVICE = "Continue practicing basic concepts to build foundation"
REVIEW_REMINDER = "It's been a while since your last study session. Consider reviewing this topic"
DECLINING_ADVICE = "Your recent scores are declining. Consider reviewing fundamentals"
IMPROVING_ADVICE = "Great improvement! Consider advancing to more challenging material"


def days_since(last_studied: datetime | None, now: datetime) -> float:
    """Whole days elapsed; an unset timestamp is infinitely stale."""
    if last_studied is None:
        return float("inf")
    return (as_utc(now) - as_utc(last_studied)).days


def generate_recommendations(
    progress: TopicProgress,
    now: datetime | None = None,
    stale_after_days: int = STALE_AFTER_DAYS,
) -> list[str]:
    if now is None:
        now = utcnow()
    recommendations: list[str] = []

    if progress.mastery_level == MasteryLevel.BEGINNER and progress.total_sessions < FOUNDATION_SESSION_LIMIT:
        recommendations.append(FOUNDATION_ADVICE)

    if progress.weak_areas:
        named = ", ".join(progress.weak_areas[:MAX_WEAK_AREAS_NAMED])
        recommendations.append(f"Focus on improving: {named}")

    if days_since(progress.last_studied, now) > stale_after_days:
        recommendations.append(REVIEW_REMINDER)

    trend = classify_trend(progress.practice_sessions[-TREND_WINDOW:])
    if trend is Trend.DECLINING:
        recommendations.append(DECLINING_ADVICE)
    elif trend is Trend.IMPROVING:
        recommendations.append(IMPROVING_ADVICE)

    return recommendations
