"""Unit tests for study recommendations."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from examprep.db.models import TopicProgress
from examprep.progress.recommendations import (
    DECLINING_ADVICE,
    FOUNDATION_ADVICE,
    IMPROVING_ADVICE,
    REVIEW_REMINDER,
    days_since,
    generate_recommendations,
)

NOW = datetime(2026, 5, 10, 9, 0, tzinfo=timezone.utc)


def _progress(
    level: str = "intermediate",
    total_sessions: int = 10,
    scores: tuple[float, ...] = (),
    weak_areas: list[str] | None = None,
    last_studied: datetime | None = NOW,
) -> TopicProgress:
    return TopicProgress(
        user_id=1,
        topic_id="algebra",
        mastery_level=level,
        total_sessions=total_sessions,
        practice_sessions=[{"date": NOW.isoformat(), "score": s, "time_spent": 5} for s in scores],
        weak_areas=weak_areas or [],
        strong_areas=[],
        last_studied=last_studied,
    )


class TestDaysSince:

    def test_unset_is_infinite(self):
        assert days_since(None, NOW) == float("inf")

    def test_whole_days(self):
        assert days_since(NOW - timedelta(days=7, hours=23), NOW) == 7


class TestGenerateRecommendations:

    def test_nothing_to_say(self):
        assert generate_recommendations(_progress(scores=(80, 80, 80)), NOW) == []

    def test_new_beginner_gets_foundation_advice(self):
        recs = generate_recommendations(_progress(level="beginner", total_sessions=4), NOW)
        assert recs == [FOUNDATION_ADVICE]

    def test_beginner_with_five_sessions_skips_foundation(self):
        assert generate_recommendations(_progress(level="beginner", total_sessions=5), NOW) == []

    def test_names_first_three_weak_areas(self):
        recs = generate_recommendations(_progress(weak_areas=["fractions", "ratios", "angles", "vectors"]), NOW)
        assert recs == ["Focus on improving: fractions, ratios, angles"]

    def test_stale_topic(self):
        recs = generate_recommendations(_progress(last_studied=NOW - timedelta(days=8)), NOW)
        assert recs == [REVIEW_REMINDER]

    def test_exactly_seven_days_is_not_stale(self):
        assert generate_recommendations(_progress(last_studied=NOW - timedelta(days=7)), NOW) == []

    def test_never_studied_is_stale(self):
        assert REVIEW_REMINDER in generate_recommendations(_progress(last_studied=None), NOW)

    def test_declining_trend(self):
        recs = generate_recommendations(_progress(scores=(90, 90, 60, 60)), NOW)
        assert recs == [DECLINING_ADVICE]

    def test_trend_uses_last_five_sessions(self):
        """Early low scores fall outside the five-session trend window."""
        recs = generate_recommendations(_progress(scores=(10, 10, 10, 80, 80, 80, 80, 80)), NOW)
        assert recs == []

    def test_rules_fire_in_order(self):
        progress = _progress(
            level="beginner",
            total_sessions=3,
            scores=(50, 52, 90),
            weak_areas=["grammar"],
            last_studied=NOW - timedelta(days=30),
        )
        assert generate_recommendations(progress, NOW) == [
            FOUNDATION_ADVICE,
            "Focus on improving: grammar",
            REVIEW_REMINDER,
            IMPROVING_ADVICE,
        ]
