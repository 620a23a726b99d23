"""Unit tests for the mastery state machine."""

from __future__ import annotations

import pytest

from examprep.progress.mastery import (
    MASTERY_ORDER,
    PROMOTIONS,
    MasteryLevel,
    evaluate_mastery,
    level_index,
    progress_percentage,
    scored_window,
)


def _sessions(*scores: float | None) -> list[dict]:
    return [{"date": f"2026-01-{i + 1:02d}T00:00:00+00:00", "score": s, "time_spent": 10} for i, s in enumerate(scores)]


class TestLadder:
    """Static structure of the level ladder."""

    def test_order(self):
        assert MASTERY_ORDER == [
            MasteryLevel.BEGINNER,
            MasteryLevel.INTERMEDIATE,
            MasteryLevel.ADVANCED,
            MasteryLevel.MASTERED,
        ]

    def test_mastered_is_terminal(self):
        assert PROMOTIONS[MasteryLevel.MASTERED] is None

    def test_every_promotion_moves_one_step(self):
        for level, promotion in PROMOTIONS.items():
            if promotion is not None:
                assert level_index(promotion.target) == level_index(level) + 1

    @pytest.mark.parametrize(
        ("level", "expected"),
        [("beginner", 25), ("intermediate", 50), ("advanced", 75), ("mastered", 100)],
    )
    def test_progress_percentage(self, level, expected):
        assert progress_percentage(level) == expected


class TestScoredWindow:

    def test_unscored_sessions_are_skipped(self):
        assert scored_window(_sessions(70, None, 80, None, 90)) == [70, 80, 90]

    def test_keeps_most_recent(self):
        assert scored_window(_sessions(10, 20, 30, 40, 50, 60, 70)) == [30, 40, 50, 60, 70]


class TestEvaluateMastery:
    """Forward-only transitions with a minimum of three scored sessions."""

    def test_fewer_than_three_scored_sessions_keeps_level(self):
        assert evaluate_mastery("beginner", _sessions(100, 100), total_sessions=50) == MasteryLevel.BEGINNER

    def test_beginner_promoted_at_thresholds(self):
        sessions = _sessions(80, 80, 80, 80, 80, 80, 80)
        assert evaluate_mastery("beginner", sessions) == MasteryLevel.INTERMEDIATE

    def test_beginner_needs_seven_sessions(self):
        sessions = _sessions(95, 95, 95, 95, 95, 95)
        assert evaluate_mastery("beginner", sessions) == MasteryLevel.BEGINNER

    def test_beginner_average_below_threshold(self):
        sessions = _sessions(79, 79, 79, 79, 79, 79, 79, 79)
        assert evaluate_mastery("beginner", sessions) == MasteryLevel.BEGINNER

    def test_intermediate_to_advanced(self):
        sessions = _sessions(*[85] * 8)
        assert evaluate_mastery("intermediate", sessions) == MasteryLevel.ADVANCED

    def test_advanced_to_mastered(self):
        sessions = _sessions(*[90] * 10)
        assert evaluate_mastery("advanced", sessions) == MasteryLevel.MASTERED

    def test_no_level_skipped_in_one_evaluation(self):
        """Perfect scores on a long history still move beginner only one step."""
        sessions = _sessions(*[100] * 20)
        assert evaluate_mastery("beginner", sessions) == MasteryLevel.INTERMEDIATE

    def test_mastered_stays_mastered(self):
        assert evaluate_mastery("mastered", _sessions(0, 0, 0, 0, 0)) == MasteryLevel.MASTERED

    def test_never_demotes(self):
        for level in MASTERY_ORDER:
            result = evaluate_mastery(level, _sessions(0, 0, 0, 0, 0), total_sessions=100)
            assert level_index(result) >= level_index(level)

    def test_window_uses_last_five_scores(self):
        """Old low scores outside the window do not drag the average down."""
        sessions = _sessions(0, 0, 90, 90, 90, 90, 90)
        assert evaluate_mastery("beginner", sessions) == MasteryLevel.INTERMEDIATE

    def test_total_sessions_counts_archived_history(self):
        """Only five sessions in the hot window, but twelve all-time."""
        sessions = _sessions(*[92] * 5)
        assert evaluate_mastery("advanced", sessions, total_sessions=12) == MasteryLevel.MASTERED
        assert evaluate_mastery("advanced", sessions) == MasteryLevel.ADVANCED

    def test_two_session_scenario_skips_evaluation(self):
        """Two sessions at 95 and 98 leave a beginner untouched."""
        assert evaluate_mastery(MasteryLevel.BEGINNER, _sessions(95, 98)) == MasteryLevel.BEGINNER
