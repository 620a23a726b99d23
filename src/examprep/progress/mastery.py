"""Mastery state machine: forward-only topic proficiency levels.

State progression: beginner -> intermediate -> advanced -> mastered
Each evaluation checks only the transition out of the current level, so a
level can never be skipped or lowered by automatic evaluation.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, NamedTuple

MIN_SCORED_SESSIONS = 3
DEFAULT_WINDOW = 5


class MasteryLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    MASTERED = "mastered"


MASTERY_ORDER: list[MasteryLevel] = list(MasteryLevel)


class Promotion(NamedTuple):
    target: MasteryLevel
    min_average: float
    min_sessions: int


# Single outgoing edge per state. ``mastered`` is terminal.
PROMOTIONS: dict[MasteryLevel, Promotion | None] = {
    MasteryLevel.BEGINNER: Promotion(MasteryLevel.INTERMEDIATE, 80, 7),
    MasteryLevel.INTERMEDIATE: Promotion(MasteryLevel.ADVANCED, 85, 8),
    MasteryLevel.ADVANCED: Promotion(MasteryLevel.MASTERED, 90, 10),
    MasteryLevel.MASTERED: None,
}


def level_index(level: MasteryLevel | str) -> int:
    return MASTERY_ORDER.index(MasteryLevel(level))


def progress_percentage(level: MasteryLevel | str) -> int:
    """Share of the ladder reached, e.g. beginner=25, mastered=100."""
    return round((level_index(level) + 1) / len(MASTERY_ORDER) * 100)


def scored_window(sessions: Sequence[Mapping[str, Any]], window: int = DEFAULT_WINDOW) -> list[float]:
    """Scores of the most recent ``window`` sessions that carry a score."""
    scores = [s["score"] for s in sessions if s.get("score") is not None]
    return scores[-window:]


def evaluate_mastery(
    current: MasteryLevel | str,
    sessions: Sequence[Mapping[str, Any]],
    total_sessions: int | None = None,
    window: int = DEFAULT_WINDOW,
) -> MasteryLevel:
    """Return the level after one evaluation of ``sessions``.

    ``total_sessions`` is the all-time count, which can exceed ``len(sessions)``
    once older sessions have been archived. Pure: the caller assigns the result.
    """
    level = MasteryLevel(current)
    scores = scored_window(sessions, window)
    if len(scores) < MIN_SCORED_SESSIONS:
        return level

    promotion = PROMOTIONS[level]
    if promotion is None:
        return level

    average = sum(scores) / len(scores)
    total = len(sessions) if total_sessions is None else total_sessions
    if average >= promotion.min_average and total >= promotion.min_sessions:
        return promotion.target
    return level
