"""Performance trend over an ordered run of scored sessions."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

TREND_THRESHOLD = 5
MIN_TREND_SESSIONS = 3


class Trend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def classify_trend(sessions: Sequence[Mapping[str, Any]]) -> Trend:
    """Compare the mean score of the second half against the first half.

    With an odd count the middle session belongs to the second half.
    Fewer than three sessions is always ``stable``.
    """
    if len(sessions) < MIN_TREND_SESSIONS:
        return Trend.STABLE

    mid = len(sessions) // 2
    first_half = [s["score"] for s in sessions[:mid]]
    second_half = [s["score"] for s in sessions[mid:]]

    difference = _mean(second_half) - _mean(first_half)
    if difference > TREND_THRESHOLD:
        return Trend.IMPROVING
    if difference < -TREND_THRESHOLD:
        return Trend.DECLINING
    return Trend.STABLE
