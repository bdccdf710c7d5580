"""Short-horizon trend summaries shown alongside practice insights.

Pure module — no I/O, no side effects.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from core.practice_analytics.stats import mean
from core.practice_analytics.types import AnalyticsTrend, PracticeSession, Significance, TrendDirection

_MIN_SESSIONS = 5
_ACCURACY_WINDOW = 5
_FREQUENCY_WINDOW = timedelta(days=7)


def _direction(change: float, band: float) -> TrendDirection:
    if change > band:
        return "up"
    if change < -band:
        return "down"
    return "stable"


def _significance(change: float, medium: float, high: float) -> Significance:
    if abs(change) > high:
        return "high"
    if abs(change) > medium:
        return "medium"
    return "low"


def accuracy_trend(sessions: Sequence[PracticeSession]) -> AnalyticsTrend | None:
    """Percentage change of mean accuracy, last 5 sessions vs the 5 before."""
    recent = sessions[-_ACCURACY_WINDOW:]
    older = sessions[-2 * _ACCURACY_WINDOW : -_ACCURACY_WINDOW]
    if not recent or not older:
        return None
    older_avg = mean([s.quality_metrics.accuracy for s in older])
    if older_avg <= 0:
        return None
    change = (mean([s.quality_metrics.accuracy for s in recent]) - older_avg) / older_avg * 100.0
    return AnalyticsTrend(
        metric="Accuracy",
        direction=_direction(change, 2.0),
        magnitude=abs(change),
        timeframe="Last 10 sessions",
        significance=_significance(change, 5.0, 10.0),
    )


def frequency_trend(sessions: Sequence[PracticeSession], now: datetime) -> AnalyticsTrend | None:
    """Percentage change in session count, last 7 days vs the 7 days before."""
    recent_start = now - _FREQUENCY_WINDOW
    older_start = recent_start - _FREQUENCY_WINDOW
    recent = sum(1 for s in sessions if s.start_time > recent_start)
    older = sum(1 for s in sessions if older_start < s.start_time <= recent_start)
    if recent == 0 or older == 0:
        return None
    change = (recent - older) / older * 100.0
    return AnalyticsTrend(
        metric="Practice Frequency",
        direction=_direction(change, 10.0),
        magnitude=abs(change),
        timeframe="Last 2 weeks",
        significance=_significance(change, 25.0, 50.0),
    )


def summarize_trends(sessions: Sequence[PracticeSession], now: datetime) -> tuple[AnalyticsTrend, ...]:
    """Accuracy and practice-frequency trends over the session history.

    Args:
        sessions: Sealed sessions, oldest first.
        now: Reference time for the 7-day frequency windows.

    Returns:
        Zero, one or two trends; empty with fewer than 5 sessions.
    """
    if len(sessions) < _MIN_SESSIONS:
        return ()
    found = (accuracy_trend(sessions), frequency_trend(sessions, now))
    return tuple(t for t in found if t is not None)
