"""core/practice_analytics/session_tracker.py — Practice session lifecycle and statistics.

Owns the single open session and the capped history of sealed ones.
Callers only ever receive frozen :class:`PracticeSession` snapshots; the
mutable draft of the open session never leaves this module.

Signals emitted on :attr:`SessionTracker.signals`:
    session_started        PracticeSession (open snapshot)
    interaction_recorded   ControlInteraction
    session_ended          PracticeSession (sealed)
    component_error        ComponentError
"""

from __future__ import annotations

import logging
import math
import uuid
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from core.practice_analytics.clock import Clock, SystemClock
from core.practice_analytics.config import DEFAULT_CONFIG, AnalyticsConfig
from core.practice_analytics.signals import SignalBus, report_fault
from core.practice_analytics.stats import clamp, mean, pstdev, top_n
from core.practice_analytics.types import (
    EMPTY_QUALITY,
    Achievement,
    ControlInteraction,
    PracticeContext,
    PracticeSession,
    SessionQualityMetrics,
    SessionSummary,
)

logger = logging.getLogger(__name__)

# An interaction counts as completed when its success rate is above this.
_COMPLETION_SUCCESS_RATE = 70.0

# Improvement highlights compare the last N sessions against the N before.
_HIGHLIGHT_WINDOW = 5
_HIGHLIGHT_MIN_GAIN = 5.0

_MOST_USED_CONTROLS = 5


@dataclass
class _OpenSession:
    """Mutable draft of the session currently being recorded."""

    session_id: str
    start_time: datetime
    context: PracticeContext
    interactions: list[ControlInteraction] = field(default_factory=list)
    achievements: list[Achievement] = field(default_factory=list)

    def snapshot(self) -> PracticeSession:
        return PracticeSession(
            session_id=self.session_id,
            start_time=self.start_time,
            context=self.context,
            control_interactions=tuple(self.interactions),
            achievements=tuple(self.achievements),
        )


# ---------------------------------------------------------------------------
# Quality metrics
# ---------------------------------------------------------------------------


def _round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up, unlike :func:`round`."""
    return math.floor(value + 0.5)


def compute_quality_metrics(
    interactions: Sequence[ControlInteraction],
    duration: timedelta,
) -> SessionQualityMetrics:
    """Score a session from its interactions.

    Args:
        interactions: Interactions recorded during the session, in order.
        duration: Wall time between session start and end.

    Returns:
        Six integer scores in [0, 100]; all zero when there are no interactions.
    """
    if not interactions:
        return EMPTY_QUALITY

    count = len(interactions)
    accuracy = mean([i.performance.accuracy for i in interactions])

    response_times = [i.performance.response_time_ms for i in interactions]
    avg_response = mean(response_times)
    spread = pstdev(response_times)
    if avg_response > 0:
        consistency = max(0.0, 100.0 - (spread / avg_response) * 100.0)
    else:
        # Every response took 0 ms: no variation at all.
        consistency = 100.0

    minutes = duration.total_seconds() / 60.0
    engagement = min(100.0, (count / minutes) * 10.0) if minutes > 0 else 0.0

    completed = sum(1 for i in interactions if i.performance.success_rate > _COMPLETION_SUCCESS_RATE)
    completion_rate = completed / count * 100.0

    total_errors = sum(i.performance.error_count for i in interactions)
    error_rate = min(100.0, total_errors / count * 10.0)

    focus_score = consistency * 0.6 + engagement * 0.4

    return SessionQualityMetrics(
        accuracy=_round_half_up(clamp(accuracy)),
        consistency=_round_half_up(clamp(consistency)),
        engagement=_round_half_up(clamp(engagement)),
        completion_rate=_round_half_up(clamp(completion_rate)),
        error_rate=_round_half_up(clamp(error_rate)),
        focus_score=_round_half_up(clamp(focus_score)),
    )


# ---------------------------------------------------------------------------
# Statistics helpers
# ---------------------------------------------------------------------------


def streak_days(sessions: Sequence[PracticeSession]) -> int:
    """Count consecutive calendar days with practice, ending at the latest session.

    Walks sessions newest-first starting from the calendar day of the most
    recent one; several sessions on the same day count once, and the first
    missing day ends the streak.

    Args:
        sessions: Sealed sessions in any order.

    Returns:
        Streak length in days, 0 for no sessions.
    """
    if not sessions:
        return 0
    ordered = sorted(sessions, key=lambda s: s.start_time, reverse=True)
    expected = ordered[0].start_time.date()
    streak = 0
    for session in ordered:
        day = session.start_time.date()
        if day == expected:
            streak += 1
            expected -= timedelta(days=1)
        elif day < expected:
            break
    return streak


def improvement_highlights(sessions: Sequence[PracticeSession]) -> tuple[str, ...]:
    """Describe accuracy / consistency gains of the last 5 sessions over the 5 before.

    Args:
        sessions: Sealed sessions, oldest first.

    Returns:
        Human-readable highlight strings; empty when there is nothing to compare.
    """
    if len(sessions) < 2:
        return ()
    recent = sessions[-_HIGHLIGHT_WINDOW:]
    older = sessions[-2 * _HIGHLIGHT_WINDOW : -_HIGHLIGHT_WINDOW]
    if not recent or not older:
        return ()

    highlights: list[str] = []
    for label, metric in (("Accuracy", "accuracy"), ("Consistency", "consistency")):
        recent_avg = mean([getattr(s.quality_metrics, metric) for s in recent])
        older_avg = mean([getattr(s.quality_metrics, metric) for s in older])
        if recent_avg > older_avg + _HIGHLIGHT_MIN_GAIN:
            highlights.append(f"{label} improved by {_round_half_up(recent_avg - older_avg)}%")
    return tuple(highlights)


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------


class SessionTracker:
    """Tracks the open practice session and the history of sealed ones.

    Args:
        config: Analytics configuration (history cap).
        clock: Time source for session boundaries.

    Example::

        tracker = SessionTracker()
        tracker.start_session(PracticeContext(focus_area="tempo"))
        tracker.record_interaction(interaction)
        sealed = tracker.end_session()
    """

    def __init__(self, config: AnalyticsConfig = DEFAULT_CONFIG, clock: Clock | None = None) -> None:
        self._config = config
        self._clock = clock or SystemClock()
        self._current: _OpenSession | None = None
        self._history: deque[PracticeSession] = deque(maxlen=config.session_history_cap)
        self.signals = SignalBus("SessionTracker")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_session(self, context: PracticeContext) -> PracticeSession:
        """Open a new session, sealing any session that is still open.

        Args:
            context: What the player intends to practise.

        Returns:
            Snapshot of the newly opened session.
        """
        if self._current is not None:
            logger.info("Session %s still open — closing it first", self._current.session_id)
            self.end_session()

        self._current = _OpenSession(
            session_id=f"session_{uuid.uuid4().hex}",
            start_time=self._clock.now(),
            context=context,
        )
        snapshot = self._current.snapshot()
        logger.info("Practice session %s started (%s)", snapshot.session_id, context.focus_area)
        self.signals.emit("session_started", snapshot)
        return snapshot

    def end_session(self) -> PracticeSession | None:
        """Seal the open session and move it into history.

        Returns:
            The sealed session, or ``None`` if no session was open.
        """
        draft = self._current
        if draft is None:
            return None

        end_time = self._clock.now()
        try:
            quality = compute_quality_metrics(draft.interactions, end_time - draft.start_time)
        except Exception as exc:  # noqa: BLE001
            report_fault(self.signals, "compute_quality_metrics", exc, now=end_time)
            quality = EMPTY_QUALITY

        sealed = PracticeSession(
            session_id=draft.session_id,
            start_time=draft.start_time,
            context=draft.context,
            control_interactions=tuple(draft.interactions),
            quality_metrics=quality,
            achievements=tuple(draft.achievements),
            end_time=end_time,
        )
        self._history.append(sealed)
        self._current = None

        logger.info(
            "Practice session %s ended: %d interactions, %.1f min, accuracy=%d",
            sealed.session_id,
            len(sealed.control_interactions),
            sealed.duration_minutes,
            quality.accuracy,
        )
        self.signals.emit("session_ended", sealed)
        return sealed

    def record_interaction(self, interaction: ControlInteraction) -> None:
        """Append ``interaction`` to the open session.

        Does nothing when no session is open.
        """
        if self._current is None:
            logger.debug("No open session — dropping interaction %s", interaction.interaction_id)
            return
        self._current.interactions.append(interaction)
        self.signals.emit("interaction_recorded", interaction)

    def record_achievement(self, achievement: Achievement) -> None:
        """Attach ``achievement`` to the open session. Does nothing when none is open."""
        if self._current is None:
            return
        self._current.achievements.append(achievement)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def current_session(self) -> PracticeSession | None:
        """Snapshot of the open session, or ``None``."""
        return None if self._current is None else self._current.snapshot()

    @property
    def has_open_session(self) -> bool:
        return self._current is not None

    @property
    def history(self) -> tuple[PracticeSession, ...]:
        """Sealed sessions, oldest first."""
        return tuple(self._history)

    def get_session_history(self, limit: int | None = None) -> list[PracticeSession]:
        """Sealed sessions, newest first, optionally truncated to ``limit``."""
        sessions = list(reversed(self._history))
        return sessions[:limit] if limit else sessions

    def get_session_stats(self) -> SessionSummary:
        """Aggregate statistics over the whole history."""
        sessions = self.history
        if not sessions:
            return SessionSummary()

        total_minutes = sum(s.duration_minutes for s in sessions)
        favorites = top_n((s.context.time_of_day for s in sessions), 1)
        controls = top_n(
            (i.control_key for s in sessions for i in s.control_interactions),
            _MOST_USED_CONTROLS,
        )
        return SessionSummary(
            total_sessions=len(sessions),
            total_practice_minutes=total_minutes,
            average_session_minutes=total_minutes / len(sessions),
            streak_days=streak_days(sessions),
            last_session_start=max(s.start_time for s in sessions),
            favorite_time_of_day=favorites[0] if favorites else "evening",
            most_used_controls=tuple(controls),
            improvement_highlights=improvement_highlights(sessions),
        )

    def dispose(self) -> None:
        """Seal any open session, then drop history and listeners."""
        if self._current is not None:
            self.end_session()
        self._history.clear()
        self.signals.clear()
