"""core/practice_analytics/progress_analyzer.py — Skill progress and milestones.

Derives per-skill-area levels from the full session history, compares each
level with the previous measurement of the same area, and aggregates them
into overall progress, learning velocity and an improvement trend.

Signals emitted on :attr:`ProgressAnalyzer.signals`:
    milestone_achieved   Achievement
    component_error      ComponentError
"""

from __future__ import annotations

import logging
import math
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from core.practice_analytics.clock import Clock, SystemClock, epoch_millis
from core.practice_analytics.config import DEFAULT_CONFIG, AnalyticsConfig
from core.practice_analytics.signals import SignalBus, report_fault
from core.practice_analytics.stats import mean, pstdev
from core.practice_analytics.types import (
    SKILL_AREAS,
    Achievement,
    BehaviorPattern,
    ControlInteraction,
    ImprovementTrend,
    PracticeSession,
    ProgressMetrics,
    Rarity,
    SkillArea,
    SkillAreaProgress,
    SkillTrend,
)

logger = logging.getLogger(__name__)

# Estimated minutes of practice per interaction, by controller.
_MINUTES_PER_TEMPO_INTERACTION = 0.5
_MINUTES_PER_TRANSPOSITION_INTERACTION = 0.5
_MINUTES_PER_SYNC_INTERACTION = 0.3

_VELOCITY_WINDOW = 10
_TREND_WINDOW = 3
_TREND_SHIFT = 5.0
_PLATEAU_BAND = 2.0

_STRENGTH_LEVEL = 70.0
_WEAKNESS_LEVEL = 60.0
_STRENGTH_COUNT = 2

_SECONDS_PER_DAY = 86_400.0
_MAX_PROGRESS = 100.0


@dataclass(frozen=True)
class _AreaReading:
    """Raw measurement of one skill area before history comparison."""

    level: float
    practice_minutes: float
    last_practiced: datetime | None


Evaluator = Callable[[Sequence[PracticeSession]], "_AreaReading | None"]


# ---------------------------------------------------------------------------
# Skill-area evaluators
# ---------------------------------------------------------------------------


def _interactions_of(sessions: Sequence[PracticeSession], controller_type: str) -> list[ControlInteraction]:
    return [
        i for s in sessions for i in s.control_interactions if i.controller_type == controller_type
    ]


def _accuracy_and_success(
    sessions: Sequence[PracticeSession],
    controller_type: str,
    minutes_each: float,
) -> _AreaReading | None:
    interactions = _interactions_of(sessions, controller_type)
    if not interactions:
        return None
    accuracy = mean([i.performance.accuracy for i in interactions])
    success = mean([i.performance.success_rate for i in interactions])
    return _AreaReading(
        level=(accuracy + success) / 2.0,
        practice_minutes=len(interactions) * minutes_each,
        last_practiced=max(i.timestamp for i in interactions),
    )


def evaluate_tempo_control(sessions: Sequence[PracticeSession]) -> _AreaReading | None:
    return _accuracy_and_success(sessions, "tempo", _MINUTES_PER_TEMPO_INTERACTION)


def evaluate_transposition(sessions: Sequence[PracticeSession]) -> _AreaReading | None:
    return _accuracy_and_success(sessions, "transposition", _MINUTES_PER_TRANSPOSITION_INTERACTION)


def evaluate_timing_accuracy(sessions: Sequence[PracticeSession]) -> _AreaReading | None:
    interactions = _interactions_of(sessions, "synchronization")
    if not interactions:
        return None
    return _AreaReading(
        level=mean([i.performance.accuracy for i in interactions]),
        practice_minutes=len(interactions) * _MINUTES_PER_SYNC_INTERACTION,
        last_practiced=max(i.timestamp for i in interactions),
    )


def evaluate_consistency(sessions: Sequence[PracticeSession]) -> _AreaReading | None:
    if not sessions:
        return None
    return _AreaReading(
        level=mean([s.quality_metrics.consistency for s in sessions]),
        practice_minutes=sum(s.duration_minutes for s in sessions),
        last_practiced=max(s.start_time for s in sessions),
    )


def evaluate_technique(sessions: Sequence[PracticeSession]) -> _AreaReading | None:
    if not sessions:
        return None
    accuracy = mean([s.quality_metrics.accuracy for s in sessions])
    engagement = mean([s.quality_metrics.engagement for s in sessions])
    return _AreaReading(
        level=(accuracy + engagement) / 2.0,
        practice_minutes=sum(s.duration_minutes for s in sessions),
        last_practiced=max(s.start_time for s in sessions),
    )


_EVALUATORS: dict[SkillArea, Evaluator] = {
    "tempo_control": evaluate_tempo_control,
    "transposition": evaluate_transposition,
    "timing_accuracy": evaluate_timing_accuracy,
    "consistency": evaluate_consistency,
    "technique": evaluate_technique,
}


# ---------------------------------------------------------------------------
# Aggregate formulas
# ---------------------------------------------------------------------------


def learning_velocity(sessions: Sequence[PracticeSession]) -> float:
    """Accuracy points gained per day: last 10 sessions vs the 10 before.

    Returns:
        0.0 when either window is empty or no time has elapsed.
    """
    recent = sessions[-_VELOCITY_WINDOW:]
    older = sessions[-2 * _VELOCITY_WINDOW : -_VELOCITY_WINDOW]
    if not recent or not older:
        return 0.0
    improvement = mean([s.quality_metrics.accuracy for s in recent]) - mean(
        [s.quality_metrics.accuracy for s in older]
    )
    days = (recent[-1].start_time - older[0].start_time).total_seconds() / _SECONDS_PER_DAY
    return improvement / days if days > 0 else 0.0


def consistency_score(sessions: Sequence[PracticeSession]) -> float:
    """``100 - σ(session accuracies)``, floored at 0."""
    if not sessions:
        return 0.0
    return max(0.0, 100.0 - pstdev([s.quality_metrics.accuracy for s in sessions]))


def improvement_trend(sessions: Sequence[PracticeSession]) -> ImprovementTrend:
    """Classify how the rate of accuracy gain is changing.

    Compares three consecutive 3-session windows.  With fewer than 9
    sessions the oldest window falls back to the middle window's average.
    """
    if len(sessions) < 2 * _TREND_WINDOW:
        return "steady"
    recent = sessions[-_TREND_WINDOW:]
    middle = sessions[-2 * _TREND_WINDOW : -_TREND_WINDOW]
    older = sessions[-3 * _TREND_WINDOW : -2 * _TREND_WINDOW]

    recent_avg = mean([s.quality_metrics.accuracy for s in recent])
    middle_avg = mean([s.quality_metrics.accuracy for s in middle])
    older_avg = mean([s.quality_metrics.accuracy for s in older]) if older else middle_avg

    recent_gain = recent_avg - middle_avg
    middle_gain = middle_avg - older_avg
    if recent_gain > middle_gain + _TREND_SHIFT:
        return "accelerating"
    if recent_gain < middle_gain - _TREND_SHIFT:
        return "declining"
    if abs(recent_gain) < _PLATEAU_BAND and abs(middle_gain) < _PLATEAU_BAND:
        return "plateauing"
    return "steady"


def next_milestone(progress: float, step: float) -> float:
    """The next multiple of ``step`` strictly above ``progress``, capped at 100."""
    boundary = math.ceil(progress / step) * step
    if boundary <= progress:
        boundary += step
    return min(boundary, _MAX_PROGRESS)


def days_to_next_milestone(progress: float, velocity: float, config: AnalyticsConfig = DEFAULT_CONFIG) -> int:
    """Linear extrapolation of ``velocity`` up to the next milestone.

    Returns:
        Whole days, rounded up; 0 once progress is complete and
        ``config.unknown_milestone_days`` when the player is not improving.
    """
    if progress >= _MAX_PROGRESS:
        return 0
    if velocity <= 0:
        return config.unknown_milestone_days
    needed = next_milestone(progress, config.milestone_step) - progress
    return math.ceil(needed / velocity)


def strengths_and_weaknesses(
    areas: Sequence[SkillAreaProgress],
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Top-2 areas above 70 and bottom-2 areas below 60, as display names."""
    ranked = sorted(areas, key=lambda a: a.current_level, reverse=True)
    strengths = tuple(
        a.display_name for a in ranked[:_STRENGTH_COUNT] if a.current_level > _STRENGTH_LEVEL
    )
    weaknesses = tuple(
        a.display_name for a in ranked[-_STRENGTH_COUNT:] if a.current_level < _WEAKNESS_LEVEL
    )
    return strengths, weaknesses


def milestone_rarity(value: float) -> Rarity:
    if value < 30:
        return "common"
    if value < 50:
        return "uncommon"
    if value < 70:
        return "rare"
    if value < 90:
        return "epic"
    return "legendary"


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


class ProgressAnalyzer:
    """Scores skill progress and keeps the list of earned milestones.

    Each call to :meth:`analyze_progress` appends one measurement per skill
    area to a rolling history; the previous measurement is what the next call
    compares against.

    Args:
        config: Analytics configuration (history cap, thresholds, milestone step).
        clock: Time source for automatically recorded milestones.
    """

    def __init__(self, config: AnalyticsConfig = DEFAULT_CONFIG, clock: Clock | None = None) -> None:
        self._config = config
        self._clock = clock or SystemClock()
        self._skill_history: dict[SkillArea, deque[float]] = {}
        self._milestones: list[Achievement] = []
        self._highest_boundary = 0
        self.signals = SignalBus("ProgressAnalyzer")

    def analyze_progress(
        self,
        sessions: Sequence[PracticeSession],
        patterns: Sequence[BehaviorPattern] = (),
    ) -> ProgressMetrics:
        """Compute progress over ``sessions``.

        Args:
            sessions: Sealed sessions, oldest first.
            patterns: Live behaviour patterns. Accepted for interface
                stability; the current formulas do not read them.

        Returns:
            Zeroed metrics for an empty history, otherwise the full breakdown.
        """
        if not sessions:
            return ProgressMetrics(days_to_next_milestone=self._config.unknown_milestone_days)

        areas = self._analyze_skill_areas(sessions)
        overall = mean([a.current_level for a in areas])
        velocity = learning_velocity(sessions)
        strengths, weaknesses = strengths_and_weaknesses(areas)

        metrics = ProgressMetrics(
            overall_progress=overall,
            skill_areas=areas,
            learning_velocity=velocity,
            consistency_score=consistency_score(sessions),
            improvement_trend=improvement_trend(sessions),
            days_to_next_milestone=days_to_next_milestone(overall, velocity, self._config),
            strengths=strengths,
            areas_for_improvement=weaknesses,
        )
        logger.debug(
            "Progress over %d sessions: overall=%.1f velocity=%.2f trend=%s",
            len(sessions),
            overall,
            velocity,
            metrics.improvement_trend,
        )
        self._record_progress_milestone(overall)
        return metrics

    def track_milestone(self, achievement: Achievement) -> None:
        """Store ``achievement`` and announce it on ``milestone_achieved``."""
        self._milestones.append(achievement)
        logger.info("Milestone %r achieved (%s)", achievement.title, achievement.rarity)
        self.signals.emit("milestone_achieved", achievement)

    def get_milestones(self) -> tuple[Achievement, ...]:
        return tuple(self._milestones)

    def skill_history(self, area: SkillArea) -> tuple[float, ...]:
        """Stored levels for ``area``, oldest first."""
        return tuple(self._skill_history.get(area, ()))

    def dispose(self) -> None:
        self._skill_history.clear()
        self._milestones.clear()
        self._highest_boundary = 0
        self.signals.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _analyze_skill_areas(self, sessions: Sequence[PracticeSession]) -> tuple[SkillAreaProgress, ...]:
        areas: list[SkillAreaProgress] = []
        for area in SKILL_AREAS:
            try:
                reading = _EVALUATORS[area](sessions)
            except Exception as exc:  # noqa: BLE001
                report_fault(self.signals, f"evaluate_{area}", exc, now=self._clock.now())
                reading = None
            areas.append(self._compare_with_history(area, reading))
        return tuple(areas)

    def _compare_with_history(self, area: SkillArea, reading: _AreaReading | None) -> SkillAreaProgress:
        current = reading.level if reading else 0.0
        history = self._skill_history.setdefault(
            area, deque(maxlen=self._config.skill_history_cap)
        )

        previous = 0.0
        improvement = 0.0
        trend: SkillTrend = "stable"
        if history:
            previous = history[-1]
            improvement = current - previous
            if improvement > self._config.skill_trend_threshold:
                trend = "improving"
            elif improvement < -self._config.skill_trend_threshold:
                trend = "declining"
        history.append(current)

        return SkillAreaProgress(
            area=area,
            current_level=current,
            previous_level=previous,
            improvement=improvement,
            trend=trend,
            practice_minutes=reading.practice_minutes if reading else 0.0,
            last_practiced=reading.last_practiced if reading else None,
        )

    def _record_progress_milestone(self, overall: float) -> None:
        """Record an achievement the first time overall progress reaches a new boundary."""
        step = self._config.milestone_step
        boundary = int(math.floor(overall / step) * step)
        if boundary <= self._highest_boundary:
            return
        self._highest_boundary = boundary
        now = self._clock.now()
        self.track_milestone(
            Achievement(
                achievement_id=f"progress_milestone_{boundary}_{epoch_millis(now)}",
                achievement_type="milestone",
                title=f"{boundary}% Overall Progress",
                description=f"Overall skill progress reached {boundary}%",
                earned_at=now,
                value=float(boundary),
                category="overall_progress",
                rarity=milestone_rarity(boundary),
            )
        )
