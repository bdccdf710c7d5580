"""core/practice_analytics/pattern_recognizer.py — Incremental behaviour pattern detection.

Every recorded interaction is appended to a capped history and five
independent detectors are re-run over it:

    tempo_progression         how far the player moves the tempo each time
    transposition_preference  preferred transposition distances and keys
    practice_routine          recurring first moves of each practice segment
    learning_style            visual / auditory / kinesthetic inclination
    session_timing            preferred hours and weekdays for warming up

A detector that has not seen its minimum sample count leaves the stored
pattern untouched.  A detector that raises is reported as a
``component_error`` and the other detectors still run.

Signals emitted on :attr:`BehaviorPatternRecognizer.signals`:
    pattern_detected   BehaviorPattern
    component_error    ComponentError
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Sequence
from datetime import timedelta

from core.practice_analytics.clock import Clock, SystemClock
from core.practice_analytics.config import DEFAULT_CONFIG, AnalyticsConfig
from core.practice_analytics.parameters import TempoParameters, TranspositionParameters
from core.practice_analytics.signals import SignalBus, report_fault
from core.practice_analytics.stats import mean, pstdev, ratio, top_n
from core.practice_analytics.types import (
    BehaviorPattern,
    ControlInteraction,
    LearningStyle,
    LearningStyleTraits,
    PatternTraits,
    PatternTrend,
    PatternType,
    PracticeRoutineTraits,
    SessionTimingTraits,
    TempoProgressionTraits,
    TempoStyle,
    TranspositionRange,
    TranspositionTraits,
)

logger = logging.getLogger(__name__)

# Learning-style indicators: controller heuristics and action keywords.
_VISUAL_CONTROLLER = "synchronization"
_AUDITORY_CONTROLLER = "tempo"
_KINESTHETIC_CONTROLLER = "playback"
_VISUAL_KEYWORD = "visual"
_AUDITORY_KEYWORD = "audio"
_KINESTHETIC_KEYWORD = "gesture"

_TOP_KEYS = 3
_TOP_CONTROLLERS = 3
_TOP_STARTING_PATTERNS = 3
_TOP_FEEDBACK_TYPES = 2
_TOP_TIMING_SLOTS = 3


Detector = Callable[[Sequence[ControlInteraction]], "tuple[PatternType, int, float, PatternTraits] | None"]


class BehaviorPatternRecognizer:
    """Maintains one live :class:`BehaviorPattern` per pattern type.

    Args:
        config: Analytics configuration (windows, minimums, thresholds).
        clock: Time source for ``last_detected`` stamps.
    """

    def __init__(self, config: AnalyticsConfig = DEFAULT_CONFIG, clock: Clock | None = None) -> None:
        self._config = config
        self._clock = clock or SystemClock()
        self._history: deque[ControlInteraction] = deque(maxlen=config.interaction_history_cap)
        self._patterns: dict[PatternType, BehaviorPattern] = {}
        self.signals = SignalBus("BehaviorPatternRecognizer")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze_interaction(self, interaction: ControlInteraction) -> list[BehaviorPattern]:
        """Record ``interaction`` and re-run every detector.

        Args:
            interaction: The newly recorded interaction.

        Returns:
            Patterns (re)detected by this call, in detector order.
        """
        self._history.append(interaction)
        history = list(self._history)

        detected: list[BehaviorPattern] = []
        for operation, detector in self._detectors():
            try:
                result = detector(history)
            except Exception as exc:  # noqa: BLE001
                report_fault(self.signals, operation, exc, now=self._clock.now())
                continue
            if result is None:
                continue
            pattern = self._store(*result)
            detected.append(pattern)
            self.signals.emit("pattern_detected", pattern)
        return detected

    def get_patterns(self) -> tuple[BehaviorPattern, ...]:
        """Snapshot of every live pattern."""
        return tuple(self._patterns.values())

    def get_pattern(self, pattern_type: PatternType) -> BehaviorPattern | None:
        return self._patterns.get(pattern_type)

    def extract_user_preferences(self) -> dict[PatternType, PatternTraits]:
        """Characteristics of every pattern confident enough to act on.

        Returns:
            Mapping of pattern type to its characteristics, for patterns whose
            confidence exceeds ``preference_confidence_threshold``.
        """
        threshold = self._config.preference_confidence_threshold
        return {
            pattern.pattern_type: pattern.characteristics
            for pattern in self._patterns.values()
            if pattern.confidence > threshold
        }

    @property
    def history(self) -> tuple[ControlInteraction, ...]:
        """Retained interactions, oldest first."""
        return tuple(self._history)

    @property
    def interaction_count(self) -> int:
        """Interactions currently held in the capped history."""
        return len(self._history)

    def dispose(self) -> None:
        self._patterns.clear()
        self._history.clear()
        self.signals.clear()

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def _detectors(self) -> tuple[tuple[str, Detector], ...]:
        return (
            ("detect_tempo_progression", self._detect_tempo_progression),
            ("detect_transposition_preference", self._detect_transposition_preference),
            ("detect_practice_routine", self._detect_practice_routine),
            ("detect_learning_style", self._detect_learning_style),
            ("detect_session_timing", self._detect_session_timing),
        )

    def _store(
        self,
        pattern_type: PatternType,
        frequency: int,
        confidence: float,
        characteristics: PatternTraits,
    ) -> BehaviorPattern:
        pattern = BehaviorPattern(
            pattern_id=pattern_type,
            pattern_type=pattern_type,
            confidence=min(100.0, confidence),
            frequency=frequency,
            last_detected=self._clock.now(),
            characteristics=characteristics,
            trend=self._trend(pattern_type, frequency),
        )
        self._patterns[pattern_type] = pattern
        logger.debug(
            "Pattern %s: frequency=%d confidence=%.0f trend=%s",
            pattern_type,
            frequency,
            pattern.confidence,
            pattern.trend,
        )
        return pattern

    def _trend(self, pattern_type: PatternType, frequency: int) -> PatternTrend:
        """Compare ``frequency`` with the stored pattern of the same type.

        The first detection of a type is always ``"stable"``.
        """
        previous = self._patterns.get(pattern_type)
        if previous is None:
            return "stable"
        change = frequency - previous.frequency
        if change > self._config.trend_dead_band:
            return "increasing"
        if change < -self._config.trend_dead_band:
            return "decreasing"
        return "stable"

    # ------------------------------------------------------------------
    # Detectors
    # ------------------------------------------------------------------

    def _detect_tempo_progression(self, history: Sequence[ControlInteraction]):
        cfg = self._config
        tempo_changes = [
            i
            for i in history
            if i.controller_type == "tempo"
            and i.action == cfg.tempo_action
            and isinstance(i.parameters, TempoParameters)
            and i.parameters.target_bpm is not None
        ][-cfg.tempo_window :]
        if len(tempo_changes) < cfg.tempo_min_samples:
            return None

        deltas: list[float] = []
        gaps: list[float] = []
        for prev, curr in zip(tempo_changes, tempo_changes[1:]):
            deltas.append(abs(curr.parameters.target_bpm - prev.parameters.target_bpm))
            gaps.append((curr.timestamp - prev.timestamp).total_seconds())

        gradual = sum(1 for d in deltas if d <= cfg.tempo_gradual_max_delta)
        step = sum(1 for d in deltas if cfg.tempo_gradual_max_delta < d <= cfg.tempo_step_max_delta)
        large = sum(1 for d in deltas if d > cfg.tempo_step_max_delta)

        style: TempoStyle = "gradual"
        if step > gradual and step > large:
            style = "step"
        elif large > gradual and large > step:
            style = "large"

        traits = TempoProgressionTraits(
            preferred_style=style,
            average_change=mean(deltas),
            average_seconds_between_changes=mean(gaps),
            gradual_ratio=ratio(gradual, len(deltas)),
            step_ratio=ratio(step, len(deltas)),
            large_ratio=ratio(large, len(deltas)),
        )
        confidence = len(tempo_changes) / cfg.tempo_window * 100.0
        return "tempo_progression", len(tempo_changes), confidence, traits

    def _detect_transposition_preference(self, history: Sequence[ControlInteraction]):
        cfg = self._config
        transpositions = [
            i
            for i in history
            if i.controller_type == "transposition"
            and i.action == cfg.transpose_action
            and isinstance(i.parameters, TranspositionParameters)
        ][-cfg.transposition_window :]
        if len(transpositions) < cfg.transposition_min_samples:
            return None

        magnitudes = [abs(i.parameters.semitones) for i in transpositions]
        small = sum(1 for m in magnitudes if m <= cfg.transposition_small_max)
        medium = sum(
            1 for m in magnitudes if cfg.transposition_small_max < m <= cfg.transposition_medium_max
        )
        large = sum(1 for m in magnitudes if m > cfg.transposition_medium_max)

        preferred: TranspositionRange
        if small > medium:
            preferred = "small"
        elif medium > large:
            preferred = "medium"
        else:
            preferred = "large"

        count = len(transpositions)
        traits = TranspositionTraits(
            preferred_range=preferred,
            small_ratio=ratio(small, count),
            medium_ratio=ratio(medium, count),
            large_ratio=ratio(large, count),
            favorite_keys=tuple(top_n((i.parameters.target_key for i in transpositions), _TOP_KEYS)),
            average_semitone_change=mean(magnitudes),
        )
        confidence = count / cfg.transposition_window * 100.0
        return "transposition_preference", count, confidence, traits

    def _detect_practice_routine(self, history: Sequence[ControlInteraction]):
        cfg = self._config
        recent = list(history[-cfg.routine_window :])
        if len(recent) < cfg.routine_min_interactions:
            return None

        segments = _segment_by_gap(recent, timedelta(minutes=cfg.routine_gap_minutes))
        if len(segments) < cfg.routine_min_segments:
            return None

        signatures = [
            "->".join(i.control_key for i in segment[: cfg.routine_signature_length])
            for segment in segments
        ]
        counts: dict[str, int] = {}
        for signature in signatures:
            counts[signature] = counts.get(signature, 0) + 1
        common = sorted(
            ((sig, n) for sig, n in counts.items() if n >= cfg.routine_min_repeats),
            key=lambda item: item[1],
            reverse=True,
        )

        traits = PracticeRoutineTraits(
            average_segment_length=mean([len(s) for s in segments]),
            common_starting_patterns=tuple(sig for sig, _n in common[:_TOP_STARTING_PATTERNS]),
            routine_consistency=(common[0][1] / len(segments) * 100.0) if common else 0.0,
            preferred_controllers=tuple(top_n((i.controller_type for i in recent), _TOP_CONTROLLERS)),
        )
        confidence = len(segments) / cfg.routine_confidence_segments * 100.0
        return "practice_routine", len(segments), confidence, traits

    def _detect_learning_style(self, history: Sequence[ControlInteraction]):
        cfg = self._config
        recent = list(history[-cfg.learning_style_window :])
        if len(recent) < cfg.learning_style_min_samples:
            return None

        visual = sum(
            1
            for i in recent
            if i.parameters.feedback.visual
            or _VISUAL_KEYWORD in i.action
            or i.controller_type == _VISUAL_CONTROLLER
        )
        auditory = sum(
            1
            for i in recent
            if i.parameters.feedback.audio
            or _AUDITORY_KEYWORD in i.action
            or i.controller_type == _AUDITORY_CONTROLLER
        )
        kinesthetic = sum(
            1
            for i in recent
            if i.parameters.feedback.haptic
            or _KINESTHETIC_KEYWORD in i.action
            or i.controller_type == _KINESTHETIC_CONTROLLER
        )
        total = visual + auditory + kinesthetic
        if total == 0:
            return None

        visual_ratio = visual / total
        auditory_ratio = auditory / total
        kinesthetic_ratio = kinesthetic / total

        dominant: LearningStyle = "mixed"
        if visual_ratio > cfg.dominant_style_ratio:
            dominant = "visual"
        elif auditory_ratio > cfg.dominant_style_ratio:
            dominant = "auditory"
        elif kinesthetic_ratio > cfg.dominant_style_ratio:
            dominant = "kinesthetic"

        feedback_types: list[str] = []
        for i in recent:
            flags = i.parameters.feedback
            if flags.visual:
                feedback_types.append("visual")
            if flags.audio:
                feedback_types.append("audio")
            if flags.haptic:
                feedback_types.append("haptic")

        traits = LearningStyleTraits(
            dominant_style=dominant,
            visual_ratio=visual_ratio,
            auditory_ratio=auditory_ratio,
            kinesthetic_ratio=kinesthetic_ratio,
            preferred_feedback_types=tuple(top_n(feedback_types, _TOP_FEEDBACK_TYPES)),
        )
        confidence = len(recent) / cfg.learning_style_window * 100.0
        return "learning_style", len(recent), confidence, traits

    def _detect_session_timing(self, history: Sequence[ControlInteraction]):
        cfg = self._config
        warmups = [i for i in history if i.context.session_phase == "warmup"][-cfg.timing_window :]
        if len(warmups) < cfg.timing_min_samples:
            return None

        hours = [i.timestamp.hour for i in warmups]
        days = [i.timestamp.weekday() for i in warmups]
        preferred_hours = tuple(top_n(hours, _TOP_TIMING_SLOTS))
        preferred_days = tuple(top_n(days, _TOP_TIMING_SLOTS))

        hour_consistency = max(0.0, 100.0 - pstdev(hours) * 10.0)
        day_consistency = max(0.0, 100.0 - pstdev(days) * 20.0)

        traits = SessionTimingTraits(
            preferred_hours=preferred_hours,
            preferred_days=preferred_days,
            most_common_hour=preferred_hours[0],
            most_common_day=preferred_days[0],
            consistency_score=(hour_consistency + day_consistency) / 2.0,
        )
        confidence = len(warmups) / cfg.timing_window * 100.0
        return "session_timing", len(warmups), confidence, traits


def _segment_by_gap(
    interactions: Sequence[ControlInteraction],
    gap: timedelta,
) -> list[list[ControlInteraction]]:
    """Split a chronological run of interactions wherever the pause exceeds ``gap``."""
    segments: list[list[ControlInteraction]] = []
    current: list[ControlInteraction] = []
    for interaction in interactions:
        if current and interaction.timestamp - current[-1].timestamp > gap:
            segments.append(current)
            current = []
        current.append(interaction)
    if current:
        segments.append(current)
    return segments
