"""core/practice_analytics/suggestion_engine.py — Ranked practice suggestions and automation plans.

Four independent generators turn live patterns and progress into
:class:`PracticeSuggestion` objects.  A generator that raises is reported
as ``component_error``; the others still contribute.

Ordering: priority (critical > high > medium > low), then confidence
descending.  Ties keep generator order.

Signals emitted on :attr:`IntelligentSuggestionEngine.signals`:
    suggestions_generated   tuple[PracticeSuggestion, ...]
    component_error         ComponentError
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence

from core.practice_analytics.clock import Clock, SystemClock, epoch_millis
from core.practice_analytics.signals import SignalBus, report_fault
from core.practice_analytics.types import (
    PRIORITY_RANK,
    AdaptiveSettingsConfig,
    AutomationConfig,
    BehaviorPattern,
    LearningStyleTraits,
    PatternTraits,
    PatternType,
    Priority,
    PracticeRoutineTraits,
    PracticeSuggestion,
    ProgressMetrics,
    SessionAutomationConfig,
    SessionTimingTraits,
    SuggestionType,
    TempoAutomationConfig,
    TempoProgressionTraits,
    TranspositionAutomationConfig,
    TranspositionTraits,
)

logger = logging.getLogger(__name__)

# Automation defaults used when no confident preference exists.
DEFAULT_START_BPM = 80.0
DEFAULT_TARGET_BPM = 120.0
DEFAULT_INCREMENT_BPM = 5.0
DEFAULT_MASTERY_THRESHOLD = 85.0
DEFAULT_KEY_SEQUENCE: tuple[str, ...] = ("C", "G", "D", "A", "E")
DEFAULT_KEY_FOCUS: tuple[str, ...] = ("major_scales", "chord_progressions")
DEFAULT_WARMUP_MINUTES = 10.0
DEFAULT_COOLDOWN_MINUTES = 5.0
DEFAULT_BREAK_INTERVALS: tuple[float, ...] = (25.0, 50.0)
DEFAULT_SESSION_FOCUS: tuple[str, ...] = ("tempo", "technique")

_UNKNOWN_KEY = "unknown"

Generator = Callable[[Sequence[BehaviorPattern], ProgressMetrics], list[PracticeSuggestion]]


def _find(patterns: Sequence[BehaviorPattern], pattern_type: PatternType) -> BehaviorPattern | None:
    return next((p for p in patterns if p.pattern_type == pattern_type), None)


def sort_suggestions(suggestions: Sequence[PracticeSuggestion]) -> list[PracticeSuggestion]:
    """Order by priority rank, then confidence, both descending."""
    return sorted(suggestions, key=lambda s: (-PRIORITY_RANK[s.priority], -s.confidence))


class IntelligentSuggestionEngine:
    """Generates suggestions and keeps the latest batch addressable by id.

    Args:
        clock: Time source for the millisecond stamp in suggestion ids.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._suggestions: dict[str, PracticeSuggestion] = {}
        self.signals = SignalBus("IntelligentSuggestionEngine")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate_suggestions(
        self,
        patterns: Sequence[BehaviorPattern],
        progress: ProgressMetrics,
    ) -> tuple[PracticeSuggestion, ...]:
        """Run every generator and rank the combined output.

        Args:
            patterns: Live behaviour patterns.
            progress: Current progress metrics.

        Returns:
            Suggestions in ranked order. The cache is replaced by this batch.
        """
        collected: list[PracticeSuggestion] = []
        for operation, generator in self._generators():
            try:
                collected.extend(generator(patterns, progress))
            except Exception as exc:  # noqa: BLE001
                report_fault(self.signals, operation, exc, now=self._clock.now())

        ranked = tuple(sort_suggestions(collected))
        self._suggestions = {s.suggestion_id: s for s in ranked}
        logger.info("Generated %d practice suggestions", len(ranked))
        self.signals.emit("suggestions_generated", ranked)
        return ranked

    def get_suggestion(self, suggestion_id: str) -> PracticeSuggestion | None:
        return self._suggestions.get(suggestion_id)

    def get_all_suggestions(self) -> tuple[PracticeSuggestion, ...]:
        """The latest batch, in ranked order."""
        return tuple(self._suggestions.values())

    def generate_optimal_automation(
        self,
        preferences: Mapping[PatternType, PatternTraits],
    ) -> AutomationConfig:
        """Build an automation plan from confident user preferences.

        Args:
            preferences: Output of
                :meth:`BehaviorPatternRecognizer.extract_user_preferences`.
                Missing entries fall back to module defaults.

        Returns:
            A fully populated :class:`AutomationConfig`.
        """
        tempo = preferences.get("tempo_progression")
        transposition = preferences.get("transposition_preference")
        routine = preferences.get("practice_routine")
        style = preferences.get("learning_style")

        tempo_config = TempoAutomationConfig(
            start_bpm=DEFAULT_START_BPM,
            target_bpm=DEFAULT_TARGET_BPM,
            progression_type="gradual",
            increment_size=DEFAULT_INCREMENT_BPM,
            mastery_threshold=DEFAULT_MASTERY_THRESHOLD,
            adapt_to_performance=True,
        )
        if isinstance(tempo, TempoProgressionTraits):
            tempo_config = TempoAutomationConfig(
                start_bpm=DEFAULT_START_BPM,
                target_bpm=DEFAULT_TARGET_BPM,
                progression_type=tempo.preferred_style,
                increment_size=tempo.average_change or DEFAULT_INCREMENT_BPM,
                mastery_threshold=DEFAULT_MASTERY_THRESHOLD,
                adapt_to_performance=True,
            )

        keys = DEFAULT_KEY_SEQUENCE
        if isinstance(transposition, TranspositionTraits):
            known = tuple(k for k in transposition.favorite_keys if k != _UNKNOWN_KEY)
            keys = known or DEFAULT_KEY_SEQUENCE

        focus = DEFAULT_SESSION_FOCUS
        if isinstance(routine, PracticeRoutineTraits) and routine.preferred_controllers:
            focus = routine.preferred_controllers

        learning_style = style.dominant_style if isinstance(style, LearningStyleTraits) else "mixed"

        return AutomationConfig(
            tempo_progression=tempo_config,
            transposition_sequence=TranspositionAutomationConfig(
                key_sequence=keys,
                progression_strategy="circle_of_fifths",
                difficulty_progression=True,
                focus_areas=DEFAULT_KEY_FOCUS,
            ),
            session_structure=SessionAutomationConfig(
                warmup_minutes=DEFAULT_WARMUP_MINUTES,
                focus_areas=focus,
                cooldown_minutes=DEFAULT_COOLDOWN_MINUTES,
                break_intervals=DEFAULT_BREAK_INTERVALS,
                adaptive_length=True,
            ),
            adaptive_settings=AdaptiveSettingsConfig(
                learning_style=learning_style,
                preferred_pace="moderate",
                challenge_level="moderate",
                feedback_frequency="moderate",
            ),
        )

    def dispose(self) -> None:
        self._suggestions.clear()
        self.signals.clear()

    # ------------------------------------------------------------------
    # Generators
    # ------------------------------------------------------------------

    def _generators(self) -> tuple[tuple[str, Generator], ...]:
        return (
            ("generate_tempo_suggestions", self._tempo_suggestions),
            ("generate_transposition_suggestions", self._transposition_suggestions),
            ("generate_session_structure_suggestions", self._session_structure_suggestions),
            ("generate_automation_suggestions", self._automation_suggestions),
        )

    def _suggestion(
        self,
        prefix: str,
        suggestion_type: SuggestionType,
        priority: Priority,
        confidence: float,
        title: str,
        description: str,
        parameters: dict[str, object],
        expected_benefit: str,
        estimated_impact: float,
    ) -> PracticeSuggestion:
        return PracticeSuggestion(
            suggestion_id=f"{prefix}_{epoch_millis(self._clock.now())}",
            suggestion_type=suggestion_type,
            priority=priority,
            confidence=confidence,
            title=title,
            description=description,
            actionable=True,
            parameters=tuple(parameters.items()),
            expected_benefit=expected_benefit,
            estimated_impact=estimated_impact,
        )

    def _tempo_suggestions(
        self, patterns: Sequence[BehaviorPattern], progress: ProgressMetrics
    ) -> list[PracticeSuggestion]:
        pattern = _find(patterns, "tempo_progression")
        skill = progress.skill("tempo_control")
        if pattern is None or skill is None:
            return []
        traits = pattern.characteristics
        assert isinstance(traits, TempoProgressionTraits)

        out: list[PracticeSuggestion] = []
        if traits.preferred_style == "large" and skill.current_level < 70:
            out.append(
                self._suggestion(
                    "tempo_suggestion",
                    "tempo_progression",
                    "medium",
                    85.0,
                    "Try Gradual Tempo Increases",
                    "Your current large tempo jumps might be hindering progress. Try smaller, "
                    "more gradual increases for better muscle memory development.",
                    {"recommended_style": "gradual", "max_increment": 5, "mastery_threshold": 85},
                    "Improved tempo control accuracy and consistency",
                    75.0,
                )
            )
        if skill.current_level > 80 and skill.trend == "stable":
            out.append(
                self._suggestion(
                    "tempo_challenge",
                    "tempo_progression",
                    "low",
                    70.0,
                    "Challenge Yourself with Higher Tempos",
                    "You've mastered your current tempo range. Try pushing to higher BPMs "
                    "to continue improving.",
                    {"suggested_bpm_increase": 10, "challenge_level": "moderate"},
                    "Expanded tempo range and improved technical ability",
                    60.0,
                )
            )
        return out

    def _transposition_suggestions(
        self, patterns: Sequence[BehaviorPattern], progress: ProgressMetrics
    ) -> list[PracticeSuggestion]:
        pattern = _find(patterns, "transposition_preference")
        skill = progress.skill("transposition")
        if pattern is None or skill is None:
            return []
        traits = pattern.characteristics
        assert isinstance(traits, TranspositionTraits)

        out: list[PracticeSuggestion] = []
        if len(traits.favorite_keys) <= 2:
            out.append(
                self._suggestion(
                    "transposition_exploration",
                    "transposition_practice",
                    "medium",
                    80.0,
                    "Explore More Key Signatures",
                    "You tend to practice in the same keys. Exploring different key "
                    "signatures will improve your overall musicianship.",
                    {
                        "suggested_keys": ("D", "A", "E", "B", "F#"),
                        "practice_strategy": "circle_of_fifths",
                    },
                    "Better key signature recognition and fretboard knowledge",
                    70.0,
                )
            )
        if traits.preferred_range == "small" and skill.current_level > 60:
            out.append(
                self._suggestion(
                    "interval_training",
                    "transposition_practice",
                    "low",
                    75.0,
                    "Practice Larger Interval Transpositions",
                    "You're comfortable with small transpositions. Try larger intervals to "
                    "challenge your ear and expand your range.",
                    {"suggested_intervals": (5, 7, 10, 12)},
                    "Improved interval recognition and transposition flexibility",
                    65.0,
                )
            )
        return out

    def _session_structure_suggestions(
        self, patterns: Sequence[BehaviorPattern], progress: ProgressMetrics
    ) -> list[PracticeSuggestion]:
        out: list[PracticeSuggestion] = []

        routine = _find(patterns, "practice_routine")
        if routine is not None:
            traits = routine.characteristics
            assert isinstance(traits, PracticeRoutineTraits)
            if traits.routine_consistency < 50:
                out.append(
                    self._suggestion(
                        "routine_consistency",
                        "session_structure",
                        "high",
                        90.0,
                        "Establish a Consistent Practice Routine",
                        "Your practice sessions vary significantly. A consistent routine "
                        "will improve your learning efficiency.",
                        {
                            "suggested_structure": ("warmup", "technique", "repertoire", "cooldown"),
                            "time_allocation": (10, 30, 40, 10),
                        },
                        "More efficient practice sessions and faster skill development",
                        85.0,
                    )
                )

        timing = _find(patterns, "session_timing")
        if timing is not None:
            traits = timing.characteristics
            assert isinstance(traits, SessionTimingTraits)
            if traits.consistency_score < 60:
                out.append(
                    self._suggestion(
                        "timing_optimization",
                        "session_structure",
                        "medium",
                        75.0,
                        "Optimize Your Practice Schedule",
                        "Consistent practice timing can improve focus and retention. Try to "
                        "practice at the same time each day.",
                        {
                            "recommended_time": traits.most_common_hour,
                            "recommended_days": traits.preferred_days,
                        },
                        "Better focus and more consistent progress",
                        70.0,
                    )
                )
        return out

    def _automation_suggestions(
        self, patterns: Sequence[BehaviorPattern], progress: ProgressMetrics
    ) -> list[PracticeSuggestion]:
        pattern = _find(patterns, "learning_style")
        if pattern is None:
            return []
        traits = pattern.characteristics
        assert isinstance(traits, LearningStyleTraits)

        if traits.dominant_style == "visual":
            return [
                self._suggestion(
                    "visual_automation",
                    "automation_config",
                    "low",
                    80.0,
                    "Enable Visual Feedback Automation",
                    "As a visual learner, you might benefit from automated visual cues and "
                    "feedback during practice.",
                    {
                        "visual_feedback_enabled": True,
                        "visual_cue_intensity": "high",
                        "color_coding_enabled": True,
                    },
                    "Enhanced visual learning experience",
                    60.0,
                )
            ]
        if traits.dominant_style == "auditory":
            return [
                self._suggestion(
                    "auditory_automation",
                    "automation_config",
                    "low",
                    80.0,
                    "Optimize Audio Feedback Settings",
                    "Your auditory learning style suggests you'd benefit from enhanced audio "
                    "feedback and metronome settings.",
                    {
                        "audio_feedback_enabled": True,
                        "metronome_intensity": "high",
                        "auditory_clues_enabled": True,
                    },
                    "Better auditory learning integration",
                    60.0,
                )
            ]
        return []
