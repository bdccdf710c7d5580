"""
Tests for core.practice_analytics.types and parameters modules.

These tests verify value-object validation, the parameter variants built
per controller type, and the clock helpers.
"""

from datetime import UTC, datetime, timedelta

import pytest
from conftest import FROZEN_NOW, FixedClock, make_session

from core.practice_analytics.clock import Clock, SystemClock, epoch_millis, time_of_day
from core.practice_analytics.parameters import (
    FeedbackFlags,
    PlaybackParameters,
    StateParameters,
    SynchronizationParameters,
    TempoParameters,
    TranspositionParameters,
    build_parameters,
    pick,
)
from core.practice_analytics.types import (
    Achievement,
    InteractionContext,
    InteractionPerformance,
    PracticeContext,
    PracticeSession,
    PracticeSuggestion,
    ProgressMetrics,
    SessionQualityMetrics,
    SkillAreaProgress,
)


class TestBuildParameters:
    """Test narrowing raw parameter mappings to typed variants."""

    def test_tempo(self) -> None:
        params = build_parameters("tempo", {"target_bpm": 120, "previous_bpm": "110"})
        assert params == TempoParameters(target_bpm=120.0, previous_bpm=110.0)

    def test_transposition_defaults(self) -> None:
        params = build_parameters("transposition", {})
        assert params == TranspositionParameters(semitones=0, target_key="unknown")

    def test_transposition_values(self) -> None:
        params = build_parameters("transposition", {"semitones": -3, "target_key": "A"})
        assert isinstance(params, TranspositionParameters)
        assert params.semitones == -3
        assert params.target_key == "A"

    def test_playback(self) -> None:
        params = build_parameters("playback", {"position_seconds": 12, "loop_enabled": 1})
        assert params == PlaybackParameters(position_seconds=12.0, loop_enabled=True)

    def test_synchronization_and_state(self) -> None:
        assert build_parameters("synchronization", {"offset_ms": -4}) == SynchronizationParameters(offset_ms=-4.0)
        assert build_parameters("state", {"state_key": 7}) == StateParameters(state_key="7")

    def test_feedback_flags(self) -> None:
        params = build_parameters("playback", {"visual_feedback": True, "haptic_feedback": 1})
        assert params.feedback == FeedbackFlags(visual=True, audio=False, haptic=True)

    def test_unknown_keys_are_dropped(self) -> None:
        params = build_parameters("tempo", {"target_bpm": 90, "swing": 0.6, "accuracy": 70})
        assert params == TempoParameters(target_bpm=90.0)

    def test_unknown_controller_raises(self) -> None:
        with pytest.raises(ValueError, match="controller_type must be one of"):
            build_parameters("mixer", {})

    def test_non_positive_bpm_raises(self) -> None:
        with pytest.raises(ValueError, match="target_bpm must be positive"):
            build_parameters("tempo", {"target_bpm": 0})


class TestPick:
    def test_missing_and_none_use_default(self) -> None:
        assert pick({}, "accuracy", 80) == 80
        assert pick({"accuracy": None}, "accuracy", 80) == 80

    def test_falsy_values_are_kept(self) -> None:
        assert pick({"accuracy": 0}, "accuracy", 80) == 0
        assert pick({"flag": False}, "flag", True) is False
        assert pick({"action": ""}, "action", "unknown") == ""


class TestValueObjects:
    """Test value-object invariants."""

    def test_context_defaults(self) -> None:
        context = PracticeContext()
        assert context.session_type == "practice"
        assert context.goals == ("improve_technique",)

    def test_context_rejects_unknown_choice(self) -> None:
        with pytest.raises(ValueError, match="PracticeContext.difficulty"):
            PracticeContext(difficulty="expert")  # type: ignore[arg-type]

    def test_interaction_context_rejects_phase(self) -> None:
        with pytest.raises(ValueError, match="session_phase"):
            InteractionContext(session_phase="encore")  # type: ignore[arg-type]

    def test_performance_bounds(self) -> None:
        with pytest.raises(ValueError, match="accuracy must be in"):
            InteractionPerformance(accuracy=120.0)
        with pytest.raises(ValueError, match="response_time_ms must be non-negative"):
            InteractionPerformance(response_time_ms=-1.0)
        with pytest.raises(ValueError, match="error_count must be non-negative"):
            InteractionPerformance(error_count=-1)

    def test_quality_metrics_bounds(self) -> None:
        with pytest.raises(ValueError, match="SessionQualityMetrics.focus_score"):
            SessionQualityMetrics(focus_score=101)

    def test_achievement_requires_title(self) -> None:
        with pytest.raises(ValueError, match="title must not be empty"):
            Achievement(
                achievement_id="a",
                achievement_type="streak",
                title=" ",
                description="",
                earned_at=FROZEN_NOW,
                value=1.0,
                category="streak",
            )

    def test_suggestion_priority_checked(self) -> None:
        with pytest.raises(ValueError, match="priority"):
            PracticeSuggestion(
                suggestion_id="s",
                suggestion_type="session_structure",
                priority="urgent",  # type: ignore[arg-type]
                confidence=50.0,
                title="t",
                description="d",
                actionable=True,
                parameters=(),
                expected_benefit="b",
                estimated_impact=10.0,
            )

    def test_open_session_duration(self) -> None:
        session = PracticeSession(session_id="s", start_time=FROZEN_NOW, context=PracticeContext())
        assert session.is_open
        assert session.duration is None
        assert session.duration_minutes == 0.0

    def test_sealed_session_duration(self) -> None:
        session = make_session(minutes=45)
        assert not session.is_open
        assert session.duration == timedelta(minutes=45)
        assert session.duration_minutes == 45.0

    def test_skill_display_name(self) -> None:
        assert SkillAreaProgress(area="timing_accuracy").display_name == "Timing Accuracy"

    def test_progress_skill_lookup(self) -> None:
        area = SkillAreaProgress(area="technique", current_level=40.0)
        metrics = ProgressMetrics(skill_areas=(area,))
        assert metrics.skill("technique") is area
        assert metrics.skill("transposition") is None


class TestClock:
    @pytest.mark.parametrize(
        ("hour", "expected"),
        [(5, "night"), (6, "morning"), (11, "morning"), (12, "afternoon"), (17, "evening"), (22, "night")],
    )
    def test_time_of_day(self, hour: int, expected: str) -> None:
        assert time_of_day(FROZEN_NOW.replace(hour=hour)) == expected

    def test_epoch_millis(self) -> None:
        assert epoch_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=UTC)) == 1000

    def test_clocks_satisfy_protocol(self) -> None:
        assert isinstance(SystemClock(), Clock)
        assert isinstance(FixedClock(), Clock)

    def test_system_clock_is_aware(self) -> None:
        assert SystemClock().now().tzinfo is not None
