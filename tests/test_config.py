"""
Tests for core.practice_analytics.config module.

These tests verify AnalyticsConfig defaults and validation.
"""

import pytest

from core.practice_analytics.config import DEFAULT_CONFIG, AnalyticsConfig


class TestAnalyticsConfigDefaults:
    """Test the shipped thresholds."""

    def test_history_caps(self) -> None:
        assert DEFAULT_CONFIG.session_history_cap == 1000
        assert DEFAULT_CONFIG.interaction_history_cap == 5000
        assert DEFAULT_CONFIG.skill_history_cap == 20

    def test_detector_windows(self) -> None:
        assert (DEFAULT_CONFIG.tempo_window, DEFAULT_CONFIG.tempo_min_samples) == (50, 10)
        assert (DEFAULT_CONFIG.transposition_window, DEFAULT_CONFIG.transposition_min_samples) == (30, 5)
        assert (DEFAULT_CONFIG.routine_window, DEFAULT_CONFIG.routine_min_interactions) == (200, 50)
        assert (DEFAULT_CONFIG.learning_style_window, DEFAULT_CONFIG.learning_style_min_samples) == (100, 20)
        assert (DEFAULT_CONFIG.timing_window, DEFAULT_CONFIG.timing_min_samples) == (20, 5)

    def test_insight_delay(self) -> None:
        assert DEFAULT_CONFIG.insight_delay_seconds == 1.0

    def test_custom_values(self) -> None:
        config = AnalyticsConfig(routine_gap_minutes=45.0, tempo_min_samples=6)
        assert config.routine_gap_minutes == 45.0
        assert config.tempo_min_samples == 6

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            DEFAULT_CONFIG.tempo_window = 10  # type: ignore[misc]


class TestAnalyticsConfigValidation:
    """Test AnalyticsConfig parameter validation."""

    @pytest.mark.parametrize(
        "field",
        ["session_history_cap", "interaction_history_cap", "skill_history_cap", "routine_min_segments"],
    )
    def test_zero_count_raises(self, field: str) -> None:
        with pytest.raises(ValueError, match=f"{field} must be positive"):
            AnalyticsConfig(**{field: 0})

    def test_min_samples_above_window_raises(self) -> None:
        with pytest.raises(ValueError, match="tempo_min_samples .* must not exceed tempo_window"):
            AnalyticsConfig(tempo_window=5, tempo_min_samples=10)

    def test_single_tempo_sample_raises(self) -> None:
        with pytest.raises(ValueError, match="at least 2"):
            AnalyticsConfig(tempo_min_samples=1)

    def test_tempo_delta_order(self) -> None:
        with pytest.raises(ValueError, match="tempo deltas"):
            AnalyticsConfig(tempo_gradual_max_delta=15.0, tempo_step_max_delta=10.0)

    def test_transposition_range_order(self) -> None:
        with pytest.raises(ValueError, match="transposition ranges"):
            AnalyticsConfig(transposition_small_max=7, transposition_medium_max=7)

    def test_gap_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="routine_gap_minutes must be positive"):
            AnalyticsConfig(routine_gap_minutes=0.0)

    @pytest.mark.parametrize("ratio", [0.0, 1.0])
    def test_dominant_ratio_bounds(self, ratio: float) -> None:
        with pytest.raises(ValueError, match="dominant_style_ratio"):
            AnalyticsConfig(dominant_style_ratio=ratio)

    def test_negative_dead_band_raises(self) -> None:
        with pytest.raises(ValueError, match="trend_dead_band must be non-negative"):
            AnalyticsConfig(trend_dead_band=-1)

    def test_preference_threshold_bounds(self) -> None:
        with pytest.raises(ValueError, match="preference_confidence_threshold"):
            AnalyticsConfig(preference_confidence_threshold=101.0)

    def test_milestone_step_bounds(self) -> None:
        with pytest.raises(ValueError, match="milestone_step"):
            AnalyticsConfig(milestone_step=0.0)

    def test_negative_insight_delay_raises(self) -> None:
        with pytest.raises(ValueError, match="insight_delay_seconds"):
            AnalyticsConfig(insight_delay_seconds=-0.5)

    def test_zero_insight_delay_allowed(self) -> None:
        assert AnalyticsConfig(insight_delay_seconds=0.0).insight_delay_seconds == 0.0

    def test_blank_action_names_raise(self) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            AnalyticsConfig(tempo_action="  ")
