"""Tests for infrastructure/metrics.py — Prometheus counter recording.

Verifies that:
- All public record_*() helpers increment the correct counter
- record_session_ended() / record_insights() also observe their histograms
- instrument_engine() turns engine signals into counter increments
- LatencyTimer measures elapsed time correctly

Design notes
------------
Counters are cumulative within the module registry and cannot be reset,
so every test compares a before/after reading instead of an absolute value.
"""

from __future__ import annotations

import time

import pytest
from conftest import FixedClock, ManualScheduler

from core.practice_analytics.engine import PracticeAnalyticsEngine
from infrastructure import metrics as metrics_module

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _sample(name: str, **labels: str) -> float:
    """Read one sample from the metrics registry (0.0 when not yet created)."""
    value = metrics_module._REGISTRY.get_sample_value(name, labels or None)
    return value or 0.0


# ---------------------------------------------------------------------------
# LatencyTimer
# ---------------------------------------------------------------------------


class TestLatencyTimer:
    def test_elapsed_measured_correctly(self) -> None:
        with metrics_module.LatencyTimer() as t:
            time.sleep(0.02)
        assert t.elapsed >= 0.02

    def test_elapsed_zero_before_exit(self) -> None:
        timer = metrics_module.LatencyTimer()
        assert timer.elapsed == 0.0


# ---------------------------------------------------------------------------
# Counter increments
# ---------------------------------------------------------------------------


class TestCounterIncrements:
    """Each record_*() helper increments exactly its own label bucket."""

    def test_session_lifecycle(self) -> None:
        started = _sample("practice_sessions_total", event="started")
        ended = _sample("practice_sessions_total", event="ended")
        observed = _sample("practice_session_duration_minutes_count")

        metrics_module.record_session_started()
        metrics_module.record_session_ended(duration_minutes=25.0)

        assert _sample("practice_sessions_total", event="started") - started == 1.0
        assert _sample("practice_sessions_total", event="ended") - ended == 1.0
        assert _sample("practice_session_duration_minutes_count") - observed == 1.0

    def test_interaction_labels_are_separate(self) -> None:
        tempo = _sample("practice_interactions_total", controller_type="tempo")
        playback = _sample("practice_interactions_total", controller_type="playback")

        metrics_module.record_interaction("tempo")
        metrics_module.record_interaction("tempo")

        assert _sample("practice_interactions_total", controller_type="tempo") - tempo == 2.0
        assert _sample("practice_interactions_total", controller_type="playback") == playback

    @pytest.mark.parametrize(
        ("record", "metric", "label", "value"),
        [
            (metrics_module.record_pattern, "practice_patterns_detected_total", "pattern_type", "learning_style"),
            (metrics_module.record_suggestion, "practice_suggestions_total", "suggestion_type", "session_structure"),
            (metrics_module.record_milestone, "practice_milestones_total", "achievement_type", "streak"),
            (metrics_module.record_component_error, "practice_component_errors_total", "component", "ProgressAnalyzer"),
        ],
    )
    def test_single_label_helpers(self, record, metric: str, label: str, value: str) -> None:
        before = _sample(metric, **{label: value})
        record(value)
        assert _sample(metric, **{label: value}) - before == 1.0

    def test_record_insights(self) -> None:
        errors = _sample("practice_insights_total", status="error")
        observed = _sample("practice_insight_latency_seconds_count")

        metrics_module.record_insights(status="error", latency_seconds=0.2)

        assert _sample("practice_insights_total", status="error") - errors == 1.0
        assert _sample("practice_insight_latency_seconds_count") - observed == 1.0


# ---------------------------------------------------------------------------
# Engine instrumentation
# ---------------------------------------------------------------------------


class TestInstrumentEngine:
    def test_engine_activity_reaches_counters(self) -> None:
        clock = FixedClock()
        engine = PracticeAnalyticsEngine(clock=clock, scheduler=ManualScheduler())
        engine.initialize()
        metrics_module.instrument_engine(engine)

        started = _sample("practice_sessions_total", event="started")
        ended = _sample("practice_sessions_total", event="ended")
        sync = _sample("practice_interactions_total", controller_type="synchronization")
        suggestions = _sample("practice_suggestions_total", suggestion_type="automation_config")

        engine.start_practice_session()
        for _ in range(20):
            clock.advance(seconds=10)
            engine.track_control_usage("synchronization", {"action": "align"})
        engine.end_practice_session()
        engine.generate_practice_insights()
        engine.dispose()

        assert _sample("practice_sessions_total", event="started") - started == 1.0
        assert _sample("practice_sessions_total", event="ended") - ended == 1.0
        assert _sample("practice_interactions_total", controller_type="synchronization") - sync == 20.0
        # visual learning style → one "Enable Visual Feedback Automation" suggestion
        assert (
            _sample("practice_suggestions_total", suggestion_type="automation_config") - suggestions == 1.0
        )


class TestGetMetricsResponse:
    def test_exposition_format(self) -> None:
        body, content_type = metrics_module.get_metrics_response()
        assert b"practice_interactions_total" in body
        assert content_type.startswith("text/plain")
