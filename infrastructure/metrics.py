"""Prometheus metrics for the practice analytics engine.

Exposes practice context in metrics so dashboards show how players use the
rehearsal tool, not just generic HTTP stats.

Metrics:
    practice_sessions_total              Counter by event (started/ended)
    practice_interactions_total          Counter by controller type
    practice_patterns_detected_total     Counter by pattern type
    practice_suggestions_total           Counter by suggestion type
    practice_milestones_total            Counter by achievement type
    practice_component_errors_total      Caught component faults by component
    practice_insights_total              Insight requests served over HTTP, by status
    practice_insight_latency_seconds     Histogram of HTTP insight generation latency
    practice_session_duration_minutes    Histogram of sealed session length

Usage::

    from infrastructure.metrics import LatencyTimer, instrument_engine, record_insights

    instrument_engine(engine)

    with LatencyTimer() as t:
        insights = engine.generate_practice_insights()
    record_insights(status="success", latency_seconds=t.elapsed)
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

if TYPE_CHECKING:
    from core.practice_analytics.engine import PracticeAnalyticsEngine

logger = logging.getLogger(__name__)

_REGISTRY = CollectorRegistry()

sessions_total = Counter(
    "practice_sessions_total",
    "Practice session lifecycle events",
    ["event"],
    registry=_REGISTRY,
)

interactions_total = Counter(
    "practice_interactions_total",
    "Control interactions tracked, by controller type",
    ["controller_type"],
    registry=_REGISTRY,
)

patterns_detected_total = Counter(
    "practice_patterns_detected_total",
    "Behaviour pattern (re)detections, by pattern type",
    ["pattern_type"],
    registry=_REGISTRY,
)

suggestions_total = Counter(
    "practice_suggestions_total",
    "Practice suggestions generated, by suggestion type",
    ["suggestion_type"],
    registry=_REGISTRY,
)

milestones_total = Counter(
    "practice_milestones_total",
    "Achievements tracked as milestones, by achievement type",
    ["achievement_type"],
    registry=_REGISTRY,
)

component_errors_total = Counter(
    "practice_component_errors_total",
    "Faults caught at a component boundary",
    ["component"],
    registry=_REGISTRY,
)

insights_total = Counter(
    "practice_insights_total",
    "Practice insight generation runs, by status",
    ["status"],
    registry=_REGISTRY,
)

insight_latency_seconds = Histogram(
    "practice_insight_latency_seconds",
    "Wall-clock time to assemble practice insights",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
    registry=_REGISTRY,
)

session_duration_minutes = Histogram(
    "practice_session_duration_minutes",
    "Length of sealed practice sessions in minutes",
    buckets=[1, 5, 10, 20, 30, 45, 60, 90, 120],
    registry=_REGISTRY,
)

logger.info("Prometheus metrics registry initialized")


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def record_session_started() -> None:
    sessions_total.labels(event="started").inc()


def record_session_ended(duration_minutes: float) -> None:
    """Count a sealed session and observe its length.

    Args:
        duration_minutes: Session length in minutes.
    """
    sessions_total.labels(event="ended").inc()
    session_duration_minutes.observe(duration_minutes)


def record_interaction(controller_type: str) -> None:
    """Increment the interaction counter for ``controller_type``."""
    interactions_total.labels(controller_type=controller_type).inc()


def record_pattern(pattern_type: str) -> None:
    patterns_detected_total.labels(pattern_type=pattern_type).inc()


def record_suggestion(suggestion_type: str) -> None:
    suggestions_total.labels(suggestion_type=suggestion_type).inc()


def record_milestone(achievement_type: str) -> None:
    milestones_total.labels(achievement_type=achievement_type).inc()


def record_component_error(component: str) -> None:
    """Increment the caught-fault counter.

    Args:
        component: Name of the component that caught the fault.
    """
    component_errors_total.labels(component=component).inc()


def record_insights(*, status: str, latency_seconds: float) -> None:
    """Record a completed insight generation run.

    Args:
        status: ``"success"`` or ``"error"``.
        latency_seconds: Wall-clock time in seconds.
    """
    insights_total.labels(status=status).inc()
    insight_latency_seconds.observe(latency_seconds)


def instrument_engine(engine: PracticeAnalyticsEngine) -> None:
    """Subscribe the record_* helpers to the signals of ``engine``.

    Args:
        engine: The engine whose activity should appear in /metrics.
    """
    engine.subscribe("session_started", lambda _session: record_session_started())
    engine.subscribe("session_ended", lambda session: record_session_ended(session.duration_minutes))
    engine.subscribe("interaction_recorded", lambda i: record_interaction(i.controller_type))
    engine.subscribe("pattern_detected", lambda p: record_pattern(p.pattern_type))
    engine.subscribe("milestone_achieved", lambda a: record_milestone(a.achievement_type))
    engine.subscribe("component_error", lambda fault: record_component_error(fault.component))
    engine.subscribe(
        "suggestions_generated",
        lambda batch: [record_suggestion(s.suggestion_type) for s in batch],
    )
    logger.info("Metrics subscribed to practice analytics engine signals")


def get_metrics_response() -> tuple[bytes, str]:
    """Generate Prometheus text exposition format.

    Returns:
        Tuple of (body_bytes, content_type_string).
    """
    return generate_latest(_REGISTRY), CONTENT_TYPE_LATEST


class LatencyTimer:
    """Context manager for measuring latency.

    Usage::

        with LatencyTimer() as t:
            insights = engine.generate_practice_insights()
        record_insights(status="success", latency_seconds=t.elapsed)
    """

    def __init__(self) -> None:
        """Initialize timer."""
        self._start: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> LatencyTimer:
        """Start timing."""
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        """Stop timing and record elapsed."""
        self.elapsed = time.perf_counter() - self._start
