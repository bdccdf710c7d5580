"""
Shared fixtures for the test suite.

Centralizes reusable test infrastructure so individual test files
don't need to repeat clock/scheduler/factory boilerplate.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from fastapi.testclient import TestClient

from api.deps import get_engine
from api.main import app
from core.practice_analytics.engine import PracticeAnalyticsEngine
from core.practice_analytics.parameters import build_parameters
from core.practice_analytics.types import (
    ControlInteraction,
    InteractionContext,
    InteractionPerformance,
    PracticeContext,
    PracticeSession,
    SessionQualityMetrics,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FROZEN_NOW = datetime(2026, 2, 21, 18, 0, 0, tzinfo=UTC)
"""Saturday evening. Every test clock starts here."""


# ---------------------------------------------------------------------------
# Deterministic time and scheduling
# ---------------------------------------------------------------------------


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = FROZEN_NOW) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> datetime:
        """Move forward by ``timedelta(**delta)`` and return the new time."""
        self.current += timedelta(**delta)
        return self.current

    def set(self, moment: datetime) -> None:
        self.current = moment


class ManualScheduler:
    """Scheduler that queues callbacks until :meth:`run_pending` is called."""

    def __init__(self) -> None:
        self.pending: list[tuple[float, Callable[[], None]]] = []

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> None:
        self.pending.append((delay_seconds, callback))

    def run_pending(self) -> int:
        """Fire every queued callback once. Returns how many ran."""
        queued, self.pending = self.pending, []
        for _delay, callback in queued:
            callback()
        return len(queued)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_interaction(
    controller_type: str = "tempo",
    action: str = "setTempo",
    *,
    timestamp: datetime = FROZEN_NOW,
    parameters: dict[str, Any] | None = None,
    session_phase: str = "main",
    accuracy: float = 80.0,
    success_rate: float = 85.0,
    response_time_ms: float = 100.0,
    error_count: int = 0,
) -> ControlInteraction:
    """Build a ``ControlInteraction`` with sensible defaults."""
    return ControlInteraction(
        interaction_id=f"interaction_{uuid.uuid4().hex}",
        timestamp=timestamp,
        controller_type=controller_type,  # type: ignore[arg-type]
        action=action,
        parameters=build_parameters(controller_type, parameters or {}),
        context=InteractionContext(session_phase=session_phase),  # type: ignore[arg-type]
        performance=InteractionPerformance(
            response_time_ms=response_time_ms,
            accuracy=accuracy,
            success_rate=success_rate,
            error_count=error_count,
        ),
    )


def make_session(
    start: datetime = FROZEN_NOW,
    *,
    minutes: float = 30.0,
    accuracy: int = 80,
    consistency: int = 80,
    engagement: int = 50,
    interactions: tuple[ControlInteraction, ...] = (),
    time_of_day: str = "evening",
) -> PracticeSession:
    """Build a sealed ``PracticeSession`` with the given quality scores."""
    quality = SessionQualityMetrics(accuracy=accuracy, consistency=consistency, engagement=engagement)
    return PracticeSession(
        session_id=f"session_{uuid.uuid4().hex}",
        start_time=start,
        context=PracticeContext(time_of_day=time_of_day),  # type: ignore[arg-type]
        control_interactions=interactions,
        quality_metrics=quality,
        end_time=start + timedelta(minutes=minutes),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def engine(clock: FixedClock, scheduler: ManualScheduler) -> Iterator[PracticeAnalyticsEngine]:
    """Initialized engine on the fixed clock and manual scheduler."""
    eng = PracticeAnalyticsEngine(clock=clock, scheduler=scheduler)
    eng.initialize()
    yield eng
    eng.dispose()


@pytest.fixture()
def api_client(engine: PracticeAnalyticsEngine):
    """FastAPI ``TestClient`` with the engine singleton overridden.

    The overriding engine is accessible as ``client.engine``.
    """
    app.dependency_overrides[get_engine] = lambda: engine

    with TestClient(app) as c:
        c.engine = engine  # type: ignore[attr-defined]
        yield c

    app.dependency_overrides.clear()
