"""api/routes/practice.py — Practice analytics endpoints.

Endpoints
=========
    POST /practice/sessions/start   — Open a practice session
    POST /practice/sessions/end     — Seal the open session (insights follow asynchronously)
    GET  /practice/sessions         — Sealed sessions, newest first
    GET  /practice/context          — Context of the open session (or defaults)
    POST /practice/interactions     — Track one control interaction
    GET  /practice/patterns         — Live behaviour patterns
    GET  /practice/progress         — Progress metrics over the full history
    GET  /practice/suggestions      — Latest ranked suggestions
    POST /practice/insights         — Generate practice insights now
    POST /practice/automation       — Automation plan adapted to the player
    POST /practice/achievements     — Record an achievement

All endpoints are thin controllers. Business logic lives in
core/practice_analytics/.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query

from api.deps import get_engine
from api.schemas.practice import AchievementRequest, StartSessionRequest, TrackInteractionRequest
from core.practice_analytics.engine import EngineNotInitializedError, PracticeAnalyticsEngine
from core.practice_analytics.types import (
    Achievement,
    BehaviorPattern,
    ControlInteraction,
    PracticeInsights,
    PracticeSession,
    PracticeSuggestion,
    ProgressMetrics,
)
from infrastructure.metrics import LatencyTimer, record_insights

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/practice", tags=["practice-analytics"])

Engine = Annotated[PracticeAnalyticsEngine, Depends(get_engine)]


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------


def _serialize_interaction(i: ControlInteraction) -> dict[str, Any]:
    """Convert a ControlInteraction to a JSON-serializable dict."""
    return {
        "interaction_id": i.interaction_id,
        "timestamp": i.timestamp.isoformat(),
        "controller_type": i.controller_type,
        "action": i.action,
        "parameters": asdict(i.parameters),
        "context": asdict(i.context),
        "performance": asdict(i.performance),
    }


def _serialize_achievement(a: Achievement) -> dict[str, Any]:
    return {
        "achievement_id": a.achievement_id,
        "achievement_type": a.achievement_type,
        "title": a.title,
        "description": a.description,
        "earned_at": a.earned_at.isoformat(),
        "value": a.value,
        "category": a.category,
        "rarity": a.rarity,
    }


def _serialize_session(s: PracticeSession, *, include_interactions: bool = False) -> dict[str, Any]:
    """Convert a PracticeSession to a JSON-serializable dict."""
    data: dict[str, Any] = {
        "session_id": s.session_id,
        "start_time": s.start_time.isoformat(),
        "end_time": s.end_time.isoformat() if s.end_time else None,
        "duration_minutes": s.duration_minutes,
        "context": asdict(s.context),
        "interaction_count": len(s.control_interactions),
        "quality_metrics": asdict(s.quality_metrics),
        "achievements": [_serialize_achievement(a) for a in s.achievements],
    }
    if include_interactions:
        data["interactions"] = [_serialize_interaction(i) for i in s.control_interactions]
    return data


def _serialize_pattern(p: BehaviorPattern) -> dict[str, Any]:
    return {
        "pattern_id": p.pattern_id,
        "pattern_type": p.pattern_type,
        "confidence": p.confidence,
        "frequency": p.frequency,
        "last_detected": p.last_detected.isoformat(),
        "trend": p.trend,
        "characteristics": asdict(p.characteristics),
    }


def _serialize_suggestion(s: PracticeSuggestion) -> dict[str, Any]:
    return {
        "suggestion_id": s.suggestion_id,
        "suggestion_type": s.suggestion_type,
        "priority": s.priority,
        "confidence": s.confidence,
        "title": s.title,
        "description": s.description,
        "actionable": s.actionable,
        "parameters": s.parameters_dict(),
        "expected_benefit": s.expected_benefit,
        "estimated_impact": s.estimated_impact,
    }


def _serialize_progress(m: ProgressMetrics) -> dict[str, Any]:
    return {
        "overall_progress": m.overall_progress,
        "skill_areas": [
            {
                "area": a.area,
                "display_name": a.display_name,
                "current_level": a.current_level,
                "previous_level": a.previous_level,
                "improvement": a.improvement,
                "trend": a.trend,
                "practice_minutes": a.practice_minutes,
                "last_practiced": a.last_practiced.isoformat() if a.last_practiced else None,
            }
            for a in m.skill_areas
        ],
        "learning_velocity": m.learning_velocity,
        "consistency_score": m.consistency_score,
        "improvement_trend": m.improvement_trend,
        "days_to_next_milestone": m.days_to_next_milestone,
        "strengths": list(m.strengths),
        "areas_for_improvement": list(m.areas_for_improvement),
    }


def _serialize_insights(insights: PracticeInsights) -> dict[str, Any]:
    summary = insights.session_summary
    return {
        "generated_at": insights.generated_at.isoformat(),
        "patterns": [_serialize_pattern(p) for p in insights.patterns],
        "suggestions": [_serialize_suggestion(s) for s in insights.suggestions],
        "progress": _serialize_progress(insights.progress),
        "achievements": [_serialize_achievement(a) for a in insights.achievements],
        "session_summary": {
            **asdict(summary),
            "last_session_start": (
                summary.last_session_start.isoformat() if summary.last_session_start else None
            ),
        },
        "trends": [asdict(t) for t in insights.trends],
    }


def _not_initialized(exc: Exception) -> HTTPException:
    return HTTPException(status_code=409, detail=f"Practice analytics engine not ready: {exc}")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/sessions/start")
def start_session(request: StartSessionRequest, engine: Engine) -> dict[str, Any]:
    """Open a practice session, sealing any session that is still open.

    Raises:
        409: Engine not initialized.
        422: Invalid context value.
    """
    try:
        session = engine.start_practice_session(**request.model_dump())
    except EngineNotInitializedError as exc:
        raise _not_initialized(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _serialize_session(session)


@router.post("/sessions/end")
def end_session(engine: Engine) -> dict[str, Any]:
    """Seal the open session.

    Returns:
        ``{"session": ...}`` with the sealed session, or ``null`` if none was open.
    """
    try:
        sealed = engine.end_practice_session()
    except EngineNotInitializedError as exc:
        raise _not_initialized(exc) from exc
    return {"session": _serialize_session(sealed, include_interactions=True) if sealed else None}


@router.get("/sessions")
def list_sessions(
    engine: Engine,
    limit: Annotated[int | None, Query(ge=1, le=1000)] = None,
) -> dict[str, Any]:
    sessions = engine.get_session_history(limit)
    return {"count": len(sessions), "sessions": [_serialize_session(s) for s in sessions]}


@router.get("/context")
def current_context(engine: Engine) -> dict[str, Any]:
    """Context of the open session, or the default context when none is open."""
    context = engine.get_current_practice_context()
    return {"active": engine.has_open_session, "context": asdict(context)}


@router.post("/interactions")
def track_interaction(request: TrackInteractionRequest, engine: Engine) -> dict[str, Any]:
    """Track one control interaction.

    Interactions arriving without an open session are accepted but not
    recorded into any session (``recorded`` is false).

    Raises:
        409: Engine not initialized.
        422: Unknown controller type or invalid parameter value.
    """
    try:
        interaction = engine.track_control_usage(request.controller_type, request.parameters)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if interaction is None:
        raise HTTPException(status_code=409, detail="Practice analytics engine not ready")
    return {
        "recorded": engine.has_open_session,
        "interaction": _serialize_interaction(interaction),
    }


@router.get("/patterns")
def list_patterns(engine: Engine) -> dict[str, Any]:
    patterns = engine.get_behavior_patterns()
    return {"count": len(patterns), "patterns": [_serialize_pattern(p) for p in patterns]}


@router.get("/progress")
def progress(engine: Engine) -> dict[str, Any]:
    return _serialize_progress(engine.get_progress_metrics())


@router.get("/suggestions")
def list_suggestions(engine: Engine) -> dict[str, Any]:
    suggestions = engine.get_suggestions()
    return {"count": len(suggestions), "suggestions": [_serialize_suggestion(s) for s in suggestions]}


@router.post("/insights")
def generate_insights(engine: Engine) -> dict[str, Any]:
    """Generate practice insights synchronously.

    Raises:
        409: Engine not initialized.
        500: Unexpected failure while assembling insights.
    """
    try:
        with LatencyTimer() as t:
            insights = engine.generate_practice_insights()
    except EngineNotInitializedError as exc:
        raise _not_initialized(exc) from exc
    except Exception as exc:
        record_insights(status="error", latency_seconds=t.elapsed)
        logger.exception("Insight generation failed")
        raise HTTPException(status_code=500, detail=f"Insight generation failed: {exc}") from exc
    record_insights(status="success", latency_seconds=t.elapsed)
    return _serialize_insights(insights)


@router.post("/automation")
def adapt_automation(engine: Engine) -> dict[str, Any]:
    return asdict(engine.adapt_automation_to_user())


@router.post("/achievements")
def record_achievement(request: AchievementRequest, engine: Engine) -> dict[str, Any]:
    """Record an achievement against the open session and the milestone list."""
    try:
        achievement = Achievement(
            achievement_id=f"achievement_{uuid.uuid4().hex}",
            achievement_type=request.achievement_type,
            title=request.title,
            description=request.description,
            earned_at=engine.clock.now(),
            value=request.value,
            category=request.category,
            rarity=request.rarity,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    engine.record_achievement(achievement)
    return _serialize_achievement(achievement)
