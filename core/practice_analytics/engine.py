"""core/practice_analytics/engine.py — Orchestrator for practice analytics.

:class:`PracticeAnalyticsEngine` owns one instance of each component, wires
their signals together and is the only object callers need:

    track_control_usage ─► SessionTracker ─► interaction_recorded
                                                 │
                                                 ▼
                                   BehaviorPatternRecognizer ─► pattern_detected
    end_practice_session ─► (deferred) generate_practice_insights
                                   ├── ProgressAnalyzer ─► milestone_achieved
                                   └── IntelligentSuggestionEngine

Every component signal the caller cares about is re-published on
:attr:`PracticeAnalyticsEngine.signals`.  Public operations are serialised
by a re-entrant lock because the deferred insight run may fire on a timer
thread.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Mapping
from typing import Any

from core.practice_analytics.clock import Clock, SystemClock, time_of_day
from core.practice_analytics.config import DEFAULT_CONFIG, AnalyticsConfig
from core.practice_analytics.parameters import build_parameters, pick
from core.practice_analytics.pattern_recognizer import BehaviorPatternRecognizer
from core.practice_analytics.progress_analyzer import ProgressAnalyzer
from core.practice_analytics.scheduling import DefaultScheduler, Scheduler
from core.practice_analytics.session_tracker import SessionTracker
from core.practice_analytics.signals import Listener, SignalBus, SignalName, Unsubscribe, report_fault
from core.practice_analytics.suggestion_engine import IntelligentSuggestionEngine
from core.practice_analytics.trends import summarize_trends
from core.practice_analytics.types import (
    Achievement,
    AutomationConfig,
    BehaviorPattern,
    ComponentError,
    ControlInteraction,
    InteractionContext,
    InteractionPerformance,
    PracticeContext,
    PracticeInsights,
    PracticeSession,
    PracticeSuggestion,
    ProgressMetrics,
)

logger = logging.getLogger(__name__)

_DEFAULT_ACTION = "unknown"


class PracticeAnalyticsError(Exception):
    """Base class for errors raised by the practice analytics engine."""


class EngineNotInitializedError(PracticeAnalyticsError, RuntimeError):
    """A session or insight operation was called before :meth:`initialize`."""


class PracticeAnalyticsEngine:
    """Single entry point for session tracking, patterns, progress and suggestions.

    Args:
        config: Analytics configuration shared by every component.
        clock: Time source; defaults to the local wall clock.
        scheduler: Runs the post-session insight generation; defaults to
            :class:`DefaultScheduler`.

    Example::

        engine = PracticeAnalyticsEngine()
        engine.initialize()
        engine.subscribe("insights_generated", dashboard.show)
        engine.start_practice_session(focus_area="tempo")
        engine.track_control_usage("tempo", {"action": "setTempo", "target_bpm": 96})
        engine.end_practice_session()
    """

    def __init__(
        self,
        config: AnalyticsConfig = DEFAULT_CONFIG,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._config = config
        self._clock = clock or SystemClock()
        self._scheduler = scheduler or DefaultScheduler()
        self._lock = threading.RLock()
        self._initialized = False
        self._wiring: list[Unsubscribe] = []

        self.signals = SignalBus("PracticeAnalyticsEngine")
        self._tracker = SessionTracker(config, self._clock)
        self._recognizer = BehaviorPatternRecognizer(config, self._clock)
        self._analyzer = ProgressAnalyzer(config, self._clock)
        self._suggestions = IntelligentSuggestionEngine(self._clock)

        for bus in (
            self._tracker.signals,
            self._recognizer.signals,
            self._analyzer.signals,
            self._suggestions.signals,
        ):
            bus.subscribe("component_error", self._on_component_error)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Wire component signals and emit ``initialized``. Calling twice is a no-op."""
        with self._lock:
            if self._initialized:
                return
            tracker = self._tracker.signals
            self._wiring = [
                tracker.subscribe("interaction_recorded", self._on_interaction_recorded),
                tracker.subscribe("session_started", self._relay("session_started")),
                tracker.subscribe("session_ended", self._relay("session_ended")),
                self._recognizer.signals.subscribe("pattern_detected", self._relay("pattern_detected")),
                self._analyzer.signals.subscribe("milestone_achieved", self._relay("milestone_achieved")),
                self._suggestions.signals.subscribe(
                    "suggestions_generated", self._relay("suggestions_generated")
                ),
            ]
            self._initialized = True
            logger.info("Practice analytics engine initialized")
            self.signals.emit("initialized", None)

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def clock(self) -> Clock:
        """The time source shared by every component."""
        return self._clock

    def dispose(self) -> None:
        """Seal any open session, tear down every component and drop listeners."""
        with self._lock:
            self._tracker.dispose()
            for unsubscribe in self._wiring:
                unsubscribe()
            self._wiring = []
            self._recognizer.dispose()
            self._analyzer.dispose()
            self._suggestions.dispose()
            self.signals.clear()
            self._initialized = False
            logger.info("Practice analytics engine disposed")

    # ------------------------------------------------------------------
    # Sessions and interactions
    # ------------------------------------------------------------------

    def start_practice_session(self, **context: Any) -> PracticeSession:
        """Open a new practice session.

        Keyword Args:
            session_type, focus_area, difficulty, goals, time_of_day,
            environment: Fields of :class:`PracticeContext`. Missing or
                ``None`` values take defaults; ``time_of_day`` defaults to the
                bucket of the current clock hour.

        Returns:
            Snapshot of the new session.

        Raises:
            EngineNotInitializedError: If :meth:`initialize` was not called.
            ValueError: If a context field has an invalid value.
        """
        with self._lock:
            self._require_initialized("start_practice_session")
            session = self._tracker.start_session(self._build_context(context))
            return session

    def end_practice_session(self) -> PracticeSession | None:
        """Seal the open session and schedule insight generation.

        Returns:
            The sealed session, or ``None`` if none was open.

        Raises:
            EngineNotInitializedError: If :meth:`initialize` was not called.
        """
        with self._lock:
            self._require_initialized("end_practice_session")
            sealed = self._tracker.end_session()
            if sealed is None:
                return None
            self._scheduler.call_later(self._config.insight_delay_seconds, self._deferred_insights)
            return sealed

    def track_control_usage(
        self,
        controller_type: str,
        parameters: Mapping[str, Any] | None = None,
    ) -> ControlInteraction | None:
        """Record one control interaction into the open session.

        Args:
            controller_type: ``playback``, ``tempo``, ``transposition``,
                ``synchronization`` or ``state``.
            parameters: Raw parameters reported by the controller. Missing or
                ``None`` values take defaults.

        Returns:
            The recorded interaction, or ``None`` when the engine is not
            initialized.

        Raises:
            ValueError: If ``controller_type`` is unknown or a value is invalid.
        """
        with self._lock:
            if not self._initialized:
                logger.warning("Engine not initialized — ignoring %s control usage", controller_type)
                return None

            raw = dict(parameters or {})
            control_parameters = build_parameters(controller_type, raw)
            now = self._clock.now()
            current = self._tracker.current_session
            elapsed = (now - current.start_time).total_seconds() if current else 0.0
            previous = current.control_interactions[-1].action if current and current.control_interactions else ""

            interaction = ControlInteraction(
                interaction_id=f"interaction_{uuid.uuid4().hex}",
                timestamp=now,
                controller_type=controller_type,  # type: ignore[arg-type]
                action=str(pick(raw, "action", _DEFAULT_ACTION)),
                parameters=control_parameters,
                context=InteractionContext(
                    session_phase=pick(raw, "session_phase", "main"),
                    previous_action=str(pick(raw, "previous_action", previous)),
                    time_in_session=float(pick(raw, "time_in_session", elapsed)),
                    user_intent=str(pick(raw, "user_intent", "practice")),
                    difficulty=float(pick(raw, "difficulty", 50.0)),
                ),
                performance=InteractionPerformance(
                    response_time_ms=float(pick(raw, "response_time", 100.0)),
                    accuracy=float(pick(raw, "accuracy", 80.0)),
                    confidence=float(pick(raw, "confidence", 75.0)),
                    error_count=int(pick(raw, "error_count", 0)),
                    success_rate=float(pick(raw, "success_rate", 85.0)),
                ),
            )
            self._tracker.record_interaction(interaction)
            logger.debug("Tracked %s for session %s", interaction.control_key, current and current.session_id)
            self.signals.emit("control_usage_tracked", interaction)
            return interaction

    def record_achievement(self, achievement: Achievement) -> None:
        """Attach ``achievement`` to the open session and track it as a milestone."""
        with self._lock:
            self._tracker.record_achievement(achievement)
            self._analyzer.track_milestone(achievement)
            self.signals.emit("achievement_recorded", achievement)

    # ------------------------------------------------------------------
    # Insights and automation
    # ------------------------------------------------------------------

    def generate_practice_insights(self) -> PracticeInsights:
        """Assemble patterns, progress, suggestions and statistics.

        Returns:
            A :class:`PracticeInsights` snapshot, also published on
            ``insights_generated``.

        Raises:
            EngineNotInitializedError: If :meth:`initialize` was not called.
        """
        with self._lock:
            self._require_initialized("generate_practice_insights")
            insights = self._build_insights()
            logger.info(
                "Insights generated: %d patterns, %d suggestions, progress=%.1f",
                len(insights.patterns),
                len(insights.suggestions),
                insights.progress.overall_progress,
            )
            self.signals.emit("insights_generated", insights)
            return insights

    def adapt_automation_to_user(self) -> AutomationConfig:
        """Build an automation plan from the current confident preferences."""
        with self._lock:
            preferences = self._recognizer.extract_user_preferences()
            config = self._suggestions.generate_optimal_automation(preferences)
            logger.info(
                "Automation adapted from %d preferences (tempo=%s, style=%s)",
                len(preferences),
                config.tempo_progression.progression_type,
                config.adaptive_settings.learning_style,
            )
            self.signals.emit("automation_config_generated", config)
            return config

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def get_current_practice_context(self) -> PracticeContext:
        """Context of the open session, or the default context when none is open."""
        with self._lock:
            current = self._tracker.current_session
            return current.context if current else self._build_context({})

    @property
    def has_open_session(self) -> bool:
        return self._tracker.has_open_session

    def get_session_history(self, limit: int | None = None) -> list[PracticeSession]:
        """Sealed sessions, newest first."""
        with self._lock:
            return self._tracker.get_session_history(limit)

    def get_behavior_patterns(self) -> tuple[BehaviorPattern, ...]:
        with self._lock:
            return self._recognizer.get_patterns()

    def get_progress_metrics(self) -> ProgressMetrics:
        """Analyse progress over the full history.

        Each call is a new measurement and shifts the per-area comparison
        baseline.
        """
        with self._lock:
            return self._analyzer.analyze_progress(
                self._tracker.history, self._recognizer.get_patterns()
            )

    def get_suggestions(self) -> tuple[PracticeSuggestion, ...]:
        """The most recently generated suggestions, ranked."""
        with self._lock:
            return self._suggestions.get_all_suggestions()

    def subscribe(self, signal: SignalName, listener: Listener) -> Unsubscribe:
        """Register ``listener`` on the engine bus. See :class:`SignalBus`."""
        return self.signals.subscribe(signal, listener)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_initialized(self, operation: str) -> None:
        if not self._initialized:
            raise EngineNotInitializedError(
                f"{operation} requires initialize() to be called first"
            )

    def _build_context(self, context: dict[str, Any]) -> PracticeContext:
        defaults = PracticeContext()
        return PracticeContext(
            session_type=pick(context, "session_type", defaults.session_type),
            focus_area=pick(context, "focus_area", defaults.focus_area),
            difficulty=pick(context, "difficulty", defaults.difficulty),
            goals=tuple(pick(context, "goals", defaults.goals)),
            time_of_day=pick(context, "time_of_day", time_of_day(self._clock.now())),
            environment=pick(context, "environment", defaults.environment),
        )

    def _build_insights(self) -> PracticeInsights:
        sessions = self._tracker.history
        patterns = self._recognizer.get_patterns()
        progress = self._analyzer.analyze_progress(sessions, patterns)
        suggestions = self._suggestions.generate_suggestions(patterns, progress)

        achievements: dict[str, Achievement] = {}
        for session in sessions:
            for achievement in session.achievements:
                achievements[achievement.achievement_id] = achievement
        for milestone in self._analyzer.get_milestones():
            achievements.setdefault(milestone.achievement_id, milestone)

        now = self._clock.now()
        return PracticeInsights(
            patterns=patterns,
            suggestions=suggestions,
            progress=progress,
            achievements=tuple(achievements.values()),
            session_summary=self._tracker.get_session_stats(),
            trends=summarize_trends(sessions, now),
            generated_at=now,
        )

    def _deferred_insights(self) -> None:
        with self._lock:
            if not self._initialized:
                logger.debug("Engine disposed before deferred insights ran — skipping")
                return
            try:
                self.generate_practice_insights()
            except Exception as exc:  # noqa: BLE001
                report_fault(self.signals, "generate_practice_insights", exc, now=self._clock.now())

    def _relay(self, signal: SignalName) -> Listener:
        def forward(payload: Any) -> None:
            self.signals.emit(signal, payload)

        return forward

    def _on_interaction_recorded(self, interaction: ControlInteraction) -> None:
        self._recognizer.analyze_interaction(interaction)
        self.signals.emit("interaction_recorded", interaction)

    def _on_component_error(self, fault: ComponentError) -> None:
        self.signals.emit("component_error", fault)
