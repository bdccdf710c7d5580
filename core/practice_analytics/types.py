"""core/practice_analytics/types.py — Immutable value objects for practice analytics.

All types are frozen dataclasses.  Pure module — no I/O, no env vars,
no imports from api/ or infrastructure/.

Hierarchy:
    PracticeSession
    ├── PracticeContext
    ├── ControlInteraction (ordered)
    │   ├── ControlParameters (one variant per controller type)
    │   ├── InteractionContext
    │   └── InteractionPerformance
    ├── SessionQualityMetrics
    └── Achievement

PracticeInsights
    ├── BehaviorPattern ── PatternTraits (one variant per pattern type)
    ├── PracticeSuggestion
    ├── ProgressMetrics ── SkillAreaProgress
    ├── Achievement
    ├── SessionSummary
    └── AnalyticsTrend

AutomationConfig
    ├── TempoAutomationConfig
    ├── TranspositionAutomationConfig
    ├── SessionAutomationConfig
    └── AdaptiveSettingsConfig
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal

from core.practice_analytics.parameters import ControllerType, ControlParameters

SessionType = Literal["practice", "lesson", "performance", "exploration"]
Difficulty = Literal["beginner", "intermediate", "advanced"]
TimeOfDay = Literal["morning", "afternoon", "evening", "night"]
Environment = Literal["quiet", "moderate", "noisy"]
SessionPhase = Literal["warmup", "main", "cooldown"]

PatternType = Literal[
    "tempo_progression",
    "transposition_preference",
    "practice_routine",
    "learning_style",
    "session_timing",
]
PatternTrend = Literal["increasing", "decreasing", "stable"]
TempoStyle = Literal["gradual", "step", "large"]
TranspositionRange = Literal["small", "medium", "large"]
LearningStyle = Literal["visual", "auditory", "kinesthetic", "mixed"]

SuggestionType = Literal[
    "tempo_progression", "transposition_practice", "session_structure", "automation_config"
]
Priority = Literal["low", "medium", "high", "critical"]

SkillArea = Literal["tempo_control", "transposition", "timing_accuracy", "consistency", "technique"]
SkillTrend = Literal["improving", "stable", "declining"]
ImprovementTrend = Literal["accelerating", "steady", "plateauing", "declining"]

AchievementType = Literal["milestone", "streak", "mastery", "improvement", "consistency"]
Rarity = Literal["common", "uncommon", "rare", "epic", "legendary"]

TrendDirection = Literal["up", "down", "stable"]
Significance = Literal["low", "medium", "high"]

_VALID_SESSION_TYPES: frozenset[str] = frozenset({"practice", "lesson", "performance", "exploration"})
_VALID_DIFFICULTIES: frozenset[str] = frozenset({"beginner", "intermediate", "advanced"})
_VALID_TIMES_OF_DAY: frozenset[str] = frozenset({"morning", "afternoon", "evening", "night"})
_VALID_ENVIRONMENTS: frozenset[str] = frozenset({"quiet", "moderate", "noisy"})
_VALID_PHASES: frozenset[str] = frozenset({"warmup", "main", "cooldown"})
_VALID_PATTERN_TYPES: frozenset[str] = frozenset(
    {
        "tempo_progression",
        "transposition_preference",
        "practice_routine",
        "learning_style",
        "session_timing",
    }
)
_VALID_SUGGESTION_TYPES: frozenset[str] = frozenset(
    {"tempo_progression", "transposition_practice", "session_structure", "automation_config"}
)
_VALID_ACHIEVEMENT_TYPES: frozenset[str] = frozenset(
    {"milestone", "streak", "mastery", "improvement", "consistency"}
)
_VALID_RARITIES: frozenset[str] = frozenset({"common", "uncommon", "rare", "epic", "legendary"})

SKILL_AREAS: tuple[SkillArea, ...] = (
    "tempo_control",
    "transposition",
    "timing_accuracy",
    "consistency",
    "technique",
)
"""Fixed evaluation order of skill areas."""

PRIORITY_RANK: dict[str, int] = {"critical": 4, "high": 3, "medium": 2, "low": 1}
"""Sort weight for suggestion priorities; higher sorts first."""


def _check_choice(owner: str, name: str, value: str, allowed: frozenset[str]) -> None:
    if value not in allowed:
        raise ValueError(f"{owner}.{name} must be one of {sorted(allowed)}, got {value!r}")


def _check_percent(owner: str, name: str, value: float) -> None:
    if not 0.0 <= value <= 100.0:
        raise ValueError(f"{owner}.{name} must be in [0, 100], got {value}")


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PracticeContext:
    """What the player set out to do in a session."""

    session_type: SessionType = "practice"
    focus_area: str = "general"
    difficulty: Difficulty = "intermediate"
    goals: tuple[str, ...] = ("improve_technique",)
    time_of_day: TimeOfDay = "evening"
    environment: Environment = "quiet"

    def __post_init__(self) -> None:
        """Validate invariants."""
        _check_choice("PracticeContext", "session_type", self.session_type, _VALID_SESSION_TYPES)
        _check_choice("PracticeContext", "difficulty", self.difficulty, _VALID_DIFFICULTIES)
        _check_choice("PracticeContext", "time_of_day", self.time_of_day, _VALID_TIMES_OF_DAY)
        _check_choice("PracticeContext", "environment", self.environment, _VALID_ENVIRONMENTS)


# ---------------------------------------------------------------------------
# Interactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InteractionContext:
    """Where in the session an interaction happened."""

    session_phase: SessionPhase = "main"
    previous_action: str = ""
    time_in_session: float = 0.0
    """Seconds since the session started."""

    user_intent: str = "practice"
    difficulty: float = 50.0
    """Perceived difficulty, 0–100."""

    def __post_init__(self) -> None:
        """Validate invariants."""
        _check_choice("InteractionContext", "session_phase", self.session_phase, _VALID_PHASES)
        _check_percent("InteractionContext", "difficulty", self.difficulty)


@dataclass(frozen=True)
class InteractionPerformance:
    """How well the player handled the control."""

    response_time_ms: float = 100.0
    accuracy: float = 80.0
    confidence: float = 75.0
    error_count: int = 0
    success_rate: float = 85.0

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.response_time_ms < 0:
            raise ValueError(
                f"InteractionPerformance.response_time_ms must be non-negative, got {self.response_time_ms}"
            )
        if self.error_count < 0:
            raise ValueError(
                f"InteractionPerformance.error_count must be non-negative, got {self.error_count}"
            )
        _check_percent("InteractionPerformance", "accuracy", self.accuracy)
        _check_percent("InteractionPerformance", "confidence", self.confidence)
        _check_percent("InteractionPerformance", "success_rate", self.success_rate)


@dataclass(frozen=True)
class ControlInteraction:
    """One user action against a control, recorded into an open session."""

    interaction_id: str
    timestamp: datetime
    controller_type: ControllerType
    action: str
    parameters: ControlParameters
    context: InteractionContext
    performance: InteractionPerformance

    @property
    def control_key(self) -> str:
        """``"<controller>_<action>"``, the key used for usage counts and routine signatures."""
        return f"{self.controller_type}_{self.action}"


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SessionQualityMetrics:
    """Six bounded scores summarising a sealed session."""

    accuracy: int = 0
    consistency: int = 0
    engagement: int = 0
    completion_rate: int = 0
    error_rate: int = 0
    focus_score: int = 0

    def __post_init__(self) -> None:
        """Validate invariants."""
        for name in (
            "accuracy",
            "consistency",
            "engagement",
            "completion_rate",
            "error_rate",
            "focus_score",
        ):
            _check_percent("SessionQualityMetrics", name, getattr(self, name))


EMPTY_QUALITY = SessionQualityMetrics()
"""All-zero metrics: open sessions and sessions without interactions."""


@dataclass(frozen=True)
class Achievement:
    """An earned milestone. Immutable once created."""

    achievement_id: str
    achievement_type: AchievementType
    title: str
    description: str
    earned_at: datetime
    value: float
    category: str
    rarity: Rarity = "common"

    def __post_init__(self) -> None:
        """Validate invariants."""
        _check_choice("Achievement", "achievement_type", self.achievement_type, _VALID_ACHIEVEMENT_TYPES)
        _check_choice("Achievement", "rarity", self.rarity, _VALID_RARITIES)
        if not self.title.strip():
            raise ValueError("Achievement.title must not be empty")


@dataclass(frozen=True)
class PracticeSession:
    """Snapshot of a practice session.

    Open sessions have ``end_time=None`` and :data:`EMPTY_QUALITY`; the
    tracker hands out a fresh snapshot after every change.
    """

    session_id: str
    start_time: datetime
    context: PracticeContext
    control_interactions: tuple[ControlInteraction, ...] = ()
    quality_metrics: SessionQualityMetrics = EMPTY_QUALITY
    achievements: tuple[Achievement, ...] = ()
    end_time: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @property
    def duration(self) -> timedelta | None:
        """Elapsed time between start and end, ``None`` while open."""
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def duration_minutes(self) -> float:
        """Duration in minutes, 0.0 while open."""
        elapsed = self.duration
        return 0.0 if elapsed is None else elapsed.total_seconds() / 60.0


@dataclass(frozen=True)
class SessionSummary:
    """Aggregate statistics over the whole session history."""

    total_sessions: int = 0
    total_practice_minutes: float = 0.0
    average_session_minutes: float = 0.0
    streak_days: int = 0
    last_session_start: datetime | None = None
    favorite_time_of_day: TimeOfDay = "evening"
    most_used_controls: tuple[str, ...] = ()
    improvement_highlights: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Behaviour patterns
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TempoProgressionTraits:
    """How the player moves the tempo between takes."""

    preferred_style: TempoStyle
    average_change: float
    """Mean absolute BPM delta."""

    average_seconds_between_changes: float
    gradual_ratio: float
    step_ratio: float
    large_ratio: float


@dataclass(frozen=True)
class TranspositionTraits:
    """Preferred transposition distances and keys."""

    preferred_range: TranspositionRange
    small_ratio: float
    medium_ratio: float
    large_ratio: float
    favorite_keys: tuple[str, ...]
    average_semitone_change: float


@dataclass(frozen=True)
class PracticeRoutineTraits:
    """Recurring shape of how sessions begin."""

    average_segment_length: float
    """Mean number of interactions per detected segment."""

    common_starting_patterns: tuple[str, ...]
    routine_consistency: float
    """Share of segments (0–100) that start with the most common signature."""

    preferred_controllers: tuple[str, ...]


@dataclass(frozen=True)
class LearningStyleTraits:
    """Which feedback modality the player leans on."""

    dominant_style: LearningStyle
    visual_ratio: float
    auditory_ratio: float
    kinesthetic_ratio: float
    preferred_feedback_types: tuple[str, ...]


@dataclass(frozen=True)
class SessionTimingTraits:
    """When the player tends to start practising.

    Days use ``datetime.weekday()`` numbering (Monday = 0).
    """

    preferred_hours: tuple[int, ...]
    preferred_days: tuple[int, ...]
    most_common_hour: int
    most_common_day: int
    consistency_score: float


PatternTraits = (
    TempoProgressionTraits
    | TranspositionTraits
    | PracticeRoutineTraits
    | LearningStyleTraits
    | SessionTimingTraits
)


@dataclass(frozen=True)
class BehaviorPattern:
    """A recurring tendency inferred from interaction history."""

    pattern_id: str
    pattern_type: PatternType
    confidence: float
    frequency: int
    """Sample count the detector saw on this detection."""

    last_detected: datetime
    characteristics: PatternTraits
    trend: PatternTrend = "stable"

    def __post_init__(self) -> None:
        """Validate invariants."""
        _check_choice("BehaviorPattern", "pattern_type", self.pattern_type, _VALID_PATTERN_TYPES)
        _check_percent("BehaviorPattern", "confidence", self.confidence)
        if self.frequency < 0:
            raise ValueError(f"BehaviorPattern.frequency must be non-negative, got {self.frequency}")


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PracticeSuggestion:
    """A ranked, human-readable recommendation.

    ``parameters`` is serialised as a tuple of ``(key, value)`` pairs rather
    than a dict so the frozen dataclass stays hashable.  Use
    :meth:`parameters_dict` to get a dict back.
    """

    suggestion_id: str
    suggestion_type: SuggestionType
    priority: Priority
    confidence: float
    title: str
    description: str
    actionable: bool
    parameters: tuple[tuple[str, object], ...]
    expected_benefit: str
    estimated_impact: float

    def __post_init__(self) -> None:
        """Validate invariants."""
        _check_choice(
            "PracticeSuggestion", "suggestion_type", self.suggestion_type, _VALID_SUGGESTION_TYPES
        )
        if self.priority not in PRIORITY_RANK:
            raise ValueError(
                f"PracticeSuggestion.priority must be one of {sorted(PRIORITY_RANK)}, got {self.priority!r}"
            )
        _check_percent("PracticeSuggestion", "confidence", self.confidence)
        _check_percent("PracticeSuggestion", "estimated_impact", self.estimated_impact)

    def parameters_dict(self) -> dict[str, object]:
        """Convert the parameter pairs back to a dict."""
        return dict(self.parameters)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SkillAreaProgress:
    """Level and direction of one skill area."""

    area: SkillArea
    current_level: float = 0.0
    previous_level: float = 0.0
    improvement: float = 0.0
    trend: SkillTrend = "stable"
    practice_minutes: float = 0.0
    last_practiced: datetime | None = None

    @property
    def display_name(self) -> str:
        """``"tempo_control"`` → ``"Tempo Control"``."""
        return self.area.replace("_", " ").title()


@dataclass(frozen=True)
class ProgressMetrics:
    """Skill progress derived from the full session history."""

    overall_progress: float = 0.0
    skill_areas: tuple[SkillAreaProgress, ...] = ()
    learning_velocity: float = 0.0
    """Accuracy points gained per day."""

    consistency_score: float = 0.0
    improvement_trend: ImprovementTrend = "steady"
    days_to_next_milestone: int = 999
    strengths: tuple[str, ...] = ()
    areas_for_improvement: tuple[str, ...] = ()

    def skill(self, area: SkillArea) -> SkillAreaProgress | None:
        """Return the progress entry for ``area``, or ``None`` if absent."""
        for entry in self.skill_areas:
            if entry.area == area:
                return entry
        return None


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnalyticsTrend:
    """Direction and size of change of one tracked metric."""

    metric: str
    direction: TrendDirection
    magnitude: float
    """Absolute percentage change."""

    timeframe: str
    significance: Significance


@dataclass(frozen=True)
class PracticeInsights:
    """Everything the dashboard needs after a session."""

    patterns: tuple[BehaviorPattern, ...]
    suggestions: tuple[PracticeSuggestion, ...]
    progress: ProgressMetrics
    achievements: tuple[Achievement, ...]
    session_summary: SessionSummary
    trends: tuple[AnalyticsTrend, ...]
    generated_at: datetime


# ---------------------------------------------------------------------------
# Automation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TempoAutomationConfig:
    start_bpm: float
    target_bpm: float
    progression_type: Literal["gradual", "step", "large", "adaptive"]
    increment_size: float
    mastery_threshold: float
    adapt_to_performance: bool


@dataclass(frozen=True)
class TranspositionAutomationConfig:
    key_sequence: tuple[str, ...]
    progression_strategy: Literal["circle_of_fifths", "chromatic", "modal", "adaptive"]
    difficulty_progression: bool
    focus_areas: tuple[str, ...]


@dataclass(frozen=True)
class SessionAutomationConfig:
    warmup_minutes: float
    focus_areas: tuple[str, ...]
    cooldown_minutes: float
    break_intervals: tuple[float, ...]
    """Minutes into the session at which a break is suggested."""

    adaptive_length: bool


@dataclass(frozen=True)
class AdaptiveSettingsConfig:
    learning_style: LearningStyle
    preferred_pace: Literal["slow", "moderate", "fast", "adaptive"]
    challenge_level: Literal["conservative", "moderate", "aggressive"]
    feedback_frequency: Literal["minimal", "moderate", "frequent"]


@dataclass(frozen=True)
class AutomationConfig:
    """Personalised automation plan, recomputed on demand."""

    tempo_progression: TempoAutomationConfig
    transposition_sequence: TranspositionAutomationConfig
    session_structure: SessionAutomationConfig
    adaptive_settings: AdaptiveSettingsConfig


# ---------------------------------------------------------------------------
# Faults
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComponentError:
    """A fault caught at a component boundary and re-surfaced as a signal."""

    component: str
    operation: str
    error: Exception
    occurred_at: datetime
