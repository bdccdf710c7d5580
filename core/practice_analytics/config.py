"""
Configuration for the practice analytics engine.

Every heuristic constant used by the tracker, the pattern detectors, the
progress analyzer and the orchestrator lives here as a named field, so a
caller can tune one threshold without touching the algorithms.

Pure module — no I/O, no env vars. The API layer builds an instance from
the environment (see ``api/deps.py``).
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class AnalyticsConfig:
    """
    Immutable configuration for the practice analytics pipeline.

    Attributes:
        session_history_cap: Sealed sessions kept in memory. Oldest evicted first.
        interaction_history_cap: Interactions kept by the pattern recognizer.
        skill_history_cap: Level measurements kept per skill area.

        tempo_action: Action name that marks a tempo change.
        tempo_window: Most recent tempo changes considered.
        tempo_min_samples: Tempo changes needed before a pattern is emitted.
        tempo_gradual_max_delta: Largest BPM delta still counted as gradual.
        tempo_step_max_delta: Largest BPM delta still counted as a step.

        transpose_action: Action name that marks a transposition.
        transposition_window: Most recent transpositions considered.
        transposition_min_samples: Transpositions needed before a pattern is emitted.
        transposition_small_max: Largest semitone magnitude counted as small.
        transposition_medium_max: Largest semitone magnitude counted as medium.

        routine_window: Most recent interactions scanned for routines.
        routine_min_interactions: Interactions needed before routines are analyzed.
        routine_gap_minutes: Inactivity gap that starts a new routine segment.
        routine_min_segments: Segments needed before a routine pattern is emitted.
        routine_signature_length: Leading interactions forming a segment signature.
        routine_min_repeats: Occurrences for a signature to count as common.
        routine_confidence_segments: Segment count that yields 100% confidence.

        learning_style_window: Most recent interactions scanned for style indicators.
        learning_style_min_samples: Interactions needed before a style is emitted.
        dominant_style_ratio: Share an indicator must exceed to be dominant.

        timing_window: Most recent warmup interactions considered.
        timing_min_samples: Warmup interactions needed before timing is emitted.

        trend_dead_band: Frequency change tolerated before a pattern trend moves.
        preference_confidence_threshold: Confidence a pattern needs to count as a preference.
        skill_trend_threshold: Level change that marks a skill area improving/declining.
        milestone_step: Size of an overall-progress milestone, in percent.
        unknown_milestone_days: Sentinel returned when progress is not advancing.

        insight_delay_seconds: Delay before insights are generated after a session ends.

    Example:
        >>> config = AnalyticsConfig(routine_gap_minutes=45.0, tempo_min_samples=6)
        >>> engine = PracticeAnalyticsEngine(config=config)
    """

    session_history_cap: int = 1000
    interaction_history_cap: int = 5000
    skill_history_cap: int = 20

    tempo_action: str = "setTempo"
    tempo_window: int = 50
    tempo_min_samples: int = 10
    tempo_gradual_max_delta: float = 5.0
    tempo_step_max_delta: float = 15.0

    transpose_action: str = "transpose"
    transposition_window: int = 30
    transposition_min_samples: int = 5
    transposition_small_max: int = 2
    transposition_medium_max: int = 7

    routine_window: int = 200
    routine_min_interactions: int = 50
    routine_gap_minutes: float = 30.0
    routine_min_segments: int = 3
    routine_signature_length: int = 5
    routine_min_repeats: int = 2
    routine_confidence_segments: int = 10

    learning_style_window: int = 100
    learning_style_min_samples: int = 20
    dominant_style_ratio: float = 0.5

    timing_window: int = 20
    timing_min_samples: int = 5

    trend_dead_band: int = 2
    preference_confidence_threshold: float = 70.0
    skill_trend_threshold: float = 5.0
    milestone_step: float = 10.0
    unknown_milestone_days: int = 999

    insight_delay_seconds: float = 1.0

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        for name in (
            "session_history_cap",
            "interaction_history_cap",
            "skill_history_cap",
            "tempo_window",
            "tempo_min_samples",
            "transposition_window",
            "transposition_min_samples",
            "routine_window",
            "routine_min_interactions",
            "routine_min_segments",
            "routine_signature_length",
            "routine_min_repeats",
            "routine_confidence_segments",
            "learning_style_window",
            "learning_style_min_samples",
            "timing_window",
            "timing_min_samples",
        ):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        # (min_samples, window) pairs: a detector can never fire if its
        # minimum is larger than the slice it looks at.
        for min_name, window_name in (
            ("tempo_min_samples", "tempo_window"),
            ("transposition_min_samples", "transposition_window"),
            ("routine_min_interactions", "routine_window"),
            ("learning_style_min_samples", "learning_style_window"),
            ("timing_min_samples", "timing_window"),
        ):
            if getattr(self, min_name) > getattr(self, window_name):
                raise ValueError(
                    f"{min_name} ({getattr(self, min_name)}) must not exceed "
                    f"{window_name} ({getattr(self, window_name)})"
                )

        if self.tempo_min_samples < 2:
            raise ValueError(
                f"tempo_min_samples must be at least 2 to form a delta, got {self.tempo_min_samples}"
            )
        if not 0 <= self.tempo_gradual_max_delta < self.tempo_step_max_delta:
            raise ValueError(
                f"tempo deltas must satisfy 0 <= gradual ({self.tempo_gradual_max_delta}) "
                f"< step ({self.tempo_step_max_delta})"
            )
        if not 0 <= self.transposition_small_max < self.transposition_medium_max:
            raise ValueError(
                f"transposition ranges must satisfy 0 <= small ({self.transposition_small_max}) "
                f"< medium ({self.transposition_medium_max})"
            )
        if self.routine_gap_minutes <= 0:
            raise ValueError(f"routine_gap_minutes must be positive, got {self.routine_gap_minutes}")
        if not 0.0 < self.dominant_style_ratio < 1.0:
            raise ValueError(
                f"dominant_style_ratio must be in (0, 1), got {self.dominant_style_ratio}"
            )
        if self.trend_dead_band < 0:
            raise ValueError(f"trend_dead_band must be non-negative, got {self.trend_dead_band}")
        if not 0.0 <= self.preference_confidence_threshold <= 100.0:
            raise ValueError(
                "preference_confidence_threshold must be in [0, 100], "
                f"got {self.preference_confidence_threshold}"
            )
        if self.skill_trend_threshold < 0:
            raise ValueError(
                f"skill_trend_threshold must be non-negative, got {self.skill_trend_threshold}"
            )
        if not 0.0 < self.milestone_step <= 100.0:
            raise ValueError(f"milestone_step must be in (0, 100], got {self.milestone_step}")
        if self.unknown_milestone_days <= 0:
            raise ValueError(
                f"unknown_milestone_days must be positive, got {self.unknown_milestone_days}"
            )
        if self.insight_delay_seconds < 0:
            raise ValueError(
                f"insight_delay_seconds must be non-negative, got {self.insight_delay_seconds}"
            )
        if not self.tempo_action.strip() or not self.transpose_action.strip():
            raise ValueError("tempo_action and transpose_action must not be empty")


DEFAULT_CONFIG = AnalyticsConfig()
"""Default configuration: the thresholds the rehearsal tool ships with."""
