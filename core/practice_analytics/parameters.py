"""core/practice_analytics/parameters.py — Closed parameter variants per controller type.

Controllers report an open mapping of parameters. This module narrows that
mapping to one frozen dataclass per controller type so every downstream
detector reads typed fields instead of probing a dict.

Pure module — no I/O, no env vars.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

logger = logging.getLogger(__name__)

ControllerType = Literal["playback", "tempo", "transposition", "synchronization", "state"]

VALID_CONTROLLER_TYPES: frozenset[str] = frozenset(
    {"playback", "tempo", "transposition", "synchronization", "state"}
)

# Keys consumed by the interaction builder rather than by a parameter variant.
ENVELOPE_KEYS: frozenset[str] = frozenset(
    {
        "action",
        "session_phase",
        "previous_action",
        "time_in_session",
        "user_intent",
        "difficulty",
        "response_time",
        "accuracy",
        "confidence",
        "error_count",
        "success_rate",
    }
)

_FEEDBACK_KEYS: frozenset[str] = frozenset({"visual_feedback", "audio_feedback", "haptic_feedback"})


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FeedbackFlags:
    """Feedback modalities the player had enabled when the control fired."""

    visual: bool = False
    audio: bool = False
    haptic: bool = False


@dataclass(frozen=True)
class PlaybackParameters:
    """Play / pause / seek / loop controls."""

    feedback: FeedbackFlags = field(default_factory=FeedbackFlags)
    position_seconds: float | None = None
    loop_enabled: bool | None = None


@dataclass(frozen=True)
class TempoParameters:
    """Tempo controller. ``target_bpm`` is what the tempo detector tracks."""

    feedback: FeedbackFlags = field(default_factory=FeedbackFlags)
    target_bpm: float | None = None
    previous_bpm: float | None = None

    def __post_init__(self) -> None:
        if self.target_bpm is not None and self.target_bpm <= 0:
            raise ValueError(f"target_bpm must be positive, got {self.target_bpm}")


@dataclass(frozen=True)
class TranspositionParameters:
    """Transposition controller. ``semitones`` may be negative (down)."""

    feedback: FeedbackFlags = field(default_factory=FeedbackFlags)
    semitones: int = 0
    target_key: str = "unknown"


@dataclass(frozen=True)
class SynchronizationParameters:
    """Synchronization engine adjustments."""

    feedback: FeedbackFlags = field(default_factory=FeedbackFlags)
    offset_ms: float | None = None


@dataclass(frozen=True)
class StateParameters:
    """State manager actions (save, restore, preset switch)."""

    feedback: FeedbackFlags = field(default_factory=FeedbackFlags)
    state_key: str | None = None


ControlParameters = (
    PlaybackParameters
    | TempoParameters
    | TranspositionParameters
    | SynchronizationParameters
    | StateParameters
)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def pick(raw: Mapping[str, Any], key: str, default: Any) -> Any:
    """Return ``raw[key]`` unless it is missing or ``None``.

    Explicit zeros and ``False`` are kept: a reported accuracy of 0 is data,
    not an absent field.
    """
    value = raw.get(key)
    return default if value is None else value


def _optional_float(raw: Mapping[str, Any], key: str) -> float | None:
    value = raw.get(key)
    return None if value is None else float(value)


def _feedback(raw: Mapping[str, Any]) -> FeedbackFlags:
    return FeedbackFlags(
        visual=bool(raw.get("visual_feedback", False)),
        audio=bool(raw.get("audio_feedback", False)),
        haptic=bool(raw.get("haptic_feedback", False)),
    )


def _playback(raw: Mapping[str, Any]) -> PlaybackParameters:
    loop = raw.get("loop_enabled")
    return PlaybackParameters(
        feedback=_feedback(raw),
        position_seconds=_optional_float(raw, "position_seconds"),
        loop_enabled=None if loop is None else bool(loop),
    )


def _tempo(raw: Mapping[str, Any]) -> TempoParameters:
    return TempoParameters(
        feedback=_feedback(raw),
        target_bpm=_optional_float(raw, "target_bpm"),
        previous_bpm=_optional_float(raw, "previous_bpm"),
    )


def _transposition(raw: Mapping[str, Any]) -> TranspositionParameters:
    return TranspositionParameters(
        feedback=_feedback(raw),
        semitones=int(pick(raw, "semitones", 0)),
        target_key=str(pick(raw, "target_key", "unknown")),
    )


def _synchronization(raw: Mapping[str, Any]) -> SynchronizationParameters:
    return SynchronizationParameters(
        feedback=_feedback(raw),
        offset_ms=_optional_float(raw, "offset_ms"),
    )


def _state(raw: Mapping[str, Any]) -> StateParameters:
    state_key = raw.get("state_key")
    return StateParameters(
        feedback=_feedback(raw),
        state_key=None if state_key is None else str(state_key),
    )


_BUILDERS: dict[str, Callable[[Mapping[str, Any]], ControlParameters]] = {
    "playback": _playback,
    "tempo": _tempo,
    "transposition": _transposition,
    "synchronization": _synchronization,
    "state": _state,
}

_VARIANT_KEYS: dict[str, frozenset[str]] = {
    "playback": frozenset({"position_seconds", "loop_enabled"}),
    "tempo": frozenset({"target_bpm", "previous_bpm"}),
    "transposition": frozenset({"semitones", "target_key"}),
    "synchronization": frozenset({"offset_ms"}),
    "state": frozenset({"state_key"}),
}


def build_parameters(controller_type: str, raw: Mapping[str, Any]) -> ControlParameters:
    """Narrow a raw parameter mapping to the variant for ``controller_type``.

    Unknown keys are dropped (and logged at debug level) rather than carried
    along in an untyped bag.

    Args:
        controller_type: One of :data:`VALID_CONTROLLER_TYPES`.
        raw: Parameters as reported by the controller.

    Returns:
        The frozen parameter variant for that controller.

    Raises:
        ValueError: If ``controller_type`` is not a known controller, or a
            known field carries an invalid value.
    """
    if controller_type not in VALID_CONTROLLER_TYPES:
        raise ValueError(
            f"controller_type must be one of {sorted(VALID_CONTROLLER_TYPES)}, "
            f"got {controller_type!r}"
        )
    known = ENVELOPE_KEYS | _FEEDBACK_KEYS | _VARIANT_KEYS[controller_type]
    ignored = sorted(k for k in raw if k not in known)
    if ignored:
        logger.debug("Dropping unrecognised %s parameters: %s", controller_type, ignored)
    return _BUILDERS[controller_type](raw)
