"""
Pydantic schemas for the ``/practice`` endpoints.

Request bodies only: responses are plain dicts built by the serializers in
``api/routes/practice.py`` from the engine's frozen value objects.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class StartSessionRequest(BaseModel):
    """Request body for ``POST /practice/sessions/start``."""

    session_type: Literal["practice", "lesson", "performance", "exploration"] | None = Field(
        default=None,
        description="Kind of session. Defaults to ``practice``.",
    )
    focus_area: str | None = Field(
        default=None,
        max_length=200,
        description="What the player wants to work on, e.g. ``tempo``. Defaults to ``general``.",
    )
    difficulty: Literal["beginner", "intermediate", "advanced"] | None = None
    goals: list[str] | None = Field(
        default=None,
        description="Free-form goals. Defaults to ``['improve_technique']``.",
    )
    time_of_day: Literal["morning", "afternoon", "evening", "night"] | None = Field(
        default=None,
        description="Defaults to the bucket of the server's current hour.",
    )
    environment: Literal["quiet", "moderate", "noisy"] | None = None


class TrackInteractionRequest(BaseModel):
    """Request body for ``POST /practice/interactions``."""

    controller_type: str = Field(
        ...,
        description="One of playback, tempo, transposition, synchronization, state.",
    )
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description=(
            "Raw controller parameters, e.g. ``{'action': 'setTempo', 'target_bpm': 96}``. "
            "Missing values take defaults."
        ),
    )


class AchievementRequest(BaseModel):
    """Request body for ``POST /practice/achievements``."""

    achievement_type: Literal["milestone", "streak", "mastery", "improvement", "consistency"]
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    value: float = 0.0
    category: str = "general"
    rarity: Literal["common", "uncommon", "rare", "epic", "legendary"] = "common"
