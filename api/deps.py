"""
FastAPI dependency providers.

Provides a process-wide :class:`PracticeAnalyticsEngine` singleton so every
request sees the same sessions, patterns and progress history.  The engine
configuration is read from ``PRACTICE_*`` environment variables on first
use.
"""

import logging
import os

from dotenv import load_dotenv

from core.practice_analytics.config import DEFAULT_CONFIG, AnalyticsConfig
from core.practice_analytics.engine import PracticeAnalyticsEngine
from infrastructure.metrics import instrument_engine

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    return int(raw) if raw.strip() else default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    return float(raw) if raw.strip() else default


def load_analytics_config() -> AnalyticsConfig:
    """Build an :class:`AnalyticsConfig` from the environment.

    Recognised variables (all optional):
        PRACTICE_SESSION_HISTORY_CAP, PRACTICE_INTERACTION_HISTORY_CAP,
        PRACTICE_SKILL_HISTORY_CAP, PRACTICE_INSIGHT_DELAY_SECONDS,
        PRACTICE_PREFERENCE_CONFIDENCE.

    Raises:
        ValueError: If a variable is not a number or the resulting config
            is invalid.
    """
    load_dotenv()
    return AnalyticsConfig(
        session_history_cap=_env_int("PRACTICE_SESSION_HISTORY_CAP", DEFAULT_CONFIG.session_history_cap),
        interaction_history_cap=_env_int(
            "PRACTICE_INTERACTION_HISTORY_CAP", DEFAULT_CONFIG.interaction_history_cap
        ),
        skill_history_cap=_env_int("PRACTICE_SKILL_HISTORY_CAP", DEFAULT_CONFIG.skill_history_cap),
        insight_delay_seconds=_env_float(
            "PRACTICE_INSIGHT_DELAY_SECONDS", DEFAULT_CONFIG.insight_delay_seconds
        ),
        preference_confidence_threshold=_env_float(
            "PRACTICE_PREFERENCE_CONFIDENCE", DEFAULT_CONFIG.preference_confidence_threshold
        ),
    )


_engine: PracticeAnalyticsEngine | None = None


def get_engine() -> PracticeAnalyticsEngine:
    """
    Return the initialized ``PracticeAnalyticsEngine`` singleton.

    Created, initialized and wired to the Prometheus counters on first
    call; reused for the lifetime of the server process.
    """
    global _engine  # noqa: PLW0603
    if _engine is None:
        engine = PracticeAnalyticsEngine(load_analytics_config())
        engine.initialize()
        instrument_engine(engine)
        logger.info("Practice analytics engine ready")
        _engine = engine
    return _engine
