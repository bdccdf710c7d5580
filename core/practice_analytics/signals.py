"""core/practice_analytics/signals.py — Explicit subscription bus between components.

Delivery contract
-----------------
- Listeners for a signal run synchronously, in the order they subscribed.
- A listener that raises is logged and skipped; the remaining listeners
  still receive the payload and ``emit`` never raises.
- Listeners subscribed while a signal is being delivered only see later
  emissions (delivery iterates over a snapshot).

Components own one bus each.  The orchestrator subscribes to the component
buses and re-publishes on its own bus, so callers only ever talk to one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, Literal

from core.practice_analytics.types import ComponentError

logger = logging.getLogger(__name__)

SignalName = Literal[
    "initialized",
    "session_started",
    "session_ended",
    "interaction_recorded",
    "control_usage_tracked",
    "pattern_detected",
    "milestone_achieved",
    "suggestions_generated",
    "insights_generated",
    "automation_config_generated",
    "achievement_recorded",
    "component_error",
]

VALID_SIGNALS: frozenset[str] = frozenset(
    {
        "initialized",
        "session_started",
        "session_ended",
        "interaction_recorded",
        "control_usage_tracked",
        "pattern_detected",
        "milestone_achieved",
        "suggestions_generated",
        "insights_generated",
        "automation_config_generated",
        "achievement_recorded",
        "component_error",
    }
)

Listener = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class SignalBus:
    """Synchronous publish/subscribe channel owned by one component.

    Args:
        owner: Name of the owning component, used in log messages.

    Example::

        bus = SignalBus("SessionTracker")
        unsubscribe = bus.subscribe("session_ended", dashboard.refresh)
        bus.emit("session_ended", session)
        unsubscribe()
    """

    def __init__(self, owner: str) -> None:
        self.owner = owner
        self._listeners: dict[str, list[Listener]] = {}

    def subscribe(self, signal: SignalName, listener: Listener) -> Unsubscribe:
        """Register ``listener`` for ``signal``.

        Args:
            signal: One of :data:`VALID_SIGNALS`.
            listener: Callable receiving the signal payload.

        Returns:
            A callable that removes this registration. Calling it twice is harmless.

        Raises:
            ValueError: If ``signal`` is not a known signal name.
        """
        if signal not in VALID_SIGNALS:
            raise ValueError(f"signal must be one of {sorted(VALID_SIGNALS)}, got {signal!r}")
        listeners = self._listeners.setdefault(signal, [])
        listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def emit(self, signal: SignalName, payload: Any = None) -> int:
        """Deliver ``payload`` to every listener of ``signal``.

        Returns:
            Number of listeners that completed without raising.
        """
        delivered = 0
        for listener in tuple(self._listeners.get(signal, ())):
            try:
                listener(payload)
            except Exception:  # noqa: BLE001
                logger.exception("%s: listener for %r raised", self.owner, signal)
                continue
            delivered += 1
        return delivered

    def listener_count(self, signal: SignalName) -> int:
        return len(self._listeners.get(signal, ()))

    def clear(self) -> None:
        """Drop every registration."""
        self._listeners.clear()


def report_fault(
    bus: SignalBus,
    operation: str,
    exc: Exception,
    *,
    now: datetime,
) -> ComponentError:
    """Log a caught component fault and publish it as ``component_error``.

    Args:
        bus: The bus of the component that caught the fault.
        operation: What was being done, e.g. ``"detect_tempo_progression"``.
        exc: The caught exception.
        now: Timestamp of the fault.

    Returns:
        The published :class:`ComponentError`.
    """
    logger.warning("%s.%s failed: %s", bus.owner, operation, exc, exc_info=exc)
    fault = ComponentError(component=bus.owner, operation=operation, error=exc, occurred_at=now)
    bus.emit("component_error", fault)
    return fault
