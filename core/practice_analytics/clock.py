"""Time source abstraction for the practice analytics engine.

Every formula that depends on "now" (streaks, trend windows, suggestion ids,
timing buckets) reads it from a :class:`Clock` handed in at construction, so
calendar-boundary behaviour is reproducible in tests.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from core.practice_analytics.types import TimeOfDay


@runtime_checkable
class Clock(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""
        ...


class SystemClock:
    """Wall clock in the host's local timezone.

    Local time (not UTC) because hour-of-day and calendar-day buckets must
    match what the player experiences.
    """

    def now(self) -> datetime:
        return datetime.now().astimezone()


def time_of_day(moment: datetime) -> TimeOfDay:
    """Bucket a moment into morning / afternoon / evening / night.

    Args:
        moment: Any datetime; only its hour is used.

    Returns:
        ``"morning"`` for 06–11, ``"afternoon"`` for 12–16,
        ``"evening"`` for 17–21, ``"night"`` otherwise.
    """
    hour = moment.hour
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 22:
        return "evening"
    return "night"


def epoch_millis(moment: datetime) -> int:
    """Milliseconds since the Unix epoch, used to stamp generated ids."""
    return int(moment.timestamp() * 1000)
