"""Deferred callbacks for fire-and-forget work.

The orchestrator uses a scheduler to generate insights shortly after a
session ends, once the caller's stack has unwound.  Tests inject
a manual scheduler and fire callbacks explicitly.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Scheduler(Protocol):
    """Runs a callback once, after a delay. Results are not delivered back."""

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> None:
        ...


class DefaultScheduler:
    """Schedule on the running asyncio loop when there is one.

    Inside an event loop (e.g. under the FastAPI server) the callback runs on
    the loop thread via ``loop.call_later``.  Outside of one, a daemon
    ``threading.Timer`` is used, so the callback may run on another thread.
    """

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            timer = threading.Timer(delay_seconds, callback)
            timer.daemon = True
            timer.start()
            logger.debug("Deferred %s by %.2fs on a timer thread", _name(callback), delay_seconds)
            return
        loop.call_later(delay_seconds, callback)
        logger.debug("Deferred %s by %.2fs on the event loop", _name(callback), delay_seconds)


def _name(callback: Callable[[], None]) -> str:
    return getattr(callback, "__qualname__", repr(callback))
