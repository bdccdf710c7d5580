"""Statistical helpers shared by the tracker, detectors and analyzers.

All helpers accept plain sequences and return plain floats so callers never
see numpy scalars leaking into the frozen value objects.

Pure module — no I/O, no side effects.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Hashable, Iterable, Sequence

import numpy as np


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean. Returns 0.0 for an empty sequence.

    Args:
        values: Numbers to average.

    Returns:
        Mean as a Python float.
    """
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


def pstdev(values: Sequence[float]) -> float:
    """Population standard deviation (``ddof=0``). Returns 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def ratio(part: int, whole: int) -> float:
    """``part / whole``, or 0.0 when ``whole`` is zero."""
    return part / whole if whole else 0.0


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp ``value`` into ``[low, high]``."""
    return max(low, min(high, value))


def top_n(items: Iterable[Hashable], n: int) -> list:
    """Return the ``n`` most frequent items, most frequent first.

    Ties keep first-seen order (``Counter.most_common`` is stable).

    Args:
        items: Items to count.
        n: How many to return.

    Returns:
        Up to ``n`` distinct items.
    """
    return [item for item, _count in Counter(items).most_common(n)]
