"""Sampling of the DPD weight history for visualization."""

from enum import Enum
from typing import Sequence, TypeVar

T = TypeVar("T")


class SamplingStrategy(str, Enum):
    """How to thin a long weight history down to ``limit`` entries."""
    ALL = "all"
    RECENT = "recent"
    SAMPLED = "sampled"


def sample_history(entries: Sequence[T], limit: int, strategy: str = "sampled") -> list[T]:
    """Select up to ``limit`` entries from a version-ordered history.

    Strategies:
        all / recent: the latest ``limit`` entries
        sampled: everything when small; an even stride when the history is
            at most five times the limit; otherwise the most recent half of
            the budget plus an even stride through the older entries

    Args:
        entries: History ordered by ascending version
        limit: Maximum entries to return
        strategy: One of SamplingStrategy values; unknown values act as sampled

    Returns:
        Selected entries in ascending version order
    """
    if limit <= 0 or not entries:
        return []

    try:
        mode = SamplingStrategy(strategy)
    except ValueError:
        mode = SamplingStrategy.SAMPLED

    total = len(entries)
    newest_first = list(reversed(entries))

    if mode in (SamplingStrategy.ALL, SamplingStrategy.RECENT) or total <= limit:
        selected = newest_first[:limit]
    elif total <= limit * 5:
        step = total // limit
        selected = newest_first[::step][:limit]
    else:
        recent_limit = limit // 2
        older_limit = limit - recent_limit
        recent = newest_first[:recent_limit]
        older = newest_first[recent_limit:]
        step = max(1, len(older) // older_limit)
        selected = recent + older[::step][:older_limit]

    return list(reversed(selected))
