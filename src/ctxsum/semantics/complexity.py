"""Shared ordinal complexity scale.

Every complexity metric (function, component, business, semantic) uses the
same four buckets and the same thresholds so tiers compare across files.
"""

from __future__ import annotations

COMPLEXITY_LEVELS: tuple[str, ...] = ("low", "medium", "high", "very-high")

# (exclusive lower bound, level), checked top-down
COMPLEXITY_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (15, "very-high"),
    (10, "high"),
    (5, "medium"),
)

VERY_HIGH_THRESHOLD = 15


def bucket_complexity(score: float) -> str:
    """Map a raw complexity score onto the shared ordinal scale."""
    for bound, level in COMPLEXITY_THRESHOLDS:
        if score > bound:
            return level
    return "low"


def complexity_rank(level: str) -> int:
    """Ordinal position of a level; unknown levels rank below 'low'."""
    try:
        return COMPLEXITY_LEVELS.index(level) + 1
    except ValueError:
        return 0


def is_high(level: str) -> bool:
    return level in ("high", "very-high")
