"""Coasting pass and its per-run counters."""

from .coaster import (
    MIN_COAST_MOVE_MM,
    Coaster,
    PatchSet,
    PathOutcome,
    Segment,
    UnscannablePathError,
    coast_lines,
)
from .stats import CoastStats

__all__ = [
    "MIN_COAST_MOVE_MM",
    "Coaster",
    "CoastStats",
    "PatchSet",
    "PathOutcome",
    "Segment",
    "UnscannablePathError",
    "coast_lines",
]
