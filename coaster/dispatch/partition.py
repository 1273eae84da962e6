"""Chunk partitioner -- split a program into ranges no path straddles.

A cut is placed on the first boundary line after a destring marker.  In
KISSlicer output that boundary comes after the marker's retract and
travel moves and opens the next path, so every backward walk in the new
chunk stops inside it, exactly where it would have stopped in a single
pass over the whole program.

Two boundaries are never cuts: one directly above a destring marker
(it belongs to that marker's path tail) and one reached after a prime
pillar marker (the flag must be consumed in the chunk that set it).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from coaster.configs.loader import MarkerConfig
from coaster.gcode.moves import is_boundary

logger = logging.getLogger(__name__)


def find_safe_cut(lines: Sequence[str], start: int, markers: MarkerConfig) -> int:
    """First safe cut after a destring at or after *start*; ``len(lines)`` if none."""
    total = len(lines)
    after_destring = False
    for index in range(max(start, 0), total):
        line = lines[index]
        if markers.destring in line:
            after_destring = True
        elif markers.prime_pillar in line:
            after_destring = False
        elif after_destring and index > 0 and is_boundary(line, markers.boundary):
            if index + 1 < total and markers.destring in lines[index + 1]:
                continue
            return index
    return total


def partition(lines: Sequence[str], n: int, markers: MarkerConfig | None = None) -> list[range]:
    """Split *lines* into *n* contiguous, boundary-safe index ranges.

    Parameters
    ----------
    lines : Sequence[str]
        Whole program.
    n : int
        Number of chunks.
    markers : MarkerConfig | None
        Marker phrases; KISSlicer defaults when ``None``.

    Returns
    -------
    list[range]
        Exactly *n* ranges covering ``[0, len(lines))`` in order.  Trailing
        ranges are empty when the program is too short or no further safe
        cut exists.

    Raises
    ------
    ValueError
        If ``n < 1``.
    """
    if n < 1:
        raise ValueError(f"Chunk count must be at least 1, got {n}")
    markers = markers or MarkerConfig()

    total = len(lines)
    size = total // n
    cuts = [0]
    for k in range(1, n):
        prev = cuts[-1]
        if prev >= total:
            cuts.append(total)
            continue
        cuts.append(find_safe_cut(lines, max(k * size, prev + 1), markers))
    cuts.append(total)

    ranges = [range(a, b) for a, b in zip(cuts, cuts[1:])]
    logger.debug(
        "Partitioned %d lines into %d chunks: %s",
        total, n, [(r.start, r.stop) for r in ranges],
    )
    return ranges
