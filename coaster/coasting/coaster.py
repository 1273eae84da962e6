"""Coasting pass -- stop extruding a set distance before each destring.

For every destring marker the pass walks backward over the path that
ends there, measures it, and splits the segment in which the coast
should begin:

    ... G1 X0 Y0 E0            ... G1 X0 Y0 E0
        G1 X10 Y0 E1     →         G1 X5.0000 Y0.0000 E0.5000 ; Calculated endpoint of extrusion
                                   G1 X10.0000 Y0.0000 ; Begin coast (5 mm)

Every move after the split loses its ``E`` word, so the nozzle keeps
travelling along the path while residual pressure bleeds off.

Path walk:
    A path ends on the line before the destring marker (or before the
    boundary line right above it) and extends backward through motion
    lines.  One non-motion line is tolerated between two moves (a tool
    change prime, a type comment); a second one in a row, a boundary
    line, or the previous destring marker ends the path.  Running off the
    start of the buffer makes the path unscannable.

Edge policies:
    - ``min_extrusion_length >= length``: too short, annotated, skipped.
    - ``min_extrusion_length + coast > length``: the coast shrinks so
      ``min_extrusion_length`` of printing remains.
    - Split point within 0.01 mm of the segment end: no coast move is
      inserted (tiny moves can stall motion firmware); the note goes on
      the following line instead.
    - No segment reaches the coast distance: the whole path is stripped.

The input sequence is never mutated.  Edits are collected in a
:class:`PatchSet` keyed by original line index and applied once, so an
insertion can never shift the position of a later marker.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from coaster.coasting.stats import CoastStats
from coaster.configs.loader import CoastConfig
from coaster.gcode.moves import (
    MotionRecord,
    append_comment,
    distance_xy,
    format_move,
    inline_comment,
    is_boundary,
    is_move_command,
    lerp,
    parse_move,
    strip_extrusion,
)

logger = logging.getLogger(__name__)

MIN_COAST_MOVE_MM = 0.01
"""Coast moves this short or shorter are folded into the next line."""


class PathOutcome(enum.Enum):
    """What happened to one destring event."""

    COASTED = "coasted"
    COASTED_WHOLE_PATH = "coasted_whole_path"
    TOO_SHORT = "too_short"
    UNSCANNABLE = "unscannable"


class UnscannablePathError(Exception):
    """Raised when a backward walk runs off the start of the buffer."""

    pass


@dataclass(frozen=True, slots=True)
class Segment:
    """One move of a path: the line at ``end_index`` travels from start to end."""

    start_index: int
    end_index: int
    start: MotionRecord
    end: MotionRecord
    length: float


class PatchSet:
    """Line edits keyed by original index, applied in a single pass.

    An edit maps one input line to one or more output lines.  Edits on the
    same index compose: :meth:`modify` transforms the last line of any
    earlier edit.
    """

    def __init__(self, lines: Sequence[str]) -> None:
        self._lines = lines
        self._edits: dict[int, list[str]] = {}

    def __len__(self) -> int:
        return len(self._edits)

    def replace(self, index: int, *new_lines: str) -> None:
        self._edits[index] = list(new_lines)

    def modify(self, index: int, fn: Callable[[str], str]) -> None:
        current = self._edits.get(index, [self._lines[index]])
        self._edits[index] = current[:-1] + [fn(current[-1])]

    def apply(self) -> list[str]:
        out: list[str] = []
        for index, line in enumerate(self._lines):
            out.extend(self._edits.get(index, (line,)))
        return out


class Coaster:
    """Apply coasting to every destring event in a command buffer.

    Parameters
    ----------
    config : CoastConfig
        Coast distances and path markers.

    Attributes
    ----------
    stats : CoastStats
        Counters accumulated over every :meth:`run` call.
    outcomes : list[PathOutcome]
        One entry per destring event, in buffer order.

    Notes
    -----
    The prime pillar flag is the only state carried from one event to
    the next: a prime pillar marker sets it and the following destring
    event clears it, whatever that event's outcome.
    """

    def __init__(self, config: CoastConfig) -> None:
        self._cfg = config
        self._markers = config.markers
        self._is_prime_pillar = False
        self.stats = CoastStats()
        self.outcomes: list[PathOutcome] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, lines: Sequence[str]) -> list[str]:
        """Coast every marked path in *lines* and return the new buffer.

        Parameters
        ----------
        lines : Sequence[str]
            Program lines without terminators.  Not modified.

        Returns
        -------
        list[str]
            Output lines: input order, plus at most one inserted coast
            move per destring event.
        """
        patches = PatchSet(lines)
        floor = -1
        for index, line in enumerate(lines):
            if self._markers.prime_pillar in line:
                self._is_prime_pillar = True
            if self._markers.destring in line:
                outcome = self._coast_path(lines, index, floor, patches)
                logger.debug(
                    "Destring at line %d: %s (%s)",
                    index,
                    outcome.value,
                    "prime pillar" if self._is_prime_pillar else "regular",
                )
                self.outcomes.append(outcome)
                self._is_prime_pillar = False
                floor = index
        return patches.apply()

    # ------------------------------------------------------------------
    # Path walk
    # ------------------------------------------------------------------

    def _previous_move(
        self, lines: Sequence[str], end_index: int, floor: int,
    ) -> tuple[int, MotionRecord] | None:
        """Find the move a segment ending at *end_index* starts from.

        Returns ``None`` when the path starts at *end_index*.

        Raises
        ------
        UnscannablePathError
            If the walk runs past the first line of the buffer.
        """
        for index in (end_index - 1, end_index - 2):
            if index < 0:
                raise UnscannablePathError(
                    f"No boundary before line {end_index}"
                )
            if index <= floor or is_boundary(lines[index], self._markers.boundary):
                return None
            record = parse_move(lines[index])
            if record.has_motion:
                return index, record
        return None

    def _previous_extrusion(self, lines: Sequence[str], before: int, floor: int) -> float | None:
        """Last explicit ``E`` above *before*, stopping at a boundary or *floor*."""
        for index in range(before - 1, max(floor, -1), -1):
            if is_boundary(lines[index], self._markers.boundary):
                return None
            e = parse_move(lines[index]).e
            if e is not None:
                return e
        return None

    def _walk_back(self, lines: Sequence[str], trigger: int, floor: int) -> list[Segment]:
        """Segments of the path before the marker at *trigger*, last segment first."""
        tail = trigger - 1
        if tail < 0:
            raise UnscannablePathError("Destring marker on the first line")
        if is_boundary(lines[tail], self._markers.boundary):
            tail -= 1
        if tail < 0 or tail <= floor:
            return []
        end = parse_move(lines[tail])
        if not end.has_motion:
            return []

        segments: list[Segment] = []
        end_index = tail
        while True:
            found = self._previous_move(lines, end_index, floor)
            if found is None:
                return segments
            start_index, start = found
            segments.append(
                Segment(start_index, end_index, start, end, distance_xy(start, end))
            )
            end_index, end = start_index, start

    # ------------------------------------------------------------------
    # One destring event
    # ------------------------------------------------------------------

    def _coast_path(
        self, lines: Sequence[str], trigger: int, floor: int, patches: PatchSet,
    ) -> PathOutcome:
        prime = self._is_prime_pillar

        try:
            segments = self._walk_back(lines, trigger, floor)
        except UnscannablePathError as exc:
            logger.debug("%s; leaving path unmodified", exc)
            self.stats.record(prime=prime, coasted=False)
            return PathOutcome.UNSCANNABLE

        length = sum(seg.length for seg in segments)
        min_mm = self._cfg.min_extrusion_length
        coast_mm = self._cfg.distance_for(prime)
        logger.debug(
            "Path before line %d: %.4f mm in %d segments, coast %.4f mm",
            trigger, length, len(segments), coast_mm,
        )

        if min_mm >= length:
            note = f"Path too short to coast ({length:.4f} mm)"
            patches.modify(trigger, lambda text: append_comment(text, note))
            self.stats.record(prime=prime, coasted=False)
            return PathOutcome.TOO_SHORT

        if min_mm + coast_mm > length:
            coast_mm = length - min_mm
            logger.debug("Coast shortened to %.4f mm to keep %.4f mm printed", coast_mm, min_mm)

        cumulative = 0.0
        for seg in segments:
            cumulative += seg.length
            if cumulative > coast_mm:
                ratio = (cumulative - coast_mm) / seg.length
                self._split_segment(lines, seg, ratio, coast_mm, trigger, floor, patches)
                self.stats.record(prime=prime, coasted=True)
                return PathOutcome.COASTED

        # Coast covers the whole path; nothing left to split
        first = segments[-1].start_index
        self._strip_extrusion(lines, first, trigger, patches)
        note = f"Coasting entire path ({length:.4f} mm)"
        patches.modify(first, lambda text: append_comment(text, note))
        self.stats.record(prime=prime, coasted=True)
        return PathOutcome.COASTED_WHOLE_PATH

    def _split_segment(
        self,
        lines: Sequence[str],
        seg: Segment,
        ratio: float,
        coast_mm: float,
        trigger: int,
        floor: int,
        patches: PatchSet,
    ) -> None:
        """Replace the move at ``seg.end_index`` with print + coast moves.

        *ratio* is the fraction of the segment, measured from its start,
        that is still printed.  When the start line carries no ``E`` word
        the extruder position is taken from the nearest earlier line that
        does (:meth:`_previous_extrusion`).
        """
        start, end = seg.start, seg.end
        split_x = lerp(start.x, end.x, ratio)
        split_y = lerp(start.y, end.y, ratio)
        start_e = start.e
        if start_e is None and end.e is not None:
            start_e = self._previous_extrusion(lines, seg.start_index, floor)
        if end.e is None:
            split_e = None
        elif start_e is None:
            split_e = ratio * end.e
        else:
            split_e = start_e + ratio * (end.e - start_e)

        print_move = format_move(
            split_x, split_y,
            e=split_e,
            z=end.z if end.z is not None else start.z,
            f=end.f,
            comment="Calculated endpoint of extrusion",
        )
        original_note = inline_comment(lines[seg.end_index])
        if original_note:
            print_move = append_comment(print_move, original_note)
        logger.debug(
            "Splitting line %d at ratio %.4f: <%s, %s> E=%s",
            seg.end_index, ratio, split_x, split_y, split_e,
        )

        tail_gap = distance_xy(MotionRecord(x=split_x, y=split_y), end)
        if tail_gap > MIN_COAST_MOVE_MM:
            coast_move = format_move(
                end.x, end.y, z=end.z, f=end.f,
                comment=f"Begin coast ({coast_mm:.4g} mm)",
            )
            patches.replace(seg.end_index, print_move, coast_move)
            self._strip_extrusion(lines, seg.end_index + 1, trigger, patches)
            return

        logger.debug(
            "Coast move is %.4f mm, under %.2f mm; not inserting it",
            tail_gap, MIN_COAST_MOVE_MM,
        )
        note = f"Skipping tiny segment and beginning coast ({coast_mm:.4g} mm)"
        following = seg.end_index + 1
        if following < trigger and not is_boundary(lines[following], self._markers.boundary):
            patches.replace(seg.end_index, print_move)
            self._strip_extrusion(lines, following, trigger, patches)
            patches.modify(following, lambda text: append_comment(text, note))
        else:
            patches.replace(seg.end_index, append_comment(print_move, note))
            self._strip_extrusion(lines, following, trigger, patches)

    def _strip_extrusion(
        self, lines: Sequence[str], first: int, stop: int, patches: PatchSet,
    ) -> None:
        """Drop ``E`` words from every move in ``[first, stop)``."""
        for index in range(first, stop):
            if is_move_command(lines[index]):
                patches.modify(index, strip_extrusion)


def coast_lines(lines: Sequence[str], config: CoastConfig) -> tuple[list[str], CoastStats]:
    """Run one :class:`Coaster` over *lines*; return new lines and stats."""
    coaster = Coaster(config)
    out = coaster.run(lines)
    return out, coaster.stats
