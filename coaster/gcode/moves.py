"""Move parser -- one G-code line to a structured motion record.

Only the words coasting needs are read: ``X``, ``Y``, ``Z`` (position),
``E`` (extrusion) and ``F`` (feed).  No modal machine state is tracked;
every record describes exactly what its own line says.

Unset vs. zero:
    ``None`` means the word is absent from the line, ``0.0`` means it is
    present with value zero.  Interpolation of the split point relies on
    the distinction.

Geometry:
    Distances are measured in the horizontal plane only.  A coasted path
    lies within one layer, so Z is assumed constant along it.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

MOTION_OPCODES = frozenset({"G1", "G01"})
"""Opcodes that make a line motion-class (``G10``/``G11`` are not moves)."""

EMIT_OPCODE = "G1"

COMMENT_CHAR = ";"

_WORD_RE = re.compile(r"(\s*)(\S+)")


@dataclass(frozen=True, slots=True)
class MotionRecord:
    """Fields parsed from one line.

    ``has_motion`` is ``True`` iff the line is motion-class and carries at
    least one of X/Y/Z.  ``E`` and ``F`` never affect it, so a pure
    extrusion line such as ``G1 E2.5 F1800`` has no motion.
    """

    x: float | None = None
    y: float | None = None
    z: float | None = None
    e: float | None = None
    f: float | None = None
    has_motion: bool = False


NO_MOTION = MotionRecord()


def _split_comment(line: str) -> tuple[str, str]:
    """Split *line* into its code part and its comment (with the ``;``)."""
    code, sep, comment = line.partition(COMMENT_CHAR)
    return code, sep + comment


def parse_move(line: str) -> MotionRecord:
    """Parse one line into a :class:`MotionRecord`.

    Words before the motion opcode and anything after the inline comment
    are ignored.  Malformed words (``X``, ``Xabc``) are skipped.  A line
    that is not motion-class yields :data:`NO_MOTION`.
    """
    code, _ = _split_comment(line)
    tokens = code.split()

    fields: dict[str, float] = {}
    is_move = False
    for token in tokens:
        if not is_move:
            is_move = token.upper() in MOTION_OPCODES
            continue
        letter = token[0].upper()
        if letter not in "XYZEF":
            continue
        try:
            fields[letter.lower()] = float(token[1:])
        except ValueError:
            continue

    if not is_move:
        return NO_MOTION

    has_motion = any(axis in fields for axis in "xyz")
    return MotionRecord(has_motion=has_motion, **fields)


def strip_extrusion(line: str) -> str:
    """Remove every ``E`` word from the code part of *line*.

    Words are whitespace-separated, as for :func:`parse_move`.  Token order
    and the separators of the remaining words are preserved and the
    inline comment is left alone.  Lines without an ``E`` word are
    returned unchanged, so the operation is idempotent.
    """
    code, comment = _split_comment(line)
    kept: list[str] = []
    dropped = False
    for match in _WORD_RE.finditer(code):
        separator, word = match.groups()
        if word[0] in "Ee":
            dropped = True
            continue
        kept.append(separator + word)
    if not dropped:
        return line
    trailing = code[len(code.rstrip()):]
    return "".join(kept) + trailing + comment


def inline_comment(line: str) -> str:
    """Text of the inline comment of *line*, without the ``;``."""
    _, comment = _split_comment(line)
    return comment[1:].strip()


def distance_xy(a: MotionRecord, b: MotionRecord) -> float:
    """Euclidean distance between two records in the XY plane.

    An axis missing from either record contributes no travel.
    """
    dx = b.x - a.x if a.x is not None and b.x is not None else 0.0
    dy = b.y - a.y if a.y is not None and b.y is not None else 0.0
    return math.hypot(dx, dy)


def lerp(a: float | None, b: float | None, t: float) -> float | None:
    """Linear interpolation that tolerates one missing endpoint."""
    if a is None:
        return b
    if b is None:
        return a
    return a + t * (b - a)


def _num(value: float) -> str:
    return f"{value:g}"


def format_move(
    x: float | None,
    y: float | None,
    *,
    e: float | None = None,
    z: float | None = None,
    f: float | None = None,
    comment: str | None = None,
) -> str:
    """Render a synthesized ``G1`` line.

    X, Y and E use four decimals; Z and F are written compactly.  Unset
    words are omitted.

    Examples
    --------
    >>> format_move(5.0, 0.0, e=0.5, f=1800.0, comment="Calculated endpoint of extrusion")
    'G1 X5.0000 Y0.0000 E0.5000 F1800 ; Calculated endpoint of extrusion'
    """
    words = [EMIT_OPCODE]
    if x is not None:
        words.append(f"X{x:.4f}")
    if y is not None:
        words.append(f"Y{y:.4f}")
    if e is not None:
        words.append(f"E{e:.4f}")
    if z is not None:
        words.append(f"Z{_num(z)}")
    if f is not None:
        words.append(f"F{_num(f)}")
    line = " ".join(words)
    if comment:
        line = append_comment(line, comment)
    return line


def append_comment(line: str, text: str) -> str:
    """Append ``; text`` to *line*."""
    return f"{line} {COMMENT_CHAR} {text}"


def is_boundary(line: str, boundary: str = COMMENT_CHAR) -> bool:
    """True when the trimmed line is exactly the boundary character."""
    return line.strip() == boundary


def is_move_command(line: str) -> bool:
    """True when the code part of *line* contains a motion opcode."""
    code, _ = _split_comment(line)
    return any(token.upper() in MOTION_OPCODES for token in code.split())
