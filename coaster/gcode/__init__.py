"""G-code line parsing and synthesis for the coasting pass."""

from coaster.gcode.moves import (
    MotionRecord,
    append_comment,
    distance_xy,
    format_move,
    inline_comment,
    is_boundary,
    is_move_command,
    parse_move,
    strip_extrusion,
)

__all__ = [
    "MotionRecord",
    "append_comment",
    "distance_xy",
    "format_move",
    "inline_comment",
    "is_boundary",
    "is_move_command",
    "parse_move",
    "strip_extrusion",
]
