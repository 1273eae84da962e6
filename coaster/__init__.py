"""G-code Coaster: stop extruding before the end of slicer paths.

This package rewrites KISSlicer-style toolpath programs so that marked
paths stop depositing material a configurable distance before their end
("coasting"), letting nozzle pressure bleed off before the travel move.

Architecture layers (strict one-way dependency):
    cli → pipeline → dispatch → coasting → {gcode, configs} → utils

Key invariants:
    - Geometry in millimetres, horizontal plane only (Z is ignored)
    - Input lines are never mutated; edits are applied once per pass
    - Output order equals input order plus at most one line per coast
    - Parallel output is identical to single-instance output
"""

__version__ = "1.0.0"

TOOL_NAME = "gcode-coaster"
