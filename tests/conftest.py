"""Shared fixtures: KISSlicer-like programs used across test modules."""

from __future__ import annotations

import pytest


def build_program(paths: int = 30) -> list[str]:
    """Deterministic KISSlicer-like program with *paths* marked paths.

    Every 5th path is a prime pillar path and every 7th is a single
    0.4 mm move.  Each path ends with a destring marker immediately
    followed by the boundary that opens the next path.
    """
    lines = [
        "; KISSlicer - PRO",
        "; version 1.6.3",
        "G21",
        "G90",
        "M82",
        "G1 Z0.3 F600",
    ]
    e = 0.0
    for i in range(paths):
        lines.append(";")
        kind = "Prime Pillar Path" if i % 5 == 0 else "Perimeter Path"
        lines.append(f"; '{kind}', 0.3 [feed mm/s], 30.0 [head mm/s]")
        x0 = 10.0 * (i % 6)
        y0 = 10.0 * (i // 6)
        if i % 7 == 3:
            e += 0.02
            lines.append(f"G1 X{x0:.3f} Y{y0:.3f} F1800")
            lines.append(f"G1 X{x0 + 0.4:.3f} Y{y0:.3f} E{e:.4f}")
        else:
            side = 4.0 + (i % 4)
            corners = [(x0, y0), (x0 + side, y0), (x0 + side, y0 + side), (x0, y0 + side)]
            lines.append(f"G1 X{x0:.3f} Y{y0:.3f} F1800")
            for cx, cy in corners[1:]:
                e += side * 0.05
                lines.append(f"G1 X{cx:.3f} Y{cy:.3f} E{e:.4f}")
            if i % 3 == 1:
                lines.append("M106 S255")
                e += side * 0.05
                lines.append(f"G1 X{x0:.3f} Y{y0:.3f} E{e:.4f}")
        lines.append("; 'Destring/Wipe/Jump Path', 0.0 [feed mm/s], 70.0 [head mm/s]")
    lines.extend([";", "M104 S0", "; END"])
    return lines


@pytest.fixture()
def kiss_program() -> list[str]:
    return build_program()


def build_sliced_program(paths: int = 40) -> list[str]:
    """Program laid out the way KISSlicer writes it, with *paths* marked paths.

    A boundary sits right above every destring marker, and the marker is
    followed by its retract, travel and unretract moves before the
    boundary that opens the next path.  Every 5th path is a prime pillar
    path and every 9th is a single short move.
    """
    lines = [
        "; KISSlicer - PRO",
        "; version 1.6.3",
        "G21",
        "G90",
        "M82",
        "G1 Z0.3 F600",
        "G1 X0.000 Y0.000 F9000",
    ]
    e = 0.0
    for i in range(paths):
        x0 = 10.0 * (i % 6)
        y0 = 10.0 * (i // 6)
        kind = "Prime Pillar Path" if i % 5 == 0 else "Perimeter Path"
        lines.append(";")
        lines.append(f"; '{kind}', 0.3 [feed mm/s], 30.0 [head mm/s]")
        if i % 9 == 4:
            e += 0.02
            lines.append(f"G1 X{x0 + 0.4:.3f} Y{y0:.3f} E{e:.4f} F1800")
        else:
            side = 3.0 + (i % 5)
            corners = [(x0 + side, y0), (x0 + side, y0 + side), (x0, y0 + side), (x0, y0)]
            for cx, cy in corners:
                e += side * 0.05
                lines.append(f"G1 X{cx:.3f} Y{cy:.3f} E{e:.4f} F1800")
        lines.append(";")
        lines.append("; 'Destring/Wipe/Jump Path', 0.0 [feed mm/s], 70.0 [head mm/s]")
        nx = 10.0 * ((i + 1) % 6)
        ny = 10.0 * ((i + 1) // 6)
        lines.append(f"G1 E{e - 1.0:.4f} F2400")
        lines.append(f"G1 X{nx:.3f} Y{ny:.3f} F9000")
        lines.append(f"G1 E{e:.4f} F2400")
    lines.extend([";", "M104 S0", "; END"])
    return lines


@pytest.fixture()
def sliced_program() -> list[str]:
    return build_sliced_program()
