"""Run orchestration: program in, coasted program out.

Stages:
    1. Check the input exists (before any other I/O)
    2. Optional backup copy ``<file>_backup``
    3. Coast: single-instance pass, or partition → worker pool → merge
    4. Render: metadata header + coasted body + stats block, CRLF
    5. Atomic write to ``<file>_out`` (or over the input)

Callable layers:
    - coast_program(lines, config, dispatch) → CoastReport   (in-memory)
    - render_output(report, config, dispatch) → str
    - coast_file(input_path, profile) → Path                  (file to file)

Parallel file runs keep per-chunk artifacts in a scratch directory next
to the input, ``coast_wd_<run id>/``, removed after a successful run
unless ``keep_intermediate_artifacts`` is set.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from coaster import TOOL_NAME, __version__
from coaster.coasting import Coaster, CoastStats
from coaster.configs.loader import CoastConfig, CoastProfile, DispatchConfig
from coaster.dispatch.coordinator import run_parallel
from coaster.utils import fs

logger = logging.getLogger(__name__)

LINE_END = "\r\n"
OUTPUT_SUFFIX = "_out"
BACKUP_SUFFIX = "_backup"


class InputNotFoundError(FileNotFoundError):
    """Raised when the program to coast does not exist."""

    pass


@dataclass(frozen=True)
class CoastReport:
    """Result of one coasting run."""

    lines: list[str]
    stats: CoastStats
    chunks: int = 1


def coast_program(
    lines: Sequence[str],
    config: CoastConfig,
    dispatch: DispatchConfig | None = None,
    scratch_dir: Path | None = None,
) -> CoastReport:
    """Coast an in-memory program.

    Parameters
    ----------
    lines : Sequence[str]
        Program lines without terminators.
    config : CoastConfig
        Coasting settings.
    dispatch : DispatchConfig | None
        Worker settings; ``None`` or ``worker_count == 1`` runs a single
        pass in the calling thread.
    scratch_dir : Path | None
        Where parallel runs write per-chunk artifacts, if anywhere.

    Returns
    -------
    CoastReport
        Coasted lines, stats and the number of chunks used.
    """
    dispatch = dispatch or DispatchConfig()
    if not dispatch.parallel:
        coaster = Coaster(config)
        return CoastReport(lines=coaster.run(lines), stats=coaster.stats)

    merged, stats, chunks = run_parallel(lines, config, dispatch, scratch_dir)
    return CoastReport(lines=merged, stats=stats, chunks=chunks)


def _header(config: CoastConfig, dispatch: DispatchConfig, timestamp: datetime) -> list[str]:
    return [
        f"; Coasting implemented by {TOOL_NAME} {__version__}",
        "; ------------------------------------------------",
        f"; Timestamp: {timestamp.strftime('%Y-%m-%d %H:%M:%S')}",
        f"; coast: {config.coast_distance:g}",
        f"; primePillarCoast: {config.prime_pillar_coast_distance:g}",
        f"; minExtrusionLength: {config.min_extrusion_length:g}",
        f"; workers: {dispatch.worker_count}",
        ";",
    ]


def _stats_block(stats: CoastStats) -> list[str]:
    return [
        ";",
        f"; {TOOL_NAME} stats",
        f"; Regular paths: {stats.regular_coasted} coasted, "
        f"{stats.regular_skipped} skipped (too short)",
        f"; Prime pillar paths: {stats.prime_coasted} coasted, "
        f"{stats.prime_skipped} skipped (too short)",
    ]


def render_output(
    report: CoastReport,
    config: CoastConfig,
    dispatch: DispatchConfig | None = None,
    timestamp: datetime | None = None,
) -> str:
    """Render a report as output file content, every line CRLF-terminated.

    *timestamp* defaults to now (UTC); pass one for reproducible output.
    """
    dispatch = dispatch or DispatchConfig()
    timestamp = timestamp or datetime.now(timezone.utc)
    out = _header(config, dispatch, timestamp) + list(report.lines) + _stats_block(report.stats)
    return "".join(line + LINE_END for line in out)


def output_path_for(input_path: Path, overwrite: bool) -> Path:
    return input_path if overwrite else input_path.with_name(input_path.name + OUTPUT_SUFFIX)


def coast_file(
    input_path: str | Path,
    profile: CoastProfile,
    timestamp: datetime | None = None,
) -> Path:
    """Coast a program file and write the result.

    Parameters
    ----------
    input_path : str | Path
        Program to coast.
    profile : CoastProfile
        Validated configuration.
    timestamp : datetime | None
        Header timestamp; now when ``None``.

    Returns
    -------
    Path
        Path of the written output file.

    Raises
    ------
    InputNotFoundError
        If *input_path* does not exist.
    ScratchAreaError
        If a parallel run cannot create its scratch directory.
    WorkerFailure
        If a worker fails.
    """
    input_path = Path(input_path)
    if not input_path.is_file():
        raise InputNotFoundError(f"G-code file not found: {input_path}")

    out_cfg = profile.output
    if out_cfg.backup:
        backup = fs.backup_copy(input_path, BACKUP_SUFFIX)
        logger.info("Backup written to %s", backup)

    lines = fs.read_lines(input_path)
    logger.info("Read %d lines from %s", len(lines), input_path)

    if profile.dispatch.parallel:
        run_id = uuid.uuid4().hex[:8]
        with fs.scratch_area(input_path.parent, run_id, keep=out_cfg.keep_intermediate_artifacts) as wd:
            report = coast_program(lines, profile.coast, profile.dispatch, scratch_dir=wd)
    else:
        report = coast_program(lines, profile.coast, profile.dispatch)

    text = render_output(report, profile.coast, profile.dispatch, timestamp)
    output_path = output_path_for(input_path, out_cfg.overwrite)
    fs.atomic_write_text(output_path, text)

    s = report.stats
    logger.info(
        "Regular paths: %d coasted, %d skipped; prime pillar paths: %d coasted, %d skipped",
        s.regular_coasted, s.regular_skipped, s.prime_coasted, s.prime_skipped,
    )
    logger.info("Wrote %s", output_path)
    return output_path
