"""Worker coordinator -- coast chunks in parallel and merge them in order.

Each chunk from :func:`coaster.dispatch.partition.partition` is coasted
by an independent :class:`~coaster.coasting.Coaster` in a worker of a
``concurrent.futures`` pool.  Workers share nothing: each receives its
own copy of the chunk plus the frozen config, and returns a
:class:`ChunkResult`.  Results are placed by chunk index, so completion
order never affects the merged program.

Process workers log through a ``multiprocessing`` queue drained by a
``QueueListener`` in the coordinator; every record carries ``chunk=<n>``.

A failing worker aborts the run with :class:`WorkerFailure`.  There is
no retry and no per-worker timeout.
"""

from __future__ import annotations

import logging
import logging.handlers
import multiprocessing
from collections.abc import Sequence
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path

from coaster.coasting import Coaster, CoastStats
from coaster.configs.loader import CoastConfig, DispatchConfig
from coaster.dispatch.partition import partition
from coaster.utils import fs
from coaster.utils.logging_config import (
    pop_context,
    push_context,
    setup_worker_logging,
    start_queue_listener,
)

logger = logging.getLogger(__name__)


class WorkerFailure(RuntimeError):
    """Raised when a worker could not coast its chunk."""

    def __init__(self, index: int, reason: str):
        self.index = index
        super().__init__(f"Worker for chunk {index} failed: {reason}")


@dataclass(frozen=True)
class ChunkResult:
    """Output of one worker."""

    index: int
    lines: list[str]
    stats: CoastStats


def coast_chunk(index: int, lines: Sequence[str], config: CoastConfig) -> ChunkResult:
    """Coast one chunk; runs inside a worker.

    Module level so process pools can pickle it.
    """
    push_context(chunk=index)
    try:
        logger.debug("Coasting %d lines", len(lines))
        coaster = Coaster(config)
        out = coaster.run(lines)
        logger.debug(
            "Chunk done: %d coasted, %d skipped",
            coaster.stats.regular_coasted + coaster.stats.prime_coasted,
            coaster.stats.regular_skipped + coaster.stats.prime_skipped,
        )
        return ChunkResult(index=index, lines=out, stats=coaster.stats)
    finally:
        pop_context(["chunk"])


def _crlf(lines: Sequence[str]) -> str:
    return "".join(f"{line}\r\n" for line in lines)


def _write_artifacts(scratch_dir: Path, result: ChunkResult) -> None:
    fs.atomic_write_text(scratch_dir / f"{result.index}.out", _crlf(result.lines))
    fs.atomic_yaml_dump(result.stats.as_dict(), scratch_dir / f"{result.index}.stats.yaml")


def _make_executor(dispatch: DispatchConfig) -> tuple[Executor, logging.handlers.QueueListener | None]:
    if dispatch.executor == "thread":
        pool = ThreadPoolExecutor(max_workers=dispatch.worker_count, thread_name_prefix="coast")
        return pool, None

    queue = multiprocessing.Queue(-1)
    listener = start_queue_listener(queue)
    level = logging.getLevelName(logging.getLogger().getEffectiveLevel())
    pool = ProcessPoolExecutor(
        max_workers=dispatch.worker_count,
        initializer=setup_worker_logging,
        initargs=(queue, level),
    )
    return pool, listener


def run_parallel(
    lines: Sequence[str],
    config: CoastConfig,
    dispatch: DispatchConfig,
    scratch_dir: Path | None = None,
) -> tuple[list[str], CoastStats, int]:
    """Coast *lines* across ``dispatch.worker_count`` workers.

    Parameters
    ----------
    lines : Sequence[str]
        Whole program, line terminators stripped.
    config : CoastConfig
        Coasting settings, handed unchanged to every worker.
    dispatch : DispatchConfig
        Worker count and pool flavour.
    scratch_dir : Path | None
        When set, each chunk's input, output and stats are written there
        as ``<n>.in``, ``<n>.out`` and ``<n>.stats.yaml``.

    Returns
    -------
    tuple[list[str], CoastStats, int]
        Merged output lines, summed stats, number of chunks.

    Raises
    ------
    WorkerFailure
        If any worker raised.
    """
    ranges = partition(lines, dispatch.worker_count, config.markers)
    chunks = [list(lines[r.start:r.stop]) for r in ranges]

    if scratch_dir is not None:
        for index, chunk in enumerate(chunks):
            fs.atomic_write_text(scratch_dir / f"{index}.in", _crlf(chunk))

    logger.info(
        "Dispatching %d chunks to %d %s workers",
        len(chunks), dispatch.worker_count, dispatch.executor,
    )

    results: list[ChunkResult | None] = [None] * len(chunks)
    pool, listener = _make_executor(dispatch)
    try:
        with pool:
            futures = {
                pool.submit(coast_chunk, index, chunk, config): index
                for index, chunk in enumerate(chunks)
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    result = future.result()
                except Exception as exc:
                    for pending in futures:
                        pending.cancel()
                    raise WorkerFailure(index, f"{type(exc).__name__}: {exc}") from exc
                logger.debug("Chunk %d finished (%d lines)", index, len(result.lines))
                results[index] = result
                if scratch_dir is not None:
                    _write_artifacts(scratch_dir, result)
    finally:
        if listener is not None:
            listener.stop()

    merged: list[str] = []
    stats = CoastStats()
    for result in results:
        merged.extend(result.lines)
        stats = stats + result.stats
    return merged, stats, len(chunks)
