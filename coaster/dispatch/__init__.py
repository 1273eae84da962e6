"""Parallel dispatch: boundary-safe partitioning and the worker pool."""

from coaster.dispatch.coordinator import ChunkResult, WorkerFailure, coast_chunk, run_parallel
from coaster.dispatch.partition import find_safe_cut, partition

__all__ = [
    "ChunkResult",
    "WorkerFailure",
    "coast_chunk",
    "find_safe_cut",
    "partition",
    "run_parallel",
]
