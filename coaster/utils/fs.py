"""Atomic filesystem operations for program files, YAML and scratch storage.

Provides:
    - Atomic writes: tmp file → fsync → rename (no half-written G-code)
    - Line-oriented program reads (CRLF or LF input)
    - YAML load/dump (PyYAML safe_* API)
    - Backup copies next to the source file
    - Namespaced scratch directories for parallel-run artifacts

All paths use pathlib.Path for cross-platform compatibility.

Usage:
    from coaster.utils import fs
    lines = fs.read_lines("part.gcode")
    fs.atomic_write_text("part.gcode_out", text, newline="")
    with fs.scratch_area(Path("."), run_id, keep=False) as wd:
        fs.atomic_yaml_dump(stats, wd / "1.stats.yaml")
"""

import logging
import os
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Union

import yaml

logger = logging.getLogger(__name__)


class ScratchAreaError(RuntimeError):
    """Raised when the scratch directory for a parallel run cannot be created."""

    pass


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object.

    Parameters
    ----------
    p : Union[str, Path]
        Directory path

    Returns
    -------
    Path
        Path object (guaranteed to exist)
    """
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_bytes(
    path: Union[str, Path],
    data: bytes,
    tmp_suffix: str = ".tmp"
) -> None:
    """Write bytes to file atomically (tmp → fsync → rename).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write
    tmp_suffix : str
        Temporary file suffix, default ".tmp"

    Notes
    -----
    The tmp file lives in the target directory so the final rename stays
    on one filesystem. With ``--overwrite`` this is what keeps the source
    program intact if the write fails halfway.
    """
    path = Path(path)
    ensure_dir(path.parent)

    tmp_path = path.with_name(path.name + tmp_suffix)

    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    except OSError as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def atomic_write_text(
    path: Union[str, Path],
    text: str,
    encoding: str = "utf-8"
) -> None:
    """Write text atomically; line endings in *text* are written verbatim."""
    atomic_write_bytes(path, text.encode(encoding))


def read_lines(path: Union[str, Path], encoding: str = "utf-8") -> List[str]:
    """Read a program file into a list of lines without terminators.

    Parameters
    ----------
    path : Union[str, Path]
        Program file path

    Returns
    -------
    List[str]
        One entry per line; CR+LF and LF terminators both stripped

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"G-code file not found: {path}")

    with open(path, 'r', encoding=encoding, errors='replace', newline='') as f:
        return f.read().splitlines()


def atomic_yaml_dump(obj: Any, path: Union[str, Path]) -> None:
    """Save object as YAML atomically (safe_dump, insertion order kept)."""
    yaml_str = yaml.safe_dump(
        obj,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True
    )
    atomic_write_bytes(path, yaml_str.encode('utf-8'))


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Dict[str, Any]
        Parsed YAML content

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e


def backup_copy(path: Union[str, Path], suffix: str = "_backup") -> Path:
    """Copy *path* to ``<path><suffix>`` (metadata preserved) and return it."""
    path = Path(path)
    backup = path.with_name(path.name + suffix)
    shutil.copy2(path, backup)
    logger.debug("Backup file created: %s", backup)
    return backup


@contextmanager
def scratch_area(
    root: Union[str, Path],
    run_id: str,
    keep: bool = False
) -> Iterator[Path]:
    """Create a namespaced scratch directory for one run.

    Parameters
    ----------
    root : Union[str, Path]
        Parent directory (usually the input file's directory)
    run_id : str
        Unique run identifier; concurrent runs in one directory never collide
    keep : bool
        Retain the directory after a successful run, default False

    Yields
    ------
    Path
        The scratch directory ``<root>/coast_wd_<run_id>``

    Raises
    ------
    ScratchAreaError
        If the directory cannot be created

    Notes
    -----
    On an exception inside the block the directory is retained for
    inspection. A failed removal is logged as a warning, never raised.
    """
    path = Path(root) / f"coast_wd_{run_id}"
    try:
        path.mkdir(parents=True, exist_ok=False)
    except OSError as e:
        raise ScratchAreaError(f"Couldn't create scratch directory {path}: {e}") from e

    logger.debug("Created scratch directory %s", path)
    yield path

    if keep:
        logger.info("Keeping intermediate artifacts in %s", path)
        return
    try:
        shutil.rmtree(path)
    except OSError as e:
        logger.warning("Unable to remove scratch directory %s: %s", path, e)
