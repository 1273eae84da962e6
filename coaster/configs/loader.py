"""Configuration loader for the coasting pipeline.

Loads ``coast.yaml`` (or a user profile), merges command-line overrides,
validates the result against the pydantic schema in
:mod:`coaster.utils.validators` and freezes it into dataclasses that are
threaded explicitly through every component call.  No component reads
global state; workers receive their own pickled copy.

Usage::

    from coaster.configs.loader import load_config
    profile = load_config()                                  # packaged defaults
    profile = load_config("my_printer.yaml")                 # explicit path
    profile = load_config(overrides={"coast": {"coast_distance_mm": 0.8}})
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from coaster.utils.fs import load_yaml
from coaster.utils.validators import CoastProfileV1, validate_coast_profile

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = Path(__file__).parent / "coast.yaml"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(Exception):
    """Raised when a coast setting is missing, non-numeric or out of range."""

    pass


# ---------------------------------------------------------------------------
# Dataclasses -- mirror the YAML structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarkerConfig:
    """Sentinel phrases recognised in the slicer's comment lines."""

    prime_pillar: str = "Prime Pillar Path"
    destring: str = "Destring/Wipe/Jump Path"
    boundary: str = ";"


@dataclass(frozen=True)
class CoastConfig:
    """Coasting distances in mm plus the markers that delimit paths."""

    coast_distance: float
    prime_pillar_coast_distance: float
    min_extrusion_length: float = 0.0
    markers: MarkerConfig = field(default_factory=MarkerConfig)

    def distance_for(self, prime_pillar: bool) -> float:
        """Configured coast distance for a regular or prime pillar path."""
        return self.prime_pillar_coast_distance if prime_pillar else self.coast_distance


@dataclass(frozen=True)
class DispatchConfig:
    """How the program is split across workers."""

    worker_count: int = 1
    executor: Literal["process", "thread"] = "process"

    @property
    def parallel(self) -> bool:
        return self.worker_count > 1


@dataclass(frozen=True)
class OutputConfig:
    """Where results go and what is kept around."""

    backup: bool = False
    overwrite: bool = False
    keep_intermediate_artifacts: bool = False


@dataclass(frozen=True)
class CoastProfile:
    """Complete, validated run configuration."""

    coast: CoastConfig
    dispatch: DispatchConfig
    output: OutputConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Return *base* with *overrides* merged in; ``None`` values are ignored."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _freeze(model: CoastProfileV1) -> CoastProfile:
    m = model.markers
    c = model.coast
    return CoastProfile(
        coast=CoastConfig(
            coast_distance=float(c.coast_distance_mm),
            prime_pillar_coast_distance=float(c.prime_pillar_coast_distance_mm),
            min_extrusion_length=float(c.min_extrusion_length_mm),
            markers=MarkerConfig(
                prime_pillar=m.prime_pillar,
                destring=m.destring,
                boundary=m.boundary,
            ),
        ),
        dispatch=DispatchConfig(
            worker_count=int(model.dispatch.worker_count),
            executor=model.dispatch.executor,
        ),
        output=OutputConfig(
            backup=model.output.backup,
            overwrite=model.output.overwrite,
            keep_intermediate_artifacts=model.output.keep_intermediate_artifacts,
        ),
    )


def _validate_config(profile: CoastProfile) -> None:
    """Cross-field checks the schema can't express.

    Raises
    ------
    ConfigError
        On any invalid combination.
    """
    c = profile.coast
    if c.prime_pillar_coast_distance > c.coast_distance:
        logger.warning(
            "Prime pillar coast (%.3f mm) is longer than the regular coast "
            "(%.3f mm); prime pillars are usually coasted less",
            c.prime_pillar_coast_distance,
            c.coast_distance,
        )
    if c.markers.prime_pillar.strip() == c.markers.boundary:
        raise ConfigError("prime_pillar marker can't be the boundary character itself")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> CoastProfile:
    """Load and validate a coast profile.

    Parameters
    ----------
    path : str | Path | None
        Path to a profile YAML.  ``None`` loads the default shipped
        alongside this module.
    overrides : dict | None
        Nested mapping merged over the file before validation
        (e.g. ``{"coast": {"coast_distance_mm": 0.8}}``).  ``None``
        leaves are skipped so unset CLI flags don't clobber the file.

    Returns
    -------
    CoastProfile
        Fully validated, frozen configuration object.

    Raises
    ------
    ConfigError
        If any field is missing, non-numeric or out of range.
    FileNotFoundError
        If *path* does not exist.
    """
    path = DEFAULT_PROFILE if path is None else Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Coast profile not found: {path}")

    logger.debug("Loading coast profile from %s", path)

    data = load_yaml(path)
    if data is None:
        raise ConfigError(f"Empty coast profile: {path}")
    if not isinstance(data, dict):
        raise ConfigError(f"Coast profile must be a mapping: {path}")

    if overrides:
        data = _deep_merge(data, overrides)

    try:
        model = validate_coast_profile(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid coast profile {path}: {exc}") from exc

    profile = _freeze(model)
    _validate_config(profile)
    logger.debug("Coast profile loaded: %s", profile)
    return profile
