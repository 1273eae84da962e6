"""YAML schema validation for coasting profiles.

Provides centralized validation of the coast profile using pydantic:
    - Coast distances (coast_distance_mm, prime_pillar_coast_distance_mm)
    - Minimum printed length kept before a coast (min_extrusion_length_mm)
    - Slicer sentinel phrases (markers)
    - Worker pool settings (dispatch)
    - Output handling (backup, overwrite, intermediate artifacts)

Every entry point loads its settings through these models so a bad value
fails before any file is touched.

Units:
    - Distances: millimeters (mm)

Usage:
    from coaster.utils import validators

    profile = validators.load_coast_profile("coast.yaml")
    profile = validators.validate_coast_profile({"coast": {...}})
"""

from pathlib import Path
from typing import Any, Dict, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============================================================================
# COAST PROFILE SCHEMA V1
# ============================================================================

class CoastSettings(BaseModel):
    """Coasting distances (mm)."""
    coast_distance_mm: float = Field(..., ge=0.0, le=100.0, description="Coast length before a destring (mm)")
    prime_pillar_coast_distance_mm: float = Field(..., ge=0.0, le=100.0, description="Coast length on prime pillar paths (mm)")
    min_extrusion_length_mm: float = Field(0.0, ge=0.0, description="Printed length always kept on a coasted path (mm)")


class MarkerSettings(BaseModel):
    """Sentinel phrases the slicer writes into its comment lines."""
    prime_pillar: str = Field("Prime Pillar Path", min_length=1, description="Start of a prime pillar path")
    destring: str = Field("Destring/Wipe/Jump Path", min_length=1, description="End of a path that needs coasting")
    boundary: str = Field(";", min_length=1, max_length=1, description="Whole-line path separator")

    @model_validator(mode='after')
    def validate_distinct(self) -> 'MarkerSettings':
        if self.prime_pillar == self.destring:
            raise ValueError(f"prime_pillar and destring markers must differ, both are '{self.destring}'")
        if self.destring.strip() == self.boundary:
            raise ValueError("destring marker can't be the boundary character itself")
        return self


class DispatchSettings(BaseModel):
    """Worker pool settings."""
    worker_count: int = Field(1, ge=1, le=128, description="Number of chunks/workers (1 = single instance)")
    executor: Literal["process", "thread"] = Field("process", description="Worker pool flavour")


class OutputSettings(BaseModel):
    """Output file handling."""
    backup: bool = Field(False, description="Copy the input to <file>_backup first")
    overwrite: bool = Field(False, description="Write over the input instead of <file>_out")
    keep_intermediate_artifacts: bool = Field(False, description="Keep per-chunk scratch files")


class CoastProfileV1(BaseModel):
    """Coast profile schema v1."""
    model_config = ConfigDict(populate_by_name=True, extra='forbid')

    schema_version: str = Field("coast_profile.v1", alias="schema", description="Schema version")
    coast: CoastSettings
    markers: MarkerSettings = Field(default_factory=MarkerSettings)
    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "coast_profile.v1":
            raise ValueError(f"Expected schema 'coast_profile.v1', got '{v}'")
        return v


# ============================================================================
# PUBLIC API
# ============================================================================

def validate_coast_profile(data: Dict[str, Any]) -> CoastProfileV1:
    """Validate an already-parsed profile mapping.

    Parameters
    ----------
    data : Dict[str, Any]
        Profile content (YAML mapping, possibly merged with CLI overrides)

    Returns
    -------
    CoastProfileV1
        Validated profile

    Raises
    ------
    ValueError
        If validation fails (pydantic's message names the offending key
        and the allowed range)
    """
    if not isinstance(data, dict):
        raise ValueError(f"Coast profile must be a mapping, got {type(data).__name__}")
    try:
        return CoastProfileV1(**data)
    except Exception as e:
        raise ValueError(f"Coast profile validation failed: {e}") from e


def load_coast_profile(path: Union[str, Path]) -> CoastProfileV1:
    """Load and validate a coast profile from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to a coast_profile.v1 YAML file

    Returns
    -------
    CoastProfileV1
        Validated profile

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Coast profile not found: {path}")

    data = fs.load_yaml(path)
    try:
        return validate_coast_profile(data)
    except ValueError as e:
        raise ValueError(f"{e} (in {path})") from e
