"""Tests for coast profile loading (coaster.configs.loader, coaster.utils.validators).

Validates that:
    - The packaged coast.yaml loads and freezes into dataclasses
    - Overrides win over the file, and ``None`` overrides are ignored
    - Out-of-range, non-numeric and unknown settings raise ConfigError
    - Marker cross-checks reject ambiguous markers
"""

from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest
import yaml

from coaster.configs.loader import (
    DEFAULT_PROFILE,
    CoastProfile,
    ConfigError,
    DispatchConfig,
    load_config,
)
from coaster.utils import validators


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def profile() -> CoastProfile:
    """Load the default coast.yaml shipped with the package."""
    return load_config()


@pytest.fixture()
def write_profile(tmp_path: Path):
    def _write(data) -> Path:
        path = tmp_path / "profile.yaml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path
    return _write


# ---------------------------------------------------------------------------
# Default profile
# ---------------------------------------------------------------------------


class TestDefaultProfile:
    def test_coast_values(self, profile: CoastProfile) -> None:
        assert profile.coast.coast_distance == 1.0
        assert profile.coast.prime_pillar_coast_distance == 0.5
        assert profile.coast.min_extrusion_length == 0.0

    def test_kisslicer_markers(self, profile: CoastProfile) -> None:
        m = profile.coast.markers
        assert m.prime_pillar == "Prime Pillar Path"
        assert m.destring == "Destring/Wipe/Jump Path"
        assert m.boundary == ";"

    def test_dispatch_and_output(self, profile: CoastProfile) -> None:
        assert profile.dispatch == DispatchConfig(worker_count=1, executor="process")
        assert not profile.dispatch.parallel
        assert not profile.output.backup
        assert not profile.output.overwrite
        assert not profile.output.keep_intermediate_artifacts

    def test_frozen(self, profile: CoastProfile) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            profile.coast.coast_distance = 3.0  # type: ignore[misc]

    def test_distance_for(self, profile: CoastProfile) -> None:
        assert profile.coast.distance_for(prime_pillar=True) == 0.5
        assert profile.coast.distance_for(prime_pillar=False) == 1.0

    def test_validator_accepts_packaged_yaml(self) -> None:
        model = validators.load_coast_profile(DEFAULT_PROFILE)
        assert model.schema_version == "coast_profile.v1"


# ---------------------------------------------------------------------------
# Overrides and profile files
# ---------------------------------------------------------------------------


class TestOverrides:
    def test_override_wins(self) -> None:
        profile = load_config(overrides={"coast": {"coast_distance_mm": 0.8}})
        assert profile.coast.coast_distance == 0.8
        assert profile.coast.prime_pillar_coast_distance == 0.5

    def test_none_override_ignored(self) -> None:
        profile = load_config(overrides={"coast": {"coast_distance_mm": None}, "dispatch": {"worker_count": None}})
        assert profile.coast.coast_distance == 1.0
        assert profile.dispatch.worker_count == 1

    def test_profile_file_then_override(self, write_profile) -> None:
        path = write_profile({
            "schema": "coast_profile.v1",
            "coast": {"coast_distance_mm": 2.0, "prime_pillar_coast_distance_mm": 1.0},
            "dispatch": {"worker_count": 4, "executor": "thread"},
        })
        profile = load_config(path, {"coast": {"prime_pillar_coast_distance_mm": 0.25}})
        assert profile.coast.coast_distance == 2.0
        assert profile.coast.prime_pillar_coast_distance == 0.25
        assert profile.dispatch == DispatchConfig(worker_count=4, executor="thread")
        assert profile.dispatch.parallel

    def test_prime_longer_than_regular_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("WARNING"):
            load_config(overrides={"coast": {"prime_pillar_coast_distance_mm": 3.0}})
        assert "Prime pillar coast" in caplog.text


# ---------------------------------------------------------------------------
# Invalid settings
# ---------------------------------------------------------------------------


class TestInvalid:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"coast": {"coast_distance_mm": 150.0}},
            {"coast": {"coast_distance_mm": -0.1}},
            {"coast": {"prime_pillar_coast_distance_mm": 101.0}},
            {"coast": {"coast_distance_mm": "lots"}},
            {"coast": {"min_extrusion_length_mm": -1.0}},
            {"dispatch": {"worker_count": 0}},
            {"dispatch": {"worker_count": 129}},
            {"dispatch": {"executor": "cluster"}},
            {"unknown_section": {"x": 1}},
            {"markers": {"boundary": ";;"}},
            {"markers": {"destring": "Prime Pillar Path"}},
            {"markers": {"prime_pillar": ";"}},
        ],
    )
    def test_rejected(self, overrides) -> None:
        with pytest.raises(ConfigError):
            load_config(overrides=overrides)

    def test_wrong_schema(self, write_profile) -> None:
        path = write_profile({"schema": "coast_profile.v2", "coast": {
            "coast_distance_mm": 1.0, "prime_pillar_coast_distance_mm": 0.5}})
        with pytest.raises(ConfigError, match="coast_profile.v1"):
            load_config(path)

    def test_missing_coast_section(self, write_profile) -> None:
        with pytest.raises(ConfigError):
            load_config(write_profile({"schema": "coast_profile.v1"}))

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ConfigError, match="Empty"):
            load_config(path)

    def test_not_a_mapping(self, write_profile) -> None:
        with pytest.raises(ConfigError, match="mapping"):
            load_config(write_profile([1, 2, 3]))

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_validator_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            validators.validate_coast_profile({"coast": {"coast_distance_mm": 500}})
