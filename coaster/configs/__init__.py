"""Coast profile loading and validation."""

from coaster.configs.loader import (
    CoastConfig,
    CoastProfile,
    ConfigError,
    DispatchConfig,
    MarkerConfig,
    OutputConfig,
    load_config,
)

__all__ = [
    "CoastConfig",
    "CoastProfile",
    "ConfigError",
    "DispatchConfig",
    "MarkerConfig",
    "OutputConfig",
    "load_config",
]
