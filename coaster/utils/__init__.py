"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config schema validation (validators)
    - Atomic I/O, YAML and scratch storage (fs)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (configs, coasting, etc.).

Convenience imports:
    from coaster.utils import fs, validators
    from coaster.utils.logging_config import setup_logging, push_context
"""

from . import fs
from . import logging_config
from . import validators

from .logging_config import push_context, setup_logging

__all__ = [
    # Modules
    'fs',
    'logging_config',
    'validators',
    # Direct exports
    'setup_logging',
    'push_context',
]
