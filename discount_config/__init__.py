"""
discount_config -- settings for the pricing pipeline.

Responsibility:
    Parse YAML settings into the frozen ``EngineSettings`` dataclass.
    Services receive an ``EngineSettings`` instance; they never read files
    or environment variables themselves.

Architecture position:
    Configuration layer.  Sits beside ``discount_kernel``; the kernel MUST
    NEVER import from ``discount_config``.

Failure modes:
    - ``FileNotFoundError`` for a missing settings file.
    - ``ValueError`` for invalid settings values.
"""

from discount_config.loader import (
    compute_checksum,
    get_default_settings,
    load_settings,
    parse_settings,
)
from discount_config.schema import EngineSettings

__all__ = [
    "EngineSettings",
    "compute_checksum",
    "get_default_settings",
    "load_settings",
    "parse_settings",
]
