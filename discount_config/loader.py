"""
Configuration Loader (``discount_config.loader``).

Responsibility
--------------
Loads a YAML settings document and parses it into the frozen
``discount_config.schema.EngineSettings`` dataclass.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Consumed by callers that
construct the pricing engine.  It has no dependency on kernel services,
engines, or discount_services.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` with descriptive messages; unknown
  keys are rejected rather than silently ignored.
* Thresholds are Decimal percentages in [0, 100].
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Out-of-range or mistyped values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from discount_config.schema import EngineSettings
from discount_kernel.domain.currency import is_known_currency
from discount_kernel.logging_config import get_logger

logger = get_logger("config.loader")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

_KNOWN_KEYS = frozenset({
    "default_approval_threshold",
    "business_thresholds",
    "cache_ttl_seconds",
    "cache_sweep_probability",
    "source_timeout_seconds",
    "default_currency",
    "significant_discount_amount",
    "max_discovery_workers",
})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be numeric, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be numeric, got {value!r}") from exc


def parse_percentage(value: Any, name: str) -> Decimal:
    pct = parse_decimal(value, name)
    if pct < Decimal("0") or pct > Decimal("100"):
        raise ValueError(f"{name} must be between 0 and 100, got {pct}")
    return pct


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse ``EngineSettings`` from a dict.

    Missing keys take the dataclass defaults.

    Raises:
        ValueError: unknown keys, wrong types or out-of-range values.
    """
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ValueError(f"Unknown settings keys: {sorted(unknown)}")

    defaults = EngineSettings()
    kwargs: dict[str, Any] = {}

    if "default_approval_threshold" in data:
        kwargs["default_approval_threshold"] = parse_percentage(
            data["default_approval_threshold"], "default_approval_threshold",
        )

    thresholds = data.get("business_thresholds") or {}
    if not isinstance(thresholds, dict):
        raise ValueError("business_thresholds must be a mapping of business id to percent")
    kwargs["business_thresholds"] = {
        str(business_id): parse_percentage(value, f"business_thresholds[{business_id}]")
        for business_id, value in thresholds.items()
    }

    if "cache_ttl_seconds" in data:
        ttl = data["cache_ttl_seconds"]
        if not isinstance(ttl, int) or isinstance(ttl, bool) or ttl <= 0:
            raise ValueError(f"cache_ttl_seconds must be a positive integer, got {ttl!r}")
        kwargs["cache_ttl_seconds"] = ttl

    if "cache_sweep_probability" in data:
        probability = float(parse_decimal(data["cache_sweep_probability"], "cache_sweep_probability"))
        if not 0.0 <= probability <= 1.0:
            raise ValueError(
                f"cache_sweep_probability must be between 0 and 1, got {probability}"
            )
        kwargs["cache_sweep_probability"] = probability

    if "source_timeout_seconds" in data:
        timeout = float(parse_decimal(data["source_timeout_seconds"], "source_timeout_seconds"))
        if timeout <= 0:
            raise ValueError(f"source_timeout_seconds must be positive, got {timeout}")
        kwargs["source_timeout_seconds"] = timeout

    if "default_currency" in data:
        code = str(data["default_currency"]).upper()
        if not is_known_currency(code):
            raise ValueError(f"default_currency is not a known ISO 4217 code: {code}")
        kwargs["default_currency"] = code

    if "significant_discount_amount" in data:
        amount = parse_decimal(data["significant_discount_amount"], "significant_discount_amount")
        if amount < Decimal("0"):
            raise ValueError("significant_discount_amount cannot be negative")
        kwargs["significant_discount_amount"] = amount

    if "max_discovery_workers" in data:
        workers = data["max_discovery_workers"]
        if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
            raise ValueError(f"max_discovery_workers must be >= 1, got {workers!r}")
        kwargs["max_discovery_workers"] = workers

    return replace(defaults, **kwargs)


def load_settings(path: Path | str) -> EngineSettings:
    """Load and validate settings from a YAML file."""
    path = Path(path)
    settings = parse_settings(load_yaml_file(path))
    logger.info(
        "settings_loaded",
        extra={
            "path": str(path),
            "checksum": compute_checksum(settings),
            "business_threshold_count": len(settings.business_thresholds),
        },
    )
    return settings


def get_default_settings() -> EngineSettings:
    """Settings from the packaged ``defaults.yaml``."""
    return load_settings(DEFAULTS_PATH)


def compute_checksum(settings: EngineSettings | dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical settings always produce identical checksums.
    """
    data = settings.to_dict() if isinstance(settings, EngineSettings) else settings
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
