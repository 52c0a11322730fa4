"""
EngineSettings schema.

Typed, frozen settings for the pricing pipeline.  YAML documents are
parsed into this type by ``discount_config.loader``; services only ever
see the frozen dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

# ---------------------------------------------------------------------------
# Engine settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineSettings:
    """Runtime knobs for discovery, approval and caching."""

    default_approval_threshold: Decimal = Decimal("20")  # percent
    business_thresholds: dict[str, Decimal] = field(default_factory=dict, hash=False)
    cache_ttl_seconds: int = 300
    cache_sweep_probability: float = 0.01
    source_timeout_seconds: float = 5.0
    default_currency: str = "USD"
    significant_discount_amount: Decimal = Decimal("100000")
    max_discovery_workers: int = 5

    def threshold_for(self, business_id: UUID | str | None) -> Decimal:
        """Approval threshold for a business, falling back to the default."""
        if business_id is None:
            return self.default_approval_threshold
        return self.business_thresholds.get(str(business_id), self.default_approval_threshold)

    def to_dict(self) -> dict[str, Any]:
        return {
            "default_approval_threshold": str(self.default_approval_threshold),
            "business_thresholds": {
                k: str(v) for k, v in sorted(self.business_thresholds.items())
            },
            "cache_ttl_seconds": self.cache_ttl_seconds,
            "cache_sweep_probability": self.cache_sweep_probability,
            "source_timeout_seconds": self.source_timeout_seconds,
            "default_currency": self.default_currency,
            "significant_discount_amount": str(self.significant_discount_amount),
            "max_discovery_workers": self.max_discovery_workers,
        }
