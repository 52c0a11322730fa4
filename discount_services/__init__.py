"""
Discount services -- orchestration of the pricing pipeline.

Services own I/O: they read discount sources through a DiscountSourceStore,
persist approvals and allocations through the caller's Session, and call
the ledger and analytics adapters.  All calculation is delegated to
discount_engines.
"""

from discount_services.adapters import (
    AnalyticsAdapter,
    DiscountJournalInfo,
    DiscountSourceStore,
    InMemoryDiscountSourceStore,
    JournalReference,
    LedgerAdapter,
)
from discount_services.discovery import (
    DiscountDiscoveryService,
    DiscoveryResult,
    SourceOutcome,
)
from discount_services.formatters import (
    prepare_for_accounting,
    prepare_for_invoice,
    prepare_for_pos,
)
from discount_services.pricing_engine import (
    AllocationSummary,
    AppliedDiscountSummary,
    BestCombination,
    DiscountPreview,
    DiscountPreviewItem,
    PricingEngine,
    PricingRequest,
    PricingResult,
    PricingWarning,
)
from discount_services.result_cache import PricingFingerprint, ResultCache

__all__ = [
    "AllocationSummary",
    "AnalyticsAdapter",
    "AppliedDiscountSummary",
    "BestCombination",
    "DiscountDiscoveryService",
    "DiscountJournalInfo",
    "DiscountPreview",
    "DiscountPreviewItem",
    "DiscountSourceStore",
    "DiscoveryResult",
    "InMemoryDiscountSourceStore",
    "JournalReference",
    "LedgerAdapter",
    "PricingEngine",
    "PricingFingerprint",
    "PricingRequest",
    "PricingResult",
    "PricingWarning",
    "ResultCache",
    "SourceOutcome",
    "prepare_for_accounting",
    "prepare_for_invoice",
    "prepare_for_pos",
]
