"""
Module: discount_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    discount_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import discount_kernel/domain, discount_kernel/exceptions and
    sibling engine modules.  MUST NOT import discount_services.

Invariants enforced:
    - Purity: engines never call ``datetime.now()`` or ``date.today()``.
      Dates and times are passed in explicitly by the calling service.
    - Decimal-only arithmetic for every monetary amount.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine entry points are traced via ``@traced_engine`` (see
    ``discount_engines.tracer``), emitting DISCOUNT_ENGINE_TRACE records.
"""

from discount_engines.allocation import (
    AllocationLine,
    AllocationResult,
    AllocationValidation,
    DiscountAllocationEngine,
    validate_allocation_method,
    validate_allocation_total,
    validate_weights,
)
from discount_engines.approval_gate import (
    GateEvaluation,
    discount_percentage,
    evaluate_gate,
    requires_approval,
)
from discount_engines.eligibility import (
    best_payment_term,
    category_rule_applies,
    pricing_rule_applies,
    promo_applies,
    volume_tier_applies,
)
from discount_engines.filters import (
    filter_by_minimum,
    filter_expired,
    sort_by_priority,
)
from discount_engines.normalizer import normalize, normalize_all
from discount_engines.stacking import StackingCalculator
from discount_engines.tracer import traced_engine

__all__ = [
    "AllocationLine",
    "AllocationResult",
    "AllocationValidation",
    "DiscountAllocationEngine",
    "GateEvaluation",
    "StackingCalculator",
    "best_payment_term",
    "category_rule_applies",
    "discount_percentage",
    "evaluate_gate",
    "filter_by_minimum",
    "filter_expired",
    "normalize",
    "normalize_all",
    "pricing_rule_applies",
    "promo_applies",
    "requires_approval",
    "sort_by_priority",
    "traced_engine",
    "validate_allocation_method",
    "validate_allocation_total",
    "validate_weights",
]
