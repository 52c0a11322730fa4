"""ORM models for the discount kernel."""

from discount_kernel.models.allocation import (
    DiscountAllocationLineModel,
    DiscountAllocationModel,
)
from discount_kernel.models.approval import DiscountApprovalModel
from discount_kernel.models.sequence import SequenceCounter
from discount_kernel.models.sources import (
    CategoryDiscountRuleModel,
    EarlyPaymentTermModel,
    PricingRuleModel,
    PromotionalDiscountModel,
    VolumeDiscountTierModel,
)

__all__ = [
    "CategoryDiscountRuleModel",
    "DiscountAllocationLineModel",
    "DiscountAllocationModel",
    "DiscountApprovalModel",
    "EarlyPaymentTermModel",
    "PricingRuleModel",
    "PromotionalDiscountModel",
    "SequenceCounter",
    "VolumeDiscountTierModel",
]
