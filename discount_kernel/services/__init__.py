"""Kernel services: persistence and lifecycle for approvals and allocations."""

from discount_kernel.services.allocation_service import AllocationService
from discount_kernel.services.approval_service import DiscountApprovalService
from discount_kernel.services.sequence_service import SequenceService

__all__ = [
    "AllocationService",
    "DiscountApprovalService",
    "SequenceService",
]
