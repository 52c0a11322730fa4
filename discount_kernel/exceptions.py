"""
Typed exception hierarchy for the discount engine.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from DiscountEngineError:

    DiscountEngineError (base)
    |
    +-- ValidationError
    |   +-- ContextValidationError
    |   +-- AllocationWeightsError
    |   +-- AllocationBasisError
    |   +-- AllocationTotalMismatchError
    |   +-- InvalidAllocationMethodError
    |   +-- InvalidApprovalDecisionError
    |
    +-- NotFoundError
    |   +-- ApprovalNotFoundError
    |   +-- AllocationNotFoundError
    |
    +-- ConflictError
    |   +-- ApprovalAlreadyDecidedError
    |   +-- ApprovalMismatchError
    |   +-- DiscountConflictError
    |   +-- AllocationNumberCollisionError
    |   +-- AllocationStateError
    |
    +-- PersistenceError
        +-- AllocationPersistenceError
        +-- MissingDiscountReferenceError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Validation      | INVALID_CONTEXT               | Missing business / non-positive amount
                | INVALID_ALLOCATION_WEIGHTS    | Weight count or sum is wrong
                | ZERO_ALLOCATION_BASIS         | Non-zero discount, zero basis
                | ALLOCATION_TOTAL_MISMATCH     | Lines do not sum to the aggregate
                | INVALID_ALLOCATION_METHOD     | Unknown allocation method name
                | INVALID_APPROVAL_DECISION     | Decision is neither APPROVE nor REJECT
----------------|-------------------------------|---------------------------------------
Not found       | APPROVAL_NOT_FOUND            | Approval id unknown for business
                | ALLOCATION_NOT_FOUND          | Allocation id unknown for business
----------------|-------------------------------|---------------------------------------
Conflict        | APPROVAL_ALREADY_DECIDED      | Decision on a non-pending request
                | APPROVAL_MISMATCH             | Approval granted for a different request
                | DISCOUNT_CONFLICT             | Strict mode and conflicts detected
                | ALLOCATION_NUMBER_COLLISION   | Allocation number already used
                | INVALID_ALLOCATION_STATE      | Apply / void from a wrong status
----------------|-------------------------------|---------------------------------------
Persistence     | ALLOCATION_PERSISTENCE_FAILED | Header or lines could not be written
                | MISSING_DISCOUNT_REFERENCE    | No rule or promotion reference

Partial failures (a single discovery source, ledger posting, analytics) are
NOT raised through this hierarchy; they are logged and reported as warnings
on the pricing result.
"""

from decimal import Decimal


class DiscountEngineError(Exception):
    """
    Base exception for all discount engine errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "DISCOUNT_ENGINE_ERROR"


# Validation exceptions


class ValidationError(DiscountEngineError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_FAILED"


class ContextValidationError(ValidationError):
    """Transaction context failed validation."""

    code: str = "INVALID_CONTEXT"

    def __init__(self, errors: list[str] | tuple[str, ...]):
        self.errors = tuple(errors)
        super().__init__(f"Invalid transaction context: {'; '.join(self.errors)}")


class AllocationWeightsError(ValidationError):
    """Custom allocation weights are malformed."""

    code: str = "INVALID_ALLOCATION_WEIGHTS"

    def __init__(self, reason: str, weight_total: Decimal | None = None):
        self.reason = reason
        self.weight_total = weight_total
        super().__init__(f"Invalid allocation weights: {reason}")


class AllocationBasisError(ValidationError):
    """Non-zero discount cannot be spread over a zero basis."""

    code: str = "ZERO_ALLOCATION_BASIS"

    def __init__(self, method: str, total_discount: str):
        self.method = method
        self.total_discount = total_discount
        super().__init__(
            f"Cannot allocate {total_discount} with {method}: allocation basis is zero"
        )


class AllocationTotalMismatchError(ValidationError):
    """Allocation lines do not reconcile to the aggregate discount."""

    code: str = "ALLOCATION_TOTAL_MISMATCH"

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Allocation lines sum to {actual}, expected {expected}"
        )


class InvalidAllocationMethodError(ValidationError):
    """Allocation method name is not recognised."""

    code: str = "INVALID_ALLOCATION_METHOD"

    def __init__(self, method: str, valid_methods: tuple[str, ...] = ()):
        self.method = method
        self.valid_methods = valid_methods
        super().__init__(f"Invalid allocation method: {method}")


class InvalidApprovalDecisionError(ValidationError):
    """Approval decision is neither APPROVE nor REJECT."""

    code: str = "INVALID_APPROVAL_DECISION"

    def __init__(self, decision: str):
        self.decision = decision
        super().__init__(f"Invalid approval decision: {decision!r}; expected APPROVE or REJECT")


# Not-found exceptions


class NotFoundError(DiscountEngineError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class ApprovalNotFoundError(NotFoundError):
    """Approval request not found for the given business."""

    code: str = "APPROVAL_NOT_FOUND"

    def __init__(self, request_id: str, business_id: str | None = None):
        self.request_id = request_id
        self.business_id = business_id
        super().__init__(f"Approval request not found: {request_id}")


class AllocationNotFoundError(NotFoundError):
    """Discount allocation not found for the given business."""

    code: str = "ALLOCATION_NOT_FOUND"

    def __init__(self, allocation_id: str, business_id: str | None = None):
        self.allocation_id = allocation_id
        self.business_id = business_id
        super().__init__(f"Discount allocation not found: {allocation_id}")


# Conflict exceptions


class ConflictError(DiscountEngineError):
    """Base exception for state conflicts."""

    code: str = "CONFLICT"


class ApprovalAlreadyDecidedError(ConflictError):
    """A decision was submitted for a request that is no longer pending."""

    code: str = "APPROVAL_ALREADY_DECIDED"

    def __init__(self, request_id: str, current_status: str):
        self.request_id = request_id
        self.current_status = current_status
        super().__init__(
            f"Approval request {request_id} already decided: {current_status}"
        )


class ApprovalMismatchError(ConflictError):
    """An approval id was presented for a request it was not granted for."""

    code: str = "APPROVAL_MISMATCH"

    def __init__(self, request_id: str, mismatched_fields: tuple[str, ...]):
        self.request_id = request_id
        self.mismatched_fields = mismatched_fields
        super().__init__(
            f"Approval {request_id} does not cover this request: "
            f"{', '.join(mismatched_fields)} differ"
        )


class DiscountConflictError(ConflictError):
    """Conflicting discounts found while running in strict mode."""

    code: str = "DISCOUNT_CONFLICT"

    def __init__(self, conflict_types: tuple[str, ...], candidate_ids: tuple[str, ...]):
        self.conflict_types = conflict_types
        self.candidate_ids = candidate_ids
        super().__init__(
            f"Conflicting discounts: {', '.join(conflict_types)}"
        )


class AllocationNumberCollisionError(ConflictError):
    """Allocation number already exists for this business."""

    code: str = "ALLOCATION_NUMBER_COLLISION"

    def __init__(self, allocation_number: str, business_id: str):
        self.allocation_number = allocation_number
        self.business_id = business_id
        super().__init__(
            f"Allocation number {allocation_number} already used for business {business_id}"
        )


class AllocationStateError(ConflictError):
    """Allocation is not in a status that allows the requested action."""

    code: str = "INVALID_ALLOCATION_STATE"

    def __init__(self, allocation_id: str, current_status: str, action: str):
        self.allocation_id = allocation_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} allocation {allocation_id} in status {current_status}"
        )


# Persistence exceptions


class PersistenceError(DiscountEngineError):
    """Base exception for failed writes."""

    code: str = "PERSISTENCE_ERROR"


class AllocationPersistenceError(PersistenceError):
    """Allocation header or lines could not be written."""

    code: str = "ALLOCATION_PERSISTENCE_FAILED"

    def __init__(self, business_id: str, reason: str):
        self.business_id = business_id
        self.reason = reason
        super().__init__(f"Failed to persist allocation for {business_id}: {reason}")


class MissingDiscountReferenceError(PersistenceError):
    """Allocation has neither a discount rule nor a promotion reference."""

    code: str = "MISSING_DISCOUNT_REFERENCE"

    def __init__(self, business_id: str):
        self.business_id = business_id
        super().__init__(
            "Allocation requires a discount rule or promotional discount reference"
        )
