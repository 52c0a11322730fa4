"""
PricingEngine -- discount discovery, stacking, approval and allocation.

Responsibility:
    The primary operation, ``calculate_final_price``: validate the request,
    discover candidates, stack the discounts, evaluate the approval gate,
    and (when allowed) commit an allocation across the line items, then
    run the ledger and analytics side effects.  Also the supplementary
    operations: quick_calculate, preview_discounts, find_best_combination,
    submit_for_approval, process_approval, get_approval_status and
    invalidate_cache.

Architecture position:
    Services -- orchestration.  Pure maths lives in discount_engines;
    persistence in discount_kernel.services.  The engine flushes through
    the caller's Session and never commits.

Invariants enforced:
    - Validation happens before any discovery work (no partial state).
    - No allocation is created while the gate is PENDING or REJECTED.
    - An approval_id only clears the gate for the request it was raised
      for: same amount, currency, customer and stacked discount.
    - Allocations are written all-or-nothing and reference the rule or
      promotion they came from.
    - FIXED_PERCENTAGE lines are reconciled to the stacked total before
      they are persisted.
    - Ledger posting happens only after a committed allocation exists.
    - Ledger, analytics and individual discovery-source failures become
      PricingWarning entries; they never fail the pricing call.
    - Only side-effect-free results whose gate was NOT_REQUIRED are cached,
      and the cache is only consulted for side-effect-free requests.

Failure modes:
    - ContextValidationError / AllocationWeightsError /
      InvalidAllocationMethodError before discovery.
    - DiscountConflictError in strict mode when stacking conflicts exist,
      whether the result was computed or served from the cache.
    - ApprovalNotFoundError for an unknown approval_id; ApprovalMismatchError
      for an approval granted to a different request.
    - AllocationPersistenceError and friends when the allocation cannot be
      written; nothing partial is left in the session.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy.orm import Session

from discount_config.schema import EngineSettings
from discount_engines.allocation import (
    DiscountAllocationEngine,
    absorb_percentage_drift,
    validate_allocation_method,
    validate_weights,
)
from discount_engines.approval_gate import GateEvaluation, evaluate_gate
from discount_engines.filters import sort_by_priority
from discount_engines.stacking import StackingCalculator
from discount_kernel.domain.allocation import (
    AllocationDraft,
    AllocationMethod,
    AllocationRecord,
)
from discount_kernel.domain.approval import (
    ApprovalDecision,
    ApprovalRequest,
    ApprovalStatus,
    GateState,
)
from discount_kernel.domain.clock import Clock, SystemClock
from discount_kernel.domain.currency import is_known_currency
from discount_kernel.domain.discount import (
    DiscountCandidate,
    DiscountConflict,
    DiscountSourceType,
    LineItem,
    StackedDiscountResult,
    TransactionContext,
)
from discount_kernel.domain.values import Money, sum_money
from discount_kernel.exceptions import (
    ApprovalMismatchError,
    ContextValidationError,
    DiscountConflictError,
)
from discount_kernel.logging_config import LogContext, get_logger
from discount_kernel.services.allocation_service import AllocationService
from discount_kernel.services.approval_service import DiscountApprovalService
from discount_services.adapters import (
    AnalyticsAdapter,
    DiscountJournalInfo,
    DiscountSourceStore,
    LedgerAdapter,
)
from discount_services.discovery import DiscountDiscoveryService, SourceOutcome
from discount_services.result_cache import PricingFingerprint, ResultCache

logger = get_logger("services.pricing_engine")

ZERO = Decimal("0")
HUNDRED = Decimal("100")
PERCENT_PLACES = Decimal("0.01")
TRANSACTION_TYPES = frozenset({"POS", "INVOICE"})

# Which applied source supplies the allocation's discount_rule_id
RULE_REFERENCE_ORDER = (
    DiscountSourceType.VOLUME,
    DiscountSourceType.EARLY_PAYMENT,
    DiscountSourceType.CATEGORY,
    DiscountSourceType.PRICING_RULE,
)


# ---------------------------------------------------------------------------
# Request / result DTOs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PricingRequest:
    """Caller input for one pricing call."""

    business_id: UUID | None
    amount: Decimal | str | int | None = None
    subtotal: Decimal | str | int | None = None
    currency: str | None = None
    customer_id: UUID | None = None
    quantity: int | None = None
    promo_code: str | None = None
    category_id: UUID | None = None
    service_id: UUID | None = None
    customer_category_id: UUID | None = None
    transaction_date: date | None = None
    transaction_at: datetime | None = None
    items: tuple[LineItem, ...] = ()
    pre_approved: bool = False
    approval_id: UUID | None = None
    preview_mode: bool = False
    create_allocation: bool = True
    create_journal_entries: bool = True
    strict: bool = False
    user_id: UUID | None = None
    transaction_id: UUID | None = None
    transaction_type: str = "POS"
    allocation_method: AllocationMethod | str = AllocationMethod.PRO_RATA_AMOUNT
    allocation_weights: tuple[Decimal, ...] | None = None


@dataclass(frozen=True)
class AppliedDiscountSummary:
    id: UUID
    type: DiscountSourceType
    name: str
    amount: Money
    percentage: Decimal
    description: str | None = None


@dataclass(frozen=True)
class AllocationSummary:
    id: UUID
    number: str
    method: AllocationMethod


@dataclass(frozen=True)
class AccountingSummary:
    journal_entry_id: UUID | str
    entry_number: str | None = None


@dataclass(frozen=True)
class PricingWarning:
    """Non-fatal problem recorded on a result instead of being raised."""

    code: str
    message: str
    source: str | None = None


@dataclass(frozen=True)
class PricingResult:
    """
    Outcome of calculate_final_price.

    On success ``success`` is True and the amounts are final.  When the
    gate needs approval ``success`` is False, ``requires_approval`` is True,
    ``discounts`` lists the candidates and ``approval_threshold`` is set.
    """

    success: bool
    original_amount: Money
    total_discount: Money
    final_amount: Money
    applied_discounts: tuple[AppliedDiscountSummary, ...] = ()
    allocation: AllocationSummary | None = None
    accounting: AccountingSummary | None = None
    conflicts: tuple[DiscountConflict, ...] = ()
    warnings: tuple[PricingWarning, ...] = ()
    requires_approval: bool = False
    gate_state: GateState = GateState.NOT_REQUIRED
    discounts: tuple[DiscountCandidate, ...] = ()
    approval_threshold: Decimal | None = None
    message: str | None = None
    from_cache: bool = False
    calculation_ms: float = 0.0


@dataclass(frozen=True)
class DiscountPreviewItem:
    id: UUID
    type: DiscountSourceType
    name: str
    discount_amount: Money
    final_amount: Money
    percentage: Decimal
    stackable: bool
    priority: int


@dataclass(frozen=True)
class DiscountPreview:
    original_amount: Money
    discounts: tuple[DiscountPreviewItem, ...]
    total_possible_discount: Money
    best_single: DiscountPreviewItem | None


@dataclass(frozen=True)
class BestCombination:
    original_amount: Money
    candidates: tuple[DiscountCandidate, ...]
    total_discount: Money
    final_amount: Money
    savings_percentage: Decimal
    stacked: StackedDiscountResult | None = field(repr=False, compare=False, default=None)


def _percent_of(part: Money, whole: Money) -> Decimal:
    if not whole.is_positive:
        return ZERO.quantize(PERCENT_PLACES)
    return (part.amount / whole.amount * HUNDRED).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class PricingEngine:
    """
    Orchestrates discovery -> approval gate -> stacking -> allocation.

    Usage:
        engine = PricingEngine(session, SqlDiscountSourceStore(factory), settings=settings)
        result = engine.calculate_final_price(PricingRequest(business_id=biz, amount="1000"))
        session.commit()
    """

    def __init__(
        self,
        session: Session,
        source_store: DiscountSourceStore,
        *,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
        cache: ResultCache | None = None,
        ledger: LedgerAdapter | None = None,
        analytics: AnalyticsAdapter | None = None,
        discovery: DiscountDiscoveryService | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or EngineSettings()
        self._clock = clock or SystemClock()
        self._cache = cache or ResultCache(
            self._clock,
            default_ttl_seconds=self._settings.cache_ttl_seconds,
            sweep_probability=self._settings.cache_sweep_probability,
        )
        self._ledger = ledger
        self._analytics = analytics
        self._discovery = discovery or DiscountDiscoveryService(
            source_store, settings=self._settings, clock=self._clock,
        )
        self._stacking = StackingCalculator()
        self._allocator = DiscountAllocationEngine()
        self._approvals = DiscountApprovalService(session, self._clock)
        self._allocations = AllocationService(session, self._clock)

    # -- validation ----------------------------------------------------------

    def build_context(self, request: PricingRequest) -> TransactionContext:
        """
        Validate a request and freeze it into a TransactionContext.

        Raises:
            ContextValidationError: missing business, missing or invalid
                amount, unknown currency, negative quantity, unknown
                transaction type.
            InvalidAllocationMethodError: unknown allocation method.
            AllocationWeightsError: bad CUSTOM_WEIGHTS input.
        """
        errors: list[str] = []
        if request.business_id is None:
            errors.append("business_id is required")

        raw_amount = request.amount if request.amount is not None else request.subtotal
        amount: Decimal | None = None
        if raw_amount is None or raw_amount == "":
            errors.append("amount or subtotal is required")
        else:
            try:
                amount = Decimal(str(raw_amount))
            except InvalidOperation:
                errors.append("amount must be a number")
            else:
                if not amount.is_finite():
                    errors.append("amount must be a number")
                elif amount < ZERO:
                    errors.append("amount cannot be negative")

        currency = (request.currency or self._settings.default_currency).upper()
        if not is_known_currency(currency):
            errors.append(f"unknown currency: {currency}")

        quantity = 1 if request.quantity is None else request.quantity
        if quantity < 0:
            errors.append("quantity cannot be negative")

        if request.transaction_type not in TRANSACTION_TYPES:
            errors.append(f"unknown transaction_type: {request.transaction_type}")

        if errors:
            logger.warning("pricing_request_invalid", extra={"errors": errors})
            raise ContextValidationError(errors)

        method = validate_allocation_method(request.allocation_method)
        if method == AllocationMethod.CUSTOM_WEIGHTS and request.items:
            validate_weights(request.allocation_weights, len(request.items))

        return TransactionContext(
            business_id=request.business_id,
            amount=Money.of(amount, currency),
            customer_id=request.customer_id,
            quantity=quantity,
            promo_code=request.promo_code,
            category_id=request.category_id,
            service_id=request.service_id,
            customer_category_id=request.customer_category_id,
            transaction_date=request.transaction_date or (
                request.transaction_at.date() if request.transaction_at else self._clock.today()
            ),
            transaction_at=request.transaction_at,
            line_items=tuple(request.items),
            transaction_id=request.transaction_id,
            transaction_type=request.transaction_type,
        )

    # -- primary operation -----------------------------------------------------

    def calculate_final_price(self, request: PricingRequest) -> PricingResult:
        """
        Price a transaction end to end.

        Preconditions:
            - request passes build_context validation.
        Postconditions:
            - success=True: amounts are final; an APPLIED allocation exists
              in the session when discounts applied, items were supplied,
              create_allocation is set and preview_mode is not.
            - requires_approval=True: nothing was written.
        """
        t0 = time.monotonic()
        context = self.build_context(request)
        business_id = context.business_id

        with LogContext.bind(
            correlation_id=LogContext.correlation_id(),
            business_id=business_id,
            customer_id=context.customer_id,
            actor_id=request.user_id,
        ):
            logger.info("pricing_started", extra={
                "amount": str(context.amount.amount),
                "currency": context.amount.currency.code,
                "promo_code": context.promo_code,
                "preview_mode": request.preview_mode,
            })

            side_effect_free = (
                request.preview_mode or not request.create_allocation or not request.items
            )
            fingerprint = PricingFingerprint.from_context(context)
            if side_effect_free:
                cached = self._cache.get(fingerprint)
                if cached is not None:
                    self._enforce_strict(request, cached.conflicts)
                    logger.info("pricing_cache_hit", extra={"cache_key": fingerprint.key})
                    return replace(cached, from_cache=True)

            discovery = self._discovery.discover_with_outcomes(business_id, context)
            candidates = list(discovery.candidates)
            warnings = [self._source_warning(o) for o in discovery.failed_sources]

            stacked = self._stacking.stack(
                original_amount=context.amount,
                candidates=candidates,
            )

            threshold = self._settings.threshold_for(business_id)
            gate = evaluate_gate(
                candidates=candidates,
                amount=context.amount,
                threshold=threshold,
                prior_status=self._prior_approval_status(request, context, stacked),
            )
            if not gate.allows_allocation:
                return self._gated_result(context, candidates, gate, warnings, t0)

            self._enforce_strict(request, stacked.conflicts)

            allocation: AllocationRecord | None = None
            if stacked.applied and request.create_allocation and not request.preview_mode:
                allocation = self._create_allocation(request, context, stacked)

            accounting: AccountingSummary | None = None
            if allocation is not None and request.create_journal_entries and self._ledger:
                accounting, warning = self._post_journal(request, context, stacked, allocation)
                if warning is not None:
                    warnings.append(warning)

            result = PricingResult(
                success=True,
                original_amount=context.amount,
                total_discount=stacked.total_discount,
                final_amount=stacked.final_amount,
                applied_discounts=tuple(
                    AppliedDiscountSummary(
                        id=a.candidate_id,
                        type=a.source_type,
                        name=a.name,
                        amount=a.computed_amount,
                        percentage=_percent_of(a.computed_amount, context.amount),
                    )
                    for a in stacked.applied
                ),
                allocation=AllocationSummary(
                    id=allocation.allocation_id,
                    number=allocation.allocation_number,
                    method=allocation.allocation_method,
                ) if allocation is not None else None,
                accounting=accounting,
                conflicts=stacked.conflicts,
                warnings=tuple(warnings),
                gate_state=gate.state,
            )

            if stacked.has_discount:
                result = self._record_usage(context, stacked, result)

            result = replace(result, calculation_ms=round((time.monotonic() - t0) * 1000, 2))
            if (
                (request.preview_mode or allocation is None)
                and gate.state == GateState.NOT_REQUIRED
                and not discovery.failed_sources
            ):
                self._cache.put(fingerprint, result, self._settings.cache_ttl_seconds)

            logger.info("pricing_completed", extra={
                "original_amount": str(context.amount.amount),
                "total_discount": str(stacked.total_discount.amount),
                "final_amount": str(stacked.final_amount.amount),
                "applied_count": len(stacked.applied),
                "allocation_number": allocation.allocation_number if allocation else None,
                "warning_count": len(result.warnings),
                "duration_ms": result.calculation_ms,
            })
            return result

    def quick_calculate(self, request: PricingRequest) -> PricingResult:
        """Preview pricing: never allocates, never posts."""
        return self.calculate_final_price(replace(
            request,
            preview_mode=True,
            create_allocation=False,
            create_journal_entries=False,
        ))

    # -- supplementary operations ---------------------------------------------

    def preview_discounts(self, request: PricingRequest) -> DiscountPreview:
        """Every discoverable candidate with its independent, non-stacked amount."""
        context = self.build_context(request)
        candidates = self._discovery.discover(context.business_id, context)
        amount = context.amount

        items = []
        for candidate in candidates:
            discount = self._stacking.calculate_discount(
                amount, candidate.discount_type, candidate.discount_value,
            )
            items.append(DiscountPreviewItem(
                id=candidate.candidate_id,
                type=candidate.source_type,
                name=candidate.name,
                discount_amount=discount,
                final_amount=amount - discount,
                percentage=_percent_of(discount, amount),
                stackable=candidate.stackable,
                priority=candidate.type_priority,
            ))

        best = max(items, key=lambda i: i.discount_amount.amount, default=None)
        return DiscountPreview(
            original_amount=amount,
            discounts=tuple(items),
            total_possible_discount=sum_money((i.discount_amount for i in items), amount.currency),
            best_single=best,
        )

    def find_best_combination(self, request: PricingRequest) -> BestCombination:
        """Highest-value candidate of each source type, stacked."""
        context = self.build_context(request)
        candidates = self._discovery.discover(context.business_id, context)

        best_by_type: dict[DiscountSourceType, DiscountCandidate] = {}
        for candidate in candidates:
            current = best_by_type.get(candidate.source_type)
            if current is None or candidate.discount_value > current.discount_value:
                best_by_type[candidate.source_type] = candidate
        combination = sort_by_priority(best_by_type.values())

        stacked = self._stacking.stack(
            original_amount=context.amount,
            candidates=combination,
        )
        return BestCombination(
            original_amount=context.amount,
            candidates=tuple(combination),
            total_discount=stacked.total_discount,
            final_amount=stacked.final_amount,
            savings_percentage=_percent_of(stacked.total_discount, context.amount),
            stacked=stacked,
        )

    def submit_for_approval(self, request: PricingRequest) -> ApprovalRequest:
        """Persist a pending approval request for the discounts this request finds."""
        context = self.build_context(request)
        candidates = self._discovery.discover(context.business_id, context)
        stacked = self._stacking.stack(
            original_amount=context.amount,
            candidates=candidates,
        )

        reason = (
            f"Promo code: {context.promo_code}" if context.promo_code
            else "Discount approval requested"
        )
        if context.customer_id is not None:
            reason = f"{reason} - Customer: {context.customer_id}"

        return self._approvals.submit(
            business_id=context.business_id,
            original_amount=context.amount,
            requested_discount=stacked.total_discount,
            discount_percentage=_percent_of(stacked.total_discount, context.amount),
            approval_threshold=self._settings.threshold_for(context.business_id),
            requested_by=request.user_id,
            reason=reason,
            customer_id=context.customer_id,
            discounts=[
                {
                    "id": str(c.candidate_id),
                    "type": c.source_type.value,
                    "name": c.name,
                    "discount_type": c.discount_type.value,
                    "value": str(c.discount_value),
                }
                for c in candidates
            ],
        )

    def process_approval(
        self,
        business_id: UUID,
        request_id: UUID,
        decision: ApprovalDecision | str,
        approver_id: UUID,
        reason: str | None = None,
    ) -> ApprovalRequest:
        return self._approvals.process_decision(
            business_id, request_id, decision, approver_id, reason,
        )

    def get_approval_status(self, business_id: UUID, request_id: UUID) -> ApprovalRequest:
        return self._approvals.get(business_id, request_id)

    def invalidate_cache(self, business_id: UUID) -> int:
        return self._cache.invalidate(business_id)

    # -- internals -------------------------------------------------------------

    def _prior_approval_status(
        self,
        request: PricingRequest,
        context: TransactionContext,
        stacked: StackedDiscountResult,
    ) -> ApprovalStatus | None:
        """
        Status of the approval this request presents, if any.

        A stored approval only speaks for the request it was raised for:
        same amount and currency, same customer, same stacked discount.

        Raises:
            ApprovalNotFoundError: unknown approval id for this business.
            ApprovalMismatchError: the approval was granted for a different
                request.
        """
        if request.pre_approved:
            return ApprovalStatus.APPROVED
        if request.approval_id is None:
            return None

        approval = self._approvals.get(context.business_id, request.approval_id)
        checks = {
            "original_amount": approval.original_amount == context.amount.amount,
            "currency": approval.currency == context.amount.currency.code,
            "customer_id": approval.customer_id == context.customer_id,
            "requested_discount": approval.requested_discount == stacked.total_discount.amount,
        }
        mismatched = tuple(name for name, ok in checks.items() if not ok)
        if mismatched:
            logger.warning("approval_mismatch", extra={
                "approval_id": str(approval.request_id),
                "mismatched_fields": list(mismatched),
                "approved_discount": str(approval.requested_discount),
                "requested_discount": str(stacked.total_discount.amount),
            })
            raise ApprovalMismatchError(str(approval.request_id), mismatched)
        return approval.status

    @staticmethod
    def _enforce_strict(
        request: PricingRequest,
        conflicts: Sequence[DiscountConflict],
    ) -> None:
        if not (request.strict and conflicts):
            return
        logger.warning("pricing_conflicts_strict", extra={
            "conflict_types": [c.conflict_type.value for c in conflicts],
        })
        raise DiscountConflictError(
            tuple(c.conflict_type.value for c in conflicts),
            tuple(str(i) for c in conflicts for i in c.candidate_ids),
        )

    def _gated_result(
        self,
        context: TransactionContext,
        candidates: Sequence[DiscountCandidate],
        gate: GateEvaluation,
        warnings: list[PricingWarning],
        t0: float,
    ) -> PricingResult:
        pending = gate.state == GateState.PENDING
        logger.info("pricing_gated", extra={
            "gate_state": gate.state.value,
            "max_percentage": str(gate.max_percentage),
            "threshold": str(gate.threshold),
            "triggering_candidates": [str(i) for i in gate.triggering_candidate_ids],
        })
        return PricingResult(
            success=False,
            original_amount=context.amount,
            total_discount=Money.zero(context.amount.currency),
            final_amount=context.amount,
            warnings=tuple(warnings),
            requires_approval=pending,
            gate_state=gate.state,
            discounts=tuple(candidates),
            approval_threshold=gate.threshold,
            message=(
                "This discount requires approval" if pending
                else "Discount approval was rejected"
            ),
            calculation_ms=round((time.monotonic() - t0) * 1000, 2),
        )

    def _create_allocation(
        self,
        request: PricingRequest,
        context: TransactionContext,
        stacked: StackedDiscountResult,
    ) -> AllocationRecord | None:
        if not context.line_items:
            return None

        allocated = self._allocator.allocate(
            line_items=context.line_items,
            total_discount=stacked.total_discount,
            method=request.allocation_method,
            weights=request.allocation_weights,
        )
        if allocated.method == AllocationMethod.FIXED_PERCENTAGE:
            allocated = absorb_percentage_drift(allocated)

        rule_id = next(
            (
                a.candidate_id
                for source_type in RULE_REFERENCE_ORDER
                for a in stacked.applied
                if a.source_type == source_type
            ),
            None,
        )
        promo_id = next(
            (a.candidate_id for a in stacked.applied
             if a.source_type == DiscountSourceType.PROMOTIONAL),
            None,
        )

        record = self._allocations.create_allocation(
            AllocationDraft(
                business_id=context.business_id,
                total_discount_amount=stacked.total_discount.amount,
                currency=stacked.total_discount.currency.code,
                allocation_method=allocated.method,
                lines=allocated.to_records(),
                discount_rule_id=rule_id,
                promotional_discount_id=promo_id,
                transaction_id=context.transaction_id,
                transaction_type=context.transaction_type,
                customer_id=context.customer_id,
            ),
            created_by=request.user_id,
        )
        return self._allocations.apply_allocation(context.business_id, record.allocation_id)

    def _post_journal(
        self,
        request: PricingRequest,
        context: TransactionContext,
        stacked: StackedDiscountResult,
        allocation: AllocationRecord,
    ) -> tuple[AccountingSummary | None, PricingWarning | None]:
        info = DiscountJournalInfo(
            business_id=context.business_id,
            allocation_id=allocation.allocation_id,
            allocation_number=allocation.allocation_number,
            total_discount=stacked.total_discount,
            applied=stacked.applied,
            user_id=request.user_id,
        )
        try:
            reference = self._ledger.post_discount_journal(context, info)
        except Exception as exc:
            # The allocation stands; the journal can be posted later
            logger.error("ledger_posting_failed", extra={
                "allocation_id": str(allocation.allocation_id),
                "allocation_number": allocation.allocation_number,
                "error": str(exc),
            }, exc_info=True)
            return None, PricingWarning(
                code="LEDGER_POSTING_FAILED",
                message=str(exc),
                source="ledger",
            )
        logger.info("ledger_posted", extra={
            "allocation_number": allocation.allocation_number,
            "journal_entry_id": str(reference.journal_entry_id),
        })
        return AccountingSummary(
            journal_entry_id=reference.journal_entry_id,
            entry_number=reference.entry_number,
        ), None

    def _record_usage(
        self,
        context: TransactionContext,
        stacked: StackedDiscountResult,
        result: PricingResult,
    ) -> PricingResult:
        if stacked.total_discount.amount > self._settings.significant_discount_amount:
            logger.info("significant_discount_applied", extra={
                "total_discount": str(stacked.total_discount.amount),
                "original_amount": str(context.amount.amount),
                "percentage": str(_percent_of(stacked.total_discount, context.amount)),
            })

        if self._analytics is None:
            return result
        try:
            self._analytics.record_discount_usage(context.business_id, result)
        except Exception as exc:
            logger.error("analytics_update_failed", extra={"error": str(exc)}, exc_info=True)
            return replace(result, warnings=result.warnings + (
                PricingWarning(code="ANALYTICS_FAILED", message=str(exc), source="analytics"),
            ))
        return result

    @staticmethod
    def _source_warning(outcome: SourceOutcome) -> PricingWarning:
        if outcome.timed_out:
            return PricingWarning(
                code="DISCOVERY_SOURCE_TIMEOUT",
                message=f"{outcome.source.value} discounts timed out",
                source=outcome.source.value,
            )
        return PricingWarning(
            code="DISCOVERY_SOURCE_FAILED",
            message=outcome.error or f"{outcome.source.value} discounts failed",
            source=outcome.source.value,
        )
