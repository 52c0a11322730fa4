"""
DiscountDiscoveryService -- concurrent discovery of applicable discounts.

Responsibility:
    Fan out one lookup per discount source, normalize what each returns
    into DiscountCandidates, then filter and order the combined set.

Architecture position:
    Services -- orchestration over a DiscountSourceStore and the pure
    engines in discount_engines (eligibility, normalizer, filters).

Invariants enforced:
    - Partial-failure tolerance: every source runs in its own worker with
      its own deadline.  A source that raises or times out contributes
      zero candidates and a failed SourceOutcome; it never fails discovery.
    - Determinism: the final order comes from sort_by_priority, never from
      source completion order.
    - Read-only: no writes, no caching of rule definitions.

Failure modes:
    - None raised for source failures; see SourceOutcome.
    - A hung source is abandoned (its worker thread finishes on its own).
"""

from __future__ import annotations

import contextvars
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from discount_config.schema import EngineSettings
from discount_engines.eligibility import (
    best_payment_term,
    category_rule_applies,
    pricing_rule_applies,
    promo_applies,
    volume_tier_applies,
)
from discount_engines.filters import filter_by_minimum, filter_expired, sort_by_priority
from discount_engines.normalizer import normalize
from discount_kernel.domain.clock import Clock, SystemClock
from discount_kernel.domain.discount import (
    DiscountCandidate,
    DiscountSourceType,
    TransactionContext,
)
from discount_kernel.logging_config import get_logger
from discount_services.adapters import DiscountSourceStore

logger = get_logger("services.discovery")


@dataclass(frozen=True)
class SourceOutcome:
    """What one source lookup produced."""

    source: DiscountSourceType
    candidates: tuple[DiscountCandidate, ...] = ()
    error: str | None = None
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.timed_out


@dataclass(frozen=True)
class DiscoveryResult:
    candidates: tuple[DiscountCandidate, ...]
    outcomes: tuple[SourceOutcome, ...]

    @property
    def failed_sources(self) -> tuple[SourceOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.succeeded)


def transaction_day(context: TransactionContext, clock: Clock) -> date:
    """Calendar day the validity windows are checked against."""
    if context.transaction_date is not None:
        return context.transaction_date
    if context.transaction_at is not None:
        return context.transaction_at.date()
    return clock.today()


def transaction_moment(context: TransactionContext, clock: Clock) -> datetime:
    """Moment time-based pricing rules are evaluated at."""
    return context.transaction_at or clock.now()


class DiscountDiscoveryService:
    """
    Finds every discount that could legally apply to a transaction.

    Usage:
        discovery = DiscountDiscoveryService(store, settings=settings)
        candidates = discovery.discover(business_id, context)
    """

    def __init__(
        self,
        store: DiscountSourceStore,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or EngineSettings()
        self._clock = clock or SystemClock()

    def discover(
        self,
        business_id: UUID,
        context: TransactionContext,
    ) -> list[DiscountCandidate]:
        """Filtered, ordered candidates; failed sources are only logged."""
        return list(self.discover_with_outcomes(business_id, context).candidates)

    def discover_with_outcomes(
        self,
        business_id: UUID,
        context: TransactionContext,
    ) -> DiscoveryResult:
        """
        Run every source lookup concurrently and join on all of them.

        Each lookup gets ``source_timeout_seconds`` measured from the start
        of the fan-out; all lookups run in parallel, so the join completes
        within roughly one timeout even if several sources hang.
        """
        t0 = time.monotonic()
        at = transaction_moment(context, self._clock)
        lookups = self._lookups()
        timeout = self._settings.source_timeout_seconds

        executor = ThreadPoolExecutor(
            max_workers=min(self._settings.max_discovery_workers, len(lookups)),
            thread_name_prefix="discount-discovery",
        )
        try:
            futures: dict[DiscountSourceType, Future] = {
                source: executor.submit(
                    contextvars.copy_context().run, lookup, business_id, context, at,
                )
                for source, lookup in lookups.items()
            }
            deadline = t0 + timeout
            outcomes = tuple(
                self._settle(source, future, deadline, business_id)
                for source, future in futures.items()
            )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        found = [c for outcome in outcomes for c in outcome.candidates]
        on = transaction_day(context, self._clock)
        candidates = sort_by_priority(
            filter_by_minimum(
                filter_expired(found, on),
                context.amount.amount,
                context.quantity,
            )
        )

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("discovery_completed", extra={
            "business_id": str(business_id),
            "found_count": len(found),
            "candidate_count": len(candidates),
            "failed_sources": [o.source.value for o in outcomes if not o.succeeded],
            "duration_ms": duration_ms,
        })
        return DiscoveryResult(candidates=tuple(candidates), outcomes=outcomes)

    def _settle(
        self,
        source: DiscountSourceType,
        future: Future,
        deadline: float,
        business_id: UUID,
    ) -> SourceOutcome:
        remaining = max(0.0, deadline - time.monotonic())
        try:
            candidates = future.result(timeout=remaining)
        except FuturesTimeoutError:
            future.cancel()
            logger.warning("discovery_source_timeout", extra={
                "business_id": str(business_id),
                "source": source.value,
                "timeout_seconds": self._settings.source_timeout_seconds,
            })
            return SourceOutcome(source=source, timed_out=True)
        except Exception as exc:
            # One failing source must not fail discovery as a whole
            logger.error("discovery_source_failed", extra={
                "business_id": str(business_id),
                "source": source.value,
                "error": str(exc),
                "error_type": type(exc).__name__,
            }, exc_info=True)
            return SourceOutcome(source=source, error=f"{type(exc).__name__}: {exc}")
        return SourceOutcome(source=source, candidates=tuple(candidates))

    def _lookups(self) -> dict[DiscountSourceType, Callable[..., list[DiscountCandidate]]]:
        return {
            DiscountSourceType.PROMOTIONAL: self._promotional,
            DiscountSourceType.VOLUME: self._volume,
            DiscountSourceType.EARLY_PAYMENT: self._early_payment,
            DiscountSourceType.CATEGORY: self._category,
            DiscountSourceType.PRICING_RULE: self._pricing_rules,
        }

    # -- per-source lookups (run on worker threads) ---------------------------

    def _promotional(
        self,
        business_id: UUID,
        context: TransactionContext,
        at: datetime,
    ) -> list[DiscountCandidate]:
        candidates = []
        for promo in self._store.promotions(business_id):
            usage = None
            if promo.per_customer_limit and context.customer_id is not None:
                usage = self._store.count_customer_promo_usage(
                    business_id, promo.source_id, context.customer_id,
                )
            if promo_applies(promo, context, usage):
                candidates.append(normalize(promo))
        return candidates

    def _volume(
        self,
        business_id: UUID,
        context: TransactionContext,
        at: datetime,
    ) -> list[DiscountCandidate]:
        return [
            normalize(tier)
            for tier in self._store.volume_tiers(business_id)
            if volume_tier_applies(tier, context)
        ]

    def _early_payment(
        self,
        business_id: UUID,
        context: TransactionContext,
        at: datetime,
    ) -> list[DiscountCandidate]:
        if context.customer_id is None:
            return []
        term = best_payment_term(self._store.payment_terms(business_id), context)
        return [normalize(term)] if term is not None else []

    def _category(
        self,
        business_id: UUID,
        context: TransactionContext,
        at: datetime,
    ) -> list[DiscountCandidate]:
        if context.category_id is None and context.service_id is None:
            return []
        return [
            normalize(rule)
            for rule in self._store.category_rules(business_id)
            if category_rule_applies(rule, context)
        ]

    def _pricing_rules(
        self,
        business_id: UUID,
        context: TransactionContext,
        at: datetime,
    ) -> list[DiscountCandidate]:
        return [
            normalize(rule)
            for rule in self._store.pricing_rules(business_id)
            if pricing_rule_applies(rule, context, at)
        ]
