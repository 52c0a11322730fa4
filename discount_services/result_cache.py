"""
ResultCache -- short-lived, process-local cache of pricing results.

Responsibility:
    Remember side-effect-free pricing results by request fingerprint so
    repeated identical previews skip discovery and stacking.

Architecture position:
    Services -- constructed by the caller and injected into PricingEngine.
    There is no module-level instance.

Invariants enforced:
    - An entry is returned while ``now <= expires_at`` and is a miss once
      ``now > expires_at``.  Expired entries are deleted when read.
    - Writes trigger a full sweep of expired entries with probability
      ``sweep_probability``, bounding memory growth.
    - Invalidation is per business: every fingerprint of that business goes.
    - All access is serialized by one lock.

Failure modes:
    - None.  Correctness never depends on a hit.
"""

from __future__ import annotations

import random
import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from discount_kernel.domain.clock import Clock, SystemClock
from discount_kernel.domain.discount import TransactionContext
from discount_kernel.logging_config import get_logger

logger = get_logger("services.result_cache")


@dataclass(frozen=True)
class PricingFingerprint:
    """
    Deterministic cache key: business, customer, amount with its currency,
    and promo code, plus the remaining inputs discovery filters on.

    Two requests that differ in anything discovery reads (quantity for
    volume tiers, category and service for category rules, the date for
    validity windows) never share an entry.
    """

    business_id: UUID
    customer_id: UUID | None
    amount: Decimal
    currency: str
    promo_code: str | None
    quantity: int = 1
    category_id: UUID | None = None
    service_id: UUID | None = None
    customer_category_id: UUID | None = None
    transaction_date: date | None = None
    transaction_at: datetime | None = None

    @classmethod
    def from_context(cls, context: TransactionContext) -> PricingFingerprint:
        return cls(
            business_id=context.business_id,
            customer_id=context.customer_id,
            amount=context.amount.amount,
            currency=context.amount.currency.code,
            promo_code=context.promo_code,
            quantity=context.quantity,
            category_id=context.category_id,
            service_id=context.service_id,
            customer_category_id=context.customer_category_id,
            transaction_date=context.transaction_date,
            transaction_at=context.transaction_at,
        )

    @property
    def key(self) -> str:
        parts = [
            "discount",
            self.business_id,
            self.customer_id,
            f"{self.amount.normalize():f}",
            self.currency,
            self.promo_code,
            self.quantity,
            self.category_id,
            self.service_id,
            self.customer_category_id,
            self.transaction_date.isoformat() if self.transaction_date else None,
            self.transaction_at.isoformat() if self.transaction_at else None,
        ]
        return ":".join("none" if p is None or p == "" else str(p) for p in parts)


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: datetime


class ResultCache:
    """
    Lock-protected TTL cache keyed by PricingFingerprint.

    Usage:
        cache = ResultCache(clock, default_ttl_seconds=300)
        cache.put(fingerprint, result)
        cached = cache.get(fingerprint)  # None on miss
    """

    def __init__(
        self,
        clock: Clock | None = None,
        default_ttl_seconds: int = 300,
        sweep_probability: float = 0.01,
        rng: random.Random | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._default_ttl = default_ttl_seconds
        self._sweep_probability = sweep_probability
        self._rng = rng or random.Random()
        self._entries: dict[str, tuple[UUID, CacheEntry]] = {}
        self._lock = threading.Lock()

    def get(self, fingerprint: PricingFingerprint) -> Any | None:
        key = fingerprint.key
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                logger.debug("cache_miss", extra={"cache_key": key})
                return None
            _, entry = item
            if self._clock.now() > entry.expires_at:
                del self._entries[key]
                logger.debug("cache_expired", extra={"cache_key": key})
                return None
        logger.debug("cache_hit", extra={"cache_key": key})
        return entry.value

    def put(
        self,
        fingerprint: PricingFingerprint,
        value: Any,
        ttl_seconds: int | None = None,
    ) -> None:
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        expires_at = self._clock.now() + timedelta(seconds=ttl)
        with self._lock:
            self._entries[fingerprint.key] = (
                fingerprint.business_id,
                CacheEntry(value=value, expires_at=expires_at),
            )
            if self._rng.random() < self._sweep_probability:
                self._purge_expired_locked()

    def invalidate(self, business_id: UUID) -> int:
        """Drop every entry for the business; returns how many were removed."""
        with self._lock:
            keys = [k for k, (biz, _) in self._entries.items() if biz == business_id]
            for key in keys:
                del self._entries[key]
        logger.info("cache_invalidated", extra={
            "business_id": str(business_id),
            "removed": len(keys),
        })
        return len(keys)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_expired_locked()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _purge_expired_locked(self) -> int:
        now = self._clock.now()
        expired = [k for k, (_, entry) in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("cache_swept", extra={"removed": len(expired)})
        return len(expired)
