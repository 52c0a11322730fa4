"""
Output shapes handed to downstream systems.

Each formatter flattens a PricingResult into the plain dict the consumer
expects: the POS screen, the invoice renderer and the accounting export.
Amounts are emitted as strings so no float ever carries money.
"""

from __future__ import annotations

from typing import Any

from discount_services.pricing_engine import PricingResult


def _amount(value) -> str:
    return str(value.amount)


def prepare_for_pos(result: PricingResult, transaction_id: str | None = None) -> dict[str, Any]:
    return {
        "transaction_id": transaction_id,
        "total_discount": _amount(result.total_discount),
        "final_amount": _amount(result.final_amount),
        "discount_breakdown": [
            {
                "type": d.type.value,
                "code": d.name,
                "amount": _amount(d.amount),
                "percentage": f"{d.percentage:.2f}",
            }
            for d in result.applied_discounts
        ],
        "allocation_number": result.allocation.number if result.allocation else None,
        "journal_entry": (
            str(result.accounting.journal_entry_id) if result.accounting else None
        ),
    }


def prepare_for_invoice(result: PricingResult, invoice_id: str | None = None) -> dict[str, Any]:
    return {
        "invoice_id": invoice_id,
        "total_discount": _amount(result.total_discount),
        "net_amount": _amount(result.final_amount),
        "discount_details": [
            {
                "type": d.type.value,
                "description": d.description or d.name,
                "amount": _amount(d.amount),
                "rate": f"{d.percentage:.2f}%",
            }
            for d in result.applied_discounts
        ],
        "allocation_reference": result.allocation.number if result.allocation else None,
        "accounting_reference": (
            result.accounting.entry_number if result.accounting else None
        ),
    }


def prepare_for_accounting(result: PricingResult) -> dict[str, Any] | None:
    """Journal reference for the allocation, or None when nothing was posted."""
    if result.accounting is None:
        return None
    return {
        "journal_entry_id": str(result.accounting.journal_entry_id),
        "entry_number": result.accounting.entry_number,
        "total_discount": _amount(result.total_discount),
        "source": {
            "type": "DISCOUNT_ALLOCATION",
            "id": str(result.allocation.id) if result.allocation else None,
            "number": result.allocation.number if result.allocation else None,
        },
    }
