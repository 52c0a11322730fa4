"""
Tests for the downstream output formatters.
"""

from decimal import Decimal
from uuid import uuid4

from discount_kernel.domain.allocation import AllocationMethod
from discount_kernel.domain.discount import DiscountSourceType
from discount_kernel.domain.values import Money
from discount_services.formatters import (
    prepare_for_accounting,
    prepare_for_invoice,
    prepare_for_pos,
)
from discount_services.pricing_engine import (
    AccountingSummary,
    AllocationSummary,
    AppliedDiscountSummary,
    PricingResult,
)


def make_result(with_allocation=True, with_accounting=True):
    allocation_id = uuid4()
    return PricingResult(
        success=True,
        original_amount=Money.of("1000.00", "USD"),
        total_discount=Money.of("200.00", "USD"),
        final_amount=Money.of("800.00", "USD"),
        applied_discounts=(
            AppliedDiscountSummary(
                id=uuid4(),
                type=DiscountSourceType.VOLUME,
                name="5+",
                amount=Money.of("150.00", "USD"),
                percentage=Decimal("15"),
            ),
            AppliedDiscountSummary(
                id=uuid4(),
                type=DiscountSourceType.PROMOTIONAL,
                name="SAVE5",
                amount=Money.of("50.00", "USD"),
                percentage=Decimal("5.00"),
                description="Spring sale",
            ),
        ),
        allocation=AllocationSummary(
            id=allocation_id,
            number="DA-2024-01-000007",
            method=AllocationMethod.PRO_RATA_AMOUNT,
        ) if with_allocation else None,
        accounting=AccountingSummary(
            journal_entry_id="JE-9", entry_number="JE-2024-000009",
        ) if with_accounting else None,
    )


class TestPosFormat:

    def test_shape(self):
        result = make_result()

        pos = prepare_for_pos(result, transaction_id="T-1")

        assert pos["transaction_id"] == "T-1"
        assert pos["total_discount"] == "200.00"
        assert pos["final_amount"] == "800.00"
        assert pos["allocation_number"] == "DA-2024-01-000007"
        assert pos["journal_entry"] == "JE-9"
        assert pos["discount_breakdown"][0] == {
            "type": "VOLUME",
            "code": "5+",
            "amount": "150.00",
            "percentage": "15.00",
        }

    def test_without_allocation(self):
        pos = prepare_for_pos(make_result(with_allocation=False, with_accounting=False))

        assert pos["allocation_number"] is None
        assert pos["journal_entry"] is None


class TestInvoiceFormat:

    def test_description_preferred_over_name(self):
        invoice = prepare_for_invoice(make_result(), invoice_id="INV-3")

        details = invoice["discount_details"]
        assert [d["description"] for d in details] == ["5+", "Spring sale"]
        assert [d["rate"] for d in details] == ["15.00%", "5.00%"]
        assert invoice["net_amount"] == "800.00"
        assert invoice["allocation_reference"] == "DA-2024-01-000007"
        assert invoice["accounting_reference"] == "JE-2024-000009"


class TestAccountingFormat:

    def test_none_without_journal(self):
        assert prepare_for_accounting(make_result(with_accounting=False)) is None

    def test_source_reference(self):
        result = make_result()

        export = prepare_for_accounting(result)

        assert export["journal_entry_id"] == "JE-9"
        assert export["total_discount"] == "200.00"
        assert export["source"] == {
            "type": "DISCOUNT_ALLOCATION",
            "id": str(result.allocation.id),
            "number": "DA-2024-01-000007",
        }
