"""
Unit Tests for Bill Aggregator

Tests verify category subtotals, exclusion of disallowed lines and that
totals never depend on line order.
"""

from datetime import date
from decimal import Decimal

import pytest

from tariff_engine.calculators.aggregate import Bill, BillAggregator
from tariff_engine.models import BillLineItem, ComplianceVerdict, ComputedLineResult


def _make_result(line_id, category, amount, vat, allowed=True):
    amount = Decimal(str(amount))
    vat = Decimal(str(vat))
    line = BillLineItem(date=date(2024, 10, 1), item_code="X", quantity=Decimal("1"), line_id=line_id)
    return ComputedLineResult(
        line=line,
        item_code="X",
        label="Test item",
        category=category,
        quantity=Decimal("1"),
        rate_applied=amount,
        amount_ex_vat=amount,
        vat_amount=vat,
        total_amount=amount + vat,
        compliance=ComplianceVerdict(allowed=allowed, requires_voucher=False, taxation_risk="low"),
    )


class TestBillAggregator:
    """Test totals over a set of computed lines."""

    @pytest.fixture
    def aggregator(self):
        return BillAggregator()

    @pytest.fixture
    def results(self):
        return [
            _make_result("1", "fees", amount=1140, vat=171),
            _make_result("2", "fees", amount=3420, vat=513),
            _make_result("3", "disbursements", amount=350, vat=0),
            _make_result("4", "counsel", amount=12000, vat=0),
        ]

    def test_subtotals_by_category(self, aggregator, results):
        totals = aggregator.aggregate(results)

        assert totals.subtotal_fees == Decimal("4560")
        assert totals.subtotal_disbursements == Decimal("350")
        assert totals.subtotal_counsel == Decimal("12000")
        assert totals.total_vat == Decimal("684")
        assert totals.total_ex_vat == Decimal("16910")
        assert totals.grand_total == Decimal("17594")
        assert totals.line_count == 4

    def test_disallowed_lines_excluded(self, aggregator, results):
        results.append(_make_result("5", "fees", amount=999, vat=149.85, allowed=False))

        totals = aggregator.aggregate(results)

        assert totals.subtotal_fees == Decimal("4560")
        assert totals.line_count == 4

    def test_disallowed_lines_included_on_request(self, aggregator, results):
        results.append(_make_result("5", "fees", amount=1000, vat=150, allowed=False))

        totals = aggregator.aggregate(results, include_disallowed=True)

        assert totals.subtotal_fees == Decimal("5560")
        assert totals.line_count == 5

    def test_order_independent(self, aggregator, results):
        forward = aggregator.aggregate(results)
        backward = aggregator.aggregate(list(reversed(results)))

        assert forward == backward

    def test_idempotent(self, aggregator, results):
        assert aggregator.aggregate(results) == aggregator.aggregate(results)

    def test_empty_bill(self, aggregator):
        totals = aggregator.aggregate([])

        assert totals.grand_total == Decimal("0")
        assert totals.line_count == 0

    def test_unknown_category_rejected(self, aggregator):
        with pytest.raises(ValueError, match="Unknown category"):
            aggregator.aggregate([_make_result("1", "travel", amount=100, vat=15)])

    def test_grand_total_is_sum_of_line_totals(self, aggregator, results):
        totals = aggregator.aggregate(results)

        assert totals.grand_total == sum(r.total_amount for r in results)


class TestBill:
    """Test the mutable bill collection."""

    def test_totals_recomputed_after_remove(self):
        bill = Bill()
        bill.add(_make_result("1", "fees", amount=100, vat=15))
        bill.add(_make_result("2", "fees", amount=200, vat=30))

        bill.remove("1")

        assert len(bill) == 1
        assert bill.totals.subtotal_fees == Decimal("200")

    def test_remove_unknown_line(self):
        with pytest.raises(KeyError):
            Bill().remove("missing")

    def test_lines_returns_copy(self):
        bill = Bill()
        bill.add(_make_result("1", "fees", amount=100, vat=15))

        bill.lines.clear()

        assert len(bill) == 1

    def test_disallowed(self):
        bill = Bill([
            _make_result("1", "fees", amount=100, vat=15),
            _make_result("2", "fees", amount=100, vat=15, allowed=False),
        ])

        assert [r.line.line_id for r in bill.disallowed] == ["2"]
