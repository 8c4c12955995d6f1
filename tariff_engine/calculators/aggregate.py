"""
Bill Aggregator

Folds computed lines into category subtotals, VAT and grand total.
Totals are always recomputed from the full line set.
"""

from decimal import Decimal
from typing import Iterable

from ..models import BillTotals, ComputedLineResult

SUBTOTAL_FIELDS = {
    "fees": "subtotal_fees",
    "disbursements": "subtotal_disbursements",
    "counsel": "subtotal_counsel",
}


class BillAggregator:
    """Computes BillTotals from a set of line results."""

    def aggregate(self, results: Iterable[ComputedLineResult], include_disallowed: bool = False) -> BillTotals:
        """
        Sum amounts per category.

        Decimal addition is exact, so the totals do not depend on the order
        of `results`. Disallowed lines are excluded unless asked for.
        """
        sums = {name: Decimal("0") for name in SUBTOTAL_FIELDS.values()}
        total_vat = Decimal("0")
        count = 0

        for result in results:
            if not include_disallowed and not result.compliance.allowed:
                continue
            field_name = SUBTOTAL_FIELDS.get(result.category)
            if field_name is None:
                raise ValueError(f"Unknown category '{result.category}' for item {result.item_code}")
            sums[field_name] += result.amount_ex_vat
            total_vat += result.vat_amount
            count += 1

        return BillTotals(total_vat=total_vat, line_count=count, **sums)


class Bill:
    """Ordered, mutable collection of computed lines. Owns its results."""

    def __init__(self, lines: Iterable[ComputedLineResult] = (), aggregator: BillAggregator | None = None):
        self._lines: list[ComputedLineResult] = list(lines)
        self._aggregator = aggregator or BillAggregator()

    @property
    def lines(self) -> list[ComputedLineResult]:
        return list(self._lines)

    def add(self, result: ComputedLineResult) -> None:
        self._lines.append(result)

    def remove(self, line_id: str) -> ComputedLineResult:
        for i, result in enumerate(self._lines):
            if result.line.line_id == line_id:
                return self._lines.pop(i)
        raise KeyError(f"No line with id {line_id}")

    @property
    def totals(self) -> BillTotals:
        return self._aggregator.aggregate(self._lines)

    @property
    def disallowed(self) -> list[ComputedLineResult]:
        return [r for r in self._lines if not r.compliance.allowed]

    def __len__(self) -> int:
        return len(self._lines)
