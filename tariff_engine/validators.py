"""
Input Validation for the Tariff Engine

Validates all input data before processing begins. Raises typed errors
(all ValueError subclasses) that name the offending line and field.
"""

from decimal import Decimal

from .exceptions import InvalidAmountError, InvalidContextError, InvalidQuantityError
from .models import BILL_TYPES, CATEGORIES, COSTS_ORDERS, MATTER_TYPES, BillContext, BillInput, BillLineItem


class InputValidator:
    """Validates bill input according to business rules."""

    def validate(self, input_data: BillInput) -> None:
        """
        Run all validations. Raises on the first failing check.
        """
        self._validate_context(input_data.context)
        self._validate_line_ids(input_data.line_items)
        for line in input_data.line_items:
            self._validate_line(line)

    def _validate_context(self, context: BillContext) -> None:
        """Validate bill-level constraints."""
        if context.bill_type not in BILL_TYPES:
            raise InvalidContextError(
                f"Invalid bill_type: {context.bill_type}. Must be one of {', '.join(BILL_TYPES)}",
                field="bill_type",
            )

        if context.costs_order not in COSTS_ORDERS:
            raise InvalidContextError(
                f"Invalid costs_order: {context.costs_order}. Must be one of {', '.join(COSTS_ORDERS)}",
                field="costs_order",
            )

        if context.matter_type not in MATTER_TYPES:
            raise InvalidContextError(
                f"Invalid matter_type: {context.matter_type}. Must be one of {', '.join(MATTER_TYPES)}",
                field="matter_type",
            )

    def _validate_line_ids(self, lines: list[BillLineItem]) -> None:
        seen = set()
        for line in lines:
            if line.line_id in seen:
                raise InvalidContextError(f"Duplicate line_id: {line.line_id}", line_id=line.line_id, field="line_id")
            seen.add(line.line_id)

    def _validate_line(self, line: BillLineItem) -> None:
        """Validate line-level constraints."""
        quantity = Decimal(str(line.quantity))
        if not quantity.is_finite() or quantity <= 0:
            raise InvalidQuantityError(
                f"quantity must be a finite number greater than zero, got: {line.quantity}",
                line_id=line.line_id,
                field="quantity",
            )

        if line.actual_amount is not None:
            amount = Decimal(str(line.actual_amount))
            if not amount.is_finite() or amount <= 0:
                raise InvalidAmountError(
                    f"actual_amount must be a finite number greater than zero, got: {line.actual_amount}",
                    line_id=line.line_id,
                    field="actual_amount",
                )

        if line.category is not None and line.category not in CATEGORIES:
            raise InvalidContextError(
                f"Invalid category: {line.category}. Must be one of {', '.join(CATEGORIES)}",
                line_id=line.line_id,
                field="category",
            )

        if not line.item_code.strip():
            raise InvalidContextError("item_code cannot be blank", line_id=line.line_id, field="item_code")
