"""
Line Calculator for the Tariff Engine

Turns a resolved tariff item and a requested quantity into a monetary
breakdown. All arithmetic is Decimal; amounts keep full precision and are
rounded to cents only for display.
"""

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

from ..config import EngineConfig
from ..exceptions import InvalidAmountError, InvalidQuantityError
from ..models import LineAmount, TariffRateItem

MAX_HOURS_PER_DAY = Decimal("24")
MAX_PAGES_PER_LINE = Decimal("1000")


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places using ROUND_HALF_UP."""
    return value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def round_up_quantity(quantity: Decimal, increment: Decimal) -> Decimal:
    """
    Round a time quantity UP to the nearest increment.

    0.12h with a 0.1h increment becomes 0.2h. Never returns less than
    `quantity`, and rounding an already-rounded value is a no-op.
    """
    steps = (quantity / increment).to_integral_value(rounding=ROUND_CEILING)
    return steps * increment


def _fmt_units(value: Decimal) -> str:
    return format(value.normalize(), "f")


class LineCalculator:
    """Applies rounding, clamping, capping and VAT to a single line."""

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()

    def compute_line(
        self,
        item: TariffRateItem,
        requested_quantity: Decimal,
        actual_amount: Decimal | None = None,
        is_vat_vendor: bool | None = None,
        line_unit: str | None = None,
    ) -> LineAmount:
        """
        Compute the amount for one line.

        Order (each step feeds the next):
        1. Round time units up to the configured increment
        2. Raise to minimum units
        3. Lower to maximum units
        4. Base amount = quantity x rate (or actual cost)
        5. Cap the amount
        6. VAT (VAT-applicable item AND VAT vendor)
        7. Total
        """
        requested_quantity = Decimal(str(requested_quantity))
        if not requested_quantity.is_finite() or requested_quantity <= 0:
            raise InvalidQuantityError(
                f"Quantity must be greater than zero, got: {requested_quantity}", field="quantity"
            )
        if is_vat_vendor is None:
            is_vat_vendor = self.config.is_vat_vendor

        warnings = self._check_reasonableness(item, requested_quantity, line_unit)

        if item.is_actual_cost:
            quantity, amount = self._actual_cost(item, actual_amount)
            rate = amount
        else:
            quantity = self._apply_rounding(item, requested_quantity, warnings)
            quantity = self._apply_unit_limits(item, quantity, warnings)
            rate = item.rate
            amount = quantity * rate

        amount = self._apply_cap(item, amount, warnings)
        vat = self._calculate_vat(item, amount, is_vat_vendor)

        return LineAmount(
            quantity=quantity,
            rate_applied=rate,
            amount_ex_vat=amount,
            vat_amount=vat,
            total_amount=amount + vat,
            warnings=warnings,
        )

    def _actual_cost(self, item: TariffRateItem, actual_amount: Decimal | None) -> tuple[Decimal, Decimal]:
        """Disbursement pass-through: the amount comes from the voucher, not the rate."""
        if actual_amount is None:
            raise InvalidAmountError(
                f"{item.label} is charged at actual cost; actual_amount is required", field="actual_amount"
            )
        if not actual_amount.is_finite() or actual_amount <= 0:
            raise InvalidAmountError(
                f"actual_amount must be greater than zero, got: {actual_amount}", field="actual_amount"
            )
        return Decimal("1"), actual_amount

    def _apply_rounding(self, item: TariffRateItem, quantity: Decimal, warnings: list[str]) -> Decimal:
        if not item.is_time_based:
            return quantity
        rounded = round_up_quantity(quantity, self.config.rounding_increment)
        if rounded != quantity:
            warnings.append(
                f"Time rounded up from {_fmt_units(quantity)} to {_fmt_units(rounded)} hours "
                f"({self.config.time_rounding_minutes}-minute increments)"
            )
        return rounded

    def _apply_unit_limits(self, item: TariffRateItem, quantity: Decimal, warnings: list[str]) -> Decimal:
        if item.minimum_units is not None and quantity < item.minimum_units:
            quantity = item.minimum_units
            warnings.append(f"Quantity raised to minimum {_fmt_units(item.minimum_units)} {item.unit}")

        if item.maximum_units is not None and quantity > item.maximum_units:
            quantity = item.maximum_units
            warnings.append(f"Quantity capped at maximum {_fmt_units(item.maximum_units)} {item.unit}")

        return quantity

    def _apply_cap(self, item: TariffRateItem, amount: Decimal, warnings: list[str]) -> Decimal:
        # Cap is on the amount, never on the unit count
        if item.cap_amount is not None and amount > item.cap_amount:
            warnings.append(f"Amount capped at R{quantize_money(item.cap_amount):,.2f}")
            return item.cap_amount
        return amount

    def _calculate_vat(self, item: TariffRateItem, amount: Decimal, is_vat_vendor: bool) -> Decimal:
        if not (item.vat_applicable and is_vat_vendor):
            return Decimal('0')
        return amount * self.config.vat_rate

    def _check_reasonableness(self, item: TariffRateItem, quantity: Decimal, line_unit: str | None) -> list[str]:
        warnings = []
        if line_unit and line_unit != item.unit:
            warnings.append(f"Unit mismatch: expected {item.unit}, got {line_unit}")
        if item.is_time_based and quantity > MAX_HOURS_PER_DAY:
            warnings.append("More than 24 hours in a single day may require justification")
        if item.unit == "per page" and quantity > MAX_PAGES_PER_LINE:
            warnings.append("Large page counts may require justification")
        return warnings
