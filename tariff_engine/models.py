"""
Domain Models for the Tariff Engine

These dataclasses provide type-safe representations of tariffs, bill lines
and results. All monetary values use Decimal for precision; dates are
datetime.date, parsed from ISO strings at the dict boundary.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from .exceptions import InvalidAmountError, InvalidContextError, InvalidQuantityError

BILL_TYPES = ("party-and-party", "attorney-and-client", "own-client")
COSTS_ORDERS = ("costs-in-the-cause", "costs-reserved", "wasted-costs", "punitive-scale", "no-order")
CATEGORIES = ("fees", "disbursements", "counsel")
MATTER_TYPES = ("civil", "criminal", "appeal", "urgent")
DEADLINE_TYPES = ("inspection", "objection", "set-down", "appeal", "service", "filing")

UNIT_PER_HOUR = "per hour"
UNIT_ACTUAL_COST = "actual cost"


def parse_date(value) -> date:
    """Parse an ISO date string (or pass a date through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()


def _optional_decimal(value) -> Decimal | None:
    return Decimal(str(value)) if value is not None else None


def _require(data: dict, key: str, where: str, line_id: str | None = None):
    if key not in data or data[key] is None:
        raise InvalidContextError(f"{where}: missing required field '{key}'", line_id=line_id, field=key)
    return data[key]


def _decimal_field(value, where: str, key: str, line_id: str | None = None, error=InvalidContextError) -> Decimal:
    try:
        result = Decimal(str(value))
    except InvalidOperation as e:
        raise error(f"{where}: '{key}' must be numeric, got: {value!r}", line_id=line_id, field=key) from e
    if not result.is_finite():
        raise error(f"{where}: '{key}' must be a finite number, got: {value!r}", line_id=line_id, field=key)
    return result


# =============================================================================
# TARIFF MODELS
# =============================================================================


@dataclass(frozen=True)
class TariffRateItem:
    """A single published tariff item. Immutable once published."""

    item_code: str
    label: str
    description: str
    rate: Decimal
    unit: str
    vat_applicable: bool
    category: str
    minimum_units: Decimal | None = None
    maximum_units: Decimal | None = None
    cap_amount: Decimal | None = None  # ceiling on amount, not on units
    subcategory: str | None = None

    @property
    def is_time_based(self) -> bool:
        return self.unit == UNIT_PER_HOUR

    @property
    def is_actual_cost(self) -> bool:
        """Rate 0 + 'actual cost' means the amount is supplied externally."""
        return self.unit == UNIT_ACTUAL_COST

    @classmethod
    def from_dict(cls, data: dict) -> "TariffRateItem":
        return cls(
            item_code=str(data["item_code"]),
            label=data["label"],
            description=data.get("description", ""),
            rate=Decimal(str(data["rate"])),
            unit=data["unit"],
            vat_applicable=data.get("vat_applicable", True),
            category=data["category"],
            minimum_units=_optional_decimal(data.get("minimum_units")),
            maximum_units=_optional_decimal(data.get("maximum_units")),
            cap_amount=_optional_decimal(data.get("cap_amount")),
            subcategory=data.get("subcategory"),
        )


@dataclass(frozen=True)
class TariffVersion:
    """One published version of a schedule, valid over [effective_from, effective_to)."""

    effective_from: date
    items: tuple[TariffRateItem, ...]
    effective_to: date | None = None  # None = open-ended (current)

    def contains(self, on_date: date) -> bool:
        if on_date < self.effective_from:
            return False
        return self.effective_to is None or on_date < self.effective_to

    def overlaps(self, other: "TariffVersion") -> bool:
        self_end = self.effective_to or date.max
        other_end = other.effective_to or date.max
        return self.effective_from < other_end and other.effective_from < self_end

    @classmethod
    def from_dict(cls, data: dict) -> "TariffVersion":
        effective_to = data.get("effective_to")
        return cls(
            effective_from=parse_date(data["effective_from"]),
            effective_to=parse_date(effective_to) if effective_to else None,
            items=tuple(TariffRateItem.from_dict(i) for i in data.get("items", [])),
        )


@dataclass(frozen=True)
class TariffSchedule:
    """All versions for one (court_type, scale), newest first."""

    court_type: str
    scale: str
    versions: tuple[TariffVersion, ...] = ()

    @property
    def key(self) -> tuple[str, str]:
        return (self.court_type, self.scale)


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass
class BillLineItem:
    """A unit of billable work as captured by the caller. Kept for audit."""

    date: date
    item_code: str
    quantity: Decimal
    narrative: str = ""
    unit: str | None = None
    is_vouched: bool = False
    voucher_reference: str | None = None
    line_id: str | None = None
    actual_amount: Decimal | None = None
    category: str | None = None  # explicit tag for custom items
    is_necessary: bool = True
    is_reasonable: bool = True
    justification: str | None = None

    @classmethod
    def from_dict(cls, data: dict, index: int | None = None) -> "BillLineItem":
        where = f"line_items[{index}]" if index is not None else "line item"
        line_id = data.get("line_id") or data.get("id")
        if line_id is not None:
            line_id = str(line_id)
        elif index is not None:
            line_id = str(index + 1)

        raw_date = _require(data, "date", where, line_id)
        try:
            work_date = parse_date(raw_date)
        except ValueError as e:
            raise InvalidContextError(f"{where}: invalid date {raw_date!r}", line_id=line_id, field="date") from e

        actual = data.get("actual_amount")
        return cls(
            date=work_date,
            item_code=str(_require(data, "item_code", where, line_id)),
            quantity=_decimal_field(data.get("quantity", 1), where, "quantity", line_id, InvalidQuantityError),
            narrative=data.get("narrative", ""),
            unit=data.get("unit"),
            is_vouched=data.get("is_vouched", False),
            voucher_reference=data.get("voucher_reference"),
            line_id=line_id,
            actual_amount=(
                _decimal_field(actual, where, "actual_amount", line_id, InvalidAmountError)
                if actual is not None
                else None
            ),
            category=data.get("category"),
            is_necessary=data.get("is_necessary", True),
            is_reasonable=data.get("is_reasonable", True),
            justification=data.get("justification"),
        )


@dataclass
class BillContext:
    """Forum and billing basis shared by every line of a bill."""

    court_type: str
    scale: str
    bill_type: str
    costs_order: str = "costs-in-the-cause"
    finalization_date: date | None = None
    matter_type: str = "civil"

    @classmethod
    def from_dict(cls, data: dict) -> "BillContext":
        finalization = data.get("finalization_date")
        return cls(
            court_type=_require(data, "court_type", "context"),
            scale=str(_require(data, "scale", "context")),
            bill_type=_require(data, "bill_type", "context"),
            costs_order=data.get("costs_order", "costs-in-the-cause"),
            finalization_date=parse_date(finalization) if finalization else None,
            matter_type=data.get("matter_type", "civil"),
        )


@dataclass
class ScopeContext:
    """Everything the scope validator needs to decide on one line."""

    bill_type: str
    costs_order: str
    item_code: str
    description: str
    amount: Decimal
    category: str = "fees"
    is_necessary: bool = True
    is_reasonable: bool = True
    has_voucher: bool = False
    justification: str | None = None


@dataclass
class BillInput:
    """Complete input for processing a bill."""

    context: BillContext
    line_items: list[BillLineItem]
    config: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "BillInput":
        return cls(
            context=BillContext.from_dict(_require(data, "context", "bill")),
            line_items=[BillLineItem.from_dict(item, i) for i, item in enumerate(data.get("line_items", []))],
            config=data.get("config") or {},
        )


@dataclass
class MatterContext:
    """Matter details that decide whether blackout exceptions apply."""

    matter_type: str = "civil"
    deadline_type: str = "filing"
    is_urgent: bool = False
    include_weekends: bool = False
    court_type: str | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> "MatterContext":
        data = data or {}
        matter_type = data.get("matter_type", "civil")
        if matter_type not in MATTER_TYPES:
            raise InvalidContextError(
                f"Invalid matter_type: {matter_type}. Must be one of {', '.join(MATTER_TYPES)}", field="matter_type"
            )
        deadline_type = data.get("deadline_type", "filing")
        if deadline_type not in DEADLINE_TYPES:
            raise InvalidContextError(
                f"Invalid deadline_type: {deadline_type}. Must be one of {', '.join(DEADLINE_TYPES)}",
                field="deadline_type",
            )
        return cls(
            matter_type=matter_type,
            deadline_type=deadline_type,
            is_urgent=data.get("is_urgent", False),
            include_weekends=data.get("include_weekends", False),
            court_type=data.get("court_type"),
        )


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass
class LineAmount:
    """Monetary breakdown for one line."""

    quantity: Decimal
    rate_applied: Decimal
    amount_ex_vat: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    warnings: list[str] = field(default_factory=list)


@dataclass
class ComplianceVerdict:
    """Outcome of billing-scope validation. Risk is advisory only."""

    allowed: bool
    requires_voucher: bool
    taxation_risk: str
    reason: str | None = None
    block_code: str | None = None
    recommendations: list[str] = field(default_factory=list)

    def raise_for_block(self, line_id: str | None = None) -> None:
        """Raise the typed error matching a hard compliance block."""
        from .exceptions import EthicsViolationBlockedError, MissingVoucherBlockedError

        if self.allowed:
            return
        if self.block_code == "missing_voucher_blocked":
            raise MissingVoucherBlockedError(self.reason, line_id=line_id, field="is_vouched")
        if self.block_code == "ethics_violation_blocked":
            raise EthicsViolationBlockedError(self.reason, line_id=line_id, field="narrative")


@dataclass
class ComputedLineResult:
    """A calculated line. Derived from a BillLineItem, never created standalone."""

    line: BillLineItem
    item_code: str
    label: str
    category: str
    quantity: Decimal
    rate_applied: Decimal
    amount_ex_vat: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    compliance: ComplianceVerdict
    warnings: list[str] = field(default_factory=list)
    tariff_version: str | None = None
    resolution: str = "exact"
    unit: str = ""
    subcategory: str | None = None

    @property
    def is_actual_cost(self) -> bool:
        return self.unit == UNIT_ACTUAL_COST


@dataclass
class BillTotals:
    """Aggregated bill figures. Always recomputed from the full line set."""

    subtotal_fees: Decimal = Decimal("0")
    subtotal_disbursements: Decimal = Decimal("0")
    subtotal_counsel: Decimal = Decimal("0")
    total_vat: Decimal = Decimal("0")
    line_count: int = 0

    @property
    def total_ex_vat(self) -> Decimal:
        return self.subtotal_fees + self.subtotal_disbursements + self.subtotal_counsel

    @property
    def grand_total(self) -> Decimal:
        return self.total_ex_vat + self.total_vat


@dataclass(frozen=True)
class BlackoutException:
    """A kind of matter that may proceed during the blackout."""

    kind: str
    description: str
    criteria: tuple[str, ...]
    requires_justification: bool


@dataclass(frozen=True)
class BlackoutPeriod:
    """Annual court holiday: 16 Dec of `year` to 15 Jan of `year + 1`, inclusive."""

    year: int
    start_date: date
    end_date: date
    exceptions: tuple[BlackoutException, ...] = ()
    description: str = "Annual court holiday blackout period"

    def contains(self, on_date: date) -> bool:
        return self.start_date <= on_date <= self.end_date


@dataclass
class DeadlineResult:
    """A computed deadline and whether the blackout moved it."""

    original_date: date
    adjusted_date: date
    was_adjusted: bool
    reason: str
    days_skipped: int = 0
    blackout_period: BlackoutPeriod | None = None


@dataclass
class TaxationSchedule:
    """Inspection / objection / set-down dates following a bill's finalization."""

    finalization_date: date
    inspection: DeadlineResult
    objection: DeadlineResult
    set_down: DeadlineResult


@dataclass
class BillResult:
    """Final output of bill processing."""

    bill_summary: dict
    line_items: list
    totals: dict
    compliance: dict
    taxation_schedule: dict | None = None
