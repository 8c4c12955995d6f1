"""
Output Builder

Constructs the final API response from computed lines and totals.
"""

from decimal import Decimal

from .config import EngineConfig
from .models import (
    BillContext,
    BillResult,
    BillTotals,
    ComputedLineResult,
    DeadlineResult,
    TariffRateItem,
    TaxationSchedule,
)
from .tariffs import COURT_TYPES


def to_money(value: Decimal) -> float:
    """Convert Decimal to float with 2 decimal places (display only)."""
    return round(float(value), 2)


def _fmt(value) -> str:
    """Format a number as Rand for descriptions."""
    return f"R{value:,.2f}"


def _units(value: Decimal) -> str:
    return format(value.normalize(), "f")


def _optional_units(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


class OutputBuilder:
    """Builds the final output response."""

    def build(
        self,
        context: BillContext,
        config: EngineConfig,
        lines: list[ComputedLineResult],
        totals: BillTotals,
        schedule: TaxationSchedule | None = None,
        bill_checks: list[dict] | None = None,
    ) -> BillResult:
        """Construct the complete bill result."""
        return BillResult(
            bill_summary=self._build_bill_summary(context, config, lines, totals),
            line_items=[self.line_to_dict(line) for line in lines],
            totals=self._build_totals(totals),
            compliance=self._build_compliance(lines, bill_checks or []),
            taxation_schedule=self.schedule_to_dict(schedule) if schedule else None,
        )

    def _build_bill_summary(
        self, context: BillContext, config: EngineConfig, lines: list[ComputedLineResult], totals: BillTotals
    ) -> dict:
        """Build bill summary section."""
        return {
            "court_type": context.court_type,
            "court_name": COURT_TYPES.get(context.court_type, context.court_type),
            "scale": context.scale,
            "bill_type": context.bill_type,
            "costs_order": context.costs_order,
            "matter_type": context.matter_type,
            "finalization_date": context.finalization_date.isoformat() if context.finalization_date else None,
            "line_count": len(lines),
            "allowed_line_count": totals.line_count,
            "disallowed_line_count": len(lines) - totals.line_count,
            "vat_rate": float(config.vat_rate),
            "is_vat_vendor": config.is_vat_vendor,
            "time_rounding_minutes": config.time_rounding_minutes,
        }

    def line_to_dict(self, result: ComputedLineResult) -> dict:
        """One computed line, with the raw input retained for audit."""
        line = result.line
        verdict = result.compliance
        return {
            "line_id": line.line_id,
            "date": line.date.isoformat(),
            "item_code": result.item_code,
            "requested_item_code": line.item_code,
            "label": result.label,
            "category": result.category,
            "unit": result.unit,
            "narrative": line.narrative,
            "tariff_version": result.tariff_version,
            "resolution": result.resolution,
            "requested_quantity": float(line.quantity),
            "quantity": float(result.quantity),
            "rate_applied": to_money(result.rate_applied),
            "amount_ex_vat": to_money(result.amount_ex_vat),
            "vat_amount": to_money(result.vat_amount),
            "total_amount": to_money(result.total_amount),
            "description": self._describe_line(result),
            "warnings": list(result.warnings),
            "is_vouched": line.is_vouched,
            "voucher_reference": line.voucher_reference,
            "compliance": {
                "allowed": verdict.allowed,
                "reason": verdict.reason,
                "block_code": verdict.block_code,
                "requires_voucher": verdict.requires_voucher,
                "taxation_risk": verdict.taxation_risk,
                "recommendations": list(verdict.recommendations),
            },
        }

    def _describe_line(self, result: ComputedLineResult) -> str:
        if result.is_actual_cost:
            text = f"Actual cost {_fmt(to_money(result.amount_ex_vat))}"
        else:
            text = (
                f"{_units(result.quantity)} × {_fmt(to_money(result.rate_applied))} = "
                f"{_fmt(to_money(result.quantity * result.rate_applied))}"
            )
            if result.quantity * result.rate_applied != result.amount_ex_vat:
                text += f", capped at {_fmt(to_money(result.amount_ex_vat))}"
        if result.vat_amount:
            text += f" + VAT {_fmt(to_money(result.vat_amount))}"
        return text

    def _build_totals(self, totals: BillTotals) -> dict:
        """Build totals section with value and description for each figure."""
        fees = to_money(totals.subtotal_fees)
        disbursements = to_money(totals.subtotal_disbursements)
        counsel = to_money(totals.subtotal_counsel)
        ex_vat = to_money(totals.total_ex_vat)
        vat = to_money(totals.total_vat)
        grand = to_money(totals.grand_total)
        return {
            "subtotal_fees": {
                "value": fees,
                "description": "Attorney fees excluding VAT",
            },
            "subtotal_disbursements": {
                "value": disbursements,
                "description": "Disbursements excluding VAT",
            },
            "subtotal_counsel": {
                "value": counsel,
                "description": "Counsel fees excluding VAT",
            },
            "total_ex_vat": {
                "value": ex_vat,
                "description": f"fees ({_fmt(fees)}) + disbursements ({_fmt(disbursements)}) + counsel ({_fmt(counsel)}) = {_fmt(ex_vat)}",
            },
            "total_vat": {
                "value": vat,
                "description": "VAT on VAT-applicable items (VAT vendors only)",
            },
            "grand_total": {
                "value": grand,
                "description": f"total_ex_vat ({_fmt(ex_vat)}) + VAT ({_fmt(vat)}) = {_fmt(grand)}",
            },
        }

    def _build_compliance(self, lines: list[ComputedLineResult], bill_checks: list[dict]) -> dict:
        """Bill-level compliance roll-up."""
        blocked = [r for r in lines if not r.compliance.allowed]
        return {
            "is_compliant": not blocked,
            "blocked_lines": [
                {"line_id": r.line.line_id, "item_code": r.item_code, "reason": r.compliance.reason}
                for r in blocked
            ],
            "high_risk_lines": [r.line.line_id for r in lines if r.compliance.taxation_risk == "high"],
            "vouchers_outstanding": [
                r.line.line_id for r in lines if r.compliance.requires_voucher and not r.line.is_vouched
            ],
            "warning_count": sum(len(r.warnings) for r in lines),
            "bill_checks": bill_checks,
            "risk_note": "Taxation risk is an advisory heuristic, not a legal determination",
        }

    def deadline_to_dict(self, result: DeadlineResult) -> dict:
        period = result.blackout_period
        return {
            "original_date": result.original_date.isoformat(),
            "adjusted_date": result.adjusted_date.isoformat(),
            "was_adjusted": result.was_adjusted,
            "reason": result.reason,
            "days_skipped": result.days_skipped,
            "blackout_period": {
                "start_date": period.start_date.isoformat(),
                "end_date": period.end_date.isoformat(),
            } if period else None,
        }

    def schedule_to_dict(self, schedule: TaxationSchedule) -> dict:
        return {
            "finalization_date": schedule.finalization_date.isoformat(),
            "inspection_deadline": self.deadline_to_dict(schedule.inspection),
            "objection_deadline": self.deadline_to_dict(schedule.objection),
            "set_down_eligible": self.deadline_to_dict(schedule.set_down),
        }

    def rate_item_to_dict(self, item: TariffRateItem) -> dict:
        return {
            "item_code": item.item_code,
            "label": item.label,
            "description": item.description,
            "rate": to_money(item.rate),
            "unit": item.unit,
            "minimum_units": _optional_units(item.minimum_units),
            "maximum_units": _optional_units(item.maximum_units),
            "cap_amount": to_money(item.cap_amount) if item.cap_amount is not None else None,
            "vat_applicable": item.vat_applicable,
            "category": item.category,
            "subcategory": item.subcategory,
        }
