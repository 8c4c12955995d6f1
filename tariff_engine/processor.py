"""
Bill Processor - Main Orchestrator

Coordinates the bill calculation pipeline through discrete, testable steps.
"""

import logging
from decimal import Decimal
from typing import Any, Dict

from .calculators import (
    Bill,
    BillAggregator,
    BillingScopeValidator,
    BillReviewer,
    DeadlineCalculator,
    LineCalculator,
)
from .config import EngineConfig
from .exceptions import ItemNotFoundError, TariffEngineError
from .models import (
    BillContext,
    BillInput,
    BillLineItem,
    BillResult,
    ComputedLineResult,
    MatterContext,
    ScopeContext,
    TariffRateItem,
    UNIT_ACTUAL_COST,
    parse_date,
)
from .output import OutputBuilder
from .repository import RateResolution, TariffRepository
from .tariffs import COUNSEL_COURT, COUNSEL_SCALE
from .validators import InputValidator

logger = logging.getLogger(__name__)

CUSTOM_DISBURSEMENT = "custom_disbursement"


class BillProcessor:
    """
    Main orchestrator for bill processing.

    Implements a clear pipeline pattern:
    1. Validate Input
    2. Resolve Rate (per line)
    3. Compute Line Amount (per line)
    4. Validate Billing Scope (per line)
    5. Aggregate Totals
    6. Schedule Taxation (if the bill is finalized)
    7. Build Output
    """

    def __init__(
        self,
        repository: TariffRepository | None = None,
        config: EngineConfig | None = None,
        deadlines: DeadlineCalculator | None = None,
    ):
        self.repository = repository or TariffRepository.default()
        self.config = config or EngineConfig()
        self.deadlines = deadlines or DeadlineCalculator()
        self.validator = InputValidator()
        self.aggregator = BillAggregator()
        self.reviewer = BillReviewer()
        self.output_builder = OutputBuilder()

    def process(self, input_data: BillInput) -> BillResult:
        """
        Process a bill through the complete pipeline.

        Args:
            input_data: BillInput object

        Returns:
            BillResult with line breakdowns, totals and compliance summary
        """
        # Step 1: Validate
        self.validator.validate(input_data)
        config = self.config.merged_with(input_data.config)

        # Steps 2-4: Resolve, compute and scope-check every line
        calculator = LineCalculator(config)
        scope = BillingScopeValidator(config.risk_weights)
        bill = Bill(aggregator=self.aggregator)
        for line in input_data.line_items:
            bill.add(self._compute(line, input_data.context, config, calculator, scope))

        # Step 5: Aggregate (always from the full line set)
        totals = bill.totals

        # Step 6: Taxation schedule
        schedule = None
        context = input_data.context
        if context.finalization_date is not None:
            schedule = self.deadlines.taxation_schedule(
                context.finalization_date,
                MatterContext(matter_type=context.matter_type, court_type=context.court_type),
            )

        # Step 7: Bill-level review (advisory only)
        bill_checks = self.reviewer.review(bill.lines)

        # Step 8: Build output
        return self.output_builder.build(context, config, bill.lines, totals, schedule, bill_checks)

    def compute_line(
        self, line: BillLineItem, context: BillContext, config: EngineConfig | None = None
    ) -> ComputedLineResult:
        """Run a single line through resolve -> compute -> scope."""
        config = config or self.config
        return self._compute(
            line, context, config, LineCalculator(config), BillingScopeValidator(config.risk_weights)
        )

    def process_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Process a bill from raw dictionary input.

        Convenience method for API usage.
        """
        input_data = BillInput.from_dict(data)
        result = self.process(input_data)
        return self._result_to_dict(result)

    def deadline_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Calculate a single blackout-aware deadline from raw input."""
        if "base_date" not in data:
            raise ValueError("base_date is required")
        result = self.deadlines.calculate_deadline(
            parse_date(data["base_date"]),
            int(data.get("days_to_add", 0)),
            MatterContext.from_dict(data.get("matter")),
        )
        return self.output_builder.deadline_to_dict(result)

    def taxation_schedule_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if "finalization_date" not in data:
            raise ValueError("finalization_date is required")
        schedule = self.deadlines.taxation_schedule(
            parse_date(data["finalization_date"]),
            MatterContext.from_dict(data.get("matter")),
        )
        return self.output_builder.schedule_to_dict(schedule)

    def available_items(self, court_type: str, scale: str, on_date) -> list[dict]:
        items = self.repository.available_items(court_type, scale, on_date)
        return [self.output_builder.rate_item_to_dict(item) for item in items]

    # -------------------------------------------------------------------------
    # Pipeline steps
    # -------------------------------------------------------------------------

    def _compute(
        self,
        line: BillLineItem,
        context: BillContext,
        config: EngineConfig,
        calculator: LineCalculator,
        scope: BillingScopeValidator,
    ) -> ComputedLineResult:
        try:
            resolution = self._resolve(line, context)
            amount = calculator.compute_line(
                resolution.item, line.quantity, actual_amount=line.actual_amount, line_unit=line.unit
            )
        except TariffEngineError as e:
            e.for_line(line.line_id)
            raise

        item = resolution.item
        verdict = scope.validate(ScopeContext(
            bill_type=context.bill_type,
            costs_order=context.costs_order,
            item_code=line.item_code,
            description=f"{item.label} {line.narrative}".strip(),
            amount=amount.amount_ex_vat,
            category=item.category,
            is_necessary=line.is_necessary,
            is_reasonable=line.is_reasonable,
            has_voucher=line.is_vouched,
            justification=line.justification,
        ))

        if not verdict.allowed:
            logger.info(f"Line {line.line_id} ({line.item_code}) disallowed: {verdict.reason}")
            if config.strict_compliance:
                verdict.raise_for_block(line.line_id)

        return ComputedLineResult(
            line=line,
            item_code=item.item_code,
            label=item.label,
            category=item.category,
            quantity=amount.quantity,
            rate_applied=amount.rate_applied,
            amount_ex_vat=amount.amount_ex_vat,
            vat_amount=amount.vat_amount,
            total_amount=amount.total_amount,
            compliance=verdict,
            warnings=resolution.warnings + amount.warnings,
            tariff_version=resolution.version_label if resolution.resolution != CUSTOM_DISBURSEMENT else None,
            resolution=resolution.resolution,
            unit=item.unit,
            subcategory=item.subcategory,
        )

    def _resolve(self, line: BillLineItem, context: BillContext) -> RateResolution:
        """
        Counsel lines resolve against the counsel schedule; everything else
        against the bill's court and scale. A disbursement tagged by the
        caller with an actual amount may be billed without a tariff item.
        """
        if line.category == "counsel":
            court_type, scale = COUNSEL_COURT, COUNSEL_SCALE
        else:
            court_type, scale = context.court_type, context.scale

        try:
            return self.repository.resolve_rate(court_type, scale, line.item_code, line.date)
        except ItemNotFoundError:
            if line.category == "disbursements" and line.actual_amount is not None:
                return self._custom_disbursement(line, court_type, scale)
            raise

    def _custom_disbursement(self, line: BillLineItem, court_type: str, scale: str) -> RateResolution:
        item = TariffRateItem(
            item_code=line.item_code,
            label=line.narrative or line.item_code,
            description=line.narrative,
            rate=Decimal("0"),
            unit=UNIT_ACTUAL_COST,
            vat_applicable=True,
            category="disbursements",
        )
        schedule = self.repository.get_schedule(court_type, scale)
        return RateResolution(
            item=item,
            version=schedule.versions[0],
            court_type=court_type,
            scale=scale,
            resolution=CUSTOM_DISBURSEMENT,
            warnings=[f"'{line.item_code}' billed as a custom disbursement at actual cost (no tariff item)"],
        )

    def _result_to_dict(self, result: BillResult) -> Dict[str, Any]:
        """Convert BillResult to dictionary for API response."""
        output = {
            "bill_summary": result.bill_summary,
            "line_items": result.line_items,
            "totals": result.totals,
            "compliance": result.compliance,
        }
        if result.taxation_schedule:
            output["taxation_schedule"] = result.taxation_schedule
        return output


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def process_bill_from_dict(input_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Process a bill from Python dict and return Python dict.
    """
    processor = BillProcessor(config=EngineConfig.from_env())
    return processor.process_from_dict(input_data)


def process_bill_from_json(json_input: str) -> str:
    """
    Process a bill from JSON string input and return JSON string output.
    """
    import json

    try:
        input_data = json.loads(json_input)
        processor = BillProcessor(config=EngineConfig.from_env())
        result = processor.process_from_dict(input_data)
        return json.dumps(result, indent=2)

    except TariffEngineError as e:
        error_response = {**e.to_dict(), "status": "validation_failed"}
        return json.dumps(error_response, indent=2)

    except ValueError as e:
        error_response = {"error": str(e), "status": "validation_failed"}
        return json.dumps(error_response, indent=2)

    except Exception as e:
        error_response = {"error": str(e), "status": "failed"}
        return json.dumps(error_response, indent=2)
