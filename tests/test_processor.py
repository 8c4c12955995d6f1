"""
Tests for the Bill Processor

End-to-end scenarios through the full pipeline.
Run with: python -m pytest tests/ -v
"""

import json
from datetime import date

import pytest

from tariff_engine import BillProcessor, EngineConfig, TariffRepository
from tariff_engine.exceptions import (
    InvalidAmountError,
    InvalidContextError,
    InvalidQuantityError,
    ItemNotFoundError,
    MissingVoucherBlockedError,
    TariffNotFoundError,
)
from tariff_engine.models import BillContext, BillLineItem
from tariff_engine.processor import process_bill_from_json


class TestBillProcessor:
    """Test the main bill processor."""

    @pytest.fixture
    def processor(self):
        return BillProcessor()

    @pytest.fixture
    def sample_input(self):
        """Magistrates' Court scale A party-and-party bill."""
        return {
            "context": {
                "court_type": "MC",
                "scale": "A",
                "bill_type": "party-and-party",
                "costs_order": "costs-in-the-cause",
            },
            "line_items": [
                {"date": "2024-10-01", "item_code": "1.1", "quantity": 4, "narrative": "Perused plaintiff's summons"},
                {"date": "2024-10-02", "item_code": "1.3", "quantity": 1.5, "narrative": "Consultation with client"},
                {
                    "date": "2024-10-03",
                    "item_code": "4.1",
                    "quantity": 1,
                    "actual_amount": 350,
                    "is_vouched": True,
                    "voucher_reference": "RCPT-0091",
                    "narrative": "Issue of summons",
                },
                {"date": "2024-10-04", "item_code": "C2", "quantity": 1, "category": "counsel",
                 "narrative": "Opinion on merits"},
            ],
        }

    def test_basic_processing(self, processor, sample_input):
        result = processor.process_from_dict(sample_input)

        assert "bill_summary" in result
        assert "line_items" in result
        assert "totals" in result
        assert "compliance" in result
        assert "taxation_schedule" not in result

    def test_line_amounts(self, processor, sample_input):
        lines = processor.process_from_dict(sample_input)["line_items"]

        assert lines[0]["amount_ex_vat"] == 1140.00
        assert lines[0]["vat_amount"] == 171.00
        assert lines[0]["total_amount"] == 1311.00
        assert lines[1]["amount_ex_vat"] == 3420.00
        assert lines[2]["amount_ex_vat"] == 350.00
        assert lines[2]["vat_amount"] == 0.0
        assert lines[3]["amount_ex_vat"] == 12000.00
        assert lines[3]["tariff_version"] == "COUNSEL Scale ALL (2024-09-01)"

    def test_totals(self, processor, sample_input):
        totals = processor.process_from_dict(sample_input)["totals"]

        assert totals["subtotal_fees"]["value"] == 4560.00
        assert totals["subtotal_disbursements"]["value"] == 350.00
        assert totals["subtotal_counsel"]["value"] == 12000.00
        assert totals["total_ex_vat"]["value"] == 16910.00
        assert totals["total_vat"]["value"] == 684.00
        assert totals["grand_total"]["value"] == 17594.00
        assert "R16,910.00" in totals["grand_total"]["description"]

    def test_summary(self, processor, sample_input):
        summary = processor.process_from_dict(sample_input)["bill_summary"]

        assert summary["court_name"] == "Magistrates' Court"
        assert summary["line_count"] == 4
        assert summary["allowed_line_count"] == 4
        assert summary["vat_rate"] == 0.15

    def test_disallowed_line_excluded_from_totals(self, processor, sample_input):
        sample_input["line_items"].append(
            {"date": "2024-10-05", "item_code": "4.4", "quantity": 1, "actual_amount": 120,
             "narrative": "Calls to opposing attorney"}
        )

        result = processor.process_from_dict(sample_input)

        assert result["line_items"][4]["compliance"]["allowed"] is False
        assert result["totals"]["grand_total"]["value"] == 17594.00
        assert result["compliance"]["is_compliant"] is False
        assert result["compliance"]["blocked_lines"][0]["line_id"] == "5"
        assert result["bill_summary"]["disallowed_line_count"] == 1

    def test_missing_voucher_reported_not_raised(self, processor, sample_input):
        sample_input["line_items"][2]["is_vouched"] = False

        result = processor.process_from_dict(sample_input)

        compliance = result["line_items"][2]["compliance"]
        assert compliance["allowed"] is False
        assert "voucher" in compliance["reason"].lower()
        assert result["compliance"]["vouchers_outstanding"] == ["3"]

    def test_strict_compliance_raises(self, processor, sample_input):
        sample_input["line_items"][2]["is_vouched"] = False
        sample_input["config"] = {"strict_compliance": True}

        with pytest.raises(MissingVoucherBlockedError) as exc_info:
            processor.process_from_dict(sample_input)

        assert exc_info.value.line_id == "3"

    def test_per_request_rounding(self, processor, sample_input):
        """0.12h at 6-minute rounding -> 0.2h -> minimum 0.25h."""
        sample_input["line_items"] = [{"date": "2024-10-02", "item_code": "1.3", "quantity": 0.12}]
        sample_input["config"] = {"time_rounding_minutes": 6}

        line = processor.process_from_dict(sample_input)["line_items"][0]

        assert line["quantity"] == 0.25
        assert line["requested_quantity"] == 0.12
        assert line["amount_ex_vat"] == 570.00
        assert len(line["warnings"]) == 2

    def test_non_vat_vendor(self, sample_input):
        processor = BillProcessor(config=EngineConfig(is_vat_vendor=False))

        totals = processor.process_from_dict(sample_input)["totals"]

        assert totals["total_vat"]["value"] == 0.0
        assert totals["grand_total"]["value"] == totals["total_ex_vat"]["value"]

    def test_finalized_bill_gets_taxation_schedule(self, processor, sample_input):
        sample_input["context"]["finalization_date"] = "2024-12-02"

        schedule = processor.process_from_dict(sample_input)["taxation_schedule"]

        assert schedule["inspection_deadline"]["adjusted_date"] == "2025-01-16"
        assert schedule["inspection_deadline"]["was_adjusted"] is True

    def test_fuzzy_item_code(self, processor, sample_input):
        sample_input["line_items"] = [{"date": "2024-10-01", "item_code": "perusal", "quantity": 2}]

        line = processor.process_from_dict(sample_input)["line_items"][0]

        assert line["item_code"] == "1.1"
        assert line["requested_item_code"] == "perusal"
        assert line["resolution"] == "fuzzy_match"
        assert line["warnings"]

    def test_custom_disbursement(self, processor, sample_input):
        sample_input["line_items"] = [{
            "date": "2024-10-01",
            "item_code": "COURIER",
            "category": "disbursements",
            "actual_amount": 200,
            "is_vouched": True,
            "narrative": "Courier of bundle to counsel",
        }]

        line = processor.process_from_dict(sample_input)["line_items"][0]

        assert line["resolution"] == "custom_disbursement"
        assert line["amount_ex_vat"] == 200.00
        assert line["vat_amount"] == 30.00
        assert line["tariff_version"] is None

    def test_ethics_violation_on_own_client_bill(self, processor, sample_input):
        sample_input["context"]["bill_type"] = "own-client"
        sample_input["line_items"] = [
            {"date": "2024-10-01", "item_code": "1.3", "quantity": 1, "narrative": "Success fee on settlement"}
        ]

        result = processor.process_from_dict(sample_input)

        assert result["line_items"][0]["compliance"]["allowed"] is False
        assert result["line_items"][0]["compliance"]["block_code"] == "ethics_violation_blocked"
        assert result["totals"]["grand_total"]["value"] == 0.0

    def test_single_unit_line_described_as_rate(self, processor, sample_input):
        sample_input["line_items"] = [
            {"date": "2024-10-01", "item_code": "1.1", "quantity": 1, "narrative": "Perused notice of bar"}
        ]

        line = processor.process_from_dict(sample_input)["line_items"][0]

        assert line["unit"] == "per page"
        assert line["description"].startswith("1 × R285.00 = R285.00")
        assert "Actual cost" not in line["description"]

    def test_actual_cost_line_described_as_actual_cost(self, processor, sample_input):
        line = processor.process_from_dict(sample_input)["line_items"][2]

        assert line["unit"] == "actual cost"
        assert line["description"] == "Actual cost R350.00"

    def test_bill_checks_in_compliance_summary(self, processor, sample_input):
        sample_input["line_items"].append(
            {"date": "2024-10-05", "item_code": "3.1", "quantity": 4, "narrative": "Travel to Pretoria court"}
        )

        compliance = processor.process_from_dict(sample_input)["compliance"]
        checks = {check["rule"]: check for check in compliance["bill_checks"]}

        assert checks["travel-reasonableness"]["status"] == "warning"
        assert checks["travel-reasonableness"]["line_ids"] == ["5"]
        assert checks["counsel-fees"]["status"] == "warning"
        assert checks["counsel-fees"]["line_ids"] == ["4"]
        assert checks["narrative-quality"]["status"] == "compliant"
        # Advisory only: nothing here is blocked
        assert compliance["is_compliant"] is True

    def test_bill_checks_flag_vague_narrative(self, processor, sample_input):
        sample_input["line_items"][1]["narrative"] = "Various attendances"

        compliance = processor.process_from_dict(sample_input)["compliance"]
        narrative = next(c for c in compliance["bill_checks"] if c["rule"] == "narrative-quality")

        assert narrative["status"] == "warning"
        assert narrative["line_ids"] == ["2"]
        assert narrative["message"] == "Lines 2 have vague narratives"


class TestProcessorErrors:
    """Test typed errors carry the offending line."""

    @pytest.fixture
    def processor(self):
        return BillProcessor()

    def _bill(self, line, **context):
        ctx = {"court_type": "MC", "scale": "A", "bill_type": "party-and-party"}
        ctx.update(context)
        return {"context": ctx, "line_items": [line]}

    def test_unknown_item(self, processor):
        with pytest.raises(ItemNotFoundError) as exc_info:
            processor.process_from_dict(self._bill({"date": "2024-10-01", "item_code": "9.9", "quantity": 1}))

        assert exc_info.value.line_id == "1"
        assert str(exc_info.value).startswith("Line 1:")

    def test_unknown_schedule(self, processor):
        with pytest.raises(TariffNotFoundError):
            processor.process_from_dict(
                self._bill({"date": "2024-10-01", "item_code": "1.1", "quantity": 1}, court_type="CC")
            )

    def test_zero_quantity(self, processor):
        with pytest.raises(InvalidQuantityError) as exc_info:
            processor.process_from_dict(self._bill({"date": "2024-10-01", "item_code": "1.1", "quantity": 0}))

        assert exc_info.value.field == "quantity"
        assert exc_info.value.line_id == "1"

    def test_actual_cost_without_amount(self, processor):
        with pytest.raises(InvalidAmountError) as exc_info:
            processor.process_from_dict(self._bill({"date": "2024-10-01", "item_code": "4.2", "quantity": 1}))

        assert exc_info.value.line_id == "1"

    def test_invalid_bill_type(self, processor):
        with pytest.raises(ValueError, match="bill_type"):
            processor.process_from_dict(
                self._bill({"date": "2024-10-01", "item_code": "1.1", "quantity": 1}, bill_type="contingency")
            )

    def test_missing_date(self, processor):
        with pytest.raises(InvalidContextError) as exc_info:
            processor.process_from_dict(self._bill({"item_code": "1.1", "quantity": 1}))

        assert exc_info.value.field == "date"

    def test_non_numeric_quantity(self, processor):
        with pytest.raises(InvalidQuantityError) as exc_info:
            processor.process_from_dict(self._bill({"date": "2024-10-01", "item_code": "1.1", "quantity": "lots"}))

        assert exc_info.value.field == "quantity"
        assert exc_info.value.line_id == "1"

    @pytest.mark.parametrize("quantity", ["NaN", "Infinity", "-Infinity", float("nan"), float("inf")])
    def test_non_finite_quantity(self, processor, quantity):
        with pytest.raises(InvalidQuantityError) as exc_info:
            processor.process_from_dict(self._bill({"date": "2024-10-01", "item_code": "1.1", "quantity": quantity}))

        assert exc_info.value.field == "quantity"
        assert exc_info.value.line_id == "1"

    @pytest.mark.parametrize("amount", ["Infinity", "NaN"])
    def test_non_finite_actual_amount(self, processor, amount):
        line = {"date": "2024-10-01", "item_code": "4.2", "quantity": 1, "actual_amount": amount, "is_vouched": True}

        with pytest.raises(InvalidAmountError) as exc_info:
            processor.process_from_dict(self._bill(line))

        assert exc_info.value.field == "actual_amount"
        assert exc_info.value.line_id == "1"

    def test_non_numeric_vat_rate_in_request(self, processor):
        bill = self._bill({"date": "2024-10-01", "item_code": "1.1", "quantity": 1})
        bill["config"] = {"vat_rate": "abc"}

        with pytest.raises(InvalidContextError) as exc_info:
            processor.process_from_dict(bill)

        assert exc_info.value.field == "vat_rate"

    def test_duplicate_line_ids(self, processor):
        bill = self._bill({"date": "2024-10-01", "item_code": "1.1", "quantity": 1, "line_id": "A"})
        bill["line_items"].append({"date": "2024-10-01", "item_code": "1.2", "quantity": 1, "line_id": "A"})

        with pytest.raises(InvalidContextError, match="Duplicate"):
            processor.process_from_dict(bill)

    def test_work_date_before_any_tariff(self, processor):
        with pytest.raises(ItemNotFoundError) as exc_info:
            processor.process_from_dict(self._bill({"date": "2020-01-01", "item_code": "1.1", "quantity": 1}))

        assert exc_info.value.field == "date"


class TestProcessorOperations:
    """Test the non-bill operations exposed for the API."""

    @pytest.fixture
    def processor(self):
        return BillProcessor()

    def test_compute_single_line(self, processor):
        context = BillContext(court_type="HC", scale="A", bill_type="attorney-and-client")
        line = BillLineItem(date=date(2024, 10, 1), item_code="2.2", quantity=2, line_id="L1")

        result = processor.compute_line(line, context)

        assert result.amount_ex_vat == 9120
        assert result.compliance.allowed is True

    def test_deadline_from_dict(self, processor):
        result = processor.deadline_from_dict({"base_date": "2024-12-10", "days_to_add": 10})

        assert result["adjusted_date"] == "2025-01-16"
        assert result["was_adjusted"] is True
        assert result["blackout_period"]["start_date"] == "2024-12-16"

    def test_deadline_rejects_unknown_deadline_type(self, processor):
        with pytest.raises(InvalidContextError) as exc_info:
            processor.deadline_from_dict(
                {"base_date": "2024-12-10", "days_to_add": 10, "matter": {"deadline_type": "review"}}
            )

        assert exc_info.value.field == "deadline_type"

    def test_deadline_requires_base_date(self, processor):
        with pytest.raises(ValueError):
            processor.deadline_from_dict({"days_to_add": 10})

    def test_taxation_schedule_from_dict(self, processor):
        result = processor.taxation_schedule_from_dict({"finalization_date": "2024-11-01"})

        assert result["inspection_deadline"]["adjusted_date"] == "2024-11-15"
        assert result["objection_deadline"]["adjusted_date"] == "2024-11-29"
        assert result["set_down_eligible"]["adjusted_date"] == "2024-12-06"

    def test_available_items(self, processor):
        items = processor.available_items("MC", "A", date(2024, 10, 1))

        perusal = next(i for i in items if i["item_code"] == "1.1")
        assert perusal["rate"] == 285.00
        assert perusal["unit"] == "per page"

    def test_custom_repository(self):
        repository = TariffRepository.from_records([{
            "court_type": "MC",
            "scale": "A",
            "effective_from": "2025-04-01",
            "items": [{"item_code": "1.1", "label": "Perusal", "rate": "300.00", "unit": "per page",
                       "category": "fees"}],
        }])
        processor = BillProcessor(repository=repository)
        bill = {
            "context": {"court_type": "MC", "scale": "A", "bill_type": "own-client"},
            "line_items": [{"date": "2025-05-01", "item_code": "1.1", "quantity": 1}],
        }

        result = processor.process_from_dict(bill)

        assert result["line_items"][0]["rate_applied"] == 300.00


class TestJsonHelper:
    """Test the JSON convenience wrapper."""

    def test_success(self):
        payload = {
            "context": {"court_type": "MC", "scale": "A", "bill_type": "own-client"},
            "line_items": [{"date": "2024-10-01", "item_code": "1.1", "quantity": 4}],
        }

        result = json.loads(process_bill_from_json(json.dumps(payload)))

        assert result["totals"]["grand_total"]["value"] == 1311.00

    def test_engine_error(self):
        payload = {
            "context": {"court_type": "MC", "scale": "A", "bill_type": "own-client"},
            "line_items": [{"date": "2024-10-01", "item_code": "9.9", "quantity": 1}],
        }

        result = json.loads(process_bill_from_json(json.dumps(payload)))

        assert result["status"] == "validation_failed"
        assert result["code"] == "item_not_found"
        assert result["line_id"] == "1"

    def test_invalid_json(self):
        result = json.loads(process_bill_from_json("{not json"))

        assert result["status"] == "validation_failed"
