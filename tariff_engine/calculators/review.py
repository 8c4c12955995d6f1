"""
Bill Reviewer

Bill-level checks that only make sense across all lines: travel share of
the bill, counsel documentation and narrative quality. Every check returns
a result dict with status "compliant" or "warning"; none of them blocks.
"""

import re
from decimal import Decimal
from typing import Iterable

from ..models import ComputedLineResult

TRAVEL_SHARE_LIMIT = Decimal("0.2")
MIN_NARRATIVE_LENGTH = 10
VAGUE_NARRATIVE = re.compile(r"\b(various|sundry)\b")


def _result(rule: str, status: str, message: str, recommendation: str | None = None, line_ids=()) -> dict:
    return {
        "rule": rule,
        "status": status,
        "message": message,
        "recommendation": recommendation,
        "line_ids": list(line_ids),
    }


class BillReviewer:
    """Runs the bill-level checks over computed lines."""

    def review(self, results: Iterable[ComputedLineResult]) -> list[dict]:
        results = list(results)
        return [
            self.check_travel(results),
            self.check_counsel(results),
            self.check_narratives(results),
        ]

    def check_travel(self, results: list[ComputedLineResult]) -> dict:
        """Travel over 20% of the allowed bill (ex VAT) needs justifying."""
        allowed = [r for r in results if r.compliance.allowed]
        travel = [r for r in allowed if self._is_travel(r)]
        if not travel:
            return _result("travel-reasonableness", "compliant", "No travel costs claimed")

        travel_total = sum((r.amount_ex_vat for r in travel), Decimal("0"))
        bill_total = sum((r.amount_ex_vat for r in allowed), Decimal("0"))
        if travel_total > bill_total * TRAVEL_SHARE_LIMIT:
            return _result(
                "travel-reasonableness",
                "warning",
                "Travel costs exceed 20% of total bill",
                "Provide justification for travel necessity and reasonableness",
                [r.line.line_id for r in travel],
            )
        return _result("travel-reasonableness", "compliant", "Travel costs appear reasonable")

    def check_counsel(self, results: list[ComputedLineResult]) -> dict:
        """Counsel lines need a voucher or brief record."""
        counsel = [r for r in results if r.category == "counsel"]
        if not counsel:
            return _result("counsel-fees", "compliant", "No counsel fees claimed")

        undocumented = [r for r in counsel if not (r.line.is_vouched or r.line.voucher_reference)]
        if undocumented:
            return _result(
                "counsel-fees",
                "warning",
                "Some counsel fees lack proper documentation",
                "Provide brief fees and appearance records for all counsel",
                [r.line.line_id for r in undocumented],
            )
        return _result("counsel-fees", "compliant", "Counsel fees properly documented")

    def check_narratives(self, results: list[ComputedLineResult]) -> dict:
        """Short or catch-all narratives will not survive taxation."""
        vague = [r for r in results if self._is_vague(r.line.narrative)]
        if vague:
            ids = [r.line.line_id for r in vague]
            return _result(
                "narrative-quality",
                "warning",
                f"Lines {', '.join(str(i) for i in ids)} have vague narratives",
                "Improve narratives with specific details, page counts, and purpose",
                ids,
            )
        return _result("narrative-quality", "compliant", "Narratives are specific and audit-ready")

    @staticmethod
    def _is_travel(result: ComputedLineResult) -> bool:
        return result.subcategory == "travel" or "travel" in result.label.lower()

    @staticmethod
    def _is_vague(narrative: str) -> bool:
        text = (narrative or "").strip().lower()
        return len(text) < MIN_NARRATIVE_LENGTH or VAGUE_NARRATIVE.search(text) is not None
