"""
Billing Scope Validator

Decides whether a line is recoverable under the bill type and costs order,
whether a voucher is needed, and an advisory taxation-risk level.

"Not allowed" is an ordinary business outcome: validate() always returns a
verdict. Only a malformed context raises (InvalidContextError).
"""

import re
from dataclasses import dataclass
from decimal import Decimal

from ..config import RiskWeights
from ..exceptions import InvalidContextError
from ..models import BILL_TYPES, CATEGORIES, COSTS_ORDERS, ComplianceVerdict, ScopeContext

RECOVERABLE_COSTS_ORDERS = ("costs-in-the-cause", "punitive-scale", "wasted-costs")

VOUCHER_CODES = (
    "SHERIFF",
    "MEDICAL",
    "EXPERT",
    "TRANSCRIPT",
    "TRAVEL_LONG",
    "ACCOMMODATION",
    "COURT_FEES",
)

ATTORNEY_CLIENT_VOUCHER_THRESHOLD = Decimal("500")
OWN_CLIENT_REASONABLENESS_THRESHOLD = Decimal("50000")
OWN_CLIENT_EXCESSIVE_THRESHOLD = Decimal("100000")


@dataclass(frozen=True)
class RestrictionRule:
    """One named restriction, matched on item code or description text."""

    tag: str
    codes: tuple[str, ...]
    patterns: tuple[str, ...]
    reason: str

    def matches(self, item_code: str, description: str) -> bool:
        code = item_code.upper()
        if any(c in code for c in self.codes):
            return True
        text = description.lower()
        return any(re.search(p, text) for p in self.patterns)


PARTY_AND_PARTY_RESTRICTIONS = (
    RestrictionRule("internal-consultation", ("INTERNAL",), (r"internal consultation",),
                    "Internal consultations are not recoverable on party-and-party basis"),
    RestrictionRule("office-conference", ("OFFICE",), (r"office conference",),
                    "Office conferences are not recoverable on party-and-party basis"),
    RestrictionRule("legal-research", ("RESEARCH",), (r"legal research",),
                    "Legal research is not recoverable on party-and-party basis"),
    RestrictionRule("administrative", ("ADMIN",), (r"administrative",),
                    "Administrative costs are not recoverable on party-and-party basis"),
    RestrictionRule("local-travel", ("TRAVEL_LOCAL",), (r"local travel",),
                    "Local travel is not recoverable on party-and-party basis"),
    RestrictionRule("photocopying", ("PHOTOCOPY",), (r"photocopying",),
                    "Photocopying is not recoverable on party-and-party basis"),
    RestrictionRule("telephone", ("TELEPHONE",), (r"telephone calls?",),
                    "Telephone calls are not recoverable on party-and-party basis"),
)

ATTORNEY_CLIENT_PROHIBITIONS = (
    RestrictionRule("kickback", ("KICKBACK",), (r"referral fee", r"kickback"),
                    "Referral fees and kickbacks are prohibited"),
    RestrictionRule("personal-expense", ("PERSONAL",), (r"personal expense",),
                    "Personal expenses cannot be billed to the client"),
    RestrictionRule("contingency", ("UNETHICAL",), (r"contingency fee", r"success[\s-]fee"),
                    "Contingency and success fees are prohibited in South Africa"),
)

OWN_CLIENT_ETHICS_RULES = (
    RestrictionRule("fee-sharing", (), (r"\breferral\b", r"\bcommissions?\b"),
                    "Possible fee sharing with non-practitioner"),
    RestrictionRule("contingency", (), (r"\bcontingen", r"success[\s-]fee"),
                    "Contingency fees prohibited in South Africa"),
)


def first_match(rules, item_code: str, description: str) -> RestrictionRule | None:
    """Evaluate rules in order; first match wins."""
    for rule in rules:
        if rule.matches(item_code, description):
            return rule
    return None


class BillingScopeValidator:
    """Pure decision tree per bill type. Holds no state beyond risk weights."""

    def __init__(self, weights: RiskWeights | None = None):
        self.weights = weights or RiskWeights()

    def validate(self, ctx: ScopeContext) -> ComplianceVerdict:
        self._check_context(ctx)
        if ctx.bill_type == "party-and-party":
            return self._validate_party_and_party(ctx)
        if ctx.bill_type == "attorney-and-client":
            return self._validate_attorney_and_client(ctx)
        return self._validate_own_client(ctx)

    def requires_voucher(self, ctx: ScopeContext) -> bool:
        """Disbursements, plus anything coded as a vouchered kind of expense."""
        code = ctx.item_code.upper()
        return ctx.category == "disbursements" or any(c in code for c in VOUCHER_CODES)

    def assess_risk(self, ctx: ScopeContext) -> str:
        """
        Weighted advisory score, banded into low / medium / high.

        This is a heuristic aid for the practitioner, not a legal
        determination of what a taxing master will allow.
        """
        w = self.weights
        score = w.base_for(ctx.bill_type)
        if ctx.amount > w.medium_amount:
            score += w.amount_over_medium
        if ctx.amount > w.high_amount:
            score += w.amount_over_high
        if not ctx.has_voucher and self.requires_voucher(ctx):
            score += w.missing_voucher
        if not ctx.is_necessary:
            score += w.not_necessary
        if not ctx.is_reasonable:
            score += w.not_reasonable

        if score >= w.high_band:
            return "high"
        if score >= w.medium_band:
            return "medium"
        return "low"

    def justify(self, ctx: ScopeContext) -> str:
        """One-paragraph scope justification for a taxation pack."""
        verdict = self.validate(ctx)
        if not verdict.allowed:
            return f"Item excluded: {verdict.reason}"

        text = f"Item allowed under {ctx.bill_type} billing. "
        if ctx.bill_type == "party-and-party":
            text += "Necessary and reasonable for conduct of case. "
        if verdict.requires_voucher and ctx.has_voucher:
            text += "Voucher evidence attached. "
        elif verdict.requires_voucher:
            text += "Voucher evidence outstanding. "
        return text + f"Taxation risk: {verdict.taxation_risk}."

    # -------------------------------------------------------------------------
    # Bill types
    # -------------------------------------------------------------------------

    def _validate_party_and_party(self, ctx: ScopeContext) -> ComplianceVerdict:
        """Strictest scope: only necessary, reasonable, recoverable costs."""
        if ctx.costs_order not in RECOVERABLE_COSTS_ORDERS:
            return self._blocked(f"Costs order '{ctx.costs_order}' does not permit recovery", "not_recoverable")

        if not ctx.is_necessary:
            return self._blocked("Item not necessary for the conduct of the case", "not_necessary")

        if not ctx.is_reasonable:
            return self._blocked("Item not reasonable in amount or nature", "not_reasonable")

        rule = first_match(PARTY_AND_PARTY_RESTRICTIONS, ctx.item_code, ctx.description)
        if rule is not None:
            return self._blocked(rule.reason, "not_recoverable")

        requires_voucher = self.requires_voucher(ctx)
        if requires_voucher and not ctx.has_voucher:
            return self._blocked(
                "Voucher required for disbursement recovery on party-and-party basis",
                "missing_voucher_blocked",
                requires_voucher=True,
            )

        recommendations = []
        if ctx.costs_order == "punitive-scale":
            recommendations.append("Punitive costs order: tax on the attorney-and-client scale")

        return ComplianceVerdict(
            allowed=True,
            requires_voucher=requires_voucher,
            taxation_risk=self.assess_risk(ctx),
            recommendations=recommendations,
        )

    def _validate_attorney_and_client(self, ctx: ScopeContext) -> ComplianceVerdict:
        """Broader scope: reasonableness is the test, necessity is not required."""
        if not ctx.is_reasonable:
            return self._blocked(
                "Item not reasonable for attorney-and-client billing", "not_reasonable", risk="medium"
            )

        rule = first_match(ATTORNEY_CLIENT_PROHIBITIONS, ctx.item_code, ctx.description)
        if rule is not None:
            return self._blocked(rule.reason, "prohibited")

        requires_voucher = self.requires_voucher(ctx) and ctx.amount > ATTORNEY_CLIENT_VOUCHER_THRESHOLD
        if requires_voucher and not ctx.has_voucher:
            # Soft requirement: allowed, but flagged
            return ComplianceVerdict(
                allowed=True,
                reason=f"Consider obtaining voucher for amounts over R{ATTORNEY_CLIENT_VOUCHER_THRESHOLD}",
                requires_voucher=True,
                taxation_risk="medium",
                recommendations=["Obtain and attach a voucher before taxation"],
            )

        return ComplianceVerdict(
            allowed=True,
            requires_voucher=requires_voucher,
            taxation_risk=self.assess_risk(ctx),
        )

    def _validate_own_client(self, ctx: ScopeContext) -> ComplianceVerdict:
        """Contractual basis, still bound by professional conduct rules."""
        violations = [
            rule.reason for rule in OWN_CLIENT_ETHICS_RULES
            if rule.matches(ctx.item_code, ctx.description)
        ]
        if violations:
            return self._blocked(f"Ethics violation: {', '.join(violations)}", "ethics_violation_blocked")

        if ctx.amount > OWN_CLIENT_EXCESSIVE_THRESHOLD:
            if not ctx.justification:
                return self._blocked(
                    "Potentially excessive fee - requires justification", "justification_required"
                )
            return ComplianceVerdict(
                allowed=True,
                reason="High fee justified by practitioner",
                requires_voucher=False,
                taxation_risk="medium",
            )

        if ctx.amount > OWN_CLIENT_REASONABLENESS_THRESHOLD and not ctx.is_reasonable:
            return ComplianceVerdict(
                allowed=True,
                reason="High amount - ensure reasonableness is documented",
                requires_voucher=False,
                taxation_risk="medium",
                recommendations=["Record the basis on which the fee is reasonable"],
            )

        return ComplianceVerdict(allowed=True, requires_voucher=False, taxation_risk=self.assess_risk(ctx))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _blocked(reason: str, code: str, requires_voucher: bool = False, risk: str = "high") -> ComplianceVerdict:
        return ComplianceVerdict(
            allowed=False,
            reason=reason,
            block_code=code,
            requires_voucher=requires_voucher,
            taxation_risk=risk,
        )

    @staticmethod
    def _check_context(ctx: ScopeContext) -> None:
        if ctx.bill_type not in BILL_TYPES:
            raise InvalidContextError(
                f"Invalid bill_type: {ctx.bill_type}. Must be one of {', '.join(BILL_TYPES)}", field="bill_type"
            )
        if ctx.costs_order not in COSTS_ORDERS:
            raise InvalidContextError(
                f"Invalid costs_order: {ctx.costs_order}. Must be one of {', '.join(COSTS_ORDERS)}",
                field="costs_order",
            )
        if ctx.category not in CATEGORIES:
            raise InvalidContextError(
                f"Invalid category: {ctx.category}. Must be one of {', '.join(CATEGORIES)}", field="category"
            )
        if ctx.amount is None:
            raise InvalidContextError("Scope context requires an amount", field="amount")
