"""
Typed exceptions for the Tariff Engine

Every error carries a machine-readable ``code`` plus the offending line and
field where known, so an API layer can highlight the exact input that failed.

    TariffEngineError
    |
    +-- TariffNotFoundError        (LookupError)  no schedule for court/scale
    +-- ItemNotFoundError          (LookupError)  schedule exists, item unmatched
    +-- InvalidQuantityError       (ValueError)   zero or negative units
    +-- InvalidAmountError         (ValueError)   missing actual cost
    +-- InvalidContextError        (ValueError)   malformed request / context
    +-- ComplianceBlockedError
        +-- MissingVoucherBlockedError
        +-- EthicsViolationBlockedError
"""


class TariffEngineError(Exception):
    """Base class for all engine errors."""

    code = "tariff_engine_error"

    def __init__(self, message: str, line_id: str | None = None, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.line_id = line_id
        self.field = field

    def for_line(self, line_id: str | None, field: str | None = None) -> "TariffEngineError":
        """Attach line identification (keeps any field already set)."""
        self.line_id = line_id
        if field and not self.field:
            self.field = field
        return self

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "code": self.code,
            "line_id": self.line_id,
            "field": self.field,
        }

    def __str__(self) -> str:
        if self.line_id:
            return f"Line {self.line_id}: {self.message}"
        return self.message


class TariffNotFoundError(TariffEngineError, LookupError):
    code = "tariff_not_found"


class ItemNotFoundError(TariffEngineError, LookupError):
    code = "item_not_found"


class InvalidQuantityError(TariffEngineError, ValueError):
    code = "invalid_quantity"


class InvalidAmountError(TariffEngineError, ValueError):
    code = "invalid_amount"


class InvalidContextError(TariffEngineError, ValueError):
    code = "invalid_context"


class ComplianceBlockedError(TariffEngineError):
    code = "compliance_blocked"


class MissingVoucherBlockedError(ComplianceBlockedError):
    code = "missing_voucher_blocked"


class EthicsViolationBlockedError(ComplianceBlockedError):
    code = "ethics_violation_blocked"
