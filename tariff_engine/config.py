"""
Engine Configuration

Firm-level settings injected into the engine at construction time.
Nothing here is read from module-level state during calculation.
"""

import os
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation

from .exceptions import InvalidContextError

ROUNDING_OPTIONS = (6, 15, 30)


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _decimal_setting(value, name: str) -> Decimal:
    """Parse a numeric setting; NaN and Infinity are rejected."""
    try:
        result = Decimal(str(value))
    except InvalidOperation as e:
        raise InvalidContextError(f"config: '{name}' must be numeric, got: {value!r}", field=name) from e
    if not result.is_finite():
        raise InvalidContextError(f"config: '{name}' must be a finite number, got: {value!r}", field=name)
    return result


def _int_setting(value, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise InvalidContextError(f"config: '{name}' must be a whole number, got: {value!r}", field=name) from e


@dataclass(frozen=True)
class RiskWeights:
    """Weights for the advisory taxation-risk score.

    These are heuristics for the practitioner, not legal thresholds.
    """

    party_and_party: int = 3
    attorney_and_client: int = 1
    own_client: int = 0
    amount_over_medium: int = 2
    amount_over_high: int = 3
    missing_voucher: int = 2
    not_necessary: int = 3
    not_reasonable: int = 2
    medium_amount: Decimal = Decimal("10000")
    high_amount: Decimal = Decimal("50000")
    medium_band: int = 3
    high_band: int = 6

    def base_for(self, bill_type: str) -> int:
        return {
            "party-and-party": self.party_and_party,
            "attorney-and-client": self.attorney_and_client,
            "own-client": self.own_client,
        }.get(bill_type, 0)

    def merged_with(self, data: dict | None) -> "RiskWeights":
        """Copy with the given weights replaced; unnamed weights are kept."""
        overrides = {}
        for name, value in (data or {}).items():
            if name not in self.__dataclass_fields__:
                continue
            key = f"risk_weights.{name}"
            if isinstance(getattr(self, name), Decimal):
                overrides[name] = _decimal_setting(value, key)
            else:
                overrides[name] = _int_setting(value, key)
        return replace(self, **overrides) if overrides else self

    @classmethod
    def from_dict(cls, data: dict | None) -> "RiskWeights":
        return cls().merged_with(data)


@dataclass(frozen=True)
class EngineConfig:
    """VAT and rounding settings for one firm / engagement."""

    vat_rate: Decimal = Decimal("0.15")
    time_rounding_minutes: int = 15
    is_vat_vendor: bool = True
    strict_compliance: bool = False
    risk_weights: RiskWeights = field(default_factory=RiskWeights)

    def __post_init__(self):
        if self.time_rounding_minutes not in ROUNDING_OPTIONS:
            raise InvalidContextError(
                f"time_rounding_minutes must be one of {ROUNDING_OPTIONS}, got: {self.time_rounding_minutes}",
                field="time_rounding_minutes",
            )
        if not self.vat_rate.is_finite() or not (0 <= self.vat_rate < 1):
            raise InvalidContextError(f"vat_rate must be between 0 and 1, got: {self.vat_rate}", field="vat_rate")

    @property
    def rounding_increment(self) -> Decimal:
        """Rounding increment in hours (6 min = 0.1h, 15 min = 0.25h)."""
        return Decimal(self.time_rounding_minutes) / Decimal(60)

    @classmethod
    def from_dict(cls, data: dict | None) -> "EngineConfig":
        return cls().merged_with(data)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build from TARIFF_* environment variables (deployment defaults)."""
        return cls(
            vat_rate=_decimal_setting(os.environ.get("TARIFF_VAT_RATE", "0.15"), "TARIFF_VAT_RATE"),
            time_rounding_minutes=_int_setting(
                os.environ.get("TARIFF_ROUNDING_MINUTES", "15"), "TARIFF_ROUNDING_MINUTES"
            ),
            is_vat_vendor=_env_flag("TARIFF_VAT_VENDOR", True),
            strict_compliance=_env_flag("TARIFF_STRICT_COMPLIANCE", False),
        )

    def merged_with(self, data: dict | None) -> "EngineConfig":
        """Return a copy with per-request overrides applied."""
        if not data:
            return self
        return EngineConfig(
            vat_rate=_decimal_setting(data["vat_rate"], "vat_rate") if "vat_rate" in data else self.vat_rate,
            time_rounding_minutes=(
                _int_setting(data["time_rounding_minutes"], "time_rounding_minutes")
                if "time_rounding_minutes" in data
                else self.time_rounding_minutes
            ),
            is_vat_vendor=data.get("is_vat_vendor", self.is_vat_vendor),
            strict_compliance=data.get("strict_compliance", self.strict_compliance),
            risk_weights=self.risk_weights.merged_with(data.get("risk_weights")),
        )
