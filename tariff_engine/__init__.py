"""
SA Legal Tariff Engine

Versioned court tariffs, line calculation, billing-scope compliance and
blackout-aware taxation deadlines for South African bills of costs.
"""

from .config import EngineConfig, RiskWeights
from .models import BillContext, BillInput, BillLineItem, BillResult
from .processor import BillProcessor
from .repository import TariffRepository

__all__ = [
    "BillProcessor",
    "BillInput",
    "BillContext",
    "BillLineItem",
    "BillResult",
    "EngineConfig",
    "RiskWeights",
    "TariffRepository",
]
