"""
Calculators Package

Provides all calculation components for bill processing.
"""

from .aggregate import Bill, BillAggregator
from .deadlines import DeadlineCalculator
from .line import LineCalculator
from .review import BillReviewer
from .scope import BillingScopeValidator

__all__ = [
    "LineCalculator",
    "BillingScopeValidator",
    "DeadlineCalculator",
    "BillAggregator",
    "BillReviewer",
    "Bill",
]
