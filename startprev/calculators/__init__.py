"""
Calculators Package

Provides all calculation components for an allocation run.
"""

from .allocation import AllocationEngine
from .fee_account import FeeAccountCalculator
from .ledger import LedgerAssembler
from .normalizer import PaymentCalendar, ReleaseNormalizer

__all__ = [
    "ReleaseNormalizer",
    "PaymentCalendar",
    "FeeAccountCalculator",
    "AllocationEngine",
    "LedgerAssembler",
]
