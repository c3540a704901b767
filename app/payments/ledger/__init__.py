"""
Ledger - idempotent recording of payment outcomes.

Public API:
    PaymentLedger - Class with all Payment write operations
    PaymentData - Validated input for PaymentLedger.record
"""

from .services import PaymentLedger
from .types import PaymentData

__all__ = [
    "PaymentData",
    "PaymentLedger",
]
