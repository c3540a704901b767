"""
Data types for ledger operations.

Types:
    PaymentData: Validated input for recording a payment outcome

Usage:
    from payments.ledger.types import PaymentData

    data = PaymentData(
        contractor_id=user.id,
        lead_type=LeadType.SYSTEM_LEAD,
        lead_id=lead.id,
        amount=Decimal("49.00"),
        status=PaymentStatus.COMPLETED,
        stripe_payment_intent_id="pi_123",
    )
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal

from leads.models import LeadType
from payments.state_machines import PaymentStatus


@dataclass
class PaymentData:
    """
    A payment outcome as reported by the payment processor.

    Attributes:
        contractor_id: Paying user
        lead_type: LeadType value
        lead_id: SystemLead or HESRequest id
        amount: Amount in currency units
        status: COMPLETED or FAILED
        stripe_payment_intent_id: Idempotency key
        stripe_charge_id: Charge id (None until a charge exists)
        stripe_transaction_id: Receipt reference
        currency: ISO 4217 code
        failure_reason: Processor message for failed payments
    """

    contractor_id: int
    lead_type: str
    lead_id: uuid.UUID | str
    amount: Decimal
    status: str
    stripe_payment_intent_id: str
    stripe_charge_id: str | None = None
    stripe_transaction_id: str | None = None
    currency: str = "usd"
    failure_reason: str | None = None

    def __post_init__(self) -> None:
        if not self.stripe_payment_intent_id:
            raise ValueError("stripe_payment_intent_id is required")
        if self.lead_type not in LeadType.values:
            raise ValueError(f"Unknown lead type: {self.lead_type}")
        if self.status not in (PaymentStatus.COMPLETED, PaymentStatus.FAILED):
            raise ValueError("status must be completed or failed")
        self.amount = Decimal(self.amount)
        if self.amount < 0:
            raise ValueError("amount must not be negative")

    @property
    def lead_fields(self) -> dict:
        """Payment FK kwargs for the referenced lead."""
        if self.lead_type == LeadType.SYSTEM_LEAD:
            return {"system_lead_id": self.lead_id, "hes_request_id": None}
        return {"system_lead_id": None, "hes_request_id": self.lead_id}
