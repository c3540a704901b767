"""
State machine enums for payment models.
"""

from leads.models import LeadType
from payments.state_machines.states import (
    OPEN_REFUND_STATES,
    PaymentRefundStatus,
    PaymentStatus,
    RefundReasonCategory,
    RefundRequestStatus,
    WebhookEventStatus,
)

__all__ = [
    "LeadType",
    "OPEN_REFUND_STATES",
    "PaymentRefundStatus",
    "PaymentStatus",
    "RefundReasonCategory",
    "RefundRequestStatus",
    "WebhookEventStatus",
]
