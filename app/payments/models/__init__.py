"""
Payment domain models.

- Payment: A recorded lead purchase, one per PaymentIntent
- RefundRequest: Contractor claim against a completed payment
- WebhookEvent: Idempotency record for inbound provider events
- AuditLog: Append-only trail of refund actions
"""

from payments.models.audit_log import AuditAction, AuditLog
from payments.models.payment import Payment
from payments.models.refund_request import RefundRequest
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "AuditAction",
    "AuditLog",
    "Payment",
    "RefundRequest",
    "WebhookEvent",
]
