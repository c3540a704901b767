"""
Payments app for lead purchases and refunds.

This app handles:
- Payment ledger for Stripe PaymentIntents (one row per PaymentIntent)
- Stripe webhook verification and reconciliation
- Refund request lifecycle (request, review, Stripe refund)
- Append-only audit trail of refund decisions
- Email notifications via Celery

Related apps:
    - authentication: User roles and AuthContext
    - leads: Lead ownership transfer on successful payment

Usage:
    from payments.services import RefundService

    refund_request = RefundService.approve_refund(auth, refund_request_id)
"""
