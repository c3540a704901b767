"""
Payment adapters for external services.

All Stripe calls should go through StripeAdapter to ensure consistent
error handling, timeouts, idempotency, and observability.
"""

from payments.adapters.stripe_adapter import (
    IdempotencyKeyGenerator,
    RefundResult,
    StripeAdapter,
)

__all__ = [
    "IdempotencyKeyGenerator",
    "RefundResult",
    "StripeAdapter",
]
