"""
Payment-specific exceptions.

Exception Hierarchy:
    ExternalServiceError (core, 502)
    └── StripeError - Base for all Stripe errors
        ├── StripeCardDeclinedError - Card declined (permanent)
        ├── StripeInvalidRequestError - Invalid request params (permanent)
        ├── StripeRateLimitError - Rate limited (transient)
        └── StripeAPIUnavailableError - API unavailable (transient)
    NotFoundError (core, 404)
    └── PaymentNotFoundError - Payment lookup failures
    ConflictError (core, 409)
    └── InvalidStateTransitionError - FSM transition not allowed or lost race

Refund approval surfaces every StripeError to the admin (no automatic
retry); is_retryable only tells the admin whether retrying later can help.

Usage:
    from payments.exceptions import InvalidStateTransitionError

    raise InvalidStateTransitionError(
        "Cannot approve a refund with status 'denied'",
        details={"current_status": "denied", "action": "approve"},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import ConflictError, ExternalServiceError, NotFoundError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentNotFoundError(NotFoundError):
    """Raised when a payment or refund request cannot be found."""

    default_error_code: str = "PAYMENT_NOT_FOUND"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a refund request cannot move to the requested state.

    Covers both a transition that the state machine forbids (acting on a
    terminal request) and a concurrent reviewer changing the status
    between our read and our conditional write.
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(ExternalServiceError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Card decline code (if applicable)
        is_retryable: Whether the same call may succeed later
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """Card was declined by the issuing bank."""

    default_error_code: str = "CARD_DECLINED"
    is_retryable: bool = False


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Possible causes for refunds:
    - PaymentIntent already fully refunded
    - Charge disputed
    - Unknown PaymentIntent id (test/live key mismatch)

    Also raised for webhook signature verification failures.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """Stripe API unreachable, timed out, or returned a server error."""

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True
