"""
Stripe API adapter for refunds and webhook verification.

Every Stripe call made by the payments app goes through StripeAdapter.
SDK exceptions never leave this module: they are translated into the
payments.exceptions.StripeError family so services and views only deal
with domain errors.

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)

Usage:
    from payments.adapters import IdempotencyKeyGenerator, StripeAdapter

    result = StripeAdapter.create_refund(
        payment_intent_id=payment.stripe_payment_intent_id,
        idempotency_key=IdempotencyKeyGenerator.generate("refund", refund_request.id),
    )

    event = StripeAdapter.verify_webhook_signature(request.body, signature)
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeError,
    StripeInvalidRequestError,
    StripeRateLimitError,
)

logger = logging.getLogger(__name__)


@dataclass
class RefundResult:
    """
    A refund as Stripe reported it.

    Attributes:
        id: Refund ID (re_xxx)
        amount_cents: Refunded amount in cents
        currency: Three-letter currency code
        status: succeeded, pending or failed
        payment_intent_id: PaymentIntent the refund was issued against
        raw_response: Full Stripe response dict
    """

    id: str
    amount_cents: int
    currency: str
    status: str
    payment_intent_id: str
    raw_response: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_stripe(cls, refund: Any) -> RefundResult:
        return cls(
            id=refund.id,
            amount_cents=refund.amount,
            currency=refund.currency,
            status=refund.status,
            payment_intent_id=refund.payment_intent,
            raw_response=refund.to_dict(),
        )


class IdempotencyKeyGenerator:
    """
    Build Stripe idempotency keys of the form
    "{operation}:{entity_id}:{attempt}:{hash}".

    The same refund request always yields the same key, so approving it a
    second time replays the original Stripe refund.
    """

    @staticmethod
    def generate(operation: str, entity_id: uuid.UUID | str, attempt: int = 1) -> str:
        base = f"{operation}:{entity_id}:{attempt}"
        digest = hashlib.sha256(f"{base}:{settings.SECRET_KEY}".encode()).hexdigest()
        return f"{base}:{digest[:8]}"


class StripeAdapter:
    """
    Stateless wrapper around the Stripe SDK.

    All methods are classmethods. The API key and HTTP timeout are read
    from settings on every call so override_settings works in tests.
    """

    @staticmethod
    def _configure_stripe() -> None:
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.default_http_client = stripe.RequestsClient(
            timeout=getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        )

    # =========================================================================
    # Refunds
    # =========================================================================

    @classmethod
    def create_refund(
        cls,
        payment_intent_id: str,
        idempotency_key: str,
        amount_cents: int | None = None,
        reason: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> RefundResult:
        """
        Refund a PaymentIntent, fully unless amount_cents is given.

        Args:
            payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
            idempotency_key: Key from IdempotencyKeyGenerator
            amount_cents: Partial refund amount (None for full refund)
            reason: duplicate, fraudulent or requested_by_customer
            metadata: Stored on the Stripe refund object

        Raises:
            StripeError subclass on any Stripe failure
        """
        cls._configure_stripe()

        params: dict[str, Any] = {
            "payment_intent": payment_intent_id,
            "metadata": metadata or {},
        }
        if amount_cents is not None:
            params["amount"] = amount_cents
        if reason:
            params["reason"] = reason

        log_context = {
            "payment_intent_id": payment_intent_id,
            "amount_cents": amount_cents,
            "idempotency_key": idempotency_key,
        }
        started = time.monotonic()

        try:
            refund = stripe.Refund.create(idempotency_key=idempotency_key, **params)
        except Exception as e:
            error = cls._translate_error(e)
            cls._log_failure(error, {**log_context, "duration_ms": _elapsed_ms(started)})
            raise error from e

        logger.info(
            "Stripe refund created",
            extra={
                **log_context,
                "refund_id": refund.id,
                "status": refund.status,
                "duration_ms": _elapsed_ms(started),
            },
        )
        return RefundResult.from_stripe(refund)

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(cls, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Check the Stripe-Signature header and return the parsed event.

        Raises:
            StripeInvalidRequestError: Bad signature or unparseable body
        """
        try:
            event = stripe.Webhook.construct_event(
                payload, signature, settings.STRIPE_WEBHOOK_SECRET
            )
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            ) from e

        return event.to_dict()

    # =========================================================================
    # Error Translation
    # =========================================================================

    @staticmethod
    def _translate_error(error: Exception) -> StripeError:
        """Map a Stripe SDK exception onto the payments StripeError family."""
        if isinstance(error, stripe.CardError):
            return StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=getattr(error, "decline_code", None),
            )
        if isinstance(error, stripe.InvalidRequestError):
            return StripeInvalidRequestError(
                str(error.user_message or error),
                stripe_code=error.code,
            )
        if isinstance(error, stripe.AuthenticationError):
            return StripeInvalidRequestError(
                "Stripe rejected the configured API key",
                stripe_code="authentication_error",
            )
        if isinstance(error, stripe.RateLimitError):
            return StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            )
        if isinstance(error, stripe.APIConnectionError):
            return StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            )
        if isinstance(error, stripe.APIError):
            return StripeAPIUnavailableError(
                "Stripe returned a server error. Please retry.",
                stripe_code="api_error",
            )
        return StripeAPIUnavailableError(
            f"Unexpected Stripe error: {error}",
            stripe_code="unknown_error",
        )

    @staticmethod
    def _log_failure(error: StripeError, log_context: dict[str, Any]) -> None:
        extra = {
            **log_context,
            "error_code": error.error_code,
            "stripe_code": error.stripe_code,
            "decline_code": error.decline_code,
        }
        if error.stripe_code == "authentication_error":
            logger.critical("Stripe authentication failed", extra=extra)
        elif error.is_retryable:
            logger.warning("Stripe refund failed, retryable", extra=extra, exc_info=True)
        else:
            logger.error("Stripe refund rejected", extra=extra)


def _elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000
