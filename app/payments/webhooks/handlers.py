"""
Webhook event handlers for Stripe events.

This module provides a handler registry and implementations for the
payment events that drive lead purchases.

Handlers return ServiceResult:
- success: event applied, or a benign no-op (duplicate, zero rows)
- failure: payload can never be applied (missing metadata, unknown
  user or lead); the view acknowledges it so Stripe stops retrying
Unexpected exceptions propagate so the view answers 500 and Stripe
re-delivers.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from core.services import ServiceResult
from leads.services import LeadAllocationService
from payments.ledger import PaymentData, PaymentLedger
from payments.models import WebhookEvent
from payments.notifications import RefundNotifier
from payments.state_machines import LeadType, PaymentStatus
from payments.webhooks.types import ChargeRefundedEvent, PaymentIntentEvent

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The Stripe event type (e.g., "payment_intent.succeeded")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to its handler.

    Unknown event types are acknowledged and ignored.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            "No handler registered for event type",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "event_type": webhook_event.event_type,
            },
        )
        return ServiceResult.success({"ignored": True})

    logger.info(
        "Dispatching webhook to handler",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "event_type": webhook_event.event_type,
        },
    )
    return handler(webhook_event)


# =============================================================================
# Validation Helpers
# =============================================================================


def _validate_purchase(event: PaymentIntentEvent, stripe_event_id: str) -> ServiceResult | None:
    """Return a failure result if the PaymentIntent cannot be applied, else None."""
    log_context = {
        "stripe_event_id": stripe_event_id,
        "payment_intent_id": event.payment_intent_id,
    }

    if not event.payment_intent_id:
        logger.error("Webhook payload has no PaymentIntent id", extra=log_context)
        return ServiceResult.failure(
            "Could not extract payment_intent_id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    missing = event.missing_metadata()
    if missing:
        logger.error(
            "PaymentIntent metadata incomplete",
            extra={**log_context, "missing": missing},
        )
        return ServiceResult.failure(
            f"PaymentIntent metadata missing: {', '.join(missing)}",
            error_code="MISSING_METADATA",
        )

    if event.lead_type not in LeadType.values:
        logger.error(
            "Unknown lead type in metadata",
            extra={**log_context, "lead_type": event.lead_type},
        )
        return ServiceResult.failure(
            f"Unknown lead type: {event.lead_type}",
            error_code="INVALID_LEAD_TYPE",
        )

    if not get_user_model().objects.filter(pk=event.user_id).exists():
        logger.error("Buyer not found", extra={**log_context, "user_id": event.user_id})
        return ServiceResult.failure(
            f"User not found: {event.user_id}",
            error_code="USER_NOT_FOUND",
        )

    try:
        lead_found = LeadAllocationService.lead_exists(event.lead_type, event.lead_id)
    except (DjangoValidationError, ValueError):
        # Malformed UUID in metadata
        lead_found = False
    if not lead_found:
        logger.error("Lead not found", extra={**log_context, "lead_id": event.lead_id})
        return ServiceResult.failure(
            f"Lead not found: {event.lead_id}",
            error_code="LEAD_NOT_FOUND",
        )

    return None


def _payment_data(event: PaymentIntentEvent, status: str) -> PaymentData:
    return PaymentData(
        contractor_id=event.user_id,
        lead_type=event.lead_type,
        lead_id=event.lead_id,
        amount=event.amount,
        status=status,
        stripe_payment_intent_id=event.payment_intent_id,
        stripe_charge_id=event.charge_id,
        stripe_transaction_id=event.charge_id or event.payment_intent_id,
        currency=event.currency,
        failure_reason=event.failure_reason if status == PaymentStatus.FAILED else None,
    )


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Record the purchase and hand the lead to the buyer.

    - A completed (or refunded) Payment for the PaymentIntent means the
      event was already applied: no-op
    - A failed Payment for the PaymentIntent is upgraded to completed
    - Otherwise a completed Payment is inserted
    Then the lead is claimed with one conditional UPDATE; only the winner
    gets a ContractorLeadStatus row and a confirmation email.
    """
    event = PaymentIntentEvent.from_object(webhook_event.get_object())
    invalid = _validate_purchase(event, webhook_event.stripe_event_id)
    if invalid is not None:
        return invalid

    log_context = {
        "stripe_event_id": webhook_event.stripe_event_id,
        "payment_intent_id": event.payment_intent_id,
        "lead_id": event.lead_id,
        "user_id": event.user_id,
    }
    data = _payment_data(event, PaymentStatus.COMPLETED)

    with transaction.atomic():
        existing = PaymentLedger.get_by_payment_intent(event.payment_intent_id)

        if existing is not None and existing.status != PaymentStatus.FAILED:
            logger.info("Payment already recorded, skipping", extra=log_context)
            return ServiceResult.success({"duplicate": True})

        if existing is not None:
            if not PaymentLedger.upgrade_to_completed(data):
                logger.info("Failed payment upgraded concurrently, skipping", extra=log_context)
                return ServiceResult.success({"duplicate": True})
            existing.refresh_from_db()
            payment = existing
        else:
            payment, created = PaymentLedger.record(data)
            if not created:
                return ServiceResult.success({"duplicate": True})

        claimed = LeadAllocationService.claim_lead(
            lead_type=event.lead_type,
            lead_id=event.lead_id,
            buyer_id=event.user_id,
        )
        if claimed:
            RefundNotifier.purchase_confirmed(payment)
        else:
            logger.warning(
                "Paid lead was already claimed by another buyer",
                extra={**log_context, "payment_id": str(payment.id)},
            )

    return ServiceResult.success({"payment_id": str(payment.id), "lead_claimed": claimed})


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """Record a FAILED Payment (idempotent) and tell the buyer why."""
    event = PaymentIntentEvent.from_object(webhook_event.get_object())
    invalid = _validate_purchase(event, webhook_event.stripe_event_id)
    if invalid is not None:
        return invalid

    with transaction.atomic():
        payment, created = PaymentLedger.record(_payment_data(event, PaymentStatus.FAILED))
        if created:
            RefundNotifier.payment_failed(payment)

    logger.info(
        "Payment failure processed",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "payment_intent_id": event.payment_intent_id,
            "created": created,
        },
    )
    return ServiceResult.success({"payment_id": str(payment.id), "duplicate": not created})


# =============================================================================
# Charge Handlers
# =============================================================================


@register_handler("charge.refunded")
def handle_charge_refunded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Mark the payment for the refunded charge as REFUNDED.

    Zero matching rows (unknown charge, already refunded, or the purchase
    event not yet received) is a success.
    """
    event = ChargeRefundedEvent.from_object(webhook_event.get_object())

    if not event.charge_id:
        logger.error(
            "charge.refunded payload has no charge id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.failure(
            "Could not extract charge id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    updated = PaymentLedger.mark_charge_refunded(event.charge_id, event.amount_refunded)
    logger.info(
        "Charge refund reconciled",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "charge_id": event.charge_id,
            "payment_intent_id": event.payment_intent_id,
            "amount_refunded": str(event.amount_refunded),
            "rows_updated": updated,
        },
    )
    return ServiceResult.success({"rows_updated": updated})
