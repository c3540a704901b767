"""
Celery tasks for payment and refund notifications.

Tasks are enqueued by payments.notifications.RefundNotifier after the
surrounding transaction commits. Delivery failures are retried with
exponential backoff; they never affect the payment or refund state.

Usage:
    from payments.tasks import send_refund_approved_email

    send_refund_approved_email.delay(str(refund_request.id))
"""

from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings

from payments.emails import send_templated_email
from payments.models import Payment, RefundRequest

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_EMAIL_RETRIES = 3
REVIEW_WINDOW = "3-5 business days"
INFO_RESPONSE_DAYS = 7


def _display_name(user) -> str:
    profile = getattr(user, "profile", None)
    if profile and profile.full_name:
        return profile.full_name
    return user.email


def _payment_or_none(payment_id: str) -> Payment | None:
    payment = (
        Payment.objects.select_related("contractor", "contractor__profile", "system_lead")
        .filter(id=payment_id)
        .first()
    )
    if payment is None:
        logger.warning("Payment not found for email", extra={"payment_id": payment_id})
    return payment


def _refund_request_or_none(refund_request_id: str) -> RefundRequest | None:
    refund_request = (
        RefundRequest.objects.select_related("payment", "contractor", "contractor__profile")
        .filter(id=refund_request_id)
        .first()
    )
    if refund_request is None:
        logger.warning(
            "Refund request not found for email",
            extra={"refund_request_id": refund_request_id},
        )
    return refund_request


# =============================================================================
# Payment Emails
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_EMAIL_RETRIES},
)
def send_purchase_confirmation_email(self, payment_id: str) -> dict:
    """Email the buyer that the lead purchase went through."""
    payment = _payment_or_none(payment_id)
    if payment is None:
        return {"status": "skipped", "reason": "not_found"}

    if payment.system_lead_id:
        system_type = payment.system_lead.system_type or "Lead"
    else:
        system_type = "HES"

    send_templated_email(
        to=payment.contractor.email,
        subject=f"Lead Purchase Confirmation - {system_type}",
        template_name="purchase_confirmation",
        context={
            "name": _display_name(payment.contractor),
            "system_type": system_type,
            "amount": f"{payment.amount:.2f}",
            "transaction_id": payment.stripe_transaction_id or payment.stripe_payment_intent_id,
            "site_url": settings.SITE_URL,
        },
    )
    return {"status": "sent", "payment_id": payment_id}


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_EMAIL_RETRIES},
)
def send_payment_failed_email(self, payment_id: str) -> dict:
    """Email the buyer that the charge failed, with the processor's reason."""
    payment = _payment_or_none(payment_id)
    if payment is None:
        return {"status": "skipped", "reason": "not_found"}

    send_templated_email(
        to=payment.contractor.email,
        subject="Payment Failed",
        template_name="payment_failed",
        context={
            "name": _display_name(payment.contractor),
            "amount": f"{payment.amount:.2f}",
            "reason": payment.failure_reason or "Your payment could not be processed.",
            "site_url": settings.SITE_URL,
        },
    )
    return {"status": "sent", "payment_id": payment_id}


# =============================================================================
# Refund Emails
# =============================================================================


def _refund_context(refund_request: RefundRequest) -> dict:
    return {
        "name": _display_name(refund_request.contractor),
        "reference": str(refund_request.id)[:8],
        "amount": f"{refund_request.payment.amount:.2f}",
        "review_window": REVIEW_WINDOW,
        "site_url": settings.SITE_URL,
    }


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_EMAIL_RETRIES},
)
def send_refund_request_submitted_email(self, refund_request_id: str) -> dict:
    refund_request = _refund_request_or_none(refund_request_id)
    if refund_request is None:
        return {"status": "skipped", "reason": "not_found"}

    send_templated_email(
        to=refund_request.contractor.email,
        subject="Refund Request Submitted",
        template_name="refund_request_submitted",
        context=_refund_context(refund_request),
    )
    return {"status": "sent", "refund_request_id": refund_request_id}


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_EMAIL_RETRIES},
)
def send_refund_approved_email(self, refund_request_id: str) -> dict:
    refund_request = _refund_request_or_none(refund_request_id)
    if refund_request is None:
        return {"status": "skipped", "reason": "not_found"}

    context = _refund_context(refund_request)
    if refund_request.payment.refund_amount is not None:
        context["amount"] = f"{refund_request.payment.refund_amount:.2f}"

    send_templated_email(
        to=refund_request.contractor.email,
        subject="Refund Approved",
        template_name="refund_approved",
        context=context,
    )
    return {"status": "sent", "refund_request_id": refund_request_id}


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_EMAIL_RETRIES},
)
def send_refund_denied_email(self, refund_request_id: str) -> dict:
    refund_request = _refund_request_or_none(refund_request_id)
    if refund_request is None:
        return {"status": "skipped", "reason": "not_found"}

    send_templated_email(
        to=refund_request.contractor.email,
        subject="Refund Request Denied",
        template_name="refund_denied",
        context={
            **_refund_context(refund_request),
            "reason": refund_request.admin_notes,
        },
    )
    return {"status": "sent", "refund_request_id": refund_request_id}


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_EMAIL_RETRIES},
)
def send_refund_info_requested_email(self, refund_request_id: str) -> dict:
    refund_request = _refund_request_or_none(refund_request_id)
    if refund_request is None:
        return {"status": "skipped", "reason": "not_found"}

    send_templated_email(
        to=refund_request.contractor.email,
        subject="More Information Needed for Refund Request",
        template_name="refund_info_requested",
        context={
            **_refund_context(refund_request),
            "question": refund_request.info_requested,
            "response_days": INFO_RESPONSE_DAYS,
        },
    )
    return {"status": "sent", "refund_request_id": refund_request_id}
