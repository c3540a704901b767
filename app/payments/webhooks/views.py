"""
Webhook endpoint view for Stripe.

The view:
1. Verifies the webhook signature
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Runs the event handler synchronously
4. Answers 200 unless applying the event raised, in which case it
   answers 500 so Stripe re-delivers

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/payments/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import StripeAdapter
from payments.exceptions import StripeInvalidRequestError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.webhooks.handlers import dispatch_webhook

logger = logging.getLogger(__name__)

UPDATE_FIELDS = ["status", "retry_count", "processed_at", "error_message", "updated_at"]


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive and apply a Stripe webhook event.

    Returns:
        JsonResponse with status:
        - 200 {"received": true}: applied, duplicate, ignored, or unusable payload
        - 400: missing/invalid signature or malformed event
        - 500: applying the event failed; Stripe will retry

    Example Stripe-Signature header:
        t=1614556800,v1=xxx,v0=yyy
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning("Webhook received without Stripe-Signature header")
        return JsonResponse({"error": "Missing signature"}, status=400)

    # Step 1: Verify signature
    try:
        event_data = StripeAdapter.verify_webhook_signature(payload, signature)
    except StripeInvalidRequestError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": str(e)},
        )
        return JsonResponse({"error": "Invalid signature"}, status=400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields")
        return JsonResponse({"error": "Invalid event"}, status=400)

    log_context = {"stripe_event_id": stripe_event_id, "event_type": event_type}
    logger.info("Received Stripe webhook", extra=log_context)

    # Step 2: Create/get WebhookEvent (idempotent)
    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created:
        if webhook_event.is_processed:
            logger.info("Webhook already processed, returning success", extra=log_context)
            return JsonResponse({"received": True})
        # Redelivery of an unprocessed event: apply the payload just verified
        webhook_event.payload = event_data
        webhook_event.event_type = event_type

    # Step 3: Apply
    webhook_event.mark_processing()
    webhook_event.save(update_fields=[*UPDATE_FIELDS, "payload", "event_type"])

    try:
        result = dispatch_webhook(webhook_event)
    except Exception as e:
        logger.exception("Webhook processing failed", extra=log_context)
        webhook_event.mark_failed(f"{type(e).__name__}: {e}")
        webhook_event.save(update_fields=UPDATE_FIELDS)
        return JsonResponse({"error": "Webhook processing failed"}, status=500)

    if result:
        webhook_event.mark_processed()
    else:
        logger.warning(
            "Webhook payload could not be applied",
            extra={**log_context, "error_code": result.error_code, "error": result.error},
        )
        webhook_event.mark_failed(result.error or "Unknown error")
    webhook_event.save(update_fields=UPDATE_FIELDS)

    return JsonResponse({"received": True})
