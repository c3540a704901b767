"""
Tests for the Stripe webhook endpoint.

Signature verification is patched for most tests; one test signs the
payload with the configured secret to exercise the real check.
"""

import hashlib
import hmac
import json
import time
from unittest.mock import patch

import pytest
from django.conf import settings
from django.urls import reverse

from payments.exceptions import StripeInvalidRequestError
from payments.models import Payment, WebhookEvent
from payments.state_machines import PaymentStatus, WebhookEventStatus
from payments.tests.factories import WebhookEventFactory

VERIFY_PATH = "payments.webhooks.views.StripeAdapter.verify_webhook_signature"


@pytest.fixture
def webhook_url():
    return reverse("payments:stripe-webhook")


@pytest.fixture
def post_event(client, webhook_url):
    """
    POST an event with verification patched to return it.

    Usage:
        response = post_event({"id": "evt_1", "type": "charge.refunded", ...})
    """

    def _post(event_data, signature="t=1,v1=test"):
        headers = {"HTTP_STRIPE_SIGNATURE": signature} if signature else {}
        with patch(VERIFY_PATH, return_value=event_data):
            return client.post(
                webhook_url,
                data=json.dumps(event_data),
                content_type="application/json",
                **headers,
            )

    return _post


def _event(event_id, event_type, obj):
    return {"id": event_id, "type": event_type, "data": {"object": obj}}


@pytest.mark.django_db
class TestStripeWebhookView:
    def test_missing_signature(self, post_event):
        response = post_event(_event("evt_1", "charge.refunded", {}), signature="")

        assert response.status_code == 400
        assert response.json() == {"error": "Missing signature"}
        assert not WebhookEvent.objects.exists()

    def test_invalid_signature(self, client, webhook_url):
        with patch(VERIFY_PATH, side_effect=StripeInvalidRequestError("Invalid webhook signature")):
            response = client.post(
                webhook_url,
                data="{}",
                content_type="application/json",
                HTTP_STRIPE_SIGNATURE="t=1,v1=bad",
            )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid signature"}

    def test_event_without_type(self, post_event):
        response = post_event({"id": "evt_1"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid event"}

    def test_get_not_allowed(self, client, webhook_url):
        assert client.get(webhook_url).status_code == 405

    def test_applies_purchase(self, post_event, payment_intent_object):
        response = post_event(_event("evt_buy", "payment_intent.succeeded", payment_intent_object()))

        assert response.status_code == 200
        assert response.json() == {"received": True}
        event = WebhookEvent.objects.get(stripe_event_id="evt_buy")
        assert event.status == WebhookEventStatus.PROCESSED
        assert event.retry_count == 1
        assert event.processed_at is not None
        assert Payment.objects.filter(stripe_payment_intent_id="pi_webhook_1").exists()

    def test_redelivery_of_processed_event_is_skipped(self, post_event, payment_intent_object):
        data = _event("evt_buy", "payment_intent.succeeded", payment_intent_object())
        post_event(data)

        with patch("payments.webhooks.views.dispatch_webhook") as dispatch:
            response = post_event(data)

        assert response.status_code == 200
        dispatch.assert_not_called()
        assert WebhookEvent.objects.get(stripe_event_id="evt_buy").retry_count == 1

    def test_unusable_payload_is_acknowledged(self, post_event, payment_intent_object):
        obj = payment_intent_object(metadata={"lead_type": "mansion"})

        response = post_event(_event("evt_bad", "payment_intent.succeeded", obj))

        assert response.status_code == 200
        event = WebhookEvent.objects.get(stripe_event_id="evt_bad")
        assert event.status == WebhookEventStatus.FAILED
        assert "mansion" in event.error_message
        assert not Payment.objects.exists()

    def test_handler_exception_returns_500(self, post_event):
        with patch(
            "payments.webhooks.views.dispatch_webhook",
            side_effect=RuntimeError("database went away"),
        ):
            response = post_event(_event("evt_boom", "charge.refunded", {"id": "ch_1"}))

        assert response.status_code == 500
        assert response.json() == {"error": "Webhook processing failed"}
        event = WebhookEvent.objects.get(stripe_event_id="evt_boom")
        assert event.status == WebhookEventStatus.FAILED
        assert event.error_message == "RuntimeError: database went away"

    def test_failed_event_is_retried(self, post_event):
        WebhookEventFactory(
            stripe_event_id="evt_retry",
            event_type="charge.refunded",
            status=WebhookEventStatus.FAILED,
            retry_count=1,
            error_message="RuntimeError: database went away",
        )

        response = post_event(_event("evt_retry", "charge.refunded", {"id": "ch_1"}))

        assert response.status_code == 200
        event = WebhookEvent.objects.get(stripe_event_id="evt_retry")
        assert event.status == WebhookEventStatus.PROCESSED
        assert event.retry_count == 2
        assert event.error_message is None
        assert event.payload["data"]["object"] == {"id": "ch_1"}

    def test_redelivery_applies_freshly_verified_payload(self, post_event, completed_payment):
        WebhookEventFactory(
            stripe_event_id="evt_stale",
            event_type="charge.refunded",
            status=WebhookEventStatus.FAILED,
            payload={"id": "evt_stale", "type": "charge.refunded", "data": {"object": {}}},
        )

        response = post_event(
            _event("evt_stale", "charge.refunded", {"id": completed_payment.stripe_charge_id})
        )

        assert response.status_code == 200
        assert WebhookEvent.objects.get(stripe_event_id="evt_stale").is_processed
        completed_payment.refresh_from_db()
        assert completed_payment.status == PaymentStatus.REFUNDED

    def test_unhandled_event_type_is_processed(self, post_event):
        response = post_event(_event("evt_other", "customer.created", {"id": "cus_1"}))

        assert response.status_code == 200
        assert WebhookEvent.objects.get(stripe_event_id="evt_other").is_processed


@pytest.mark.django_db
class TestSignedWebhook:
    def _signature(self, payload: str) -> str:
        timestamp = int(time.time())
        signed = f"{timestamp}.{payload}".encode()
        digest = hmac.new(
            settings.STRIPE_WEBHOOK_SECRET.encode(), signed, hashlib.sha256
        ).hexdigest()
        return f"t={timestamp},v1={digest}"

    def _payload(self):
        return json.dumps(
            {
                "id": "evt_signed",
                "object": "event",
                "type": "customer.created",
                "data": {"object": {"id": "cus_1", "object": "customer"}},
            }
        )

    def test_valid_signature_is_accepted(self, client, webhook_url):
        payload = self._payload()

        response = client.post(
            webhook_url,
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=self._signature(payload),
        )

        assert response.status_code == 200
        assert WebhookEvent.objects.get(stripe_event_id="evt_signed").is_processed

    def test_tampered_payload_is_rejected(self, client, webhook_url):
        payload = self._payload()
        signature = self._signature(payload)

        response = client.post(
            webhook_url,
            data=payload.replace("cus_1", "cus_2"),
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=signature,
        )

        assert response.status_code == 400
        assert not WebhookEvent.objects.exists()
