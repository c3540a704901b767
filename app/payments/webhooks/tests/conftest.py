"""
Pytest fixtures for webhook tests.

Provides builders for Stripe event payloads and WebhookEvent rows.
"""

import pytest

from leads.tests.factories import SystemLeadFactory
from payments.models import WebhookEvent
from payments.state_machines import LeadType


@pytest.fixture
def available_lead(db):
    return SystemLeadFactory(price="49.00")


@pytest.fixture
def payment_intent_object(contractor, available_lead):
    """
    Build a PaymentIntent payload for a lead purchase.

    Usage:
        obj = payment_intent_object(id="pi_1", amount=4900)
        obj = payment_intent_object(metadata={"lead_type": "bogus"})
    """

    def _create(**overrides):
        metadata = {
            "user_id": str(contractor.id),
            "lead_id": str(available_lead.id),
            "lead_type": LeadType.SYSTEM_LEAD,
        }
        metadata.update(overrides.pop("metadata", {}))
        obj = {
            "id": "pi_webhook_1",
            "object": "payment_intent",
            "amount": 4900,
            "currency": "usd",
            "latest_charge": "ch_webhook_1",
            "metadata": metadata,
        }
        obj.update(overrides)
        return obj

    return _create


@pytest.fixture
def make_webhook_event(db):
    """
    Create a stored WebhookEvent around a Stripe object.

    Usage:
        event = make_webhook_event("payment_intent.succeeded", obj)
    """
    counter = {"n": 0}

    def _create(event_type, obj):
        counter["n"] += 1
        event_id = f"evt_handler_{counter['n']}"
        return WebhookEvent.objects.create(
            stripe_event_id=event_id,
            event_type=event_type,
            payload={"id": event_id, "type": event_type, "data": {"object": obj}},
        )

    return _create
