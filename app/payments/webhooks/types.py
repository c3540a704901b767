"""
Typed views of the Stripe objects carried by webhook events.

Handlers never index into raw payload dicts; they parse the event object
into one of these records and check what is missing.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

REQUIRED_METADATA = ("user_id", "lead_id", "lead_type")


def _object_id(value: Any) -> str | None:
    """Stripe expands some references into objects; accept either form."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None


def _cents_to_amount(value: Any) -> Decimal:
    try:
        return Decimal(int(value or 0)) / Decimal(100)
    except (TypeError, ValueError, InvalidOperation):
        return Decimal("0")


@dataclass
class PaymentIntentEvent:
    """
    Fields of a PaymentIntent used for lead purchases.

    Metadata set at checkout: user_id, lead_id, lead_type.
    """

    payment_intent_id: str | None
    amount: Decimal
    currency: str
    user_id: int | None
    lead_id: str | None
    lead_type: str | None
    charge_id: str | None
    failure_reason: str | None

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> PaymentIntentEvent:
        metadata = obj.get("metadata") or {}
        try:
            user_id = int(metadata.get("user_id"))
        except (TypeError, ValueError):
            user_id = None

        last_error = obj.get("last_payment_error") or {}

        return cls(
            payment_intent_id=obj.get("id"),
            amount=_cents_to_amount(obj.get("amount")),
            currency=(obj.get("currency") or "usd").lower(),
            user_id=user_id,
            lead_id=metadata.get("lead_id") or None,
            lead_type=metadata.get("lead_type") or None,
            charge_id=_object_id(obj.get("latest_charge")),
            failure_reason=last_error.get("message") if isinstance(last_error, dict) else None,
        )

    def missing_metadata(self) -> list[str]:
        values = {"user_id": self.user_id, "lead_id": self.lead_id, "lead_type": self.lead_type}
        return [key for key in REQUIRED_METADATA if not values[key]]


@dataclass
class ChargeRefundedEvent:
    charge_id: str | None
    payment_intent_id: str | None
    amount_refunded: Decimal

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> ChargeRefundedEvent:
        return cls(
            charge_id=obj.get("id"),
            payment_intent_id=_object_id(obj.get("payment_intent")),
            amount_refunded=_cents_to_amount(obj.get("amount_refunded")),
        )
