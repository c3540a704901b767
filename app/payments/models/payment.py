"""
Payment model: one row per Stripe PaymentIntent outcome.

A Payment records what a contractor or affiliate paid for exactly one
lead. Rows are written by the payment webhook and only their status and
refund fields change afterwards.

Usage:
    from payments.ledger import PaymentLedger

    payment, created = PaymentLedger.record(PaymentData(...))
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import LeadType, PaymentRefundStatus, PaymentStatus


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    A recorded lead purchase.

    Fields:
        contractor: Payer (contractor or affiliate)
        system_lead / hes_request: The purchased lead (exactly one is set)
        lead_type: Which of the two lead references is set
        amount: Amount in currency units (Stripe amount / 100)
        status: COMPLETED, FAILED or REFUNDED
        refund_status: Mirror of the refund request lifecycle
        stripe_payment_intent_id: Idempotency key (unique)
        stripe_charge_id: Charge used to match charge.refunded events

    Note:
        The unique constraint on stripe_payment_intent_id makes
        "one Payment per PaymentIntent" a storage-level guarantee.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    contractor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="User who paid",
    )

    lead_type = models.CharField(
        max_length=20,
        choices=LeadType.choices,
        help_text="Kind of lead purchased",
    )

    system_lead = models.ForeignKey(
        "leads.SystemLead",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
    )

    hes_request = models.ForeignKey(
        "leads.HESRequest",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
    )

    # ==========================================================================
    # Amount & Status
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Amount paid in currency units",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        db_index=True,
        help_text="Outcome of the PaymentIntent",
    )

    failure_reason = models.TextField(
        null=True,
        blank=True,
        help_text="Stripe last_payment_error message for failed payments",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    stripe_transaction_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe transaction reference shown on receipts",
    )

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe PaymentIntent ID (pi_xxx) - unique for idempotency",
    )

    stripe_charge_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Stripe Charge ID (ch_xxx)",
    )

    # ==========================================================================
    # Refund
    # ==========================================================================

    refund_status = models.CharField(
        max_length=20,
        choices=PaymentRefundStatus.choices,
        default=PaymentRefundStatus.NONE,
        db_index=True,
        help_text="Progress of any refund on this payment",
    )

    refund_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )

    refund_stripe_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe Refund ID (re_xxx)",
    )

    refund_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payment was refunded",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(fields=["contractor", "status"], name="payments_pa_contrac_status_idx"),
            models.Index(fields=["contractor", "system_lead", "status"], name="payments_pa_contrac_sl_idx"),
            models.Index(fields=["contractor", "hes_request", "status"], name="payments_pa_contrac_hes_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(system_lead__isnull=False, hes_request__isnull=True)
                    | models.Q(system_lead__isnull=True, hes_request__isnull=False)
                ),
                name="payment_exactly_one_lead",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="payment_amount_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment({self.id}, {self.status}, {self.amount} {self.currency.upper()})"

    @property
    def lead_id(self):
        return self.system_lead_id or self.hes_request_id

    @property
    def amount_cents(self) -> int:
        return int((self.amount * Decimal(100)).to_integral_value())
