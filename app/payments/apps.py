"""
Payments app configuration.

This app provides the lead purchase payment ledger, Stripe webhook
reconciliation, and the refund request workflow.
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
