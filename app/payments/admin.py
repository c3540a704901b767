"""
Payment admin configuration.

Registers the payment ledger, refund requests, webhook events, and the
audit log with the Django admin. State changes (refund decisions, ledger
writes) go through the service layer, so most fields are read-only here.
"""

from django.contrib import admin

from payments.models import AuditLog, Payment, RefundRequest, WebhookEvent


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payment.

    Rows are written only by webhook reconciliation and refunds.
    """

    list_display = [
        "id",
        "contractor",
        "lead_type",
        "amount",
        "status",
        "refund_status",
        "created_at",
    ]
    list_filter = ["status", "refund_status", "lead_type", "created_at"]
    search_fields = [
        "id",
        "stripe_payment_intent_id",
        "stripe_charge_id",
        "contractor__email",
    ]
    raw_id_fields = ["contractor", "system_lead", "hes_request"]
    readonly_fields = [
        "id",
        "stripe_payment_intent_id",
        "stripe_charge_id",
        "stripe_transaction_id",
        "refund_stripe_id",
        "refund_amount",
        "refund_date",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "contractor", "lead_type", "system_lead", "hes_request"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount", "currency", "status", "failure_reason"),
            },
        ),
        (
            "Stripe",
            {
                "fields": (
                    "stripe_payment_intent_id",
                    "stripe_charge_id",
                    "stripe_transaction_id",
                ),
            },
        ),
        (
            "Refund",
            {
                "fields": ("refund_status", "refund_amount", "refund_stripe_id", "refund_date"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )


@admin.register(RefundRequest)
class RefundRequestAdmin(admin.ModelAdmin):
    """
    Admin configuration for RefundRequest.

    Review decisions must be made through the refund API so the Stripe
    refund and audit entry happen; status is read-only here.
    """

    list_display = [
        "id",
        "contractor",
        "reason_category",
        "status",
        "risk_score",
        "requested_date",
        "reviewed_by",
    ]
    list_filter = ["status", "reason_category", "lead_type", "requested_date"]
    search_fields = ["id", "contractor__email", "payment__stripe_payment_intent_id"]
    raw_id_fields = ["payment", "contractor", "reviewed_by"]
    readonly_fields = [
        "id",
        "status",
        "risk_score",
        "requested_date",
        "reviewed_by",
        "reviewed_date",
        "refund_date",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "requested_date"
    ordering = ["-requested_date"]


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Useful for checking which Stripe deliveries failed and why.
    """

    list_display = ["stripe_event_id", "event_type", "status", "retry_count", "created_at"]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "stripe_event_id",
        "event_type",
        "payload",
        "processed_at",
        "error_message",
        "retry_count",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """
    Read-only view of the audit trail.
    """

    list_display = ["created_at", "actor", "actor_role", "action", "resource_type", "resource_id"]
    list_filter = ["action", "resource_type", "actor_role"]
    search_fields = ["resource_id", "actor__email"]
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
