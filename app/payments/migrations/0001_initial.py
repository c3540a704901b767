import uuid

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.conf import settings
from django.db import migrations, models


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
        (
            "id",
            models.UUIDField(
                default=uuid.uuid4,
                editable=False,
                help_text="Unique identifier for this record",
                primary_key=True,
                serialize=False,
            ),
        ),
    ]


LEAD_TYPE_CHOICES = [("system_lead", "System Lead"), ("hes_request", "HES Request")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("leads", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=_timestamps()
            + [
                (
                    "lead_type",
                    models.CharField(
                        choices=LEAD_TYPE_CHOICES,
                        help_text="Kind of lead purchased",
                        max_length=20,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Amount paid in currency units",
                        max_digits=10,
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="usd",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        help_text="Outcome of the PaymentIntent",
                        max_length=20,
                    ),
                ),
                (
                    "failure_reason",
                    models.TextField(
                        blank=True,
                        help_text="Stripe last_payment_error message for failed payments",
                        null=True,
                    ),
                ),
                (
                    "stripe_transaction_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe transaction reference shown on receipts",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "stripe_payment_intent_id",
                    models.CharField(
                        help_text="Stripe PaymentIntent ID (pi_xxx) - unique for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "stripe_charge_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Stripe Charge ID (ch_xxx)",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "refund_status",
                    models.CharField(
                        choices=[
                            ("none", "None"),
                            ("requested", "Requested"),
                            ("approved", "Approved"),
                            ("denied", "Denied"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="none",
                        help_text="Progress of any refund on this payment",
                        max_length=20,
                    ),
                ),
                (
                    "refund_amount",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                (
                    "refund_stripe_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe Refund ID (re_xxx)",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "refund_date",
                    models.DateTimeField(
                        blank=True, help_text="When the payment was refunded", null=True
                    ),
                ),
                (
                    "contractor",
                    models.ForeignKey(
                        help_text="User who paid",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "hes_request",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="leads.hesrequest",
                    ),
                ),
                (
                    "system_lead",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="leads.systemlead",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment",
                "verbose_name_plural": "Payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["contractor", "status"],
                        name="payments_pa_contrac_status_idx",
                    ),
                    models.Index(
                        fields=["contractor", "system_lead", "status"],
                        name="payments_pa_contrac_sl_idx",
                    ),
                    models.Index(
                        fields=["contractor", "hes_request", "status"],
                        name="payments_pa_contrac_hes_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("hes_request__isnull", True), ("system_lead__isnull", False)),
                            models.Q(("hes_request__isnull", False), ("system_lead__isnull", True)),
                            _connector="OR",
                        ),
                        name="payment_exactly_one_lead",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("amount__gte", 0)),
                        name="payment_amount_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RefundRequest",
            fields=_timestamps()
            + [
                (
                    "lead_id",
                    models.UUIDField(db_index=True, help_text="SystemLead or HESRequest id"),
                ),
                (
                    "lead_type",
                    models.CharField(choices=LEAD_TYPE_CHOICES, max_length=20),
                ),
                (
                    "reason",
                    models.TextField(help_text="Why the lead should be refunded"),
                ),
                (
                    "reason_category",
                    models.CharField(
                        choices=[
                            ("no_response", "Homeowner never responded"),
                            ("competitor", "Homeowner went with a competitor"),
                            ("bad_quality", "Bad lead quality"),
                            ("not_interested", "Homeowner not interested"),
                            ("duplicate", "Duplicate lead"),
                            ("other", "Other"),
                        ],
                        max_length=30,
                    ),
                ),
                ("notes", models.TextField(blank=True, null=True)),
                (
                    "requested_date",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        help_text="When the request was filed",
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("denied", "Denied"),
                            ("more_info_requested", "More Info Requested"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current state of the request (managed by FSM)",
                        max_length=50,
                    ),
                ),
                ("reviewed_date", models.DateTimeField(blank=True, null=True)),
                ("admin_notes", models.TextField(blank=True, null=True)),
                ("refund_date", models.DateTimeField(blank=True, null=True)),
                ("info_requested", models.TextField(blank=True, null=True)),
                ("info_requested_date", models.DateTimeField(blank=True, null=True)),
                ("info_response", models.TextField(blank=True, null=True)),
                ("info_response_date", models.DateTimeField(blank=True, null=True)),
                (
                    "risk_score",
                    models.PositiveSmallIntegerField(
                        default=0, help_text="Advisory risk score (0-100)"
                    ),
                ),
                (
                    "contractor",
                    models.ForeignKey(
                        help_text="User who filed the request",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refund_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "payment",
                    models.ForeignKey(
                        help_text="Payment being disputed",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refund_requests",
                        to="payments.payment",
                    ),
                ),
                (
                    "reviewed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reviewed_refund_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Refund Request",
                "verbose_name_plural": "Refund Requests",
                "ordering": ["-requested_date"],
                "indexes": [
                    models.Index(
                        fields=["payment", "status"],
                        name="payments_rr_payment_status_idx",
                    ),
                    models.Index(
                        fields=["contractor", "requested_date"],
                        name="payments_rr_contrac_req_idx",
                    ),
                    models.Index(
                        fields=["status", "requested_date"],
                        name="payments_rr_status_req_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("risk_score__lte", 100)),
                        name="refund_request_risk_score_max_100",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=_timestamps()
            + [
                (
                    "stripe_event_id",
                    models.CharField(
                        help_text="Provider event id - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                ("event_type", models.CharField(db_index=True, max_length=100)),
                ("payload", models.JSONField(help_text="Verified event body")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("retry_count", models.PositiveSmallIntegerField(default=0)),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="payments_we_status_created_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=_timestamps()
            + [
                ("actor_role", models.CharField(blank=True, max_length=20)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("refund_requested", "Refund Requested"),
                            ("refund_approved", "Refund Approved"),
                            ("refund_denied", "Refund Denied"),
                            ("refund_info_requested", "Refund Info Requested"),
                            ("refund_info_responded", "Refund Info Responded"),
                        ],
                        db_index=True,
                        max_length=50,
                    ),
                ),
                ("resource_type", models.CharField(max_length=50)),
                ("resource_id", models.CharField(max_length=64)),
                ("changes", models.JSONField(blank=True, default=dict)),
                ("details", models.JSONField(blank=True, default=dict)),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="audit_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Audit Log Entry",
                "verbose_name_plural": "Audit Log",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["resource_type", "resource_id"],
                        name="payments_al_resource_idx",
                    ),
                    models.Index(
                        fields=["actor", "created_at"],
                        name="payments_al_actor_created_idx",
                    ),
                ],
            },
        ),
    ]
