import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="SystemLead",
            fields=[
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
                (
                    "status",
                    models.CharField(
                        choices=[("available", "Available"), ("purchased", "Purchased")],
                        db_index=True,
                        default="available",
                        help_text="Purchase status",
                        max_length=20,
                    ),
                ),
                (
                    "purchased_date",
                    models.DateTimeField(
                        blank=True, help_text="When the lead was purchased", null=True
                    ),
                ),
                ("city", models.CharField(blank=True, max_length=100)),
                ("state", models.CharField(blank=True, max_length=50)),
                ("zip_code", models.CharField(blank=True, max_length=20)),
                (
                    "system_type",
                    models.CharField(
                        blank=True,
                        help_text="Type of system the homeowner wants upgraded",
                        max_length=100,
                    ),
                ),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        help_text="Listed price in currency units",
                        max_digits=10,
                    ),
                ),
                (
                    "purchased_by_contractor",
                    models.ForeignKey(
                        blank=True,
                        help_text="Contractor who purchased this lead",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="purchased_system_leads",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "System Lead",
                "verbose_name_plural": "System Leads",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="HESRequest",
            fields=[
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
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("unassigned", "Unassigned"),
                            ("assigned_affiliate", "Assigned to Affiliate"),
                        ],
                        db_index=True,
                        default="unassigned",
                        help_text="Assignment status",
                        max_length=30,
                    ),
                ),
                (
                    "purchased_date",
                    models.DateTimeField(
                        blank=True, help_text="When the request was purchased", null=True
                    ),
                ),
                ("property_address", models.CharField(blank=True, max_length=255)),
                ("city", models.CharField(blank=True, max_length=100)),
                ("state", models.CharField(blank=True, max_length=50)),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        help_text="Listed price in currency units",
                        max_digits=10,
                    ),
                ),
                (
                    "assigned_to_affiliate",
                    models.ForeignKey(
                        blank=True,
                        help_text="Affiliate responsible for the assessment",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assigned_hes_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "purchased_by_affiliate",
                    models.ForeignKey(
                        blank=True,
                        help_text="Affiliate who purchased this request",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="purchased_hes_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "HES Request",
                "verbose_name_plural": "HES Requests",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ContractorLeadStatus",
            fields=[
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
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("new", "New"),
                            ("contacted", "Contacted"),
                            ("quoted", "Quoted"),
                            ("closed", "Closed"),
                            ("lost", "Lost"),
                        ],
                        db_index=True,
                        default="new",
                        max_length=20,
                    ),
                ),
                (
                    "contractor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lead_statuses",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "hes_request",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="contractor_statuses",
                        to="leads.hesrequest",
                    ),
                ),
                (
                    "system_lead",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="contractor_statuses",
                        to="leads.systemlead",
                    ),
                ),
            ],
            options={
                "verbose_name": "Contractor Lead Status",
                "verbose_name_plural": "Contractor Lead Statuses",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("hes_request__isnull", True), ("system_lead__isnull", False)),
                            models.Q(("hes_request__isnull", False), ("system_lead__isnull", True)),
                            _connector="OR",
                        ),
                        name="contractor_lead_status_one_lead",
                    ),
                ],
            },
        ),
    ]
