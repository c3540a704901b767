"""
Lead models.

Models:
- SystemLead: A homeowner system-upgrade opportunity bought by a contractor
- HESRequest: A Home Energy Score assessment request bought by an affiliate
- ContractorLeadStatus: A buyer's own pipeline status for a purchased lead

Ownership transfer (available -> purchased, unassigned -> assigned_affiliate)
happens only through leads.services.LeadAllocationService, which performs
it as a single conditional UPDATE.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class LeadType(models.TextChoices):
    """Kinds of purchasable leads."""

    SYSTEM_LEAD = "system_lead", "System Lead"
    HES_REQUEST = "hes_request", "HES Request"


class SystemLeadStatus(models.TextChoices):
    AVAILABLE = "available", "Available"
    PURCHASED = "purchased", "Purchased"


class HESRequestStatus(models.TextChoices):
    UNASSIGNED = "unassigned", "Unassigned"
    ASSIGNED_AFFILIATE = "assigned_affiliate", "Assigned to Affiliate"


class ContractorLeadStage(models.TextChoices):
    """Buyer-side pipeline stages. CLOSED counts as a conversion."""

    NEW = "new", "New"
    CONTACTED = "contacted", "Contacted"
    QUOTED = "quoted", "Quoted"
    CLOSED = "closed", "Closed"
    LOST = "lost", "Lost"


class SystemLead(UUIDPrimaryKeyMixin, BaseModel):
    """
    A system-upgrade lead offered to contractors.

    Fields:
        status: AVAILABLE until a successful payment claims it
        purchased_by_contractor: Buyer, set together with status
        purchased_date: When the claim happened
        city / state / zip_code: Location shown to buyers and admins
        system_type: HVAC, solar, water heater, etc.
        price: Listed purchase price in currency units
    """

    # ==========================================================================
    # Ownership
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=SystemLeadStatus.choices,
        default=SystemLeadStatus.AVAILABLE,
        db_index=True,
        help_text="Purchase status",
    )

    purchased_by_contractor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchased_system_leads",
        help_text="Contractor who purchased this lead",
    )

    purchased_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the lead was purchased",
    )

    # ==========================================================================
    # Lead Details
    # ==========================================================================

    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=50, blank=True)
    zip_code = models.CharField(max_length=20, blank=True)

    system_type = models.CharField(
        max_length=100,
        blank=True,
        help_text="Type of system the homeowner wants upgraded",
    )

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        help_text="Listed price in currency units",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "System Lead"
        verbose_name_plural = "System Leads"

    def __str__(self) -> str:
        return f"SystemLead({self.id}, {self.status})"

    @property
    def address(self) -> str:
        return ", ".join(part for part in (self.city, self.state, self.zip_code) if part)


class HESRequest(UUIDPrimaryKeyMixin, BaseModel):
    """
    A Home Energy Score assessment request offered to affiliates.

    An affiliate that pays for the request becomes both purchaser and
    assignee.
    """

    # ==========================================================================
    # Ownership
    # ==========================================================================

    status = models.CharField(
        max_length=30,
        choices=HESRequestStatus.choices,
        default=HESRequestStatus.UNASSIGNED,
        db_index=True,
        help_text="Assignment status",
    )

    purchased_by_affiliate = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchased_hes_requests",
        help_text="Affiliate who purchased this request",
    )

    assigned_to_affiliate = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_hes_requests",
        help_text="Affiliate responsible for the assessment",
    )

    purchased_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the request was purchased",
    )

    # ==========================================================================
    # Property
    # ==========================================================================

    property_address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=50, blank=True)

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        help_text="Listed price in currency units",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "HES Request"
        verbose_name_plural = "HES Requests"

    def __str__(self) -> str:
        return f"HESRequest({self.id}, {self.status})"

    @property
    def address(self) -> str:
        return ", ".join(
            part for part in (self.property_address, self.city, self.state) if part
        )


class ContractorLeadStatus(UUIDPrimaryKeyMixin, BaseModel):
    """
    A buyer's pipeline row for a lead they purchased.

    Created with stage NEW by the payment webhook when the buyer wins the
    lead. Exactly one of system_lead / hes_request is set.
    """

    contractor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="lead_statuses",
    )

    system_lead = models.ForeignKey(
        SystemLead,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="contractor_statuses",
    )

    hes_request = models.ForeignKey(
        HESRequest,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="contractor_statuses",
    )

    status = models.CharField(
        max_length=20,
        choices=ContractorLeadStage.choices,
        default=ContractorLeadStage.NEW,
        db_index=True,
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Contractor Lead Status"
        verbose_name_plural = "Contractor Lead Statuses"
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(system_lead__isnull=False, hes_request__isnull=True)
                    | models.Q(system_lead__isnull=True, hes_request__isnull=False)
                ),
                name="contractor_lead_status_one_lead",
            ),
        ]

    def __str__(self) -> str:
        return f"ContractorLeadStatus({self.contractor_id}, {self.status})"
