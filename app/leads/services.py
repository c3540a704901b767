"""
Lead allocation service.

Transfers lead ownership to a paying buyer. The transfer is one
conditional UPDATE (... WHERE status = 'available'), so when two payments
for the same lead land at the same time exactly one row update succeeds
and the loser observes zero rows.

Usage:
    from leads.services import LeadAllocationService

    claimed = LeadAllocationService.claim_lead(
        lead_type=LeadType.SYSTEM_LEAD,
        lead_id=lead_id,
        buyer_id=contractor.id,
    )
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from django.utils import timezone

from core.services import BaseService
from leads.models import (
    ContractorLeadStage,
    ContractorLeadStatus,
    HESRequest,
    HESRequestStatus,
    LeadType,
    SystemLead,
    SystemLeadStatus,
)


@dataclass
class LeadSummary:
    """Address and type line shown on refund review."""

    address: str | None
    system_type: str | None


class LeadAllocationService(BaseService):
    """
    Ownership transfer and read helpers for leads.

    All methods are classmethods - no instance state is maintained.
    """

    @classmethod
    def lead_exists(cls, lead_type: str, lead_id: uuid.UUID | str) -> bool:
        if lead_type == LeadType.SYSTEM_LEAD:
            return SystemLead.objects.filter(id=lead_id).exists()
        if lead_type == LeadType.HES_REQUEST:
            return HESRequest.objects.filter(id=lead_id).exists()
        return False

    @classmethod
    def claim_lead(
        cls,
        lead_type: str,
        lead_id: uuid.UUID | str,
        buyer_id: int,
    ) -> bool:
        """
        Atomically transfer an unclaimed lead to the buyer.

        On success a ContractorLeadStatus row in stage NEW is created for
        the buyer. On failure nothing is written.

        Args:
            lead_type: LeadType value
            lead_id: SystemLead or HESRequest id
            buyer_id: Paying contractor/affiliate user id

        Returns:
            True if this call claimed the lead, False if it was already taken
        """
        now = timezone.now()

        if lead_type == LeadType.SYSTEM_LEAD:
            updated = SystemLead.objects.filter(
                id=lead_id,
                status=SystemLeadStatus.AVAILABLE,
            ).update(
                status=SystemLeadStatus.PURCHASED,
                purchased_by_contractor_id=buyer_id,
                purchased_date=now,
                updated_at=now,
            )
        elif lead_type == LeadType.HES_REQUEST:
            updated = HESRequest.objects.filter(
                id=lead_id,
                status=HESRequestStatus.UNASSIGNED,
                purchased_by_affiliate__isnull=True,
            ).update(
                status=HESRequestStatus.ASSIGNED_AFFILIATE,
                purchased_by_affiliate_id=buyer_id,
                assigned_to_affiliate_id=buyer_id,
                purchased_date=now,
                updated_at=now,
            )
        else:
            raise ValueError(f"Unknown lead type: {lead_type}")

        log_context = {
            "lead_type": lead_type,
            "lead_id": str(lead_id),
            "buyer_id": buyer_id,
        }

        if updated != 1:
            cls.get_logger().warning("Lead already claimed", extra=log_context)
            return False

        ContractorLeadStatus.objects.create(
            contractor_id=buyer_id,
            system_lead_id=lead_id if lead_type == LeadType.SYSTEM_LEAD else None,
            hes_request_id=lead_id if lead_type == LeadType.HES_REQUEST else None,
            status=ContractorLeadStage.NEW,
        )

        cls.get_logger().info("Lead claimed", extra=log_context)
        return True

    @classmethod
    def describe_lead(cls, lead_type: str, lead_id: uuid.UUID | str) -> LeadSummary:
        """Return the address/type line for a lead, or empty values if gone."""
        if lead_type == LeadType.SYSTEM_LEAD:
            lead = SystemLead.objects.filter(id=lead_id).first()
            if lead:
                return LeadSummary(
                    address=lead.address or None,
                    system_type=lead.system_type or None,
                )
        elif lead_type == LeadType.HES_REQUEST:
            hes = HESRequest.objects.filter(id=lead_id).first()
            if hes:
                return LeadSummary(address=hes.address or None, system_type="HES")
        return LeadSummary(address=None, system_type=None)

    @classmethod
    def count_closed(cls, contractor_id: int) -> int:
        """Number of the buyer's leads that reached CLOSED."""
        return ContractorLeadStatus.objects.filter(
            contractor_id=contractor_id,
            status=ContractorLeadStage.CLOSED,
        ).count()
