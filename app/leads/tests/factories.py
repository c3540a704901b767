"""
Factory Boy factories for lead models.

Usage:
    from leads.tests.factories import SystemLeadFactory, HESRequestFactory

    lead = SystemLeadFactory(system_type="HVAC")
    hes = HESRequestFactory()
"""

from decimal import Decimal

import factory

from leads.models import (
    ContractorLeadStage,
    ContractorLeadStatus,
    HESRequest,
    HESRequestStatus,
    SystemLead,
    SystemLeadStatus,
)


class SystemLeadFactory(factory.django.DjangoModelFactory):
    """Unclaimed system-upgrade lead."""

    class Meta:
        model = SystemLead

    status = SystemLeadStatus.AVAILABLE
    city = "Austin"
    state = "TX"
    zip_code = "78701"
    system_type = "HVAC"
    price = Decimal("49.00")


class HESRequestFactory(factory.django.DjangoModelFactory):
    """Unassigned home energy score request."""

    class Meta:
        model = HESRequest

    status = HESRequestStatus.UNASSIGNED
    property_address = factory.Sequence(lambda n: f"{100 + n} Main St")
    city = "Denver"
    state = "CO"
    price = Decimal("25.00")


class ContractorLeadStatusFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ContractorLeadStatus

    contractor = factory.SubFactory("authentication.tests.factories.ContractorFactory")
    system_lead = factory.SubFactory(SystemLeadFactory)
    hes_request = None
    status = ContractorLeadStage.NEW
