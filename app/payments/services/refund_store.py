"""
Persistence for RefundRequest rows.

No business rules live here; RefundService decides what is allowed and
calls save_transition once a django-fsm transition has been applied.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import QuerySet
from django_fsm import ConcurrentTransition

from core.services import BaseService
from payments.exceptions import InvalidStateTransitionError, PaymentNotFoundError
from payments.models import RefundRequest
from payments.state_machines import OPEN_REFUND_STATES

if TYPE_CHECKING:
    from typing import Any

ALL_STATUSES = "all"


@dataclass
class RefundRequestFilters:
    """
    Admin list filters. None means "no filter".

    status="all" is accepted and treated as no status filter.
    """

    status: str | None = None
    contractor_id: int | None = None
    date_from: date | datetime | None = None
    date_to: date | datetime | None = None


class RefundRequestStore(BaseService):
    """CRUD over RefundRequest. All methods are classmethods."""

    @classmethod
    def _base_queryset(cls) -> QuerySet[RefundRequest]:
        return RefundRequest.objects.select_related(
            "payment",
            "contractor",
            "contractor__profile",
            "reviewed_by",
        )

    @classmethod
    def create(cls, **fields: Any) -> RefundRequest:
        return RefundRequest.objects.create(**fields)

    @classmethod
    def get(cls, refund_request_id: uuid.UUID | str) -> RefundRequest:
        """
        Raises:
            PaymentNotFoundError: Unknown id
        """
        try:
            return cls._base_queryset().get(id=refund_request_id)
        except (RefundRequest.DoesNotExist, DjangoValidationError, ValueError):
            raise PaymentNotFoundError(
                "Refund request not found",
                error_code="REFUND_REQUEST_NOT_FOUND",
                details={"refund_request_id": str(refund_request_id)},
            )

    @classmethod
    def get_for_update(cls, refund_request_id: uuid.UUID | str) -> RefundRequest:
        """Like get(), but row-locked. Must be called inside a transaction."""
        try:
            return RefundRequest.objects.select_for_update().get(id=refund_request_id)
        except (RefundRequest.DoesNotExist, DjangoValidationError, ValueError):
            raise PaymentNotFoundError(
                "Refund request not found",
                error_code="REFUND_REQUEST_NOT_FOUND",
                details={"refund_request_id": str(refund_request_id)},
            )

    @classmethod
    def list(cls, filters: RefundRequestFilters) -> QuerySet[RefundRequest]:
        """Matching requests, newest first."""
        queryset = cls._base_queryset()

        if filters.status and filters.status != ALL_STATUSES:
            queryset = queryset.filter(status=filters.status)
        if filters.contractor_id:
            queryset = queryset.filter(contractor_id=filters.contractor_id)
        if filters.date_from:
            queryset = queryset.filter(requested_date__gte=filters.date_from)
        if filters.date_to:
            queryset = queryset.filter(requested_date__lte=filters.date_to)

        return queryset.order_by("-requested_date")

    @classmethod
    def list_for_contractor(cls, contractor_id: int) -> QuerySet[RefundRequest]:
        return (
            cls._base_queryset()
            .filter(contractor_id=contractor_id)
            .order_by("-requested_date")
        )

    @classmethod
    def has_open_request(cls, payment_id: uuid.UUID) -> bool:
        """True if a PENDING or MORE_INFO_REQUESTED request exists for the payment."""
        return RefundRequest.objects.filter(
            payment_id=payment_id,
            status__in=OPEN_REFUND_STATES,
        ).exists()

    @classmethod
    def save_transition(cls, refund_request: RefundRequest, action: str) -> RefundRequest:
        """
        Persist a transition applied in memory.

        The save is conditional on the status the row had when it was
        loaded (ConcurrentTransitionMixin).

        Raises:
            InvalidStateTransitionError: Another reviewer changed the row first
        """
        try:
            refund_request.save()
        except ConcurrentTransition:
            cls.get_logger().warning(
                "Refund request changed concurrently",
                extra={"refund_request_id": str(refund_request.id), "action": action},
            )
            raise InvalidStateTransitionError(
                "Refund request was modified by another reviewer",
                details={"refund_request_id": str(refund_request.id), "action": action},
            )
        return refund_request
