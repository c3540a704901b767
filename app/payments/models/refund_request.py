"""
RefundRequest model for contractor-initiated lead refund claims.

A contractor who believes a purchased lead was invalid files a
RefundRequest; an admin approves, denies or asks for more information.

Usage:
    from payments.models import RefundRequest

    refund_request.approve(admin_id=admin.id, admin_notes="Verified duplicate")
    refund_request.save()  # conditional on the status we read

State transitions are django-fsm transitions. ConcurrentTransitionMixin
turns save() into UPDATE ... WHERE status = <status when loaded>, so two
reviewers acting on the same request cannot both succeed; the loser
gets django_fsm.ConcurrentTransition.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import (
    LeadType,
    RefundReasonCategory,
    RefundRequestStatus,
)

REVIEWABLE_STATES = [
    RefundRequestStatus.PENDING,
    RefundRequestStatus.MORE_INFO_REQUESTED,
]


class RefundRequest(ConcurrentTransitionMixin, UUIDPrimaryKeyMixin, BaseModel):
    """
    A contractor's request to be refunded for a purchased lead.

    State Flow:
        PENDING -> APPROVED
        PENDING -> DENIED
        PENDING -> MORE_INFO_REQUESTED -> PENDING
        MORE_INFO_REQUESTED -> APPROVED / DENIED

    Fields:
        payment: The completed payment being disputed
        contractor: Filer (contractor or affiliate)
        lead_id / lead_type: The purchased lead
        reason / reason_category / notes: Contractor's claim
        status: Current FSM state
        reviewed_by / reviewed_date / admin_notes: Review outcome
        refund_date: When the Stripe refund was issued
        info_requested(_date) / info_response(_date): Clarification round
        risk_score: Advisory 0-100 score shown to reviewers
    """

    # ==========================================================================
    # References
    # ==========================================================================

    payment = models.ForeignKey(
        "payments.Payment",
        on_delete=models.PROTECT,
        related_name="refund_requests",
        help_text="Payment being disputed",
    )

    contractor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="refund_requests",
        help_text="User who filed the request",
    )

    lead_id = models.UUIDField(
        db_index=True,
        help_text="SystemLead or HESRequest id",
    )

    lead_type = models.CharField(
        max_length=20,
        choices=LeadType.choices,
    )

    # ==========================================================================
    # Contractor's Claim
    # ==========================================================================

    reason = models.TextField(help_text="Why the lead should be refunded")

    reason_category = models.CharField(
        max_length=30,
        choices=RefundReasonCategory.choices,
    )

    notes = models.TextField(null=True, blank=True)

    requested_date = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="When the request was filed",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=RefundRequestStatus.PENDING,
        choices=RefundRequestStatus.choices,
        db_index=True,
        help_text="Current state of the request (managed by FSM)",
    )

    # ==========================================================================
    # Review
    # ==========================================================================

    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_refund_requests",
    )

    reviewed_date = models.DateTimeField(null=True, blank=True)
    admin_notes = models.TextField(null=True, blank=True)
    refund_date = models.DateTimeField(null=True, blank=True)

    info_requested = models.TextField(null=True, blank=True)
    info_requested_date = models.DateTimeField(null=True, blank=True)
    info_response = models.TextField(null=True, blank=True)
    info_response_date = models.DateTimeField(null=True, blank=True)

    risk_score = models.PositiveSmallIntegerField(
        default=0,
        help_text="Advisory risk score (0-100)",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-requested_date"]
        verbose_name = "Refund Request"
        verbose_name_plural = "Refund Requests"
        indexes = [
            models.Index(fields=["payment", "status"], name="payments_rr_payment_status_idx"),
            models.Index(fields=["contractor", "requested_date"], name="payments_rr_contrac_req_idx"),
            models.Index(fields=["status", "requested_date"], name="payments_rr_status_req_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(risk_score__lte=100),
                name="refund_request_risk_score_max_100",
            ),
        ]

    def __str__(self) -> str:
        return f"RefundRequest({self.id}, {self.status})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=REVIEWABLE_STATES,
        target=RefundRequestStatus.APPROVED,
    )
    def approve(self, admin_id: int, admin_notes: str | None = None):
        """Transition: PENDING / MORE_INFO_REQUESTED -> APPROVED"""
        now = timezone.now()
        self.reviewed_by_id = admin_id
        self.reviewed_date = now
        self.admin_notes = admin_notes or None
        self.refund_date = now

    @transition(
        field=status,
        source=REVIEWABLE_STATES,
        target=RefundRequestStatus.DENIED,
    )
    def deny(self, admin_id: int, reason: str):
        """Transition: PENDING / MORE_INFO_REQUESTED -> DENIED"""
        self.reviewed_by_id = admin_id
        self.reviewed_date = timezone.now()
        self.admin_notes = reason

    @transition(
        field=status,
        source=RefundRequestStatus.PENDING,
        target=RefundRequestStatus.MORE_INFO_REQUESTED,
    )
    def request_info(self, admin_id: int, question: str):
        """Transition: PENDING -> MORE_INFO_REQUESTED"""
        self.reviewed_by_id = admin_id
        self.info_requested = question
        self.info_requested_date = timezone.now()

    @transition(
        field=status,
        source=RefundRequestStatus.MORE_INFO_REQUESTED,
        target=RefundRequestStatus.PENDING,
    )
    def record_info_response(self, response: str):
        """Transition: MORE_INFO_REQUESTED -> PENDING"""
        self.info_response = response
        self.info_response_date = timezone.now()
