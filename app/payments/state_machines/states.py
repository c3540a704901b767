"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.
RefundRequestStatus drives the django-fsm field on RefundRequest.

State Machines Overview:

RefundRequest:
    pending → approved (terminal)
    pending → denied (terminal)
    pending → more_info_requested → pending (contractor answered)
    more_info_requested → approved / denied

Payment (status):
    completed → refunded
    failed → completed (same PaymentIntent later succeeded)

Payment (refund_status):
    none → requested → refunded / denied
    denied → requested (new refund request)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """Outcome of a Stripe PaymentIntent as recorded in our ledger."""

    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class PaymentRefundStatus(models.TextChoices):
    """Refund progress mirrored onto the payment for quick filtering."""

    NONE = "none", "None"
    REQUESTED = "requested", "Requested"
    APPROVED = "approved", "Approved"
    DENIED = "denied", "Denied"
    REFUNDED = "refunded", "Refunded"


class RefundRequestStatus(models.TextChoices):
    """
    States for the RefundRequest lifecycle.

    Terminal states: APPROVED, DENIED
    """

    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    DENIED = "denied", "Denied"
    MORE_INFO_REQUESTED = "more_info_requested", "More Info Requested"


class RefundReasonCategory(models.TextChoices):
    """Why the contractor believes the lead was invalid."""

    NO_RESPONSE = "no_response", "Homeowner never responded"
    COMPETITOR = "competitor", "Homeowner went with a competitor"
    BAD_QUALITY = "bad_quality", "Bad lead quality"
    NOT_INTERESTED = "not_interested", "Homeowner not interested"
    DUPLICATE = "duplicate", "Duplicate lead"
    OTHER = "other", "Other"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for Stripe webhook events.

    PENDING → PROCESSING → PROCESSED
    PENDING → PROCESSING → FAILED → PROCESSING (redelivery)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


OPEN_REFUND_STATES = frozenset(
    [RefundRequestStatus.PENDING, RefundRequestStatus.MORE_INFO_REQUESTED]
)
