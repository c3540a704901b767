"""
Template email sending for payment notifications.

Each email has a plain text and an HTML template under
payments/templates/payments/emails/{template_name}.{txt,html}.

Usage:
    from payments.emails import send_templated_email

    send_templated_email(
        to=user.email,
        subject="Refund Approved",
        template_name="refund_approved",
        context={"amount": "49.00"},
    )
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)

TEMPLATE_DIR = "payments/emails"


def send_templated_email(
    to: str | list[str],
    subject: str,
    template_name: str,
    context: dict,
    from_email: str | None = None,
) -> int:
    """
    Render and send one email.

    Returns:
        Number of messages sent (0 or 1)

    Raises:
        Any backend error; callers running in Celery rely on autoretry.
    """
    if isinstance(to, str):
        to = [to]

    text_content = render_to_string(f"{TEMPLATE_DIR}/{template_name}.txt", context)
    html_content = render_to_string(f"{TEMPLATE_DIR}/{template_name}.html", context)

    email = EmailMultiAlternatives(
        subject=subject,
        body=text_content,
        from_email=from_email or settings.DEFAULT_FROM_EMAIL,
        to=to,
    )
    email.attach_alternative(html_content, "text/html")

    sent = email.send(fail_silently=False)
    logger.info("Email sent", extra={"template": template_name, "recipients": len(to)})
    return sent
