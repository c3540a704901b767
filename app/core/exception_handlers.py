"""
DRF exception handler for domain errors.

Registered in settings as REST_FRAMEWORK["EXCEPTION_HANDLER"]. Domain
errors raised from services are rendered with their own status code and
the BaseApplicationError.to_dict() body; everything else falls through to
DRF's default handler.
"""

from __future__ import annotations

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def application_exception_handler(exc, context):
    """
    Render BaseApplicationError subclasses as JSON API errors.

    Returns:
        Response for handled exceptions, None to let Django produce a 500
    """
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        log_extra = {
            "error_code": exc.error_code,
            "status_code": exc.status_code,
            "view": view.__class__.__name__ if view else None,
        }
        if exc.status_code >= 500:
            logger.error(f"Request failed: {exc.message}", extra=log_extra)
        else:
            logger.info(f"Request rejected: {exc.message}", extra=log_extra)

        return Response(exc.to_dict(), status=exc.status_code)

    return exception_handler(exc, context)
