"""
Core views providing infrastructure endpoints.
"""

import logging

from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Liveness/readiness check for load balancers and container orchestration.

    The database is required; the Redis cache is reported but a cache
    outage does not fail the check.

    Returns:
        200 {"status": "healthy", "database": ..., "cache": ...}
        503 when the database is unreachable
    """
    health_status = {
        "status": "healthy",
        "database": "connected",
        "cache": "connected",
    }

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError:
        logger.error("Health check: database unreachable", exc_info=True)
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"

    # django-redis runs with IGNORE_EXCEPTIONS, so an outage reads back None
    cache.set("health_check", "ok", timeout=1)
    if cache.get("health_check") != "ok":
        health_status["cache"] = "disconnected"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JsonResponse(health_status, status=status_code)
