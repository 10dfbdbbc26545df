"""
Core views providing infrastructure endpoints.

Views that are not part of the billing domain but are needed to run it,
such as the health check used by load balancers.
"""

import logging

from django.conf import settings
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - stripe: "configured" or "unconfigured"

    HTTP Status Codes:
        200: All systems operational
        503: Database unreachable

    Note:
        A missing Stripe key is reported but does not make the service
        unhealthy; the checkout API reports it per request instead.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "stripe": "unconfigured",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.error("Health check database query failed", exc_info=True)
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    if getattr(settings, "STRIPE_SECRET_KEY", "") and getattr(
        settings, "STRIPE_WEBHOOK_SECRET", ""
    ):
        health_status["stripe"] = "configured"

    return JsonResponse(health_status, status=200 if is_healthy else 503)
