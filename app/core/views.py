"""Infrastructure endpoints that sit outside the plans and payments domain."""

import logging

from django.conf import settings
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Liveness probe for the container and the load balancer.

    Only the database decides the status code (200 or 503). Missing Stripe
    keys are reported as payment_gateway="unconfigured" but plan reads still
    work without them, so the service stays "healthy".
    """
    body = {
        "status": "healthy",
        "database": "unknown",
        "payment_gateway": "unconfigured",
    }

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        body["database"] = "connected"
    except DatabaseError as e:
        logger.warning("Health check database probe failed", extra={"error": str(e)})
        body["database"] = "disconnected"
        body["status"] = "unhealthy"

    if settings.STRIPE_SECRET_KEY and settings.STRIPE_WEBHOOK_SECRET:
        body["payment_gateway"] = "configured"

    return JsonResponse(body, status=200 if body["status"] == "healthy" else 503)
