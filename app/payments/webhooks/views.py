"""
Webhook endpoint views for Stripe.

The view hands the raw body and Stripe-Signature header to
PaymentOrchestrator.handle_webhook, which verifies, records and applies
the event in one request.

Responses:
    200: Event applied, ignored (unknown type) or replayed (duplicate)
    400: Invalid signature or payload; Stripe should not deliver it again as-is
    500: Handler failed; the event is recorded as failed and Stripe redelivers

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.exceptions import PaymentValidationError, SignatureVerificationError
from payments.services import PaymentOrchestrator

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive and apply a Stripe webhook event.

    Security:
    - Signature verification prevents spoofed webhooks
    - CSRF exemption required for external webhooks
    - Only POST requests accepted

    Idempotency:
    - Duplicate deliveries return the first result with replayed=true

    Example Stripe-Signature header:
        t=1614556800,v1=xxx,v0=yyy
    """
    signature = request.headers.get("Stripe-Signature")

    try:
        result = PaymentOrchestrator().handle_webhook(request.body, signature)
    except (SignatureVerificationError, PaymentValidationError) as e:
        return JsonResponse(e.to_dict(), status=400)
    except Exception as e:
        # Already logged and recorded by the orchestrator
        return JsonResponse(
            {"error": "Webhook processing failed", "error_code": "WEBHOOK_FAILED", "type": type(e).__name__},
            status=500,
        )

    return JsonResponse({"received": True, **result}, status=200)
