"""
URL configuration for the payments app.

Routes:
    - POST /intents/ - Create a payment intent
    - GET /intents/<intent_id>/ - Payment status
    - POST /intents/<intent_id>/process/ - Settle a succeeded intent
    - POST /intents/<intent_id>/cancel/ - Cancel an intent
    - POST /intents/<intent_id>/refund/ - Refund an intent
    - POST /webhooks/stripe/ - Stripe webhook endpoint

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments.views import (
    CancelPaymentView,
    PaymentIntentCreateView,
    PaymentStatusView,
    ProcessPaymentView,
    RefundPaymentView,
)
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    # Payment intents
    path("intents/", PaymentIntentCreateView.as_view(), name="intent_create"),
    path("intents/<str:intent_id>/", PaymentStatusView.as_view(), name="intent_status"),
    path(
        "intents/<str:intent_id>/process/",
        ProcessPaymentView.as_view(),
        name="intent_process",
    ),
    path(
        "intents/<str:intent_id>/cancel/",
        CancelPaymentView.as_view(),
        name="intent_cancel",
    ),
    path(
        "intents/<str:intent_id>/refund/",
        RefundPaymentView.as_view(),
        name="intent_refund",
    ),
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
]
