"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /admin/                                  - Django admin interface
    /health/                                 - Health check endpoint (load balancers, Docker)
    /api/v1/plans/                           - Services plan endpoints
        <plan_id>/cost-estimate/             - Cost estimate and funding allocation (GET)
        funding-sources/                     - Funding source recommendations (GET)
    /api/v1/payments/                        - Payment endpoints
        intents/                             - Create payment intent (POST)
        intents/<intent_id>/                 - Payment status (GET)
        intents/<intent_id>/process/         - Confirm a succeeded payment (POST)
        intents/<intent_id>/cancel/          - Cancel payment intent (POST)
        intents/<intent_id>/refund/          - Refund payment (POST)
        webhooks/stripe/                     - Stripe webhook endpoint (POST)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("plans/", include("plans.urls")),
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Care Settlement Admin"
admin.site.site_title = "Admin Portal"
admin.site.index_title = "Services plans and payments"
