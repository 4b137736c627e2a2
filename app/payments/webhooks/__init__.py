"""
Webhook handling for payment events from Stripe.

Deliveries are verified and applied synchronously by
PaymentOrchestrator.handle_webhook; this package holds the handler
registry, the processed-event ledger and the HTTP endpoint.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""
