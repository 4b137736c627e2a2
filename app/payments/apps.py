"""
Payments app configuration.

This app provides payment settlement infrastructure:
- Stripe gateway adapter
- Payment orchestrator for intents, refunds and settlement
- Idempotent webhook handling with a processed-event ledger
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
