"""
Payment domain models.

Payment intents live at the gateway; the only local state is the
webhook ledger:
- WebhookEvent: Stripe webhook event tracking for idempotent processing
"""

from payments.models.webhook_event import WebhookEvent

__all__ = [
    "WebhookEvent",
]
