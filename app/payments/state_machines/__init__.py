"""
Status enums for payments.
"""

from payments.state_machines.states import (
    CancellationReason,
    PaymentIntentStatus,
    RefundReason,
    WebhookEventStatus,
)

__all__ = [
    "CancellationReason",
    "PaymentIntentStatus",
    "RefundReason",
    "WebhookEventStatus",
]
