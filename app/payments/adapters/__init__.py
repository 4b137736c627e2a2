"""
Payment adapters for external services.

All gateway calls go through these adapters to ensure consistent error
handling, timeouts, idempotency, and observability.

Usage:
    from payments.adapters import StripeAdapter, CreatePaymentIntentParams

    result = StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=5000,
            currency='usd',
            idempotency_key='create_intent:<plan_id>:1:a1b2c3d4',
        )
    )
"""

from payments.adapters.gateway import PaymentGateway
from payments.adapters.stripe_adapter import (
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    RefundResult,
    StripeAdapter,
)

__all__ = [
    "CreatePaymentIntentParams",
    "IdempotencyKeyGenerator",
    "PaymentGateway",
    "PaymentIntentResult",
    "RefundResult",
    "StripeAdapter",
]
