"""
Payment services for coordinating settlement operations.

This module provides:
- PaymentOrchestrator: Entry point for intents, refunds and webhooks

Usage:
    from payments.services import PaymentOrchestrator

    result = PaymentOrchestrator().create_payment_intent(plan_id)
    client_secret = result["client_secret"]
"""

from payments.services.payment_orchestrator import PaymentOrchestrator

__all__ = [
    "PaymentOrchestrator",
]
