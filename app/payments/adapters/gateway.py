"""
Payment gateway protocol.

PaymentOrchestrator talks to the gateway through this protocol.
StripeAdapter satisfies it with classmethods, so the class itself is the
default gateway; tests pass a MagicMock or any object with these methods.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from payments.adapters.stripe_adapter import (
        CreatePaymentIntentParams,
        PaymentIntentResult,
        RefundResult,
    )


@runtime_checkable
class PaymentGateway(Protocol):
    """Operations the settlement flow needs from a payment gateway."""

    def create_payment_intent(
        self, params: CreatePaymentIntentParams
    ) -> PaymentIntentResult: ...

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult: ...

    def cancel_payment_intent(
        self, payment_intent_id: str, reason: str | None = None
    ) -> PaymentIntentResult: ...

    def create_refund(
        self,
        payment_intent_id: str,
        idempotency_key: str,
        amount_cents: int | None = None,
        reason: str | None = None,
    ) -> RefundResult: ...

    def construct_webhook_event(
        self, payload: bytes | str, signature: str | None
    ) -> dict[str, Any]: ...
