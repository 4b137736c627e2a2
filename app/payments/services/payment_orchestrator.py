"""
Payment orchestrator service for coordinating payment operations.

This module provides the PaymentOrchestrator class which serves as the
entry point for all settlement operations. It coordinates the services
plan repository, the payment gateway and the webhook ledger.

The orchestrator:
- Prices intents from the plan's own items, never from client input
- Moves service item payment status only on confirmed gateway state
- Applies each webhook event at most once
- Never retries gateway calls itself

Usage:
    from payments.services import PaymentOrchestrator

    orchestrator = PaymentOrchestrator()

    intent = orchestrator.create_payment_intent(plan_id)
    # client confirms with intent["client_secret"], then either the
    # payment_intent.succeeded webhook or an explicit call settles it:
    orchestrator.process_payment(intent["intent_id"])

Collaborators are injected for tests:
    orchestrator = PaymentOrchestrator(
        repository=InMemoryPlanRepository(),
        gateway=MagicMock(),
        ledger=DjangoWebhookEventLedger(),
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.services import BaseService
from payments.adapters import (
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
)
from payments.exceptions import (
    CheckoutAttemptsExhaustedError,
    NotEligibleForRefundError,
    PaymentError,
    PaymentNotSucceededError,
    PaymentValidationError,
)
from payments.metadata import PaymentMetadata, from_minor_units, to_minor_units
from payments.state_machines import PaymentIntentStatus
from payments.webhooks.handlers import dispatch_webhook
from payments.webhooks.ledger import DjangoWebhookEventLedger
from plans.cost_estimator import CostEstimator
from plans.exceptions import PlanNotFoundError
from plans.models import PaymentStatus, ServiceItemStatus
from plans.repositories import DjangoServicesPlanRepository

if TYPE_CHECKING:
    from decimal import Decimal
    from typing import Any

    from payments.adapters import PaymentGateway
    from payments.webhooks.ledger import WebhookEventLedger
    from plans.repositories import ServicesPlanRepository

# Derived charge keys tried before giving up on canceled intents
MAX_CHECKOUT_ATTEMPTS = 5


class PaymentOrchestrator(BaseService):
    """
    Central coordinator for payment settlement.

    Operations:
        create_payment_intent: Price plan items and open a gateway intent
        process_payment: Settle a succeeded intent onto its items
        cancel_payment: Cancel an intent at the gateway
        refund_payment: Refund a succeeded intent
        get_payment_status: Read an intent's gateway status
        handle_webhook: Verify and apply a Stripe webhook delivery
    """

    def __init__(
        self,
        repository: ServicesPlanRepository | None = None,
        gateway: PaymentGateway | None = None,
        ledger: WebhookEventLedger | None = None,
    ):
        self.repository = repository or DjangoServicesPlanRepository()
        self.gateway = gateway or StripeAdapter
        self.ledger = ledger or DjangoWebhookEventLedger()

    # =========================================================================
    # Intents
    # =========================================================================

    def create_payment_intent(
        self,
        plan_id: Any,
        item_ids: list[Any] | None = None,
        customer_id: str | None = None,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """
        Create a payment intent for items of a services plan.

        The charge is the estimated cost of exactly the named items (every
        item on the plan when none are named), before funding. Discontinued
        items are left out of both the charge and the metadata. Nothing is
        written locally; item status changes only once the payment succeeds.

        Without an idempotency_key the key is derived from the item set, so
        a double submit returns the first intent. If that intent has been
        canceled, the next attempt number is used to open a fresh one.

        Args:
            plan_id: Services plan id
            item_ids: Service items to charge for (default: all)
            customer_id: Optional Stripe Customer ID
            idempotency_key: Caller-owned key, sent to Stripe verbatim

        Returns:
            Dict with client_secret, intent_id, amount, amount_cents, currency

        Raises:
            PlanNotFoundError: Plan or any named item does not exist
            PaymentValidationError: Charge rounds to zero
            CheckoutAttemptsExhaustedError: Every derived key hit a canceled intent
            GatewayError: Stripe rejected or failed the request
        """
        logger = self.get_logger()

        plan = self.repository.find_plan(plan_id, include_items=True, include_funding=False)
        if plan is None:
            raise PlanNotFoundError(
                f"Services plan {plan_id} not found",
                details={"plan_id": str(plan_id)},
            )

        items = self._billable_items(self._select_items(plan, item_ids))
        estimate = CostEstimator.estimate(items, [])
        amount_cents = to_minor_units(estimate.total_cost)
        if amount_cents <= 0:
            raise PaymentValidationError(
                "Payment amount must be positive",
                details={"plan_id": str(plan.id), "amount": str(estimate.total_cost)},
            )

        metadata = PaymentMetadata.from_plan(plan, items)

        for attempt in range(1, MAX_CHECKOUT_ATTEMPTS + 1):
            params = CreatePaymentIntentParams(
                amount_cents=amount_cents,
                currency=estimate.currency,
                idempotency_key=idempotency_key
                or IdempotencyKeyGenerator.for_charge(
                    plan.id, metadata.item_ids, amount_cents, customer_id, attempt
                ),
                metadata=metadata.to_stripe(),
                customer_id=customer_id,
            )
            intent = self.gateway.create_payment_intent(params)
            if idempotency_key or intent.status != PaymentIntentStatus.CANCELED:
                break
            logger.info(
                "Charge key maps to a canceled intent, trying next attempt",
                extra={
                    "plan_id": str(plan.id),
                    "payment_intent_id": intent.id,
                    "attempt": attempt,
                },
            )
        else:
            raise CheckoutAttemptsExhaustedError(
                "Too many canceled checkouts for these items, try again later",
                details={"plan_id": str(plan.id), "attempts": MAX_CHECKOUT_ATTEMPTS},
            )

        logger.info(
            "Payment intent created",
            extra={
                "plan_id": str(plan.id),
                "payment_intent_id": intent.id,
                "amount_cents": amount_cents,
                "item_count": len(items),
            },
        )

        return {
            "client_secret": intent.client_secret,
            "intent_id": intent.id,
            "amount": estimate.total_cost,
            "amount_cents": amount_cents,
            "currency": estimate.currency,
        }

    def process_payment(self, payment_intent_id: str) -> dict[str, Any]:
        """
        Settle a succeeded payment intent onto its plan items.

        Safe to call repeatedly and concurrently with the succeeded webhook:
        the status write is an idempotent set.

        Raises:
            PaymentNotSucceededError: Intent is in any other status
            InvalidPaymentMetadataError: Intent metadata is unusable
            PlanNotFoundError: The plan in the metadata no longer exists
        """
        logger = self.get_logger()

        intent = self.gateway.retrieve_payment_intent(payment_intent_id)
        if intent.status != PaymentIntentStatus.SUCCEEDED:
            logger.info(
                "Payment not settled, intent has not succeeded",
                extra={"payment_intent_id": payment_intent_id, "status": intent.status},
            )
            raise PaymentNotSucceededError(intent.status, payment_intent_id=payment_intent_id)

        metadata = PaymentMetadata.from_stripe(intent.metadata)
        found = self.repository.set_service_item_payment_status(
            metadata.plan_id, metadata.item_ids, PaymentStatus.PAID
        )
        if not found:
            raise PlanNotFoundError(
                f"Services plan {metadata.plan_id} not found",
                details={"plan_id": metadata.plan_id, "payment_intent_id": payment_intent_id},
            )

        logger.info(
            "Payment settled",
            extra={
                "payment_intent_id": payment_intent_id,
                "plan_id": metadata.plan_id,
                "item_count": len(metadata.item_ids),
            },
        )

        return {
            "success": True,
            "plan_id": metadata.plan_id,
            "status": PaymentStatus.PAID.value,
        }

    def cancel_payment(self, payment_intent_id: str, reason: str | None = None) -> dict[str, Any]:
        """
        Cancel a payment intent at the gateway.

        Item status is untouched; an intent that never succeeded never
        changed it.

        Raises:
            GatewayError: Stripe refused (e.g. intent already succeeded)
        """
        intent = self.gateway.cancel_payment_intent(payment_intent_id, reason)

        self.get_logger().info(
            "Payment intent canceled",
            extra={
                "payment_intent_id": payment_intent_id,
                "reason": reason,
                "status": intent.status,
            },
        )
        return {"success": True, "status": intent.status}

    def refund_payment(
        self,
        payment_intent_id: str,
        amount: Decimal | None = None,
        reason: str | None = None,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """
        Refund a succeeded payment intent.

        Every call is a new refund: two $25 refunds move $50. Clients that
        retry a timed-out request pass the same idempotency_key to avoid a
        second refund.

        Args:
            payment_intent_id: Stripe PaymentIntent ID
            amount: Major-unit amount to refund (default: the full amount)
            reason: duplicate, fraudulent or requested_by_customer
            idempotency_key: Caller-owned key, sent to Stripe verbatim

        Returns:
            Dict with success, refund_id, amount, full_refund

        Raises:
            NotEligibleForRefundError: Intent has not succeeded
            PaymentValidationError: Amount is not positive
            GatewayError: Stripe rejected or failed the refund
        """
        logger = self.get_logger()

        amount_cents = None
        if amount is not None:
            amount_cents = to_minor_units(amount)
            if amount_cents <= 0:
                raise PaymentValidationError(
                    "Refund amount must be positive",
                    details={"amount": str(amount)},
                )

        intent = self.gateway.retrieve_payment_intent(payment_intent_id)
        if intent.status != PaymentIntentStatus.SUCCEEDED:
            raise NotEligibleForRefundError(intent.status, payment_intent_id=payment_intent_id)

        refund_entity = f"{payment_intent_id}:{amount_cents or 'full'}"
        refund = self.gateway.create_refund(
            payment_intent_id,
            idempotency_key or IdempotencyKeyGenerator.for_request("refund", refund_entity),
            amount_cents=amount_cents,
            reason=reason,
        )

        full_refund = amount_cents is None or amount_cents >= intent.amount_cents
        if full_refund:
            metadata = PaymentMetadata.from_stripe(intent.metadata)
            self.repository.set_service_item_payment_status(
                metadata.plan_id, metadata.item_ids, PaymentStatus.REFUNDED
            )

        logger.info(
            "Payment refunded",
            extra={
                "payment_intent_id": payment_intent_id,
                "refund_id": refund.id,
                "amount_cents": refund.amount_cents,
                "full_refund": full_refund,
            },
        )

        return {
            "success": True,
            "refund_id": refund.id,
            "amount": from_minor_units(refund.amount_cents),
            "full_refund": full_refund,
        }

    def get_payment_status(self, payment_intent_id: str) -> dict[str, Any]:
        """Return an intent's gateway status, amount and metadata."""
        intent = self.gateway.retrieve_payment_intent(payment_intent_id)
        return {
            "status": intent.status,
            "amount": from_minor_units(intent.amount_cents),
            "amount_cents": intent.amount_cents,
            "currency": intent.currency,
            "metadata": intent.metadata,
        }

    # =========================================================================
    # Webhooks
    # =========================================================================

    def handle_webhook(self, payload: bytes | str, signature: str | None) -> dict[str, Any]:
        """
        Verify a Stripe webhook delivery and apply it once.

        Raises:
            SignatureVerificationError: Signature missing or invalid
            PaymentValidationError: Body is not a Stripe event
        """
        event = self.gateway.construct_webhook_event(payload, signature)

        self.get_logger().info(
            f"Received Stripe webhook: {event['type']}",
            extra={"stripe_event_id": event["id"], "event_type": event["type"]},
        )
        return self.process_event(event)

    def process_event(self, event: dict[str, Any]) -> dict[str, Any]:
        """
        Apply a verified event through the ledger.

        The ledger row is locked in the same transaction as the handler's
        writes. A processed event returns its stored result with
        replayed=True. On failure the writes roll back, the attempt is
        recorded as failed, and the exception propagates.
        """
        logger = self.get_logger()
        event_id = event["id"]
        event_type = event["type"]

        try:
            with self.atomic():
                webhook_event = self.ledger.begin(event_id, event_type, event)
                if webhook_event.is_processed:
                    logger.info(
                        "Webhook already processed, replaying result",
                        extra={"stripe_event_id": event_id},
                    )
                    return {**(webhook_event.result or {}), "replayed": True}

                webhook_event.mark_processing()
                result = dispatch_webhook(self, webhook_event)
                if not result.success:
                    raise PaymentError(
                        result.error or "Webhook handler failed",
                        error_code=result.error_code,
                        details={"stripe_event_id": event_id},
                    )

                stored = {"event_id": event_id, "event_type": event_type, **(result.data or {})}
                self.ledger.complete(webhook_event, stored)
        except Exception as e:
            logger.exception(
                "Webhook processing failed",
                extra={"stripe_event_id": event_id, "event_type": event_type},
            )
            self.ledger.fail(event_id, event_type, event, f"{type(e).__name__}: {e}")
            raise

        logger.info(
            "Webhook processed successfully",
            extra={"stripe_event_id": event_id, "event_type": event_type},
        )
        return {**stored, "replayed": False}

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _select_items(plan: Any, item_ids: list[Any] | None) -> list[Any]:
        items = list(plan.service_items.all())
        if not item_ids:
            return items

        by_id = {str(item.id): item for item in items}
        requested = list(dict.fromkeys(str(item_id) for item_id in item_ids))
        missing = [item_id for item_id in requested if item_id not in by_id]
        if missing:
            raise PlanNotFoundError(
                "Service items not found on plan",
                details={"plan_id": str(plan.id), "missing_item_ids": missing},
            )
        return [by_id[item_id] for item_id in requested]

    @classmethod
    def _billable_items(cls, items: list[Any]) -> list[Any]:
        """Drop discontinued items; they are priced at zero and never settled."""
        billable = [item for item in items if item.status != ServiceItemStatus.DISCONTINUED]
        if len(billable) < len(items):
            cls.get_logger().info(
                "Discontinued items left out of charge",
                extra={
                    "skipped_item_ids": [
                        str(item.id) for item in items if item not in billable
                    ],
                },
            )
        return billable
