"""
Webhook event handlers for Stripe events.

This module provides a handler registry and implementations for
processing different Stripe webhook events.

Handlers run inside the orchestrator's webhook transaction, after the
ledger row is locked. They receive the orchestrator (for its repository
and gateway) and the WebhookEvent, and return a ServiceResult. A failure
result or an exception rolls back the handler's writes and marks the
event failed for the retry task.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(orchestrator, webhook_event) -> ServiceResult:
        ...

    result = dispatch_webhook(orchestrator, webhook_event)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from core.services import ServiceResult
from payments.metadata import PLAN_ID_KEY, PaymentMetadata
from plans.models import PaymentStatus

if TYPE_CHECKING:
    from payments.models import WebhookEvent
    from payments.services.payment_orchestrator import PaymentOrchestrator

    WebhookHandler = Callable[[PaymentOrchestrator, WebhookEvent], ServiceResult]


logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, WebhookHandler] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Usage:
        @register_handler("payment_intent.succeeded")
        def handle_payment_succeeded(orchestrator, webhook_event) -> ServiceResult:
            ...
    """

    def decorator(func: WebhookHandler) -> WebhookHandler:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(
    orchestrator: PaymentOrchestrator, webhook_event: WebhookEvent
) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Unknown event types are accepted and ignored so Stripe stops
    redelivering them.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success({"handled": False})

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )

    return handler(orchestrator, webhook_event)


def _event_object(webhook_event: WebhookEvent) -> dict:
    try:
        return webhook_event.payload.get("data", {}).get("object", {}) or {}
    except (AttributeError, TypeError):
        return {}


def _missing_object_id(webhook_event: WebhookEvent) -> ServiceResult:
    logger.error(
        f"{webhook_event.event_type}: Could not extract object id",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return ServiceResult.failure(
        "Could not extract object id from webhook",
        error_code="INVALID_WEBHOOK_PAYLOAD",
    )


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(
    orchestrator: PaymentOrchestrator, webhook_event: WebhookEvent
) -> ServiceResult:
    """
    Settle the plan items paid for by the intent.

    Delegates to process_payment, which re-reads the intent from Stripe
    rather than trusting the payload.
    """
    payment_intent_id = webhook_event.get_object_id()
    if not payment_intent_id:
        return _missing_object_id(webhook_event)

    result = orchestrator.process_payment(payment_intent_id)
    return ServiceResult.success({"handled": True, **result})


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(
    orchestrator: PaymentOrchestrator, webhook_event: WebhookEvent
) -> ServiceResult:
    """
    Mark the intent's items as failed.

    Items already paid or refunded keep their status; the repository only
    moves unpaid or failed rows to failed. Intents opened outside this
    service carry no plan id and are acknowledged unhandled.
    """
    intent = _event_object(webhook_event)
    payment_intent_id = intent.get("id")
    if not payment_intent_id:
        return _missing_object_id(webhook_event)

    raw_metadata = intent.get("metadata") or {}
    if not raw_metadata.get(PLAN_ID_KEY):
        logger.info(
            "Ignoring failed payment for intent without plan metadata",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "payment_intent_id": payment_intent_id,
            },
        )
        return ServiceResult.success({"handled": False})

    metadata = PaymentMetadata.from_stripe(raw_metadata)
    last_error = intent.get("last_payment_error") or {}

    logger.warning(
        "Payment failed",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "payment_intent_id": payment_intent_id,
            "plan_id": metadata.plan_id,
            "failure_code": last_error.get("code"),
            "failure_message": last_error.get("message"),
        },
    )

    orchestrator.repository.set_service_item_payment_status(
        metadata.plan_id, metadata.item_ids, PaymentStatus.FAILED
    )
    return ServiceResult.success(
        {
            "handled": True,
            "plan_id": metadata.plan_id,
            "status": PaymentStatus.FAILED.value,
        }
    )


@register_handler("payment_intent.canceled")
def handle_payment_intent_canceled(
    orchestrator: PaymentOrchestrator, webhook_event: WebhookEvent
) -> ServiceResult:
    """Record the cancellation. Items keep their payment status."""
    intent = _event_object(webhook_event)
    payment_intent_id = intent.get("id")
    if not payment_intent_id:
        return _missing_object_id(webhook_event)

    logger.info(
        "Payment intent canceled",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "payment_intent_id": payment_intent_id,
            "cancellation_reason": intent.get("cancellation_reason"),
        },
    )
    return ServiceResult.success({"handled": True, "payment_intent_id": payment_intent_id})


# =============================================================================
# Charge Handlers
# =============================================================================


@register_handler("charge.refunded")
def handle_charge_refunded(
    orchestrator: PaymentOrchestrator, webhook_event: WebhookEvent
) -> ServiceResult:
    """
    Mark items refunded once their charge is fully refunded.

    Partial refunds are recorded in the ledger only. The item list comes
    from the payment intent's metadata.
    """
    charge = _event_object(webhook_event)
    payment_intent_id = charge.get("payment_intent")
    if not payment_intent_id:
        return _missing_object_id(webhook_event)

    amount = charge.get("amount") or 0
    amount_refunded = charge.get("amount_refunded") or 0
    full_refund = bool(charge.get("refunded")) or (amount > 0 and amount_refunded >= amount)

    if not full_refund:
        logger.info(
            "Partial refund recorded, item status unchanged",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "payment_intent_id": payment_intent_id,
                "amount_refunded": amount_refunded,
            },
        )
        return ServiceResult.success(
            {"handled": True, "payment_intent_id": payment_intent_id, "full_refund": False}
        )

    intent = orchestrator.gateway.retrieve_payment_intent(payment_intent_id)
    metadata = PaymentMetadata.from_stripe(intent.metadata)
    orchestrator.repository.set_service_item_payment_status(
        metadata.plan_id, metadata.item_ids, PaymentStatus.REFUNDED
    )

    logger.info(
        "Charge fully refunded",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "payment_intent_id": payment_intent_id,
            "plan_id": metadata.plan_id,
        },
    )
    return ServiceResult.success(
        {
            "handled": True,
            "payment_intent_id": payment_intent_id,
            "plan_id": metadata.plan_id,
            "full_refund": True,
            "status": PaymentStatus.REFUNDED.value,
        }
    )
