"""
Processed-event ledger for Stripe webhooks.

The orchestrator records every verified event through a
WebhookEventLedger. The Django implementation stores WebhookEvent rows;
tests may pass any object with the same methods.

Locking:
    begin() must run inside transaction.atomic(). It takes a row lock on
    the event (creating the row first if needed), so a concurrent delivery
    of the same event id waits until the first one commits or rolls back,
    then sees its final status.

Failures:
    A failed handler rolls back everything in its transaction, including
    the attempt counter and a freshly inserted row. fail() runs in its own
    transaction afterwards and writes the failed attempt back.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from django.conf import settings
from django.db import IntegrityError, transaction

from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


@runtime_checkable
class WebhookEventLedger(Protocol):
    """Check-and-record capability for webhook idempotency."""

    def begin(self, event_id: str, event_type: str, payload: dict[str, Any]) -> WebhookEvent:
        """Lock or create the ledger row for an event."""
        ...

    def complete(self, event: WebhookEvent, result: dict[str, Any]) -> None:
        """Record the event as processed with its result."""
        ...

    def fail(
        self,
        event_id: str,
        event_type: str,
        payload: dict[str, Any],
        error_message: str,
    ) -> None:
        """Record a failed attempt, outside the rolled-back transaction."""
        ...

    def retryable(self, limit: int = 100) -> list[WebhookEvent]:
        """Failed events still under the retry cap, oldest first."""
        ...


class DjangoWebhookEventLedger:
    """WebhookEventLedger backed by the WebhookEvent model."""

    def begin(self, event_id: str, event_type: str, payload: dict[str, Any]) -> WebhookEvent:
        locked = WebhookEvent.objects.select_for_update()
        event = locked.filter(stripe_event_id=event_id).first()
        if event is not None:
            return event

        try:
            # Savepoint so a lost insert race leaves the outer transaction usable
            with transaction.atomic():
                return WebhookEvent.objects.create(
                    stripe_event_id=event_id,
                    event_type=event_type,
                    payload=payload,
                    status=WebhookEventStatus.PENDING,
                )
        except IntegrityError:
            logger.info(
                "Concurrent delivery created the webhook event first",
                extra={"stripe_event_id": event_id},
            )
            return locked.get(stripe_event_id=event_id)

    def complete(self, event: WebhookEvent, result: dict[str, Any]) -> None:
        event.mark_processed(result)
        event.save(
            update_fields=[
                "status",
                "processed_at",
                "result",
                "error_message",
                "retry_count",
                "updated_at",
            ]
        )

    def fail(
        self,
        event_id: str,
        event_type: str,
        payload: dict[str, Any],
        error_message: str,
    ) -> None:
        with transaction.atomic():
            event, _ = WebhookEvent.objects.select_for_update().get_or_create(
                stripe_event_id=event_id,
                defaults={"event_type": event_type, "payload": payload},
            )
            if event.is_processed:
                return
            event.retry_count += 1
            event.mark_failed(error_message)
            event.save(update_fields=["status", "error_message", "retry_count", "updated_at"])

        logger.warning(
            "Webhook event marked failed",
            extra={
                "stripe_event_id": event_id,
                "event_type": event_type,
                "retry_count": event.retry_count,
            },
        )

    def retryable(self, limit: int = 100) -> list[WebhookEvent]:
        return list(
            WebhookEvent.objects.filter(
                status=WebhookEventStatus.FAILED,
                retry_count__lt=getattr(settings, "WEBHOOK_MAX_RETRIES", 5),
            ).order_by("created_at")[:limit]
        )
