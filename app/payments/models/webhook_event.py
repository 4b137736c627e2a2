"""
WebhookEvent model, the processed-event ledger for Stripe webhooks.

Every verified delivery gets one row keyed by the Stripe event id. The
unique constraint plus a row lock taken inside the same transaction as the
handler's writes guarantees an event is applied at most once, and the
stored result is what duplicate deliveries get back.

Usage:
    from payments.webhooks.ledger import DjangoWebhookEventLedger

    ledger = DjangoWebhookEventLedger()
    with transaction.atomic():
        event = ledger.begin(event_id, event_type, payload)
        if event.is_processed:
            return event.result
        ...
        ledger.complete(event, result)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    One Stripe event and what happened when we applied it.

    Lifecycle: PENDING on insert, PROCESSING while the handler runs,
    then PROCESSED (result stored) or FAILED (error stored, eligible for
    retry_failed_webhook_events until retry_count reaches the cap).
    A FAILED row is written in its own transaction after the handler's
    writes have been rolled back.
    """

    # ==========================================================================
    # Event Identification
    # ==========================================================================

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe event id (evt_...); one ledger row per event",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type, used to pick the handler",
    )

    payload = models.JSONField(
        help_text="Verified event body, kept for retries",
    )

    # ==========================================================================
    # Processing Status
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
        help_text="Ledger state of this event",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set when a handler finished without error",
    )

    result = models.JSONField(
        null=True,
        blank=True,
        help_text="Handler result replayed to duplicate deliveries",
    )

    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Last handler error, cleared on success",
    )

    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Handler attempts so far, capped by WEBHOOK_MAX_RETRIES",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "retry_count"], name="payments_wh_status_retry_idx"),
            models.Index(fields=["status", "created_at"], name="payments_wh_status_created_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def is_failed(self) -> bool:
        return self.status == WebhookEventStatus.FAILED

    @property
    def can_retry(self) -> bool:
        """Failed with fewer than WEBHOOK_MAX_RETRIES attempts."""
        max_retries = getattr(settings, "WEBHOOK_MAX_RETRIES", 5)
        return self.is_failed and self.retry_count < max_retries

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    def mark_processing(self) -> None:
        """Start an attempt. The caller saves."""
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self, result: dict | None = None) -> None:
        """Record a successful attempt. The caller saves."""
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.result = result
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_object_id(self) -> str | None:
        """Id of data.object (pi_..., ch_...), or None for a malformed payload."""
        try:
            return self.payload.get("data", {}).get("object", {}).get("id")
        except (AttributeError, TypeError):
            return None
