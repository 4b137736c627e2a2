"""
Celery tasks for payment settlement.

This module provides periodic tasks for:
- Retrying failed webhook events
- Pruning old processed webhook events

Both are scheduled through CELERY_BEAT_SCHEDULE in settings.

Usage:
    from payments.tasks import retry_failed_webhook_events

    retry_failed_webhook_events.delay()
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from payments.models import WebhookEvent
from payments.services import PaymentOrchestrator
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

RETRY_BATCH_SIZE = 100


# =============================================================================
# Webhook Tasks
# =============================================================================


@shared_task
def retry_failed_webhook_events(limit: int = RETRY_BATCH_SIZE) -> dict:
    """
    Re-apply failed webhook events below WEBHOOK_MAX_RETRIES.

    The stored payload was verified when it first arrived, so it is applied
    directly through the orchestrator's ledger path. Each attempt counts
    toward the cap whether it succeeds or fails.

    Returns:
        Dict with counts of processed and still-failing events
    """
    orchestrator = PaymentOrchestrator()
    processed_count = 0
    failed_count = 0

    for webhook_event in orchestrator.ledger.retryable(limit=limit):
        logger.info(
            "Retrying failed webhook event",
            extra={
                "webhook_event_id": str(webhook_event.id),
                "stripe_event_id": webhook_event.stripe_event_id,
                "retry_count": webhook_event.retry_count,
            },
        )
        try:
            orchestrator.process_event(webhook_event.payload)
        except Exception:
            # Recorded as failed by the orchestrator; move on to the next event
            failed_count += 1
            continue
        processed_count += 1

    logger.info(
        f"Retried {processed_count + failed_count} failed webhook events",
        extra={"processed_count": processed_count, "failed_count": failed_count},
    )

    return {"processed_count": processed_count, "failed_count": failed_count}


@shared_task
def cleanup_old_webhook_events(days: int | None = None) -> dict:
    """
    Delete processed webhook events older than the retention window.

    Failed events are kept for debugging.

    Args:
        days: Retention in days (default: WEBHOOK_RETENTION_DAYS)

    Returns:
        Dict with count of events deleted
    """
    days = days if days is not None else getattr(settings, "WEBHOOK_RETENTION_DAYS", 90)
    cutoff = timezone.now() - timedelta(days=days)

    deleted_count, _ = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSED,
        processed_at__lt=cutoff,
    ).delete()

    if deleted_count > 0:
        logger.info(
            f"Deleted {deleted_count} old webhook events",
            extra={
                "deleted_count": deleted_count,
                "cutoff_date": cutoff.isoformat(),
            },
        )

    return {"deleted_count": deleted_count}
