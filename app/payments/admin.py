"""
Admin for the webhook ledger.

Payment intents live at Stripe, so the only local payment record is the
WebhookEvent row. Rows are read-only here; the one write is the
"re-apply" action, which runs failed events back through the orchestrator
exactly like the retry task does.
"""

import logging

from django.contrib import admin, messages

from payments.models import WebhookEvent
from payments.services import PaymentOrchestrator

__all__ = [
    "WebhookEventAdmin",
]

logger = logging.getLogger(__name__)


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = [
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type"]
    search_fields = ["stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "result",
        "error_message",
        "payload",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    actions = ["reapply_failed_events"]

    fieldsets = (
        (None, {"fields": ("id", "stripe_event_id", "event_type", "status")}),
        ("Outcome", {"fields": ("retry_count", "processed_at", "result", "error_message")}),
        ("Stripe payload", {"fields": ("payload",), "classes": ("collapse",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    @admin.action(description="Re-apply selected failed events")
    def reapply_failed_events(self, request, queryset):
        """Re-apply FAILED rows below the retry cap; anything else is skipped."""
        orchestrator = PaymentOrchestrator()
        applied = failed = skipped = 0

        for webhook_event in queryset:
            if not webhook_event.can_retry:
                skipped += 1
                continue
            try:
                orchestrator.process_event(webhook_event.payload)
            except Exception:
                logger.warning(
                    "Admin re-apply of webhook event failed",
                    extra={"stripe_event_id": webhook_event.stripe_event_id},
                )
                failed += 1
                continue
            applied += 1

        level = messages.WARNING if failed else messages.SUCCESS
        self.message_user(
            request,
            f"Re-applied {applied} event(s); {failed} failed again, {skipped} skipped.",
            level=level,
        )

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        # Retention is handled by cleanup_old_webhook_events
        return False
