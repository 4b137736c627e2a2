"""
Tests for DjangoWebhookEventLedger and WebhookEvent state helpers.
"""

import pytest
from django.db import transaction
from django.test import override_settings

from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tests.factories import WebhookEventFactory, build_event
from payments.webhooks.ledger import DjangoWebhookEventLedger, WebhookEventLedger


@pytest.fixture
def ledger():
    return DjangoWebhookEventLedger()


@pytest.fixture
def event():
    return build_event("payment_intent.succeeded", {"id": "pi_123"}, event_id="evt_ledger_1")


def test_django_ledger_satisfies_protocol(ledger):
    assert isinstance(ledger, WebhookEventLedger)


@pytest.mark.django_db
class TestBegin:
    def test_creates_pending_row(self, ledger, event):
        with transaction.atomic():
            webhook_event = ledger.begin(event["id"], event["type"], event)

        assert webhook_event.status == WebhookEventStatus.PENDING
        assert webhook_event.payload == event
        assert webhook_event.retry_count == 0
        assert WebhookEvent.objects.filter(stripe_event_id="evt_ledger_1").exists()

    def test_returns_existing_row(self, ledger, event):
        existing = WebhookEventFactory(stripe_event_id=event["id"], status=WebhookEventStatus.FAILED)

        with transaction.atomic():
            webhook_event = ledger.begin(event["id"], event["type"], event)

        assert webhook_event.pk == existing.pk
        assert webhook_event.status == WebhookEventStatus.FAILED
        assert WebhookEvent.objects.count() == 1


@pytest.mark.django_db
class TestComplete:
    def test_stores_result(self, ledger, event):
        with transaction.atomic():
            webhook_event = ledger.begin(event["id"], event["type"], event)
            webhook_event.mark_processing()
            ledger.complete(webhook_event, {"handled": True})

        webhook_event.refresh_from_db()
        assert webhook_event.is_processed
        assert webhook_event.processed_at is not None
        assert webhook_event.result == {"handled": True}
        assert webhook_event.retry_count == 1


@pytest.mark.django_db
class TestFail:
    def test_records_failure_for_unknown_event(self, ledger, event):
        ledger.fail(event["id"], event["type"], event, "ValueError: boom")

        webhook_event = WebhookEvent.objects.get(stripe_event_id=event["id"])
        assert webhook_event.is_failed
        assert webhook_event.retry_count == 1
        assert webhook_event.error_message == "ValueError: boom"
        assert webhook_event.payload == event

    def test_increments_existing_attempts(self, ledger):
        webhook_event = WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=2)

        ledger.fail(
            webhook_event.stripe_event_id,
            webhook_event.event_type,
            webhook_event.payload,
            "KeyError: 'id'",
        )

        webhook_event.refresh_from_db()
        assert webhook_event.retry_count == 3
        assert webhook_event.error_message == "KeyError: 'id'"

    def test_does_not_overwrite_processed_event(self, ledger):
        webhook_event = WebhookEventFactory(status=WebhookEventStatus.PROCESSED, retry_count=1)

        ledger.fail(
            webhook_event.stripe_event_id,
            webhook_event.event_type,
            webhook_event.payload,
            "late failure",
        )

        webhook_event.refresh_from_db()
        assert webhook_event.is_processed
        assert webhook_event.retry_count == 1
        assert webhook_event.error_message is None


@pytest.mark.django_db
class TestRetryable:
    @override_settings(WEBHOOK_MAX_RETRIES=3)
    def test_returns_failed_events_under_cap(self, ledger):
        retryable = WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=2)
        WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=3)
        WebhookEventFactory(status=WebhookEventStatus.PROCESSED, retry_count=1)
        WebhookEventFactory(status=WebhookEventStatus.PENDING)

        assert ledger.retryable() == [retryable]

    def test_respects_limit(self, ledger):
        WebhookEventFactory.create_batch(3, status=WebhookEventStatus.FAILED, retry_count=1)

        assert len(ledger.retryable(limit=2)) == 2


@pytest.mark.django_db
class TestWebhookEventModel:
    @override_settings(WEBHOOK_MAX_RETRIES=2)
    def test_can_retry(self):
        assert WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=1).can_retry
        assert not WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=2).can_retry
        assert not WebhookEventFactory(status=WebhookEventStatus.PENDING).can_retry

    def test_get_object_id(self):
        webhook_event = WebhookEventFactory.build(payload={"data": {"object": {"id": "ch_1"}}})

        assert webhook_event.get_object_id() == "ch_1"

    def test_get_object_id_handles_malformed_payload(self):
        assert WebhookEventFactory.build(payload={"data": None}).get_object_id() is None
        assert WebhookEventFactory.build(payload=[]).get_object_id() is None
