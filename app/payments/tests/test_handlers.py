"""
Tests for Stripe webhook event handlers.

Handlers are called directly with a WebhookEvent built from a Stripe
event, the way the orchestrator calls them after locking the ledger row.
"""

import pytest

from payments.exceptions import InvalidPaymentMetadataError, PaymentNotSucceededError
from payments.tests.factories import WebhookEventFactory, build_event
from payments.webhooks import handlers
from payments.webhooks.handlers import WEBHOOK_HANDLERS, dispatch_webhook, register_handler
from plans.models import PaymentStatus


def payment_statuses(plan):
    return sorted(item.payment_status for item in plan.service_items.all())


def webhook_event_for(event_type, obj):
    event = build_event(event_type, obj)
    return WebhookEventFactory.build(
        stripe_event_id=event["id"],
        event_type=event_type,
        payload=event,
    )


class TestRegistry:
    def test_settlement_events_are_registered(self):
        assert {
            "payment_intent.succeeded",
            "payment_intent.payment_failed",
            "payment_intent.canceled",
            "charge.refunded",
        } <= set(WEBHOOK_HANDLERS)

    def test_unknown_event_is_accepted_unhandled(self, orchestrator):
        result = dispatch_webhook(orchestrator, webhook_event_for("invoice.paid", {"id": "in_1"}))

        assert result.success
        assert result.data == {"handled": False}

    def test_register_handler(self, orchestrator, monkeypatch):
        monkeypatch.setattr(handlers, "WEBHOOK_HANDLERS", dict(WEBHOOK_HANDLERS))

        @register_handler("test.event")
        def handle_test(orchestrator, webhook_event):
            return "called"

        assert handlers.WEBHOOK_HANDLERS["test.event"] is handle_test
        assert dispatch_webhook(orchestrator, webhook_event_for("test.event", {})) == "called"


@pytest.mark.django_db
class TestPaymentIntentSucceeded:
    def test_settles_items(self, orchestrator, gateway, intent_result, plan_metadata, billable_plan):
        gateway.retrieve_payment_intent.return_value = intent_result(metadata=plan_metadata)
        webhook_event = webhook_event_for("payment_intent.succeeded", {"id": "pi_test123456"})

        result = dispatch_webhook(orchestrator, webhook_event)

        assert result.success
        assert result.data["handled"] is True
        assert result.data["status"] == "paid"
        gateway.retrieve_payment_intent.assert_called_once_with("pi_test123456")
        assert payment_statuses(billable_plan) == [PaymentStatus.PAID] * 3

    def test_payload_status_is_not_trusted(self, orchestrator, gateway, intent_result):
        gateway.retrieve_payment_intent.return_value = intent_result(status="processing")
        webhook_event = webhook_event_for(
            "payment_intent.succeeded", {"id": "pi_test123456", "status": "succeeded"}
        )

        with pytest.raises(PaymentNotSucceededError):
            dispatch_webhook(orchestrator, webhook_event)

    def test_missing_intent_id_fails(self, orchestrator, gateway):
        result = dispatch_webhook(orchestrator, webhook_event_for("payment_intent.succeeded", {}))

        assert not result.success
        assert result.error_code == "INVALID_WEBHOOK_PAYLOAD"
        gateway.retrieve_payment_intent.assert_not_called()


@pytest.mark.django_db
class TestPaymentIntentFailed:
    def test_marks_unpaid_items_failed(self, orchestrator, plan_metadata, billable_plan):
        webhook_event = webhook_event_for(
            "payment_intent.payment_failed",
            {
                "id": "pi_test123456",
                "metadata": plan_metadata,
                "last_payment_error": {"code": "card_declined", "message": "Declined"},
            },
        )

        result = dispatch_webhook(orchestrator, webhook_event)

        assert result.data == {
            "handled": True,
            "plan_id": str(billable_plan.id),
            "status": "failed",
        }
        assert payment_statuses(billable_plan) == [PaymentStatus.FAILED] * 3

    def test_paid_items_stay_paid(self, orchestrator, plan_metadata, billable_plan):
        billable_plan.service_items.update(payment_status=PaymentStatus.PAID)
        webhook_event = webhook_event_for(
            "payment_intent.payment_failed",
            {"id": "pi_test123456", "metadata": plan_metadata},
        )

        dispatch_webhook(orchestrator, webhook_event)

        assert payment_statuses(billable_plan) == [PaymentStatus.PAID] * 3

    def test_intent_without_plan_is_ignored(self, orchestrator, billable_plan):
        webhook_event = webhook_event_for(
            "payment_intent.payment_failed",
            {"id": "pi_external", "metadata": {"order_id": "A-1"}},
        )

        result = dispatch_webhook(orchestrator, webhook_event)

        assert result.success
        assert result.data == {"handled": False}
        assert payment_statuses(billable_plan) == [PaymentStatus.UNPAID] * 3

    def test_invalid_metadata_raises(self, orchestrator):
        webhook_event = webhook_event_for(
            "payment_intent.payment_failed",
            {"id": "pi_test123456", "metadata": {"services_plan_id": "not-a-uuid"}},
        )

        with pytest.raises(InvalidPaymentMetadataError):
            dispatch_webhook(orchestrator, webhook_event)


@pytest.mark.django_db
class TestPaymentIntentCanceled:
    def test_leaves_items_untouched(self, orchestrator, billable_plan):
        webhook_event = webhook_event_for(
            "payment_intent.canceled",
            {"id": "pi_test123456", "cancellation_reason": "abandoned"},
        )

        result = dispatch_webhook(orchestrator, webhook_event)

        assert result.data == {"handled": True, "payment_intent_id": "pi_test123456"}
        assert payment_statuses(billable_plan) == [PaymentStatus.UNPAID] * 3


@pytest.mark.django_db
class TestChargeRefunded:
    @pytest.fixture
    def paid_plan(self, billable_plan):
        billable_plan.service_items.update(payment_status=PaymentStatus.PAID)
        return billable_plan

    def test_full_refund_marks_items_refunded(
        self, orchestrator, gateway, intent_result, plan_metadata, paid_plan
    ):
        gateway.retrieve_payment_intent.return_value = intent_result(metadata=plan_metadata)
        webhook_event = webhook_event_for(
            "charge.refunded",
            {
                "id": "ch_1",
                "payment_intent": "pi_test123456",
                "amount": 450000,
                "amount_refunded": 450000,
                "refunded": True,
            },
        )

        result = dispatch_webhook(orchestrator, webhook_event)

        assert result.data["full_refund"] is True
        assert result.data["status"] == "refunded"
        assert payment_statuses(paid_plan) == [PaymentStatus.REFUNDED] * 3

    def test_partial_refund_keeps_items_paid(self, orchestrator, gateway, paid_plan):
        webhook_event = webhook_event_for(
            "charge.refunded",
            {
                "id": "ch_1",
                "payment_intent": "pi_test123456",
                "amount": 450000,
                "amount_refunded": 2500,
                "refunded": False,
            },
        )

        result = dispatch_webhook(orchestrator, webhook_event)

        assert result.data == {
            "handled": True,
            "payment_intent_id": "pi_test123456",
            "full_refund": False,
        }
        gateway.retrieve_payment_intent.assert_not_called()
        assert payment_statuses(paid_plan) == [PaymentStatus.PAID] * 3

    def test_missing_payment_intent_fails(self, orchestrator):
        result = dispatch_webhook(orchestrator, webhook_event_for("charge.refunded", {"id": "ch_1"}))

        assert not result.success
        assert result.error_code == "INVALID_WEBHOOK_PAYLOAD"
