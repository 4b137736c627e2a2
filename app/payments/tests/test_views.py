"""
Tests for payments API views and the Stripe webhook endpoint.

Tests cover:
- Intent creation, status, settlement, cancellation and refund endpoints
- Error mapping to HTTP status codes
- Webhook signature handling with a real Stripe-style signature
"""

import json
import uuid
from unittest.mock import patch

import pytest
from django.urls import reverse

from payments.adapters import RefundResult, StripeAdapter
from payments.exceptions import StripeAPIUnavailableError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tests.factories import sign_payload
from plans.models import PaymentStatus


@pytest.fixture
def patched_gateway(gateway):
    with patch("payments.services.payment_orchestrator.StripeAdapter", gateway):
        yield gateway


def payment_statuses(plan):
    return sorted(item.payment_status for item in plan.service_items.all())


# =============================================================================
# Payment Intent Endpoints
# =============================================================================


@pytest.mark.django_db
class TestPaymentIntentCreateView:
    @property
    def url(self):
        return reverse("payments:intent_create")

    def test_creates_intent(self, authenticated_client, patched_gateway, billable_plan):
        response = authenticated_client.post(
            self.url, {"plan_id": str(billable_plan.id)}, format="json"
        )

        assert response.status_code == 201
        assert response.json() == {
            "client_secret": "pi_test123456_secret_abc123",
            "intent_id": "pi_test123456",
            "amount": "4500.00",
            "amount_cents": 450000,
            "currency": "usd",
        }

    def test_invalid_body_returns_400(self, authenticated_client, patched_gateway):
        response = authenticated_client.post(self.url, {"plan_id": "nope"}, format="json")

        assert response.status_code == 400
        patched_gateway.create_payment_intent.assert_not_called()

    def test_unknown_plan_returns_404(self, authenticated_client, patched_gateway):
        response = authenticated_client.post(self.url, {"plan_id": str(uuid.uuid4())}, format="json")

        assert response.status_code == 404
        assert response.json()["error_code"] == "PLAN_NOT_FOUND"

    def test_gateway_outage_returns_502(self, authenticated_client, patched_gateway, billable_plan):
        patched_gateway.create_payment_intent.side_effect = StripeAPIUnavailableError(
            "Stripe API unavailable"
        )

        response = authenticated_client.post(
            self.url, {"plan_id": str(billable_plan.id)}, format="json"
        )

        assert response.status_code == 502
        assert response.json()["error_code"] == "STRIPE_UNAVAILABLE"

    def test_requires_authentication(self, api_client, patched_gateway):
        response = api_client.post(self.url, {"plan_id": str(uuid.uuid4())}, format="json")

        assert response.status_code in (401, 403)


@pytest.mark.django_db
class TestPaymentStatusView:
    def test_returns_status(self, authenticated_client, patched_gateway):
        url = reverse("payments:intent_status", kwargs={"intent_id": "pi_test123456"})

        response = authenticated_client.get(url)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "succeeded"
        assert body["amount"] == "4500.00"
        assert body["amount_cents"] == 450000


@pytest.mark.django_db
class TestProcessPaymentView:
    def test_settles_payment(
        self, authenticated_client, patched_gateway, intent_result, plan_metadata, billable_plan
    ):
        patched_gateway.retrieve_payment_intent.return_value = intent_result(metadata=plan_metadata)
        url = reverse("payments:intent_process", kwargs={"intent_id": "pi_test123456"})

        response = authenticated_client.post(url)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "plan_id": str(billable_plan.id),
            "status": "paid",
        }
        assert payment_statuses(billable_plan) == [PaymentStatus.PAID] * 3

    def test_unsucceeded_intent_returns_409(
        self, authenticated_client, patched_gateway, intent_result, plan_metadata, billable_plan
    ):
        patched_gateway.retrieve_payment_intent.return_value = intent_result(
            status="requires_payment_method", metadata=plan_metadata
        )
        url = reverse("payments:intent_process", kwargs={"intent_id": "pi_test123456"})

        response = authenticated_client.post(url)

        assert response.status_code == 409
        assert response.json()["error_code"] == "PAYMENT_NOT_SUCCEEDED"
        assert payment_statuses(billable_plan) == [PaymentStatus.UNPAID] * 3


@pytest.mark.django_db
class TestCancelPaymentView:
    def test_cancels_intent(self, authenticated_client, patched_gateway, intent_result):
        patched_gateway.cancel_payment_intent.return_value = intent_result(status="canceled")
        url = reverse("payments:intent_cancel", kwargs={"intent_id": "pi_test123456"})

        response = authenticated_client.post(url, {"reason": "abandoned"}, format="json")

        assert response.status_code == 200
        assert response.json() == {"success": True, "status": "canceled"}
        patched_gateway.cancel_payment_intent.assert_called_once_with("pi_test123456", "abandoned")

    def test_rejects_unknown_reason(self, authenticated_client, patched_gateway):
        url = reverse("payments:intent_cancel", kwargs={"intent_id": "pi_test123456"})

        response = authenticated_client.post(url, {"reason": "bored"}, format="json")

        assert response.status_code == 400


@pytest.mark.django_db
class TestRefundPaymentView:
    def test_partial_refund(self, authenticated_client, patched_gateway, intent_result, plan_metadata):
        patched_gateway.retrieve_payment_intent.return_value = intent_result(metadata=plan_metadata)
        patched_gateway.create_refund.return_value = RefundResult(
            id="re_test123456",
            amount_cents=2500,
            currency="usd",
            status="succeeded",
            payment_intent_id="pi_test123456",
        )
        url = reverse("payments:intent_refund", kwargs={"intent_id": "pi_test123456"})

        response = authenticated_client.post(url, {"amount": "25.00"}, format="json")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "refund_id": "re_test123456",
            "amount": "25.00",
            "full_refund": False,
        }

    def test_idempotency_key_header_is_forwarded(
        self, authenticated_client, patched_gateway, intent_result, plan_metadata
    ):
        patched_gateway.retrieve_payment_intent.return_value = intent_result(metadata=plan_metadata)
        patched_gateway.create_refund.return_value = RefundResult(
            id="re_test123456",
            amount_cents=2500,
            currency="usd",
            status="succeeded",
            payment_intent_id="pi_test123456",
        )
        url = reverse("payments:intent_refund", kwargs={"intent_id": "pi_test123456"})

        response = authenticated_client.post(
            url, {"amount": "25.00"}, format="json", HTTP_IDEMPOTENCY_KEY="refund-req-7"
        )

        assert response.status_code == 200
        assert patched_gateway.create_refund.call_args[0][1] == "refund-req-7"

    def test_unsucceeded_intent_returns_409(self, authenticated_client, patched_gateway, intent_result):
        patched_gateway.retrieve_payment_intent.return_value = intent_result(status="canceled")
        url = reverse("payments:intent_refund", kwargs={"intent_id": "pi_test123456"})

        response = authenticated_client.post(url, {}, format="json")

        assert response.status_code == 409
        assert response.json()["error_code"] == "NOT_ELIGIBLE_FOR_REFUND"
        patched_gateway.create_refund.assert_not_called()

    def test_rejects_non_positive_amount(self, authenticated_client, patched_gateway):
        url = reverse("payments:intent_refund", kwargs={"intent_id": "pi_test123456"})

        response = authenticated_client.post(url, {"amount": "0.00"}, format="json")

        assert response.status_code == 400


# =============================================================================
# Stripe Webhook Endpoint
# =============================================================================


@pytest.mark.django_db
class TestStripeWebhookView:
    @property
    def url(self):
        return reverse("payments:stripe_webhook")

    @pytest.fixture(autouse=True)
    def retrieve_intent(self, intent_result, plan_metadata):
        with patch.object(
            StripeAdapter,
            "retrieve_payment_intent",
            return_value=intent_result(metadata=plan_metadata),
        ) as retrieve:
            yield retrieve

    def post(self, client, payload, signature):
        headers = {"HTTP_STRIPE_SIGNATURE": signature} if signature else {}
        return client.post(self.url, data=payload, content_type="application/json", **headers)

    def test_applies_signed_event(self, client, settings, succeeded_event, billable_plan):
        payload = json.dumps(succeeded_event(event_id="evt_view_1"))

        response = self.post(client, payload, sign_payload(payload, settings.STRIPE_WEBHOOK_SECRET))

        assert response.status_code == 200
        body = response.json()
        assert body["received"] is True
        assert body["replayed"] is False
        assert body["event_id"] == "evt_view_1"
        assert payment_statuses(billable_plan) == [PaymentStatus.PAID] * 3

    def test_duplicate_delivery_is_replayed(
        self, client, settings, succeeded_event, retrieve_intent
    ):
        payload = json.dumps(succeeded_event(event_id="evt_view_dup"))
        signature = sign_payload(payload, settings.STRIPE_WEBHOOK_SECRET)

        self.post(client, payload, signature)
        response = self.post(client, payload, signature)

        assert response.status_code == 200
        assert response.json()["replayed"] is True
        assert retrieve_intent.call_count == 1

    def test_invalid_signature_returns_400(self, client, succeeded_event):
        payload = json.dumps(succeeded_event())

        response = self.post(client, payload, sign_payload(payload, "whsec_wrong"))

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_WEBHOOK_SIGNATURE"
        assert WebhookEvent.objects.count() == 0

    def test_missing_signature_returns_400(self, client, succeeded_event):
        response = self.post(client, json.dumps(succeeded_event()), None)

        assert response.status_code == 400

    def test_handler_failure_returns_500(
        self, client, settings, succeeded_event, retrieve_intent, intent_result
    ):
        retrieve_intent.return_value = intent_result(status="processing")
        payload = json.dumps(succeeded_event(event_id="evt_view_fail"))

        response = self.post(client, payload, sign_payload(payload, settings.STRIPE_WEBHOOK_SECRET))

        assert response.status_code == 500
        assert response.json()["error_code"] == "WEBHOOK_FAILED"
        webhook_event = WebhookEvent.objects.get(stripe_event_id="evt_view_fail")
        assert webhook_event.status == WebhookEventStatus.FAILED

    def test_get_not_allowed(self, client):
        response = client.get(self.url)

        assert response.status_code == 405
