"""
Pytest fixtures for payments tests.

This module provides fixtures for testing the Stripe adapter and the
orchestrator, including mock Stripe API responses, error conditions,
a mocked gateway, and signed webhook payloads.

Sections:
    - Test Data Fixtures
    - Mock Stripe Response Fixtures
    - Mock Stripe Error Fixtures
    - Mock Stripe Client Fixtures
    - Webhook Signing Fixtures
    - Orchestrator Fixtures
"""

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import stripe

from payments.adapters import PaymentIntentResult, StripeAdapter
from payments.metadata import PaymentMetadata
from payments.services import PaymentOrchestrator
from payments.tests.factories import build_event, sign_payload
from plans.models import ServiceCategory
from plans.tests.factories import ServiceItemFactory, ServicesPlanFactory

# =============================================================================
# Test Data Fixtures
# =============================================================================


@pytest.fixture
def idempotency_key():
    return "create_intent:plan-1:1:a1b2c3d4"


# =============================================================================
# Mock Stripe Response Fixtures
# =============================================================================


@dataclass
class MockStripeObject:
    """Mock Stripe API object with to_dict support."""

    data: dict[str, Any]

    def __getattr__(self, name: str) -> Any:
        if name == "data":
            return self.__dict__["data"]
        return self.data.get(name)

    def to_dict(self) -> dict[str, Any]:
        return self.data


@pytest.fixture
def mock_payment_intent():
    """Create a mock PaymentIntent response."""

    def _create(
        id: str = "pi_test123456",
        status: str = "requires_payment_method",
        amount: int = 450000,
        currency: str = "usd",
        client_secret: str = "pi_test123456_secret_abc123",
        amount_received: int = 0,
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "payment_intent",
                "status": status,
                "amount": amount,
                "currency": currency,
                "client_secret": client_secret,
                "amount_received": amount_received,
                "metadata": metadata or {},
            }
        )

    return _create


@pytest.fixture
def mock_refund():
    """Create a mock Refund response."""

    def _create(
        id: str = "re_test123456",
        amount: int = 450000,
        currency: str = "usd",
        status: str = "succeeded",
        payment_intent: str = "pi_test123456",
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "refund",
                "amount": amount,
                "currency": currency,
                "status": status,
                "payment_intent": payment_intent,
                "metadata": metadata or {},
            }
        )

    return _create


# =============================================================================
# Mock Stripe Error Fixtures
# =============================================================================


@pytest.fixture
def card_error():
    """Create a Stripe CardError."""

    def _create(
        message: str = "Your card was declined.",
        code: str = "card_declined",
        decline_code: str | None = "generic_decline",
    ) -> stripe.CardError:
        error = stripe.CardError(message=message, param=None, code=code)
        error.decline_code = decline_code
        return error

    return _create


@pytest.fixture
def invalid_request_error():
    """Create a Stripe InvalidRequestError."""

    def _create(
        message: str = "No such payment_intent: 'pi_missing'",
        param: str | None = "intent",
        code: str = "resource_missing",
    ) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(message=message, param=param, code=code)

    return _create


@pytest.fixture
def rate_limit_error():
    return stripe.RateLimitError(message="Too many requests hit the API too quickly.")


@pytest.fixture
def api_connection_error():
    return stripe.APIConnectionError(message="Could not connect to Stripe.")


@pytest.fixture
def timeout_error():
    return stripe.APIConnectionError(
        message="Unexpected error communicating with Stripe. Request timed out."
    )


@pytest.fixture
def api_error():
    return stripe.APIError(message="Something went wrong on Stripe's end.")


@pytest.fixture
def authentication_error():
    return stripe.AuthenticationError(message="Invalid API Key provided.")


# =============================================================================
# Mock Stripe Client Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def mock_stripe_http_client():
    """Keep the adapter from building a real HTTP client."""
    with patch("stripe.RequestsClient") as mock:
        yield mock


@pytest.fixture
def mock_stripe_payment_intent(mock_payment_intent):
    """Mock stripe.PaymentIntent API."""
    with patch("stripe.PaymentIntent") as mock:
        mock.create.return_value = mock_payment_intent()
        mock.retrieve.return_value = mock_payment_intent()
        mock.cancel.return_value = mock_payment_intent(status="canceled")
        yield mock


@pytest.fixture
def mock_stripe_refund(mock_refund):
    """Mock stripe.Refund API."""
    with patch("stripe.Refund") as mock:
        mock.create.return_value = mock_refund()
        yield mock


# =============================================================================
# Webhook Signing Fixtures
# =============================================================================


@pytest.fixture
def webhook_event_body():
    return json.dumps(
        {
            "id": "evt_test123",
            "object": "event",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_test123", "object": "payment_intent"}},
        }
    )


@pytest.fixture
def signed_webhook(settings, webhook_event_body):
    """Return (payload bytes, signature header) signed with the test secret."""
    header = sign_payload(webhook_event_body, settings.STRIPE_WEBHOOK_SECRET)
    return webhook_event_body.encode(), header


# =============================================================================
# Orchestrator Fixtures
# =============================================================================


@pytest.fixture
def billable_plan(db):
    """Plan with 3000 + 1200 + 300 of unpaid services."""
    plan = ServicesPlanFactory(title="Home therapy plan")
    ServiceItemFactory(
        plan=plan,
        service_category=ServiceCategory.PHYSICAL_THERAPY,
        estimated_cost=Decimal("3000.00"),
    )
    ServiceItemFactory(
        plan=plan,
        service_category=ServiceCategory.OCCUPATIONAL_THERAPY,
        estimated_cost=Decimal("1200.00"),
    )
    ServiceItemFactory(
        plan=plan,
        service_category=ServiceCategory.TRANSPORTATION,
        estimated_cost=Decimal("300.00"),
    )
    return plan


@pytest.fixture
def plan_metadata(billable_plan):
    """Stripe metadata for an intent covering every item of billable_plan."""
    return PaymentMetadata.from_plan(billable_plan, billable_plan.service_items.all()).to_stripe()


@pytest.fixture
def intent_result():
    """Create a PaymentIntentResult as the gateway would return it."""

    def _create(
        id: str = "pi_test123456",
        status: str = "succeeded",
        amount_cents: int = 450000,
        metadata: dict | None = None,
    ) -> PaymentIntentResult:
        return PaymentIntentResult(
            id=id,
            status=status,
            amount_cents=amount_cents,
            currency="usd",
            client_secret=f"{id}_secret_abc123",
            amount_received=amount_cents if status == "succeeded" else 0,
            metadata=metadata or {},
        )

    return _create


@pytest.fixture
def gateway(intent_result):
    """
    Mocked PaymentGateway.

    construct_webhook_event parses the body without checking the signature;
    signature checks are covered by the adapter tests.
    """
    gateway = MagicMock(spec=StripeAdapter)
    gateway.create_payment_intent.return_value = intent_result(status="requires_payment_method")
    gateway.retrieve_payment_intent.return_value = intent_result()
    gateway.construct_webhook_event.side_effect = lambda payload, signature: json.loads(payload)
    return gateway


@pytest.fixture
def orchestrator(gateway):
    return PaymentOrchestrator(gateway=gateway)


@pytest.fixture
def succeeded_event(plan_metadata):
    """Create a payment_intent.succeeded event for billable_plan."""

    def _create(event_id: str = "evt_succeeded_1", intent_id: str = "pi_test123456") -> dict:
        return build_event(
            "payment_intent.succeeded",
            {
                "id": intent_id,
                "object": "payment_intent",
                "status": "succeeded",
                "amount": 450000,
                "metadata": plan_metadata,
            },
            event_id=event_id,
        )

    return _create
