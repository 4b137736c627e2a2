"""
DRF views for payments app.

This module provides API views for:
- Payment intent creation and status
- Settlement of succeeded intents
- Cancellation and refunds

Related files:
    - services/payment_orchestrator.py: PaymentOrchestrator
    - serializers.py: Request/response serializers
    - webhooks/views.py: Stripe webhook endpoint
    - urls.py: URL routing

Endpoints:
    POST /api/v1/payments/intents/ - Create a payment intent for plan items
    GET /api/v1/payments/intents/<intent_id>/ - Get payment status
    POST /api/v1/payments/intents/<intent_id>/process/ - Settle a succeeded intent
    POST /api/v1/payments/intents/<intent_id>/cancel/ - Cancel an intent
    POST /api/v1/payments/intents/<intent_id>/refund/ - Refund an intent

Security:
    - All endpoints require authentication (the webhook lives in webhooks/)

Domain and gateway errors propagate to core.exception_handlers.
"""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.serializers import (
    CancellationSerializer,
    CancelPaymentSerializer,
    CreatePaymentIntentSerializer,
    PaymentIntentSerializer,
    PaymentStatusSerializer,
    RefundPaymentSerializer,
    RefundSerializer,
    SettlementSerializer,
)
from payments.services import PaymentOrchestrator

logger = logging.getLogger(__name__)


class PaymentIntentCreateView(APIView):
    """
    Create a payment intent for a services plan.

    POST /api/v1/payments/intents/

    Request Body:
        {"plan_id": "<uuid>", "item_ids": ["<uuid>", ...], "customer_id": "cus_xxx"}

    An optional Idempotency-Key header is forwarded to Stripe as is.

    Returns:
        201 with {"client_secret", "intent_id", "amount", "amount_cents", "currency"}
    """

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = CreatePaymentIntentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = PaymentOrchestrator().create_payment_intent(
            plan_id=data["plan_id"],
            item_ids=data.get("item_ids"),
            customer_id=data.get("customer_id"),
            idempotency_key=request.headers.get("Idempotency-Key"),
        )
        return Response(PaymentIntentSerializer(result).data, status=status.HTTP_201_CREATED)


class PaymentStatusView(APIView):
    """
    Gateway status of a payment intent.

    GET /api/v1/payments/intents/<intent_id>/
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, intent_id):
        result = PaymentOrchestrator().get_payment_status(intent_id)
        return Response(PaymentStatusSerializer(result).data)


class ProcessPaymentView(APIView):
    """
    Settle a succeeded payment intent onto its plan items.

    POST /api/v1/payments/intents/<intent_id>/process/

    Returns 409 when the intent has not succeeded.
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, intent_id):
        result = PaymentOrchestrator().process_payment(intent_id)
        return Response(SettlementSerializer(result).data)


class CancelPaymentView(APIView):
    """
    Cancel a payment intent.

    POST /api/v1/payments/intents/<intent_id>/cancel/

    Request Body:
        {"reason": "requested_by_customer"}
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, intent_id):
        serializer = CancelPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PaymentOrchestrator().cancel_payment(
            intent_id,
            reason=serializer.validated_data.get("reason"),
        )
        return Response(CancellationSerializer(result).data)


class RefundPaymentView(APIView):
    """
    Refund a succeeded payment intent.

    POST /api/v1/payments/intents/<intent_id>/refund/

    Request Body:
        {"amount": "25.00", "reason": "requested_by_customer"}

    Omitting amount refunds the full payment. Returns 409 when the intent
    has not succeeded.
    Each request is a separate refund unless it repeats an Idempotency-Key
    header.
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, intent_id):
        serializer = RefundPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PaymentOrchestrator().refund_payment(
            intent_id,
            amount=serializer.validated_data.get("amount"),
            reason=serializer.validated_data.get("reason"),
            idempotency_key=request.headers.get("Idempotency-Key"),
        )
        logger.info(
            "Refund requested through API",
            extra={"payment_intent_id": intent_id, "user_id": request.user.pk},
        )
        return Response(RefundSerializer(result).data)
