"""
DRF serializers for the payments app.

This module provides serializers for:
- Payment intent creation requests and responses
- Cancel and refund requests
- Payment status and settlement responses

Related files:
    - services/payment_orchestrator.py: PaymentOrchestrator
    - views.py: Payment intent API views
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from payments.state_machines import CancellationReason, RefundReason


class CreatePaymentIntentSerializer(serializers.Serializer):
    """
    Request body for payment intent creation.

    The amount is never accepted from the client; it is computed from
    the plan's items.

    Usage:
        serializer = CreatePaymentIntentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        PaymentOrchestrator().create_payment_intent(**serializer.validated_data)
    """

    plan_id = serializers.UUIDField(help_text="Services plan to pay for")
    item_ids = serializers.ListField(
        child=serializers.UUIDField(),
        required=False,
        allow_empty=True,
        help_text="Service items to charge for (default: all items on the plan)",
    )
    customer_id = serializers.CharField(
        max_length=255,
        required=False,
        allow_null=True,
        allow_blank=False,
        help_text="Stripe Customer ID (cus_xxx)",
    )


class PaymentIntentSerializer(serializers.Serializer):
    client_secret = serializers.CharField(allow_null=True)
    intent_id = serializers.CharField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    amount_cents = serializers.IntegerField()
    currency = serializers.CharField()


class CancelPaymentSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(
        choices=CancellationReason.choices,
        required=False,
        allow_null=True,
    )


class RefundPaymentSerializer(serializers.Serializer):
    """
    Request body for refunds.

    Fields:
        amount: Major-unit amount to refund; omit for a full refund
        reason: Stripe refund reason
    """

    amount = serializers.DecimalField(
        max_digits=14,
        decimal_places=2,
        min_value=Decimal("0.01"),
        required=False,
        allow_null=True,
    )
    reason = serializers.ChoiceField(
        choices=RefundReason.choices,
        required=False,
        allow_null=True,
    )


class RefundSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    refund_id = serializers.CharField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    full_refund = serializers.BooleanField()


class PaymentStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    amount_cents = serializers.IntegerField()
    currency = serializers.CharField()
    metadata = serializers.DictField(child=serializers.CharField(allow_blank=True))


class SettlementSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    plan_id = serializers.CharField()
    status = serializers.CharField()


class CancellationSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    status = serializers.CharField()
