"""
State enums for payments.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

PaymentIntent Status (owned by Stripe, mirrored here for comparisons):
    requires_payment_method → requires_confirmation → requires_action
        → processing → succeeded
    requires_capture → succeeded (manual capture)
    any non-terminal → canceled
    processing → requires_payment_method (payment failed, retry possible)

WebhookEvent Status:
    pending → processing → processed
    pending → processing → failed → processing (retry)
"""

from django.db import models


class PaymentIntentStatus(models.TextChoices):
    """
    Stripe PaymentIntent statuses.

    Only SUCCEEDED settles service items or allows a refund.
    FAILED is not a Stripe status; intents whose last attempt failed go
    back to REQUIRES_PAYMENT_METHOD. It is kept for gateways that report it.
    """

    REQUIRES_PAYMENT_METHOD = "requires_payment_method", "Requires Payment Method"
    REQUIRES_CONFIRMATION = "requires_confirmation", "Requires Confirmation"
    REQUIRES_ACTION = "requires_action", "Requires Action"
    PROCESSING = "processing", "Processing"
    REQUIRES_CAPTURE = "requires_capture", "Requires Capture"
    SUCCEEDED = "succeeded", "Succeeded"
    CANCELED = "canceled", "Canceled"
    FAILED = "failed", "Failed"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    Tracks the lifecycle of webhook event processing for idempotency.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class CancellationReason(models.TextChoices):
    """Cancellation reasons accepted by Stripe."""

    DUPLICATE = "duplicate", "Duplicate"
    FRAUDULENT = "fraudulent", "Fraudulent"
    REQUESTED_BY_CUSTOMER = "requested_by_customer", "Requested by Customer"
    ABANDONED = "abandoned", "Abandoned"


class RefundReason(models.TextChoices):
    """Refund reasons accepted by Stripe."""

    DUPLICATE = "duplicate", "Duplicate"
    FRAUDULENT = "fraudulent", "Fraudulent"
    REQUESTED_BY_CUSTOMER = "requested_by_customer", "Requested by Customer"


__all__ = [
    "CancellationReason",
    "PaymentIntentStatus",
    "RefundReason",
    "WebhookEventStatus",
]
