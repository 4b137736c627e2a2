"""
Payment-specific exceptions for payment operations.

This module provides a hierarchy of exceptions for the settlement flow:
payment domain errors, webhook verification errors, and gateway errors
translated from the Stripe SDK.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentValidationError - Invalid request (400)
    │   └── InvalidPaymentMetadataError - Intent metadata missing or malformed (400)
    ├── SignatureVerificationError - Webhook signature rejected (400)
    ├── PaymentNotSucceededError - Intent is not in succeeded status (409)
    ├── NotEligibleForRefundError - Intent cannot be refunded in its status (409)
    └── PaymentProcessingError - Gateway call failed (502)
        └── GatewayError - Base for all translated Stripe errors
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeRateLimitError - Rate limited (transient)
            ├── StripeAPIUnavailableError - API unavailable (transient)
            └── StripeTimeoutError - Request timeout (transient)

Each class also derives from the matching core category (ValidationError,
ConflictError, ExternalServiceError) so core.exception_handlers maps it to
the right HTTP status.

Usage:
    from payments.exceptions import PaymentNotSucceededError

    if intent.status != PaymentIntentStatus.SUCCEEDED:
        raise PaymentNotSucceededError(intent.status, payment_intent_id=intent.id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Example:
        try:
            orchestrator.process_payment(intent_id)
        except PaymentError as e:
            logger.error(f"Payment operation failed: {e}")
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentValidationError(PaymentError, ValidationError):
    """
    Raised when payment validation fails.

    Use for:
    - Charge amount that rounds to zero
    - Malformed webhook payloads
    - Refund amounts that are not positive

    Example:
        if amount_cents <= 0:
            raise PaymentValidationError(
                "Payment amount must be positive",
                details={"amount_cents": amount_cents}
            )
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class InvalidPaymentMetadataError(PaymentValidationError):
    """
    Raised when a payment intent's metadata cannot be parsed.

    The intent exists but does not carry a usable plan id or item list,
    so there is nothing to settle.
    """

    default_error_code: str = "INVALID_PAYMENT_METADATA"


class SignatureVerificationError(PaymentError, ValidationError):
    """
    Raised when a webhook's Stripe-Signature header does not verify.

    Note:
        The payload must not be processed. Stripe retries deliveries
        that receive a non-2xx response.
    """

    default_error_code: str = "INVALID_WEBHOOK_SIGNATURE"


class PaymentNotSucceededError(PaymentError, ConflictError):
    """
    Raised when settling an intent that has not succeeded.

    Attributes:
        status: The gateway status the intent was found in
    """

    default_error_code: str = "PAYMENT_NOT_SUCCEEDED"

    def __init__(
        self,
        status: str,
        payment_intent_id: str | None = None,
        message: str | None = None,
    ):
        details: dict[str, Any] = {"status": status}
        if payment_intent_id:
            details["payment_intent_id"] = payment_intent_id
        super().__init__(
            message or f"Payment has not succeeded (status: {status})",
            details=details,
        )
        self.status = status


class NotEligibleForRefundError(PaymentError, ConflictError):
    """
    Raised when refunding an intent that never succeeded.

    Attributes:
        status: The gateway status the intent was found in
    """

    default_error_code: str = "NOT_ELIGIBLE_FOR_REFUND"

    def __init__(
        self,
        status: str,
        payment_intent_id: str | None = None,
        message: str | None = None,
    ):
        details: dict[str, Any] = {"status": status}
        if payment_intent_id:
            details["payment_intent_id"] = payment_intent_id
        super().__init__(
            message or f"Payment is not eligible for refund (status: {status})",
            details=details,
        )
        self.status = status


class CheckoutAttemptsExhaustedError(PaymentError, ConflictError):
    """
    Raised when every charge key for an item set maps to a canceled intent.

    The client can retry once Stripe expires the keys (24 hours) or pass
    its own Idempotency-Key.
    """

    default_error_code: str = "CHECKOUT_ATTEMPTS_EXHAUSTED"


class PaymentProcessingError(PaymentError, ExternalServiceError):
    """
    Raised when payment processing fails at the gateway.

    Use for:
    - Stripe API errors
    - Payment gateway failures
    - Processing timeouts
    """

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


# =============================================================================
# Gateway Exceptions
# =============================================================================


class GatewayError(PaymentProcessingError):
    """
    Base exception for all translated Stripe errors.

    Provides common attributes for gateway error handling:
    - stripe_code: Stripe's internal error code
    - decline_code: Card decline code (if applicable)
    - is_retryable: Whether the caller may retry

    The orchestrator never retries on its own; is_retryable tells the
    caller (or the webhook retry task) whether retrying can help.

    Example:
        try:
            orchestrator.create_payment_intent(plan_id)
        except GatewayError as e:
            if e.is_retryable:
                ...  # safe to try again with the same idempotency key
    """

    default_error_code: str = "GATEWAY_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(GatewayError):
    """
    Card was declined by the issuing bank.

    The decline_code attribute contains the specific reason
    (generic_decline, insufficient_funds, expired_card, ...).
    """

    default_error_code: str = "CARD_DECLINED"
    is_retryable: bool = False


class StripeInvalidRequestError(GatewayError):
    """
    Invalid request parameters sent to Stripe.

    Possible causes:
    - Unknown payment intent ID
    - Cancelling an intent that already succeeded
    - Refund amount above what was captured
    - Invalid API key (stripe_code="authentication_error")

    Note:
        This usually indicates a bug or a state conflict, not a user error.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with the same idempotency key)
# -----------------------------------------------------------------------------


class StripeRateLimitError(GatewayError):
    """Rate limited by Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(GatewayError):
    """
    Stripe API is temporarily unavailable.

    This covers:
    - Network connectivity issues
    - Stripe server errors (5xx)
    - DNS resolution failures
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(GatewayError):
    """
    Stripe API call timed out.

    The request was sent but no response was received within
    STRIPE_API_TIMEOUT_SECONDS.

    IMPORTANT: The operation may have succeeded on Stripe's side.
    Retrying with the same idempotency key returns the original result.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Payment domain
    "PaymentError",
    "PaymentValidationError",
    "InvalidPaymentMetadataError",
    "SignatureVerificationError",
    "PaymentNotSucceededError",
    "NotEligibleForRefundError",
    "CheckoutAttemptsExhaustedError",
    "PaymentProcessingError",
    # Gateway
    "GatewayError",
    "StripeCardDeclinedError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
]
