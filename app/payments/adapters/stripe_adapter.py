"""
Stripe API adapter for payment operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls should go through this
adapter to ensure consistent error handling, timeouts, idempotency,
and observability.

Features:
- Bounded timeout on all API calls
- No automatic network retries (retrying belongs to the caller)
- Automatic error translation to GatewayError subclasses
- Structured logging with timing metrics
- Idempotency keys on every mutating call
- Thread-safe for use from Celery workers

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_WEBHOOK_TOLERANCE_SECONDS: Accepted signature age (default: 300)

Usage:
    from payments.adapters import StripeAdapter, CreatePaymentIntentParams

    # Create a PaymentIntent
    result = StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=450000,
            currency='usd',
            metadata=PaymentMetadata.from_plan(plan, items).to_stripe(),
            idempotency_key='create_intent:<plan_id>:1:a1b2c3d4',
        )
    )

    # Cancel it
    result = StripeAdapter.cancel_payment_intent(result.id, reason='abandoned')
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import stripe
from django.conf import settings

from payments.exceptions import (
    PaymentValidationError,
    SignatureVerificationError,
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)

if TYPE_CHECKING:
    from collections.abc import Generator

# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreatePaymentIntentParams:
    """
    Parameters for creating a Stripe PaymentIntent.

    Attributes:
        amount_cents: Payment amount in smallest currency unit (e.g., cents)
        currency: ISO 4217 currency code
        idempotency_key: Unique key for idempotent creation
        metadata: Flat string metadata (see payments.metadata)
        customer_id: Optional Stripe Customer ID
        payment_method_types: Allowed payment methods (default: ['card'])
    """

    amount_cents: int
    currency: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)
    customer_id: str | None = None
    payment_method_types: list[str] = field(default_factory=lambda: ["card"])

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.currency:
            raise ValueError("currency is required")


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent operations.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status (requires_payment_method, succeeded, etc.)
        amount_cents: Amount in cents
        currency: Currency code
        client_secret: Secret for client-side confirmation
        amount_received: Amount captured so far, in cents
        metadata: Attached metadata
        raw_response: Full Stripe response dict (for debugging)
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    client_secret: str | None = None
    amount_received: int = 0
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_stripe(cls, intent: Any) -> PaymentIntentResult:
        return cls(
            id=intent.id,
            status=intent.status,
            amount_cents=intent.amount,
            currency=intent.currency,
            client_secret=intent.client_secret,
            amount_received=intent.amount_received or 0,
            metadata=dict(intent.metadata or {}),
            raw_response=intent.to_dict(),
        )


@dataclass
class RefundResult:
    """
    Result from Stripe Refund operations.

    Attributes:
        id: Refund ID (re_xxx)
        amount_cents: Refunded amount in cents
        currency: Currency code
        status: Refund status (succeeded, pending, failed)
        payment_intent_id: Original PaymentIntent ID
        metadata: Attached metadata
        raw_response: Full Stripe response dict
    """

    id: str
    amount_cents: int
    currency: str
    status: str
    payment_intent_id: str
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    The hash component provides uniqueness across service restarts
    while the structured format aids debugging and correlation.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation='refund',
            entity_id='pi_3Nx...',
            attempt=1,
        )
        # Result: "refund:pi_3Nx...:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        """
        Generate an idempotency key.

        The same (operation, entity_id, attempt) always yields the same key,
        so a caller retrying after a timeout reuses it.

        Args:
            operation: The Stripe operation (create_intent, cancel, refund, etc.)
            entity_id: The domain entity ID (plan id, intent id)
            attempt: Attempt number (default: 1)

        Returns:
            Formatted idempotency key string
        """
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"

    @classmethod
    def for_charge(
        cls,
        plan_id: uuid.UUID | str,
        item_ids: list[str],
        amount_cents: int,
        customer_id: str | None = None,
        attempt: int = 1,
    ) -> str:
        """
        Key for creating an intent over a specific set of items.

        Two requests for the same items, amount and customer share a key, so
        a double submit returns the first intent instead of creating a second
        charge. Callers bump attempt once that intent is no longer usable.
        """
        fingerprint = hashlib.sha256(
            f"{','.join(sorted(item_ids))}:{amount_cents}:{customer_id or ''}".encode()
        ).hexdigest()[:12]
        return cls.generate("create_intent", f"{plan_id}:{fingerprint}", attempt)

    @classmethod
    def for_request(cls, operation: str, entity_id: uuid.UUID | str) -> str:
        """Key unique to one request, for operations that may legitimately repeat."""
        return cls.generate(operation, f"{entity_id}:{uuid.uuid4().hex[:12]}")


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods - no instance state is maintained.
    Thread-safe for use from Celery workers. Satisfies the PaymentGateway
    protocol, so the class itself can be passed as a gateway.

    Usage:
        result = StripeAdapter.create_payment_intent(params)
        result = StripeAdapter.retrieve_payment_intent('pi_xxx')
        event = StripeAdapter.construct_webhook_event(payload, signature)
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key, timeout and no retries."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
        stripe.max_network_retries = 0

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def _operation(
        cls,
        name: str,
        level: int = logging.INFO,
        **context: Any,
    ) -> Generator[dict[str, Any], None, None]:
        """
        Wrap one Stripe call with configuration, timing, logging and error translation.

        The body fills the yielded dict with fields for the completion log.

        Usage:
            with cls._operation("retrieve_payment_intent", payment_intent_id=pi) as outcome:
                intent = stripe.PaymentIntent.retrieve(pi)
                outcome["status"] = intent.status
        """
        cls._configure_stripe()
        logger = cls.get_logger()
        log_context = {"operation": name, **context}
        outcome: dict[str, Any] = {}

        start_time = time.time()
        logger.log(level, "Starting Stripe operation", extra=log_context)

        try:
            yield outcome
        except Exception as e:
            cls._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

        logger.log(
            level,
            "Stripe operation completed",
            extra={
                **log_context,
                **outcome,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )

    # =========================================================================
    # Payment Intents
    # =========================================================================

    @classmethod
    def create_payment_intent(
        cls,
        params: CreatePaymentIntentParams,
        trace_id: str | None = None,
    ) -> PaymentIntentResult:
        """
        Create a Stripe PaymentIntent.

        Args:
            params: Parameters for creating the PaymentIntent
            trace_id: Optional trace ID for distributed tracing

        Returns:
            PaymentIntentResult including the client_secret

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
            StripeTimeoutError: Request timed out
        """
        with cls._operation(
            "create_payment_intent",
            amount_cents=params.amount_cents,
            currency=params.currency,
            idempotency_key=params.idempotency_key,
            plan_id=params.metadata.get("services_plan_id"),
            trace_id=trace_id,
        ) as outcome:
            intent = stripe.PaymentIntent.create(
                amount=params.amount_cents,
                currency=params.currency,
                metadata=params.metadata,
                customer=params.customer_id,
                payment_method_types=params.payment_method_types,
                idempotency_key=params.idempotency_key,
            )
            outcome.update(payment_intent_id=intent.id, status=intent.status)

        return PaymentIntentResult.from_stripe(intent)

    @classmethod
    def retrieve_payment_intent(
        cls,
        payment_intent_id: str,
        trace_id: str | None = None,
    ) -> PaymentIntentResult:
        """
        Retrieve a PaymentIntent by ID.

        Raises:
            StripeInvalidRequestError: PaymentIntent not found
        """
        with cls._operation(
            "retrieve_payment_intent",
            level=logging.DEBUG,
            payment_intent_id=payment_intent_id,
            trace_id=trace_id,
        ) as outcome:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
            outcome["status"] = intent.status

        return PaymentIntentResult.from_stripe(intent)

    @classmethod
    def cancel_payment_intent(
        cls,
        payment_intent_id: str,
        reason: str | None = None,
        idempotency_key: str | None = None,
        trace_id: str | None = None,
    ) -> PaymentIntentResult:
        """
        Cancel a PaymentIntent.

        Stripe refuses to cancel intents that already succeeded or were
        canceled; that refusal surfaces as StripeInvalidRequestError.

        Args:
            payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
            reason: duplicate, fraudulent, requested_by_customer or abandoned
            idempotency_key: Key for the cancel call (generated when omitted)
            trace_id: Optional trace ID for distributed tracing
        """
        idempotency_key = idempotency_key or IdempotencyKeyGenerator.generate(
            "cancel", payment_intent_id
        )
        cancel_params: dict[str, Any] = {}
        if reason:
            cancel_params["cancellation_reason"] = reason

        with cls._operation(
            "cancel_payment_intent",
            payment_intent_id=payment_intent_id,
            reason=reason,
            idempotency_key=idempotency_key,
            trace_id=trace_id,
        ) as outcome:
            intent = stripe.PaymentIntent.cancel(
                payment_intent_id,
                idempotency_key=idempotency_key,
                **cancel_params,
            )
            outcome["status"] = intent.status

        return PaymentIntentResult.from_stripe(intent)

    # =========================================================================
    # Refunds
    # =========================================================================

    @classmethod
    def create_refund(
        cls,
        payment_intent_id: str,
        idempotency_key: str,
        amount_cents: int | None = None,
        reason: str | None = None,
        metadata: dict[str, str] | None = None,
        trace_id: str | None = None,
    ) -> RefundResult:
        """
        Refund a PaymentIntent, fully or in part.

        Args:
            payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
            idempotency_key: Unique key for idempotent refund
            amount_cents: Amount to refund (None for full refund)
            reason: duplicate, fraudulent or requested_by_customer
            metadata: Optional metadata dict
            trace_id: Optional trace ID for distributed tracing

        Raises:
            StripeInvalidRequestError: Refund not possible
        """
        refund_params: dict[str, Any] = {
            "payment_intent": payment_intent_id,
            "metadata": metadata or {},
        }
        if amount_cents is not None:
            refund_params["amount"] = amount_cents
        if reason:
            refund_params["reason"] = reason

        with cls._operation(
            "create_refund",
            payment_intent_id=payment_intent_id,
            amount_cents=amount_cents,
            idempotency_key=idempotency_key,
            trace_id=trace_id,
        ) as outcome:
            refund = stripe.Refund.create(idempotency_key=idempotency_key, **refund_params)
            outcome.update(refund_id=refund.id, status=refund.status)

        return RefundResult(
            id=refund.id,
            amount_cents=refund.amount,
            currency=refund.currency,
            status=refund.status,
            payment_intent_id=refund.payment_intent,
            metadata=dict(refund.metadata or {}),
            raw_response=refund.to_dict(),
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def construct_webhook_event(
        cls,
        payload: bytes | str,
        signature: str | None,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw webhook body, exactly as received
            signature: Stripe-Signature header value

        Returns:
            The event as a plain dict

        Raises:
            SignatureVerificationError: Missing or invalid signature
            PaymentValidationError: Body is not a JSON event
        """
        logger = cls.get_logger()

        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")

        if not signature:
            logger.error("Webhook received without Stripe-Signature header")
            raise SignatureVerificationError("Missing Stripe-Signature header")

        try:
            stripe.WebhookSignature.verify_header(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
                getattr(settings, "STRIPE_WEBHOOK_TOLERANCE_SECONDS", 300),
            )
        except stripe.SignatureVerificationError as e:
            logger.error(
                "Webhook signature verification failed",
                extra={"error": str(e)},
            )
            raise SignatureVerificationError(
                "Invalid webhook signature",
                details={"error": str(e)},
            ) from e

        try:
            event = json.loads(payload)
        except ValueError as e:
            raise PaymentValidationError(
                "Webhook body is not valid JSON",
                details={"error": str(e)},
            ) from e

        if not isinstance(event, dict) or not event.get("id") or not event.get("type"):
            raise PaymentValidationError("Webhook body is not a Stripe event")

        return event

    # =========================================================================
    # Error Handling
    # =========================================================================

    # Stripe error class -> (log level, log message, domain error, client message, stripe_code)
    # Checked in order, so subclasses must come before their bases.
    _ERROR_TRANSLATIONS: tuple[tuple[type[Exception], int, str, type, str, str], ...] = (
        (
            stripe.InvalidRequestError,
            logging.ERROR,
            "Invalid request to Stripe",
            StripeInvalidRequestError,
            "",
            "",
        ),
        (
            stripe.RateLimitError,
            logging.WARNING,
            "Rate limited by Stripe",
            StripeRateLimitError,
            "Stripe rate limit exceeded. Please retry.",
            "rate_limit",
        ),
        (
            stripe.AuthenticationError,
            logging.CRITICAL,
            "Stripe authentication failed - check API key",
            StripeInvalidRequestError,
            "Stripe authentication failed",
            "authentication_error",
        ),
        (
            stripe.APIError,
            logging.ERROR,
            "Stripe API error",
            StripeAPIUnavailableError,
            "Stripe service error. Please retry.",
            "api_error",
        ),
    )

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate a Stripe SDK exception into a GatewayError subclass.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid request parameters or credentials
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: API unavailable or unexpected error
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        if isinstance(error, stripe.APIConnectionError):
            timed_out = any(marker in str(error).lower() for marker in ("timed out", "timeout"))
            if timed_out:
                logger.error("Stripe request timed out", extra=log_context)
                raise StripeTimeoutError(
                    "Stripe request timed out. The operation may have completed; "
                    "retry with the same idempotency key.",
                    stripe_code="timeout",
                ) from error

            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        for stripe_class, level, log_message, domain_class, message, code in cls._ERROR_TRANSLATIONS:
            if isinstance(error, stripe_class):
                stripe_code = code or getattr(error, "code", None)
                logger.log(
                    level,
                    log_message,
                    extra={**log_context, "stripe_code": stripe_code},
                    exc_info=level >= logging.ERROR,
                )
                raise domain_class(
                    message or str(getattr(error, "user_message", None) or error),
                    stripe_code=stripe_code,
                ) from error

        logger.error(
            f"Unexpected error from Stripe: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise StripeAPIUnavailableError(
            f"Unexpected Stripe error: {error}",
            stripe_code="unknown_error",
        ) from error
