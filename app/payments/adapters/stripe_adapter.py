"""
Stripe API adapter for payment operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions needed to collect the business listing fee.
All Stripe calls go through this adapter to ensure consistent error
handling, timeouts, idempotency, and observability.

Features:
- Bounded timeout on every API call (STRIPE_API_TIMEOUT_SECONDS)
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Idempotency support for safe retries
- No process-wide Stripe configuration: each adapter owns a StripeClient

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: SDK network retries (default: 2)

Usage:
    from payments.adapters import CreatePaymentIntentParams, StripeAdapter

    adapter = StripeAdapter.from_settings()
    customer = adapter.find_or_create_customer("owner@example.com", "Ada Lovelace")
    intent = adapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=9900,
            currency="usd",
            customer_id=customer.id,
            description="Business listing fee for Acme",
            idempotency_key="create_intent:550e8400-...:1:a1b2c3d4",
        )
    )
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests
import stripe
from django.conf import settings

from payments.exceptions import (
    SignatureError,
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)


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
        customer_id: Stripe Customer ID the intent is billed to
        description: Human-readable description shown in the dashboard
        metadata: Key-value pairs to attach to the PaymentIntent
    """

    amount_cents: int
    currency: str
    idempotency_key: str
    customer_id: str | None = None
    description: str = ""
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.currency:
            raise ValueError("currency is required")


@dataclass
class CustomerResult:
    """
    Result from Stripe Customer lookups.

    Attributes:
        id: Customer ID (cus_xxx)
        email: Customer email
        created: True if the customer was created by this call
    """

    id: str
    email: str
    created: bool = False


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent operations.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Raw Stripe status (requires_payment_method, succeeded, etc.)
        amount_cents: Amount in cents
        currency: Currency code
        client_secret: Secret for client-side confirmation
        last_error_message: Message of last_payment_error, if any
        billing_details: Billing details of the latest charge, if expanded
        metadata: Attached metadata
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    client_secret: str | None = None
    last_error_message: str | None = None
    billing_details: dict[str, Any] | None = None
    metadata: dict[str, str] = field(default_factory=dict)


class PaymentGateway(Protocol):
    """
    Contract the reconciliation service needs from a payment gateway.

    StripeAdapter is the production implementation; tests substitute an
    in-memory fake.
    """

    def find_or_create_customer(
        self,
        email: str,
        name: str,
        metadata: dict[str, str] | None = None,
    ) -> CustomerResult: ...

    def create_payment_intent(self, params: CreatePaymentIntentParams) -> PaymentIntentResult: ...

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult: ...

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict[str, Any]: ...


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    The hash component provides uniqueness across environments sharing a
    Stripe account while the structured format aids debugging.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="create_intent",
            entity_id=payment_id,
        )
        # Result: "create_intent:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    Each instance wraps its own StripeClient, so the API key, timeout and
    retry policy are explicit dependencies rather than module globals.
    Thread-safe for use from web workers and Celery.

    Usage:
        adapter = StripeAdapter.from_settings()
        result = adapter.retrieve_payment_intent("pi_xxx")
    """

    def __init__(self, client: stripe.StripeClient, webhook_secret: str) -> None:
        self._client = client
        self._webhook_secret = webhook_secret

    @classmethod
    def from_settings(cls) -> StripeAdapter:
        """Build an adapter from STRIPE_* settings."""
        client = stripe.StripeClient(
            settings.STRIPE_SECRET_KEY,
            http_client=stripe.RequestsClient(timeout=settings.STRIPE_API_TIMEOUT_SECONDS),
            max_network_retries=settings.STRIPE_MAX_RETRIES,
        )
        return cls(client, settings.STRIPE_WEBHOOK_SECRET)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Customers
    # =========================================================================

    def find_or_create_customer(
        self,
        email: str,
        name: str,
        metadata: dict[str, str] | None = None,
    ) -> CustomerResult:
        """
        Return the Stripe customer for ``email``, creating it if absent.

        Raises:
            GatewayError subclasses on Stripe failures
        """
        logger = self.get_logger()
        log_context = {"operation": "find_or_create_customer"}
        start_time = time.time()

        try:
            existing = self._client.v1.customers.list(params={"email": email, "limit": 1})
            if existing.data:
                customer = existing.data[0]
                logger.debug(
                    "Reusing Stripe customer",
                    extra={**log_context, "customer_id": customer.id},
                )
                return CustomerResult(id=customer.id, email=email, created=False)

            customer = self._client.v1.customers.create(
                params={"email": email, "name": name, "metadata": metadata or {}}
            )
        except stripe.StripeError as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

        logger.info(
            "Created Stripe customer",
            extra={
                **log_context,
                "customer_id": customer.id,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return CustomerResult(id=customer.id, email=email, created=True)

    # =========================================================================
    # Payment Intents
    # =========================================================================

    def create_payment_intent(self, params: CreatePaymentIntentParams) -> PaymentIntentResult:
        """
        Create a Stripe PaymentIntent.

        Returns:
            PaymentIntentResult including client_secret

        Raises:
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
            StripeTimeoutError: Request timed out
        """
        logger = self.get_logger()
        log_context = {
            "operation": "create_payment_intent",
            "amount_cents": params.amount_cents,
            "currency": params.currency,
            "idempotency_key": params.idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = self._client.v1.payment_intents.create(
                params={
                    "amount": params.amount_cents,
                    "currency": params.currency,
                    "customer": params.customer_id,
                    "description": params.description,
                    "metadata": params.metadata,
                    "automatic_payment_methods": {"enabled": True},
                },
                options={"idempotency_key": params.idempotency_key},
            )
        except stripe.StripeError as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "payment_intent_id": intent.id,
                "status": intent.status,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return self._to_result(intent)

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        """
        Retrieve a PaymentIntent with its latest charge expanded.

        Raises:
            StripeInvalidRequestError: PaymentIntent not found
        """
        logger = self.get_logger()
        log_context = {
            "operation": "retrieve_payment_intent",
            "payment_intent_id": payment_intent_id,
        }

        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            intent = self._client.v1.payment_intents.retrieve(
                payment_intent_id,
                params={"expand": ["latest_charge"]},
            )
        except stripe.StripeError as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

        logger.debug(
            "Stripe operation completed",
            extra={
                **log_context,
                "status": intent.status,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return self._to_result(intent)

    @staticmethod
    def _to_result(intent: Any) -> PaymentIntentResult:
        last_error = getattr(intent, "last_payment_error", None)
        latest_charge = getattr(intent, "latest_charge", None)

        billing_details = None
        # latest_charge is only an object when expanded, otherwise an id string
        if latest_charge is not None and not isinstance(latest_charge, str):
            details = getattr(latest_charge, "billing_details", None)
            if details is not None:
                billing_details = {
                    "name": getattr(details, "name", None),
                    "email": getattr(details, "email", None),
                    "phone": getattr(details, "phone", None),
                }
                address = getattr(details, "address", None)
                if address is not None:
                    billing_details["address"] = {
                        key: getattr(address, key, None)
                        for key in ("line1", "line2", "city", "state", "postal_code", "country")
                    }

        return PaymentIntentResult(
            id=intent.id,
            status=intent.status,
            amount_cents=intent.amount,
            currency=intent.currency,
            client_secret=getattr(intent, "client_secret", None),
            last_error_message=getattr(last_error, "message", None) if last_error else None,
            billing_details=billing_details,
            metadata=dict(getattr(intent, "metadata", None) or {}),
        )

    # =========================================================================
    # Webhooks
    # =========================================================================

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Verify a Stripe webhook and return the parsed event.

        Args:
            payload: Raw request body, exactly as received
            signature: Stripe-Signature header value

        Signatures older than the SDK tolerance (five minutes) are rejected.

        Raises:
            SignatureError: Missing/invalid signature or unparseable body
        """
        if not signature:
            raise SignatureError("Missing Stripe-Signature header")

        body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        try:
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                self._webhook_secret,
                tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except stripe.SignatureVerificationError as e:
            raise SignatureError(
                "Invalid webhook signature",
                details={"error": str(e)},
            ) from e

        try:
            event = json.loads(body)
        except ValueError as e:
            raise SignatureError("Invalid webhook payload") from e

        if not isinstance(event, dict) or "id" not in event or "type" not in event:
            raise SignatureError("Invalid webhook payload")
        return event

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid request or bad credentials
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: Network failure or Stripe 5xx
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

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise StripeInvalidRequestError(str(error), stripe_code=error.code) from error

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        if isinstance(error, stripe.APIConnectionError):
            # The SDK wraps the requests exception it caught
            if isinstance(error.__context__, requests.exceptions.Timeout):
                logger.error("Stripe request timed out", extra=log_context)
                raise StripeTimeoutError(
                    "Stripe request timed out",
                    stripe_code="timeout",
                ) from error

            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        if isinstance(error, stripe.AuthenticationError):
            logger.critical("Stripe authentication failed - check API key", extra=log_context)
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        if isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
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
