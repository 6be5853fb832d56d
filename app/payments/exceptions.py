"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── SignatureError - Webhook signature verification failed
    └── GatewayError - Payment gateway call failed
        ├── StripeCardDeclinedError - Card declined (permanent)
        ├── StripeInvalidRequestError - Invalid request params (permanent)
        ├── StripeRateLimitError - Rate limited (transient)
        ├── StripeAPIUnavailableError - Network/5xx (transient)
        └── StripeTimeoutError - Request timeout (transient)

    StaleRecordError - Optimistic locking conflict (inherits ConflictError)
    LockAcquisitionError - Distributed lock contention (inherits ConflictError)

Usage:
    from payments.exceptions import GatewayError, StaleRecordError

    try:
        intent = gateway.retrieve_payment_intent(intent_id)
    except GatewayError:
        logger.error("Gateway unavailable", exc_info=True)
        return Response({"success": False, "message": "Server error"}, status=500)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


class PaymentError(BaseApplicationError):
    """Base exception for payment domain errors."""

    default_error_code: str = "PAYMENT_ERROR"


class SignatureError(PaymentError):
    """
    Webhook payload failed signature verification.

    The event is rejected before it reaches reconciliation.
    """

    default_error_code: str = "INVALID_SIGNATURE"


# =============================================================================
# Gateway Exceptions
# =============================================================================


class GatewayError(PaymentError):
    """
    Base exception for payment gateway failures.

    Attributes:
        stripe_code: Stripe's error code, when the gateway reported one
        decline_code: Card decline code (if applicable)
        is_retryable: Transient failure that may succeed on retry

    Callers surface these as a generic server error; the internal
    message never reaches the client.
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


class StripeCardDeclinedError(GatewayError):
    """Card was declined by the issuing bank; ``decline_code`` has the reason."""

    default_error_code: str = "CARD_DECLINED"


class StripeInvalidRequestError(GatewayError):
    """
    Invalid request parameters sent to Stripe.

    Usually a bug on our side (unknown intent id, bad amount).
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"


class StripeRateLimitError(GatewayError):
    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(GatewayError):
    """Network failure or Stripe 5xx."""

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(GatewayError):
    """
    Stripe call exceeded STRIPE_API_TIMEOUT_SECONDS.

    The operation may have succeeded on Stripe's side; retries reuse the
    same idempotency key.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class StaleRecordError(ConflictError):
    """
    Record was modified by another writer (optimistic lock failure).

    Raised when a compare-and-swap on ``version`` updates zero rows.
    Reconciliation converts it into a no-op outcome: the first writer
    to commit wins.
    """

    default_error_code: str = "STALE_RECORD"


class LockAcquisitionError(ConflictError):
    """
    Failed to acquire a distributed lock.

    Another process is requesting a payment intent for the same business.
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"
