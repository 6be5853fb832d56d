"""
Payment adapters for external services.

All payment gateway calls go through these adapters to ensure consistent
error handling, timeouts, idempotency, and observability.

Usage:
    from payments.adapters import StripeAdapter

    adapter = StripeAdapter.from_settings()
    intent = adapter.retrieve_payment_intent("pi_xxx")
"""

from payments.adapters.stripe_adapter import (
    CreatePaymentIntentParams,
    CustomerResult,
    IdempotencyKeyGenerator,
    PaymentGateway,
    PaymentIntentResult,
    StripeAdapter,
)

__all__ = [
    "CreatePaymentIntentParams",
    "CustomerResult",
    "IdempotencyKeyGenerator",
    "PaymentGateway",
    "PaymentIntentResult",
    "StripeAdapter",
]
