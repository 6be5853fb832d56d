"""
State enums for payment models.

This module defines all state enums used by payment models with django-fsm,
plus the closed mapping from Stripe vocabulary to internal states. These
are Django TextChoices for database storage and admin integration.

State Machines Overview:

Payment States:
    pending → succeeded (terminal)
    pending → processing → succeeded | failed
    pending → requires_action/requires_confirmation/requires_payment_method → succeeded | failed
    pending/in-flight → failed → succeeded (card retried on the same intent)
    pending/in-flight/failed → canceled (terminal)

Order States:
    completed (created only after a payment first succeeds)
    completed → refunded (manual, out of band)

WebhookEvent States:
    pending → processing → processed
    pending → processing → failed (gateway retries delivery)
"""

from __future__ import annotations

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    States for the Payment model lifecycle.

    Mirrors the Stripe PaymentIntent vocabulary so that an observed
    gateway status maps one-to-one onto a stored status.

    Terminal states: SUCCEEDED, CANCELED
    """

    PENDING = "pending", "Pending"
    REQUIRES_PAYMENT_METHOD = "requires_payment_method", "Requires Payment Method"
    REQUIRES_CONFIRMATION = "requires_confirmation", "Requires Confirmation"
    REQUIRES_ACTION = "requires_action", "Requires Action"
    PROCESSING = "processing", "Processing"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    CANCELED = "canceled", "Canceled"


IN_FLIGHT_STATUSES = [
    PaymentStatus.PENDING,
    PaymentStatus.REQUIRES_PAYMENT_METHOD,
    PaymentStatus.REQUIRES_CONFIRMATION,
    PaymentStatus.REQUIRES_ACTION,
    PaymentStatus.PROCESSING,
]

TERMINAL_STATUSES = frozenset({PaymentStatus.SUCCEEDED, PaymentStatus.CANCELED})


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    CANCELED = "canceled", "Canceled"
    REFUNDED = "refunded", "Refunded"


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


# =============================================================================
# Gateway vocabulary
# =============================================================================

# Raw PaymentIntent.status values
GATEWAY_STATUS_MAP: dict[str, PaymentStatus] = {
    "requires_payment_method": PaymentStatus.REQUIRES_PAYMENT_METHOD,
    "requires_confirmation": PaymentStatus.REQUIRES_CONFIRMATION,
    "requires_action": PaymentStatus.REQUIRES_ACTION,
    "processing": PaymentStatus.PROCESSING,
    "succeeded": PaymentStatus.SUCCEEDED,
    "canceled": PaymentStatus.CANCELED,
}

# Webhook event types
WEBHOOK_EVENT_STATUS_MAP: dict[str, PaymentStatus] = {
    "payment_intent.succeeded": PaymentStatus.SUCCEEDED,
    "payment_intent.payment_failed": PaymentStatus.FAILED,
    "payment_intent.canceled": PaymentStatus.CANCELED,
    "payment_intent.processing": PaymentStatus.PROCESSING,
    "payment_intent.requires_action": PaymentStatus.REQUIRES_ACTION,
}


def map_gateway_status(
    gateway_status: str | None,
    last_error_message: str | None = None,
) -> PaymentStatus | None:
    """
    Map a raw PaymentIntent status to a PaymentStatus.

    An intent that fell back to requires_payment_method because the last
    attempt errored is a failed attempt, not a fresh one.

    Returns:
        The mapped status, or None when the value is not recognized
    """
    if gateway_status == "requires_payment_method" and last_error_message:
        return PaymentStatus.FAILED
    return GATEWAY_STATUS_MAP.get(gateway_status or "")


def map_webhook_event(event_type: str | None) -> PaymentStatus | None:
    """Map a webhook event type to a PaymentStatus, or None if unhandled."""
    return WEBHOOK_EVENT_STATUS_MAP.get(event_type or "")


__all__ = [
    "GATEWAY_STATUS_MAP",
    "IN_FLIGHT_STATUSES",
    "OrderStatus",
    "PaymentStatus",
    "TERMINAL_STATUSES",
    "WEBHOOK_EVENT_STATUS_MAP",
    "WebhookEventStatus",
    "map_gateway_status",
    "map_webhook_event",
]
