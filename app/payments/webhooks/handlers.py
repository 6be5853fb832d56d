"""
Webhook event handlers for Stripe events.

This module provides a handler registry and the handlers for the
payment_intent.* events that drive listing-fee reconciliation.

The handler registry allows:
- Clean separation between event routing and handling
- Easy extension for new event types
- Unknown event types to be acknowledged without failing

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("charge.refunded")
    def handle_charge_refunded(webhook_event, service) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event, service)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from core.services import ServiceResult
from payments.services import ObservationOutcome, StatusObservation

if TYPE_CHECKING:
    from payments.models import WebhookEvent
    from payments.services import ReconciliationResult, ReconciliationService

    WebhookHandler = Callable[[WebhookEvent, ReconciliationService], ServiceResult]


logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, WebhookHandler] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Decorators can be stacked to route several event types to one handler.

    Args:
        event_type: The Stripe event type (e.g., "payment_intent.succeeded")
    """

    def decorator(func: WebhookHandler) -> WebhookHandler:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(
    webhook_event: WebhookEvent,
    service: ReconciliationService,
) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    If no handler is registered, logs and returns success so the event
    is acknowledged; Stripe keeps retrying anything that is not 2xx.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return handler(webhook_event, service)


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
@register_handler("payment_intent.payment_failed")
@register_handler("payment_intent.canceled")
@register_handler("payment_intent.processing")
@register_handler("payment_intent.requires_action")
def handle_payment_intent_event(
    webhook_event: WebhookEvent,
    service: ReconciliationService,
) -> ServiceResult[ReconciliationResult]:
    """
    Reconcile a payment_intent.* event.

    Unknown intents and duplicate deliveries are successes: nothing is
    left for Stripe to retry.
    """
    if not webhook_event.get_object_id():
        logger.error(
            f"{webhook_event.event_type}: could not extract payment_intent_id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.failure(
            "Missing payment_intent_id in payload",
            error_code="INVALID_PAYLOAD",
        )

    result = service.apply_status_observation(
        StatusObservation.from_webhook_event(webhook_event.payload)
    )

    if result.outcome == ObservationOutcome.UNKNOWN_PAYMENT:
        logger.info(
            f"{webhook_event.event_type} for an intent this service did not create",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "payment_intent_id": webhook_event.get_object_id(),
            },
        )

    return ServiceResult.success(result)
