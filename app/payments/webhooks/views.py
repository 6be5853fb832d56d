"""
Webhook endpoint views for Stripe.

The view:
1. Verifies the webhook signature
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Reconciles the event synchronously
4. Returns {"received": true}, or 500 so Stripe retries a failed event

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.db import DatabaseError
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.exceptions import SignatureError
from payments.models import WebhookEvent
from payments.services import get_reconciliation_service
from payments.webhooks.handlers import dispatch_webhook

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive and reconcile Stripe webhook events.

    Security:
    - Signature verification prevents spoofed webhooks
    - CSRF exemption required for external webhooks
    - Only POST requests accepted

    Idempotency:
    - WebhookEvent.stripe_event_id is unique
    - Events already PROCESSED are acknowledged without re-dispatch
    - Re-dispatch of anything else is safe: reconciliation skips
      observations already reflected in stored state

    Returns:
        JsonResponse with status:
        - 200: Event accepted (handled, duplicate or unrecognized type)
        - 400: Missing/invalid signature or payload
        - 500: Processing failed; Stripe will retry
    """
    service = get_reconciliation_service()

    try:
        event_data = service.gateway.verify_webhook_signature(
            request.body,
            request.headers.get("Stripe-Signature", ""),
        )
    except SignatureError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": e.message},
        )
        return JsonResponse({"error": "Invalid signature"}, status=400)

    stripe_event_id = event_data["id"]
    event_type = event_data["type"]

    logger.info(
        f"Received Stripe webhook: {event_type}",
        extra={"stripe_event_id": stripe_event_id, "event_type": event_type},
    )

    try:
        webhook_event, created = WebhookEvent.objects.get_or_create(
            stripe_event_id=stripe_event_id,
            defaults={"event_type": event_type, "payload": event_data},
        )

        if not created and webhook_event.is_processed:
            logger.info(
                "Webhook already processed, returning success",
                extra={"stripe_event_id": stripe_event_id},
            )
            return JsonResponse({"received": True})

        webhook_event.mark_processing()
        webhook_event.save(update_fields=["status", "retry_count", "updated_at"])

        result = dispatch_webhook(webhook_event, service)
    except DatabaseError as e:
        logger.error(
            f"Webhook {stripe_event_id} processing failed",
            extra={"stripe_event_id": stripe_event_id},
            exc_info=True,
        )
        _record_failure(stripe_event_id, f"{type(e).__name__}: {e}")
        return JsonResponse({"success": False, "message": "Server error"}, status=500)

    if not result.success:
        logger.error(
            f"Webhook {stripe_event_id} handler failed: {result.error}",
            extra={"stripe_event_id": stripe_event_id, "error_code": result.error_code},
        )
        webhook_event.mark_failed(result.error or "Handler failed")
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        return JsonResponse({"success": False, "message": "Server error"}, status=500)

    webhook_event.mark_processed()
    webhook_event.save(update_fields=["status", "processed_at", "error_message", "updated_at"])
    return JsonResponse({"received": True})


def _record_failure(stripe_event_id: str, error_message: str) -> None:
    webhook_event = WebhookEvent.objects.filter(stripe_event_id=stripe_event_id).first()
    if webhook_event is None:
        return
    webhook_event.mark_failed(error_message)
    webhook_event.save(update_fields=["status", "error_message", "updated_at"])
