"""
WebhookEvent model for Stripe webhook event tracking.

Stores every verified webhook event received from Stripe for idempotent
processing and audit trails. The unique stripe_event_id constraint
ensures duplicate deliveries are detected.

Usage:
    from payments.models import WebhookEvent
    from payments.state_machines import WebhookEventStatus

    event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id="evt_1234567890",
        defaults={
            "event_type": "payment_intent.succeeded",
            "payload": webhook_payload,
        },
    )

    if not created and event.is_processed:
        # Duplicate webhook - already processed
        return JsonResponse({"received": True})
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks Stripe webhook events for idempotent processing.

    Processing Flow:
        1. Webhook arrives, verify Stripe signature
        2. Insert/get WebhookEvent with stripe_event_id
        3. If exists and PROCESSED -> return 200 (duplicate)
        4. Set status to PROCESSING
        5. Route to the registered handler
        6. Set status to PROCESSED, or FAILED and return 500 so Stripe retries

    Fields:
        stripe_event_id: Unique Stripe Event ID (evt_xxx)
        event_type: Type of webhook event
        payload: Full JSON payload from Stripe
        status: Processing status
        processed_at: When event was successfully processed
        error_message: Error details if processing failed
        retry_count: Number of processing attempts
    """

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g., 'payment_intent.succeeded')",
    )

    payload = models.JSONField(help_text="Full webhook payload from Stripe (JSON)")

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )

    processed_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(blank=True, default="")
    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="webhook_status_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    # Helpers below do not save; callers save with update_fields

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = ""

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_object_id(self) -> str | None:
        """Extract payload.data.object.id, the PaymentIntent ID for intent events."""
        try:
            return self.payload.get("data", {}).get("object", {}).get("id")
        except (AttributeError, TypeError):
            return None
