"""
Notification models.

- NotificationType: What happened (payment succeeded, business approved, ...)
- EmailStatus: Delivery state of the optional email copy
- Notification: Individual in-platform notification for a user

Design Decisions:
    - Notification inherits from BaseModel (timestamps, newest-first ordering)
    - Title and body are fully rendered at creation; records are historical
    - Email delivery is tracked on the notification itself; there is a
      single channel besides the in-platform record
    - idempotency_key is unique when present, so a reconciliation that is
      replayed never notifies twice

Usage:
    from notifications.models import Notification, NotificationType

    unread = Notification.objects.filter(recipient=user, is_read=False)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class NotificationType(models.TextChoices):
    PAYMENT_SUCCEEDED = "payment_succeeded", "Payment Succeeded"
    PAYMENT_FAILED = "payment_failed", "Payment Failed"
    BUSINESS_APPROVED = "business_approved", "Business Approved"
    BUSINESS_REJECTED = "business_rejected", "Business Rejected"
    SYSTEM_ALERT = "system_alert", "System Alert"


class EmailStatus(models.TextChoices):
    """
    Status of the email copy of a notification.

    State Flow:
        PENDING -> SENT
        PENDING -> FAILED (retries exhausted)
        SKIPPED (no email requested or recipient has no address)
    """

    PENDING = "pending", "Pending"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"
    SKIPPED = "skipped", "Skipped"


class Notification(UUIDPrimaryKeyMixin, BaseModel):
    """
    Individual notification record for a user.

    Fields:
        recipient: User receiving the notification (scopes all queries)
        notification_type: What happened
        title: Fully rendered title string
        body: Fully rendered body string
        data: JSON context (business_id, payment_id, order_id, ...)
        is_read: Whether recipient has read this notification
        email_status: Delivery state of the email copy
        email_sent_at / email_failure_reason: Delivery bookkeeping
        idempotency_key: Prevents duplicate notifications for one event
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="User receiving this notification",
    )
    notification_type = models.CharField(
        max_length=40,
        choices=NotificationType.choices,
        default=NotificationType.SYSTEM_ALERT,
    )
    title = models.CharField(max_length=200)
    body = models.TextField(blank=True, default="")
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False, db_index=True)

    email_status = models.CharField(
        max_length=20,
        choices=EmailStatus.choices,
        default=EmailStatus.SKIPPED,
    )
    email_sent_at = models.DateTimeField(null=True, blank=True)
    email_failure_reason = models.TextField(blank=True, default="")

    idempotency_key = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Idempotency key to prevent duplicate notifications",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["recipient", "is_read", "-created_at"],
                name="notif_recipient_unread_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["idempotency_key"],
                name="notif_idempotency_key_unique",
                condition=models.Q(idempotency_key__isnull=False),
            ),
        ]

    def __str__(self) -> str:
        read_status = "read" if self.is_read else "unread"
        return f"Notification({self.notification_type}) -> User {self.recipient_id} [{read_status}]"
