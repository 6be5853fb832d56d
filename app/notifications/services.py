"""
Notification service layer.

Services:
    NotificationService: Notification creation and email enqueueing

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - The email copy is enqueued only after the surrounding transaction
      commits, so a rolled-back reconciliation never emails anyone

Usage:
    from notifications.services import NotificationService

    NotificationService.create_notification(
        recipient=business.owner,
        notification_type=NotificationType.BUSINESS_APPROVED,
        title="Business Approved",
        body=f'Your business "{business.name}" has been approved.',
        data={"business_id": str(business.id)},
        idempotency_key=f"business-approved:{business.id}:{business.approved_at.isoformat()}",
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import transaction

from core.services import BaseService, ServiceResult
from notifications.models import EmailStatus, Notification

if TYPE_CHECKING:
    from authentication.models import User


class NotificationService(BaseService):
    """
    Notification creation and email enqueueing.

    Methods:
        create_notification: Create a notification, optionally emailing it
    """

    @classmethod
    def create_notification(
        cls,
        recipient: User,
        notification_type: str,
        title: str,
        body: str = "",
        data: dict | None = None,
        idempotency_key: str | None = None,
        send_email: bool = True,
    ) -> ServiceResult[Notification]:
        """
        Create a new notification for a user.

        Safe to call inside a larger transaction: the email task is
        registered with ``transaction.on_commit``.

        Error codes:
            DUPLICATE: Notification with this idempotency_key already exists
        """
        from notifications import tasks

        if idempotency_key and Notification.objects.filter(idempotency_key=idempotency_key).exists():
            cls.get_logger().info(
                "Duplicate notification prevented",
                extra={"idempotency_key": idempotency_key},
            )
            return ServiceResult.failure(
                f"Notification with idempotency_key already exists: {idempotency_key}",
                error_code="DUPLICATE",
            )

        wants_email = send_email and bool(recipient.email)
        notification = Notification.objects.create(
            recipient=recipient,
            notification_type=notification_type,
            title=title,
            body=body,
            data=data or {},
            idempotency_key=idempotency_key,
            email_status=EmailStatus.PENDING if wants_email else EmailStatus.SKIPPED,
        )

        cls.get_logger().info(
            f"Created notification {notification.id} of type {notification_type} "
            f"for user {recipient.id}"
        )

        if wants_email:
            notification_id = str(notification.id)
            transaction.on_commit(
                lambda: tasks.send_notification_email.delay(notification_id)
            )

        return ServiceResult.success(notification)
