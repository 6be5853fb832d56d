"""
Celery tasks for notification delivery.

Tasks:
    send_notification_email: Deliver the email copy of a notification

Design:
    - Tasks receive notification_id (UUID string)
    - Each task updates Notification.email_status
    - Tasks are idempotent: re-running on a non-PENDING notification is a no-op
    - SMTP failures are retried with backoff; the final failure is recorded

Usage:
    from notifications.tasks import send_notification_email

    # Enqueued automatically by NotificationService.create_notification()
    send_notification_email.delay(notification_id="uuid-string")
"""

from __future__ import annotations

import logging
import smtplib

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone as django_timezone

from notifications.models import EmailStatus, Notification

logger = logging.getLogger(__name__)

MAX_EMAIL_RETRIES = 3


def _get_pending_notification(notification_id: str) -> Notification | None:
    """Return the notification if its email is still PENDING, else None."""
    try:
        notification = Notification.objects.select_related("recipient").get(id=notification_id)
    except Notification.DoesNotExist:
        logger.warning(f"Notification {notification_id} not found")
        return None

    if notification.email_status != EmailStatus.PENDING:
        logger.info(
            f"Notification {notification_id} email status is "
            f"{notification.email_status}, skipping"
        )
        return None

    return notification


def _mark_sent(notification: Notification) -> None:
    notification.email_status = EmailStatus.SENT
    notification.email_sent_at = django_timezone.now()
    notification.save(update_fields=["email_status", "email_sent_at", "updated_at"])


def _mark_failed(notification: Notification, error: Exception) -> None:
    notification.email_status = EmailStatus.FAILED
    notification.email_failure_reason = str(error)
    notification.save(update_fields=["email_status", "email_failure_reason", "updated_at"])


@shared_task(
    bind=True,
    max_retries=MAX_EMAIL_RETRIES,
    retry_backoff=True,
)
def send_notification_email(self, notification_id: str) -> bool:
    """
    Send the email copy of a notification.

    Flow:
        1. Fetch notification; skip unless email_status is PENDING
        2. Send through Django's configured email backend
        3. On success: email_status=SENT
        4. On SMTP/socket error: retry; after the last retry email_status=FAILED

    Returns:
        True if sent or skipped, False if permanently failed
    """
    notification = _get_pending_notification(notification_id)
    if notification is None:
        return True

    recipient = notification.recipient
    logger.info(f"Sending notification email {notification_id} to user {recipient.id}")

    try:
        send_mail(
            subject=notification.title,
            message=notification.body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient.email],
            fail_silently=False,
        )
    except (smtplib.SMTPException, OSError) as e:
        if self.request.retries >= MAX_EMAIL_RETRIES:
            _mark_failed(notification, e)
            logger.error(
                f"Notification email {notification_id} permanently failed: {e}",
                exc_info=True,
            )
            return False
        logger.warning(f"Notification email {notification_id} failed: {e}, will retry")
        raise self.retry(exc=e)

    _mark_sent(notification)
    logger.info(f"Notification email {notification_id} sent")
    return True
