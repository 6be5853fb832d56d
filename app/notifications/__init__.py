"""
Notifications app for in-platform notifications with an optional email copy.

This app provides:
- Notification model for storing user notifications
- NotificationService for centralized notification creation
- send_notification_email Celery task for email delivery

Usage:
    from notifications.models import NotificationType
    from notifications.services import NotificationService

    result = NotificationService.create_notification(
        recipient=business.owner,
        notification_type=NotificationType.PAYMENT_SUCCEEDED,
        title="Payment received",
        body="Your listing fee has been paid.",
    )
"""
