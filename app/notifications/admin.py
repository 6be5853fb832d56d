"""
Django admin configuration for notifications.
"""

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """Read-mostly view of notifications and their email delivery state."""

    list_display = [
        "id",
        "recipient",
        "notification_type",
        "title",
        "is_read",
        "email_status",
        "created_at",
    ]
    list_filter = ["notification_type", "is_read", "email_status"]
    search_fields = ["title", "recipient__email", "idempotency_key"]
    raw_id_fields = ["recipient"]
    readonly_fields = [
        "id",
        "idempotency_key",
        "email_sent_at",
        "email_failure_reason",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
