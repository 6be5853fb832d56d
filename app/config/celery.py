"""
Celery configuration for the Django application.

Background work in this service is limited to notification delivery
(notifications.tasks.send_notification_email). Payment reconciliation
runs synchronously inside the request or webhook that observed it.

Redis is both the message broker and result backend. Tasks are
auto-discovered from all installed Django apps.

Usage:
    from notifications.tasks import send_notification_email

    send_notification_email.delay(str(notification.id))
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
