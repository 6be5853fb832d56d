"""
Fixtures for notification tests.
"""

import pytest

from notifications.models import EmailStatus
from notifications.tests.factories import NotificationFactory


@pytest.fixture
def notification(db, user):
    """Unread notification without an email copy."""
    return NotificationFactory(recipient=user)


@pytest.fixture
def pending_email_notification(db, user):
    """Notification whose email copy has not been sent yet."""
    return NotificationFactory(
        recipient=user,
        title="Payment received",
        body="Your listing fee has been paid.",
        email_status=EmailStatus.PENDING,
    )
