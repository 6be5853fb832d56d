"""
Tests for notifications app.

This package contains test modules for:
- test_models.py: Notification model tests
- test_services.py: NotificationService tests
- test_tasks.py: Email delivery task tests

Usage:
    pytest notifications/tests/
"""
