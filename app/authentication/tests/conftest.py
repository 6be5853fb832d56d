"""
Test configuration and fixtures for authentication tests.

User fixtures (user, business_user, platform_admin) and API client
helpers live in the app-level conftest.py.
"""

import pytest

from authentication.models import User


@pytest.fixture
def superuser(db):
    """Create a superuser with admin privileges."""
    return User.objects.create_superuser(
        email="admin@example.com", password="AdminPass123!"
    )
