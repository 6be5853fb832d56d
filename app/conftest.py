"""
Root pytest configuration for the Django project.

Configures test-only settings, auto-marks tests by filename and provides
the fixtures shared by every app (users and authenticated API clients).
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import os

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_configure():
    from django.conf import settings

    # Use fast password hasher for tests
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.STRIPE_WEBHOOK_SECRET = "whsec_test_secret"
    # Sessions live in Redis outside tests
    settings.SESSION_ENGINE = "django.contrib.sessions.backends.db"


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full payment/publication journeys)
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_adapters.py, test_locks.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_reconciliation_service.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_managers.py",
        "test_permissions.py",
        "test_adapters.py",
        "test_states.py",
        "test_locks.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = os.path.basename(str(item.fspath))

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """Create a basic customer account."""
    from authentication.tests.factories import UserFactory

    return UserFactory()


@pytest.fixture
def business_user(db):
    """Create a business owner account."""
    from authentication.tests.factories import BusinessUserFactory

    return BusinessUserFactory(first_name="Ada", last_name="Lovelace")


@pytest.fixture
def platform_admin(db):
    """Create a platform admin (moderator) account."""
    from authentication.tests.factories import AdminUserFactory

    return AdminUserFactory()


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory(db):
    """
    Factory for API clients authenticated as a given user with a JWT.

    Usage:
        def test_example(authenticated_client_factory, business_user):
            client = authenticated_client_factory(business_user)
            response = client.post("/api/v1/payments/create-intent/", {...})
    """

    def _make_client(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _make_client
