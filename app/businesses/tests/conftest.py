"""
Fixtures for business tests.
"""

import pytest

from businesses.models import BusinessPaymentStatus
from businesses.tests.factories import BusinessFactory


@pytest.fixture
def business(db, business_user):
    """Unpaid draft listing owned by ``business_user``."""
    return BusinessFactory(owner=business_user, name="Acme Bakery")


@pytest.fixture
def paid_business(db, business_user):
    """Listing whose fee has been settled but is not yet approved."""
    return BusinessFactory(
        owner=business_user,
        name="Paid Bakery",
        payment_status=BusinessPaymentStatus.PAID,
    )
