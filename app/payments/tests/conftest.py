"""
Pytest fixtures for payment tests.

The reconciliation service talks to Stripe through the PaymentGateway
protocol. Tests use FakeGateway, an in-memory implementation whose
intents can be moved between statuses to simulate what Stripe reports.

Redis is replaced by a MagicMock for every test in this package so the
per-business intent lock always succeeds unless a test says otherwise.

Usage:
    def test_confirm(service, fake_gateway, pending_payment):
        fake_gateway.set_intent_status(pending_payment.stripe_payment_intent_id, "succeeded")
        result = service.confirm_payment(pending_payment.user, pending_payment.stripe_payment_intent_id)
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from businesses.models import BusinessPaymentStatus
from businesses.tests.factories import BusinessFactory
from payments.adapters import CustomerResult, PaymentIntentResult, StripeAdapter
from payments.exceptions import SignatureError, StripeInvalidRequestError
from payments.services import ObservationSource, ReconciliationService, StatusObservation
from payments.state_machines import PaymentStatus
from payments.tests.signing import WEBHOOK_SECRET


# =============================================================================
# Fake Gateway
# =============================================================================


class FakeGateway:
    """
    In-memory PaymentGateway.

    Attributes:
        customers: email -> CustomerResult
        intents: intent id -> PaymentIntentResult
        created_params: Every CreatePaymentIntentParams received
        error: Raised from every call once set with fail_with()
    """

    def __init__(self):
        self.customers = {}
        self.intents = {}
        self.created_params = []
        self.retrieve_calls = 0
        self.error = None
        self._counter = 0

    def fail_with(self, error):
        self.error = error

    def _raise_if_failing(self):
        if self.error is not None:
            raise self.error

    def find_or_create_customer(self, email, name, metadata=None):
        self._raise_if_failing()
        if email in self.customers:
            existing = self.customers[email]
            return CustomerResult(id=existing.id, email=email, created=False)

        customer = CustomerResult(id=f"cus_fake_{len(self.customers) + 1}", email=email, created=True)
        self.customers[email] = customer
        return customer

    def create_payment_intent(self, params):
        self._raise_if_failing()
        self.created_params.append(params)
        self._counter += 1
        intent_id = f"pi_fake_{self._counter}"
        intent = PaymentIntentResult(
            id=intent_id,
            status="requires_payment_method",
            amount_cents=params.amount_cents,
            currency=params.currency,
            client_secret=f"{intent_id}_secret_test",
            metadata=dict(params.metadata),
        )
        self.intents[intent_id] = intent
        return intent

    def retrieve_payment_intent(self, payment_intent_id):
        self._raise_if_failing()
        self.retrieve_calls += 1
        if payment_intent_id not in self.intents:
            raise StripeInvalidRequestError(
                f"No such payment_intent: '{payment_intent_id}'",
                stripe_code="resource_missing",
            )
        return self.intents[payment_intent_id]

    def verify_webhook_signature(self, payload, signature):
        if signature != "valid":
            raise SignatureError("Invalid webhook signature")
        return json.loads(payload)

    def set_intent_status(self, payment_intent_id, status, last_error_message=None, billing_details=None):
        intent = self.intents.get(payment_intent_id) or PaymentIntentResult(
            id=payment_intent_id,
            status=status,
            amount_cents=9900,
            currency="usd",
        )
        intent.status = status
        intent.last_error_message = last_error_message
        intent.billing_details = billing_details
        self.intents[payment_intent_id] = intent
        return intent


# =============================================================================
# Infrastructure Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def mock_redis():
    """Redis connection used by DistributedLock; every lock is free."""
    redis_instance = MagicMock()
    redis_instance.set.return_value = True
    redis_instance.eval.return_value = 1
    with patch("payments.locks.get_redis_connection", return_value=redis_instance):
        yield redis_instance


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def service(fake_gateway):
    return ReconciliationService(fake_gateway)


@pytest.fixture
def use_fake_gateway(fake_gateway):
    """Route get_reconciliation_service() (used by views) to the fake."""
    with patch.object(StripeAdapter, "from_settings", return_value=fake_gateway):
        yield fake_gateway


@pytest.fixture
def signed_adapter():
    """
    Real StripeAdapter with a mocked API client.

    Signature verification runs against WEBHOOK_SECRET; no HTTP calls are made.
    """
    adapter = StripeAdapter(MagicMock(), WEBHOOK_SECRET)
    with patch.object(StripeAdapter, "from_settings", return_value=adapter):
        yield adapter


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
def business(db, business_user):
    """Unpaid listing owned by ``business_user``."""
    return BusinessFactory(owner=business_user, name="Acme Bakery")


@pytest.fixture
def paid_business(db, business_user):
    return BusinessFactory(
        owner=business_user,
        name="Paid Bakery",
        payment_status=BusinessPaymentStatus.PAID,
    )


@pytest.fixture
def pending_payment(service, business_user, business):
    """Payment created through the service, so the fake knows its intent."""
    result = service.request_payment_intent(business_user, business.id)
    assert result.success
    return result.data.payment


@pytest.fixture
def observe():
    """
    Build a StatusObservation for an internal status name.

    Names that are not a PaymentStatus produce an unmapped observation.

    Usage:
        service.apply_status_observation(observe("pi_fake_1", "succeeded"))
    """

    def _observe(
        payment_intent_id,
        raw_status,
        source=ObservationSource.WEBHOOK,
        failure_message=None,
        billing_details=None,
        metadata=None,
    ):
        return StatusObservation(
            payment_intent_id=payment_intent_id,
            status=PaymentStatus(raw_status) if raw_status in PaymentStatus.values else None,
            raw_status=raw_status,
            source=source,
            failure_message=failure_message,
            billing_details=billing_details,
            metadata=metadata,
        )

    return _observe
