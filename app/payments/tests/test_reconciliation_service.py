"""
Tests for ReconciliationService.

Test Classes:
    TestRequestPaymentIntent: Intent creation, already-paid short-circuit, lock contention
    TestSucceededObservation: Settlement side effects happen exactly once
    TestFailedAndCanceledObservations: Non-success outcomes and the no-downgrade rule
    TestObservationEdgeCases: Unknown intents, unmapped statuses, terminal payments
    TestSecondSuccessConflict: Second payment for an already-paid business
    TestConcurrentWriters: Version compare-and-swap when two writers race
    TestConfirmPayment: Client confirmation channel
    TestGetStatus: Polling channel
"""

import pytest
from django.db.models import F

from businesses.models import BusinessPaymentStatus
from notifications.models import Notification, NotificationType
from payments.exceptions import StripeAPIUnavailableError
from payments.models import Order, Payment
from payments.services import ObservationOutcome, ObservationSource, ReconciliationService
from payments.state_machines import OrderStatus, PaymentStatus
from payments.tests.factories import PaymentFactory


class TestRequestPaymentIntent:
    def test_creates_pending_payment_with_client_secret(self, service, fake_gateway, business_user, business, settings):
        result = service.request_payment_intent(business_user, business.id)

        assert result.success
        intent = result.data
        assert intent.already_paid is False
        assert intent.client_secret == "pi_fake_1_secret_test"

        payment = intent.payment
        assert payment.status == PaymentStatus.PENDING
        assert payment.stripe_payment_intent_id == "pi_fake_1"
        assert payment.stripe_customer_id == "cus_fake_1"
        assert payment.amount_cents == settings.BUSINESS_LISTING_FEE_CENTS
        assert payment.currency == settings.BUSINESS_LISTING_FEE_CURRENCY
        assert payment.business == business
        assert payment.user == business_user

    def test_sends_business_metadata_and_idempotency_key(self, service, fake_gateway, business_user, business):
        result = service.request_payment_intent(business_user, business.id)

        params = fake_gateway.created_params[0]
        assert params.metadata == {
            "userId": str(business_user.id),
            "businessId": str(business.id),
            "businessName": "Acme Bakery",
        }
        assert params.customer_id == "cus_fake_1"
        assert params.idempotency_key.startswith(f"create_intent:{result.data.payment.id}:1:")

    def test_customer_is_reused_across_attempts(self, service, fake_gateway, business_user, business):
        service.request_payment_intent(business_user, business.id)
        service.request_payment_intent(business_user, business.id)

        assert len(fake_gateway.customers) == 1
        assert Payment.objects.filter(stripe_customer_id="cus_fake_1").count() == 2

    def test_already_paid_business_short_circuits(self, service, fake_gateway, business_user, paid_business):
        result = service.request_payment_intent(business_user, paid_business.id)

        assert result.success
        assert result.data.already_paid is True
        assert result.data.client_secret is None
        assert fake_gateway.created_params == []
        assert not Payment.objects.filter(business=paid_business).exists()

    def test_existing_succeeded_payment_short_circuits(self, service, fake_gateway, business_user, business):
        settled = PaymentFactory(business=business, status=PaymentStatus.SUCCEEDED)

        result = service.request_payment_intent(business_user, business.id)

        assert result.data.already_paid is True
        assert result.data.payment == settled
        assert fake_gateway.created_params == []

    def test_foreign_business_is_not_found(self, service, user, business):
        result = service.request_payment_intent(user, business.id)

        assert not result.success
        assert result.error_code == "BUSINESS_NOT_FOUND"

    def test_gateway_failure_writes_nothing(self, service, fake_gateway, business_user, business):
        fake_gateway.fail_with(StripeAPIUnavailableError("Could not connect to Stripe"))

        with pytest.raises(StripeAPIUnavailableError):
            service.request_payment_intent(business_user, business.id)

        assert Payment.objects.count() == 0

    def test_lock_contention_is_reported(self, service, fake_gateway, business_user, business, mock_redis, settings):
        settings.PAYMENT_INTENT_LOCK_TTL_SECONDS = 0
        mock_redis.set.return_value = False

        result = service.request_payment_intent(business_user, business.id)

        assert not result.success
        assert result.error_code == "LOCK_ACQUISITION_FAILED"
        assert fake_gateway.created_params == []

    def test_lock_is_released_after_creation(self, service, business_user, business, mock_redis):
        service.request_payment_intent(business_user, business.id)

        key = f"lock:payment-intent:business:{business.id}"
        assert mock_redis.set.call_args[0][0] == key
        mock_redis.eval.assert_called_once()
        assert mock_redis.eval.call_args[0][2] == key


class TestSucceededObservation:
    def test_settles_payment_business_and_order(self, service, pending_payment, observe, business, settings):
        result = service.apply_status_observation(observe(pending_payment.stripe_payment_intent_id, "succeeded"))

        assert result.outcome == ObservationOutcome.APPLIED
        pending_payment.refresh_from_db()
        assert pending_payment.status == PaymentStatus.SUCCEEDED
        assert pending_payment.succeeded_at is not None

        business.refresh_from_db()
        assert business.payment_status == BusinessPaymentStatus.PAID
        assert business.payment_id == pending_payment.id

        order = Order.objects.get(payment=pending_payment)
        assert result.order == order
        assert order.status == OrderStatus.COMPLETED
        assert order.subtotal_cents == settings.BUSINESS_LISTING_FEE_CENTS
        assert order.total_cents == order.subtotal_cents + order.tax_cents
        assert order.items[0]["quantity"] == 1
        assert order.order_number.startswith("ORD-")
        assert pending_payment.metadata["orderId"] == str(order.id)
        assert pending_payment.metadata["orderNumber"] == order.order_number

    def test_tax_is_added_to_total(self, service, pending_payment, observe, settings):
        settings.BUSINESS_LISTING_FEE_TAX_CENTS = 500

        result = service.apply_status_observation(observe(pending_payment.stripe_payment_intent_id, "succeeded"))

        assert result.order.tax_cents == 500
        assert result.order.total_cents == pending_payment.amount_cents + 500

    def test_notifies_payer(self, service, pending_payment, observe, business_user):
        service.apply_status_observation(observe(pending_payment.stripe_payment_intent_id, "succeeded"))

        notification = Notification.objects.get(recipient=business_user)
        assert notification.notification_type == NotificationType.PAYMENT_SUCCEEDED
        assert notification.idempotency_key == f"payment-succeeded:{pending_payment.id}"

    def test_duplicate_observation_has_no_side_effects(self, service, pending_payment, observe):
        intent_id = pending_payment.stripe_payment_intent_id
        first = service.apply_status_observation(observe(intent_id, "succeeded"))
        second = service.apply_status_observation(observe(intent_id, "succeeded"))

        assert second.outcome == ObservationOutcome.DUPLICATE
        assert second.order == first.order
        assert Order.objects.filter(payment=pending_payment).count() == 1
        assert Notification.objects.filter(notification_type=NotificationType.PAYMENT_SUCCEEDED).count() == 1

    def test_webhook_after_confirm_is_duplicate(self, service, fake_gateway, pending_payment, observe, business_user):
        intent_id = pending_payment.stripe_payment_intent_id
        fake_gateway.set_intent_status(intent_id, "succeeded")

        confirmed = service.confirm_payment(business_user, intent_id)
        webhook = service.apply_status_observation(observe(intent_id, "succeeded", source=ObservationSource.WEBHOOK))

        assert confirmed.data.outcome == ObservationOutcome.APPLIED
        assert webhook.outcome == ObservationOutcome.DUPLICATE
        assert Order.objects.count() == 1

    def test_billing_details_from_observation(self, service, pending_payment, observe):
        billing = {"name": "Ada L.", "email": "billing@example.com", "phone": None}

        result = service.apply_status_observation(
            observe(pending_payment.stripe_payment_intent_id, "succeeded", billing_details=billing)
        )

        assert result.order.billing_details == billing

    def test_billing_details_fall_back_to_payer(self, service, pending_payment, observe, business_user):
        result = service.apply_status_observation(observe(pending_payment.stripe_payment_intent_id, "succeeded"))

        assert result.order.billing_details == {"name": "Ada Lovelace", "email": business_user.email}

    def test_billing_name_falls_back_to_email_for_nameless_payer(
        self, service, pending_payment, observe, business_user
    ):
        business_user.first_name = ""
        business_user.last_name = ""
        business_user.save(update_fields=["first_name", "last_name"])

        result = service.apply_status_observation(observe(pending_payment.stripe_payment_intent_id, "succeeded"))

        assert result.order.billing_details == {"name": business_user.email, "email": business_user.email}

    def test_processing_then_succeeded(self, service, pending_payment, observe):
        intent_id = pending_payment.stripe_payment_intent_id

        processing = service.apply_status_observation(observe(intent_id, "processing"))
        pending_payment.refresh_from_db()
        assert processing.outcome == ObservationOutcome.APPLIED
        assert pending_payment.status == PaymentStatus.PROCESSING
        assert not Order.objects.exists()

        succeeded = service.apply_status_observation(observe(intent_id, "succeeded"))
        assert succeeded.outcome == ObservationOutcome.APPLIED
        assert succeeded.order is not None

    def test_version_increments_once_per_applied_observation(self, service, pending_payment, observe):
        version = pending_payment.version

        service.apply_status_observation(observe(pending_payment.stripe_payment_intent_id, "succeeded"))

        pending_payment.refresh_from_db()
        assert pending_payment.version == version + 1


class TestFailedAndCanceledObservations:
    def test_failed_records_reason_and_marks_business(self, service, pending_payment, observe, business):
        result = service.apply_status_observation(
            observe(pending_payment.stripe_payment_intent_id, "failed", failure_message="Your card was declined.")
        )

        assert result.outcome == ObservationOutcome.APPLIED
        pending_payment.refresh_from_db()
        assert pending_payment.status == PaymentStatus.FAILED
        assert pending_payment.failure_reason == "Your card was declined."
        assert pending_payment.failed_at is not None
        business.refresh_from_db()
        assert business.payment_status == BusinessPaymentStatus.FAILED
        assert not Order.objects.exists()
        assert Notification.objects.filter(notification_type=NotificationType.PAYMENT_FAILED).count() == 1

    def test_failed_without_message_uses_default_reason(self, service, pending_payment, observe):
        service.apply_status_observation(observe(pending_payment.stripe_payment_intent_id, "failed"))

        pending_payment.refresh_from_db()
        assert pending_payment.failure_reason == "Payment failed"

    def test_retry_after_failure_can_succeed(self, service, pending_payment, observe, business):
        intent_id = pending_payment.stripe_payment_intent_id
        service.apply_status_observation(observe(intent_id, "failed", failure_message="Insufficient funds"))

        result = service.apply_status_observation(observe(intent_id, "succeeded"))

        assert result.outcome == ObservationOutcome.APPLIED
        pending_payment.refresh_from_db()
        assert pending_payment.failure_reason == ""
        business.refresh_from_db()
        assert business.is_paid

    def test_canceled_after_failure_resets_business_to_pending(self, service, pending_payment, observe, business):
        intent_id = pending_payment.stripe_payment_intent_id
        service.apply_status_observation(observe(intent_id, "failed"))

        result = service.apply_status_observation(observe(intent_id, "canceled"))

        assert result.outcome == ObservationOutcome.APPLIED
        pending_payment.refresh_from_db()
        assert pending_payment.status == PaymentStatus.CANCELED
        business.refresh_from_db()
        assert business.payment_status == BusinessPaymentStatus.PENDING

    def test_cancellation_allows_a_new_intent(
        self, service, fake_gateway, pending_payment, observe, business, business_user
    ):
        service.apply_status_observation(observe(pending_payment.stripe_payment_intent_id, "canceled"))

        result = service.request_payment_intent(business_user, business.id)

        assert result.success
        assert result.data.already_paid is False
        assert result.data.payment.id != pending_payment.id
        assert result.data.payment.status == PaymentStatus.PENDING
        assert len(fake_gateway.created_params) == 2
        assert Payment.objects.filter(business=business).count() == 2

    def test_failure_of_another_attempt_never_downgrades_paid_business(
        self, service, fake_gateway, pending_payment, observe, business, business_user
    ):
        other = service.request_payment_intent(business_user, business.id).data.payment
        service.apply_status_observation(observe(pending_payment.stripe_payment_intent_id, "succeeded"))

        service.apply_status_observation(observe(other.stripe_payment_intent_id, "failed"))
        service.apply_status_observation(observe(other.stripe_payment_intent_id, "canceled"))

        business.refresh_from_db()
        assert business.payment_status == BusinessPaymentStatus.PAID
        assert business.payment_id == pending_payment.id


class TestObservationEdgeCases:
    def test_unknown_payment(self, service, observe, db):
        result = service.apply_status_observation(observe("pi_not_ours", "succeeded"))

        assert result.outcome == ObservationOutcome.UNKNOWN_PAYMENT
        assert not Order.objects.exists()

    def test_unmapped_status_is_ignored(self, service, pending_payment, observe):
        result = service.apply_status_observation(observe(pending_payment.stripe_payment_intent_id, "bogus"))

        assert result.outcome == ObservationOutcome.IGNORED
        pending_payment.refresh_from_db()
        assert pending_payment.status == PaymentStatus.PENDING

    def test_late_failure_after_success_is_ignored(self, service, pending_payment, observe, business):
        intent_id = pending_payment.stripe_payment_intent_id
        service.apply_status_observation(observe(intent_id, "succeeded"))

        result = service.apply_status_observation(observe(intent_id, "failed"))

        assert result.outcome == ObservationOutcome.IGNORED
        pending_payment.refresh_from_db()
        assert pending_payment.status == PaymentStatus.SUCCEEDED
        business.refresh_from_db()
        assert business.is_paid

    def test_success_after_cancel_is_ignored(self, service, pending_payment, observe):
        intent_id = pending_payment.stripe_payment_intent_id
        service.apply_status_observation(observe(intent_id, "canceled"))

        result = service.apply_status_observation(observe(intent_id, "succeeded"))

        assert result.outcome == ObservationOutcome.IGNORED
        assert not Order.objects.exists()

    def test_duplicate_merges_reported_metadata(self, service, pending_payment, observe):
        intent_id = pending_payment.stripe_payment_intent_id

        result = service.apply_status_observation(
            observe(intent_id, "pending", metadata={"businessName": "Acme Bakery"})
        )

        assert result.outcome == ObservationOutcome.DUPLICATE
        pending_payment.refresh_from_db()
        assert pending_payment.metadata["businessName"] == "Acme Bakery"
        assert pending_payment.status == PaymentStatus.PENDING


class TestSecondSuccessConflict:
    def test_second_success_is_flagged_not_applied(self, service, business_user, business, observe):
        first = service.request_payment_intent(business_user, business.id).data.payment
        second = service.request_payment_intent(business_user, business.id).data.payment
        service.apply_status_observation(observe(first.stripe_payment_intent_id, "succeeded"))

        result = service.apply_status_observation(observe(second.stripe_payment_intent_id, "succeeded"))

        assert result.outcome == ObservationOutcome.CONFLICT
        second.refresh_from_db()
        assert second.status == PaymentStatus.PENDING
        conflict = second.metadata["reconciliationConflict"]
        assert conflict["action"] == "refund_required"
        assert conflict["paidByPaymentId"] == str(first.id)
        assert conflict["source"] == "webhook"

        business.refresh_from_db()
        assert business.payment_id == first.id
        assert Order.objects.count() == 1


class TestConcurrentWriters:
    def test_writer_that_loses_the_race_rolls_back(self, service, pending_payment, observe, business, monkeypatch):
        original_settle = ReconciliationService._settle

        def settle_while_another_writer_commits(self, payment, business, observation):
            Payment.objects.filter(pk=payment.pk).update(version=F("version") + 1)
            return original_settle(self, payment, business, observation)

        monkeypatch.setattr(ReconciliationService, "_settle", settle_while_another_writer_commits)
        intent_id = pending_payment.stripe_payment_intent_id

        result = service.apply_status_observation(observe(intent_id, "succeeded"))

        assert result.outcome == ObservationOutcome.CONFLICT_LOST
        assert not Order.objects.exists()
        pending_payment.refresh_from_db()
        assert pending_payment.status == PaymentStatus.PENDING
        business.refresh_from_db()
        assert business.payment_status == BusinessPaymentStatus.PENDING

        monkeypatch.undo()
        retried = service.apply_status_observation(observe(intent_id, "succeeded"))

        assert retried.outcome == ObservationOutcome.APPLIED
        assert Order.objects.count() == 1


class TestConfirmPayment:
    def test_returns_payment_and_order(self, service, fake_gateway, pending_payment, business_user):
        intent_id = pending_payment.stripe_payment_intent_id
        fake_gateway.set_intent_status(intent_id, "succeeded")

        result = service.confirm_payment(business_user, intent_id)

        assert result.success
        assert result.data.payment.status == PaymentStatus.SUCCEEDED
        assert result.data.order is not None

    def test_declined_card_is_reported_as_failed(self, service, fake_gateway, pending_payment, business_user):
        intent_id = pending_payment.stripe_payment_intent_id
        fake_gateway.set_intent_status(
            intent_id,
            "requires_payment_method",
            last_error_message="Your card was declined.",
        )

        result = service.confirm_payment(business_user, intent_id)

        assert result.data.payment.status == PaymentStatus.FAILED
        assert result.data.payment.failure_reason == "Your card was declined."
        assert result.data.order is None

    def test_other_users_payment_is_not_found(self, service, pending_payment, user):
        result = service.confirm_payment(user, pending_payment.stripe_payment_intent_id)

        assert not result.success
        assert result.error_code == "PAYMENT_NOT_FOUND"

    def test_gateway_failure_propagates(self, service, fake_gateway, pending_payment, business_user):
        fake_gateway.fail_with(StripeAPIUnavailableError("Stripe service error"))

        with pytest.raises(StripeAPIUnavailableError):
            service.confirm_payment(business_user, pending_payment.stripe_payment_intent_id)


class TestGetStatus:
    def test_poll_applies_newer_status(self, service, fake_gateway, pending_payment, business_user, business):
        fake_gateway.set_intent_status(pending_payment.stripe_payment_intent_id, "succeeded")

        result = service.get_status(pending_payment.id, business_user)

        assert result.success
        assert result.data.status == PaymentStatus.SUCCEEDED
        business.refresh_from_db()
        assert business.is_paid

    def test_terminal_payment_does_not_call_gateway(self, service, fake_gateway, pending_payment, business_user, observe):
        service.apply_status_observation(observe(pending_payment.stripe_payment_intent_id, "succeeded"))

        result = service.get_status(pending_payment.id, business_user)

        assert result.data.status == PaymentStatus.SUCCEEDED
        assert fake_gateway.retrieve_calls == 0

    def test_gateway_outage_returns_stored_status(self, service, fake_gateway, pending_payment, business_user):
        fake_gateway.fail_with(StripeAPIUnavailableError("Could not connect to Stripe"))

        result = service.get_status(pending_payment.id, business_user)

        assert result.success
        assert result.data.status == PaymentStatus.PENDING

    def test_unchanged_status_writes_nothing(self, service, fake_gateway, pending_payment, business_user):
        version = pending_payment.version
        fake_gateway.set_intent_status(pending_payment.stripe_payment_intent_id, "pending")

        result = service.get_status(pending_payment.id, business_user)

        assert result.data.version == version

    def test_other_user_is_not_found(self, service, pending_payment, user):
        result = service.get_status(pending_payment.id, user)

        assert result.error_code == "PAYMENT_NOT_FOUND"
