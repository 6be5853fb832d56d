"""
Reconciliation service for the business listing fee.

This module provides the ReconciliationService which merges payment status
observations from Stripe into local state. Observations arrive from three
channels that can race each other or arrive out of order:

    - CONFIRM: the client calls /payments/confirm/ after Stripe.js returns
    - WEBHOOK: Stripe pushes payment_intent.* events
    - POLL:    /payments/<id>/status/ re-queries Stripe when webhooks lag

All three go through apply_status_observation(), so the rules live in one
place.

Consistency Strategy:
    - The Payment row is locked (select_for_update) for the whole unit of
      work, then the Business row. Everything runs in one transaction.
    - The Payment status is written last with a version compare-and-swap.
      A writer that loses the race rolls back and reports CONFLICT_LOST.
    - An observation equal to the stored status is a duplicate: no side
      effects run.
    - Order creation is keyed by payment (one-to-one), so a retried
      reconciliation finds the existing order.
    - A second payment succeeding for an already-paid business is never
      marked succeeded; it is flagged for manual refund.

Usage:
    from payments.services import get_reconciliation_service

    service = get_reconciliation_service()
    result = service.request_payment_intent(request.user, business_id)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from businesses.models import Business
from core.services import BaseService, ServiceResult
from notifications.models import NotificationType
from notifications.services import NotificationService
from payments.adapters import (
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
)
from payments.exceptions import GatewayError, LockAcquisitionError, StaleRecordError
from payments.locks import DistributedLock
from payments.models import Order, Payment, compute_totals
from payments.state_machines import (
    OrderStatus,
    PaymentStatus,
    map_gateway_status,
    map_webhook_event,
)

if TYPE_CHECKING:
    from typing import Any

    from authentication.models import User
    from payments.adapters import PaymentGateway, PaymentIntentResult


logger = logging.getLogger(__name__)


LISTING_FEE_ITEM_NAME = "Business Listing Fee"
LISTING_FEE_ITEM_DESCRIPTION = "One-time payment to publish your business on our platform"
DEFAULT_FAILURE_REASON = "Payment failed"


# =============================================================================
# Data Types
# =============================================================================


class ObservationSource(str, Enum):
    CONFIRM = "confirm"
    WEBHOOK = "webhook"
    POLL = "poll"


class ObservationOutcome(str, Enum):
    """What apply_status_observation() did with an observation."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    UNKNOWN_PAYMENT = "unknown_payment"
    CONFLICT = "conflict"
    CONFLICT_LOST = "conflict_lost"


@dataclass
class StatusObservation:
    """
    A payment status reported by Stripe through one channel.

    Attributes:
        payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
        status: Mapped internal status, None when Stripe's value is unmapped
        raw_status: Stripe's status or event type, for logging
        source: Channel that produced the observation
        failure_message: last_payment_error.message, if any
        billing_details: Billing snapshot from the latest charge, if known
        metadata: PaymentIntent metadata as reported by Stripe
    """

    payment_intent_id: str
    status: PaymentStatus | None
    raw_status: str
    source: ObservationSource
    failure_message: str | None = None
    billing_details: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_intent(
        cls,
        intent: PaymentIntentResult,
        source: ObservationSource,
    ) -> StatusObservation:
        return cls(
            payment_intent_id=intent.id,
            status=map_gateway_status(intent.status, intent.last_error_message),
            raw_status=intent.status,
            source=source,
            failure_message=intent.last_error_message,
            billing_details=intent.billing_details,
            metadata=intent.metadata or None,
        )

    @classmethod
    def from_webhook_event(cls, event: dict[str, Any]) -> StatusObservation:
        intent = event.get("data", {}).get("object", {}) or {}
        last_error = intent.get("last_payment_error") or {}
        return cls(
            payment_intent_id=intent.get("id", ""),
            status=map_webhook_event(event.get("type")),
            raw_status=event.get("type", ""),
            source=ObservationSource.WEBHOOK,
            failure_message=last_error.get("message"),
            metadata=intent.get("metadata") or None,
        )


@dataclass
class ReconciliationResult:
    outcome: ObservationOutcome
    payment: Payment | None = None
    order: Order | None = None


@dataclass
class IntentRequestResult:
    """
    Result of request_payment_intent().

    ``already_paid`` distinguishes the idempotent short-circuit from a
    freshly created intent; ``client_secret`` is only set for the latter.
    """

    already_paid: bool
    payment: Payment | None = None
    client_secret: str | None = None


# =============================================================================
# Reconciliation Service
# =============================================================================


class ReconciliationService(BaseService):
    """
    Applies Stripe payment status to Payment, Order and Business state.

    The gateway is injected so tests can substitute an in-memory fake.

    Methods:
        request_payment_intent: Create a PaymentIntent for a business
        confirm_payment: Reconcile after the client confirms with Stripe.js
        apply_status_observation: Single reconciliation path for all channels
        get_status: Read a payment, re-querying Stripe if not terminal
    """

    def __init__(self, gateway: PaymentGateway) -> None:
        self.gateway = gateway

    # =========================================================================
    # Intent creation
    # =========================================================================

    def request_payment_intent(self, user: User, business_id) -> ServiceResult[IntentRequestResult]:
        """
        Create a listing-fee PaymentIntent for a business owned by ``user``.

        Runs under a per-business distributed lock so the already-paid
        check and the intent creation never interleave with a concurrent
        request. Gateway errors propagate before any Payment row is written.

        Error codes:
            BUSINESS_NOT_FOUND: Missing or owned by someone else
            LOCK_ACQUISITION_FAILED: Another request holds the business lock

        Raises:
            GatewayError: Stripe call failed
        """
        business = Business.objects.filter(id=business_id, owner=user).first()
        if business is None:
            return ServiceResult.failure(
                "Business not found or unauthorized",
                error_code="BUSINESS_NOT_FOUND",
            )

        paid_by = self._settled_payment(business)
        if paid_by is not None or business.is_paid:
            return ServiceResult.success(IntentRequestResult(already_paid=True, payment=paid_by))

        try:
            with DistributedLock.for_business_intent(business.id):
                # Re-check under the lock; a concurrent request may have won
                business.refresh_from_db(fields=["payment_status", "payment"])
                paid_by = self._settled_payment(business)
                if paid_by is not None or business.is_paid:
                    return ServiceResult.success(
                        IntentRequestResult(already_paid=True, payment=paid_by)
                    )

                payment, client_secret = self._create_intent(user, business)
        except LockAcquisitionError as e:
            self.get_logger().warning(
                f"Payment intent request for business {business.id} hit lock contention",
                extra={"business_id": str(business.id)},
            )
            return ServiceResult.from_exception(e)

        return ServiceResult.success(
            IntentRequestResult(
                already_paid=False,
                payment=payment,
                client_secret=client_secret,
            )
        )

    def _create_intent(self, user: User, business: Business) -> tuple[Payment, str | None]:
        amount_cents = settings.BUSINESS_LISTING_FEE_CENTS
        currency = settings.BUSINESS_LISTING_FEE_CURRENCY
        description = f"Business listing fee for {business.name}"

        customer = self.gateway.find_or_create_customer(
            email=user.email,
            name=user.get_full_name(),
            metadata={"userId": str(user.id), "businessId": str(business.id)},
        )

        payment_id = uuid.uuid4()
        intent = self.gateway.create_payment_intent(
            CreatePaymentIntentParams(
                amount_cents=amount_cents,
                currency=currency,
                customer_id=customer.id,
                description=description,
                metadata={
                    "userId": str(user.id),
                    "businessId": str(business.id),
                    "businessName": business.name,
                },
                idempotency_key=IdempotencyKeyGenerator.generate("create_intent", payment_id),
            )
        )

        payment = Payment.objects.create(
            id=payment_id,
            user=user,
            business=business,
            stripe_payment_intent_id=intent.id,
            stripe_customer_id=customer.id,
            amount_cents=amount_cents,
            currency=currency,
            description=description,
            status=PaymentStatus.PENDING,
        )

        self.get_logger().info(
            f"Created payment {payment.id} for business {business.id}",
            extra={
                "payment_id": str(payment.id),
                "payment_intent_id": intent.id,
                "business_id": str(business.id),
                "customer_created": customer.created,
            },
        )
        # The client secret is never persisted
        return payment, intent.client_secret

    @staticmethod
    def _settled_payment(business: Business) -> Payment | None:
        return (
            Payment.objects.filter(business=business, status=PaymentStatus.SUCCEEDED)
            .order_by("succeeded_at")
            .first()
        )

    # =========================================================================
    # Channels
    # =========================================================================

    def confirm_payment(self, user: User, payment_intent_id: str) -> ServiceResult[ReconciliationResult]:
        """
        Reconcile a payment after the client-side confirmation returns.

        Error codes:
            PAYMENT_NOT_FOUND: No payment with this intent for ``user``

        Raises:
            GatewayError: Stripe call failed
        """
        payment = Payment.objects.filter(
            stripe_payment_intent_id=payment_intent_id,
            user=user,
        ).first()
        if payment is None:
            return ServiceResult.failure("Payment not found", error_code="PAYMENT_NOT_FOUND")

        intent = self.gateway.retrieve_payment_intent(payment_intent_id)
        result = self.apply_status_observation(
            StatusObservation.from_intent(intent, ObservationSource.CONFIRM)
        )

        payment.refresh_from_db()
        result.payment = payment
        result.order = Order.objects.filter(payment=payment).first()
        return ServiceResult.success(result)

    def get_status(self, payment_id, user: User) -> ServiceResult[Payment]:
        """
        Return a payment, reconciling it with Stripe first if still open.

        A Stripe outage does not fail the read; the stored state is
        returned instead.

        Error codes:
            PAYMENT_NOT_FOUND: No such payment for ``user``
        """
        payment = Payment.objects.filter(id=payment_id, user=user).first()
        if payment is None:
            return ServiceResult.failure("Payment not found", error_code="PAYMENT_NOT_FOUND")

        if payment.is_terminal:
            return ServiceResult.success(payment)

        try:
            intent = self.gateway.retrieve_payment_intent(payment.stripe_payment_intent_id)
        except GatewayError:
            self.get_logger().warning(
                f"Could not refresh payment {payment.id} from Stripe; returning stored status",
                extra={"payment_id": str(payment.id)},
                exc_info=True,
            )
            return ServiceResult.success(payment)

        observation = StatusObservation.from_intent(intent, ObservationSource.POLL)
        if observation.status is not None and observation.status != payment.status:
            self.apply_status_observation(observation)
            payment.refresh_from_db()

        return ServiceResult.success(payment)

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def apply_status_observation(self, observation: StatusObservation) -> ReconciliationResult:
        """
        Apply one status observation exactly once.

        Flow:
            1. Unmapped status -> IGNORED
            2. Lock the Payment row; missing -> UNKNOWN_PAYMENT
            3. Same status as stored -> DUPLICATE (refresh metadata only)
            4. Stored status terminal -> IGNORED
            5. Lock the Business row and run the transition side effects
            6. Write the Payment status last via compare-and-swap

        Database errors propagate; the transaction is rolled back.
        """
        log_context = {
            "payment_intent_id": observation.payment_intent_id,
            "observed_status": observation.raw_status,
            "source": observation.source.value,
        }

        if observation.status is None:
            logger.info("Ignoring unmapped payment status", extra=log_context)
            return ReconciliationResult(ObservationOutcome.IGNORED)

        try:
            with transaction.atomic():
                return self._apply_locked(observation, log_context)
        except StaleRecordError:
            logger.info(
                "Lost reconciliation race; another writer committed first",
                extra=log_context,
            )
            return ReconciliationResult(ObservationOutcome.CONFLICT_LOST)

    def _apply_locked(self, observation: StatusObservation, log_context: dict) -> ReconciliationResult:
        payment = (
            Payment.objects.select_for_update()
            .select_related("user")
            .filter(stripe_payment_intent_id=observation.payment_intent_id)
            .first()
        )
        if payment is None:
            logger.warning("Status observation for unknown payment", extra=log_context)
            return ReconciliationResult(ObservationOutcome.UNKNOWN_PAYMENT)

        log_context = {**log_context, "payment_id": str(payment.id), "stored_status": payment.status}

        if payment.status == observation.status:
            self._refresh_details(payment, observation)
            logger.debug("Duplicate status observation", extra=log_context)
            return ReconciliationResult(
                ObservationOutcome.DUPLICATE,
                payment=payment,
                order=Order.objects.filter(payment=payment).first(),
            )

        if payment.is_terminal:
            logger.info("Ignoring observation for terminal payment", extra=log_context)
            return ReconciliationResult(ObservationOutcome.IGNORED, payment=payment)

        business = Business.objects.select_for_update().get(pk=payment.business_id)
        expected_version = payment.version

        if observation.status == PaymentStatus.SUCCEEDED and self._paid_by_other(payment, business):
            return self._record_conflict(payment, business, observation, expected_version, log_context)

        try:
            self._transition(payment, observation)
        except TransitionNotAllowed:
            logger.warning("Observed status is not a valid transition", extra=log_context)
            return ReconciliationResult(ObservationOutcome.IGNORED, payment=payment)

        order = None
        if payment.status == PaymentStatus.SUCCEEDED:
            order = self._settle(payment, business, observation)
        elif payment.status == PaymentStatus.FAILED:
            self._save_business(business, business.mark_payment_failed())
            NotificationService.create_notification(
                recipient=payment.user,
                notification_type=NotificationType.PAYMENT_FAILED,
                title="Payment Failed",
                body=(
                    f'Your payment for "{business.name}" failed: {payment.failure_reason}. '
                    "You can try again with another payment method."
                ),
                data={"payment_id": str(payment.id), "business_id": str(business.id)},
                idempotency_key=f"payment-failed:{payment.id}:{expected_version}",
            )
        elif payment.status == PaymentStatus.CANCELED:
            self._save_business(business, business.reset_payment_pending())

        # Status goes last: if anything above failed, the observation can
        # be re-applied from scratch
        if not payment.compare_and_swap(expected_version, **self._status_fields(payment)):
            raise StaleRecordError(
                f"Payment {payment.id} changed during reconciliation",
                details={"payment_id": str(payment.id), "expected_version": expected_version},
            )

        logger.info(
            f"Payment {payment.id} reconciled to {payment.status}",
            extra={**log_context, "new_status": payment.status},
        )
        return ReconciliationResult(ObservationOutcome.APPLIED, payment=payment, order=order)

    @staticmethod
    def _transition(payment: Payment, observation: StatusObservation) -> None:
        if observation.status == PaymentStatus.SUCCEEDED:
            payment.mark_succeeded()
        elif observation.status == PaymentStatus.FAILED:
            payment.mark_failed(observation.failure_message or DEFAULT_FAILURE_REASON)
        elif observation.status == PaymentStatus.CANCELED:
            payment.mark_canceled()
        else:
            payment.advance(observation.status)

    @staticmethod
    def _status_fields(payment: Payment) -> dict[str, Any]:
        return {
            "status": payment.status,
            "succeeded_at": payment.succeeded_at,
            "failed_at": payment.failed_at,
            "canceled_at": payment.canceled_at,
            "failure_reason": payment.failure_reason,
            "metadata": payment.metadata,
            "updated_at": timezone.now(),
        }

    @staticmethod
    def _save_business(business: Business, changed_fields: list[str]) -> None:
        if changed_fields:
            business.save(update_fields=[*changed_fields, "updated_at"])

    @staticmethod
    def _paid_by_other(payment: Payment, business: Business) -> bool:
        if business.is_paid and business.payment_id not in (None, payment.pk):
            return True
        return (
            Payment.objects.filter(business_id=business.pk, status=PaymentStatus.SUCCEEDED)
            .exclude(pk=payment.pk)
            .exists()
        )

    def _record_conflict(
        self,
        payment: Payment,
        business: Business,
        observation: StatusObservation,
        expected_version: int,
        log_context: dict,
    ) -> ReconciliationResult:
        metadata = {
            **payment.metadata,
            "reconciliationConflict": {
                "observedStatus": observation.status,
                "source": observation.source.value,
                "observedAt": timezone.now().isoformat(),
                "paidByPaymentId": str(business.payment_id) if business.payment_id else None,
                "action": "refund_required",
            },
        }
        if not payment.compare_and_swap(expected_version, metadata=metadata, updated_at=timezone.now()):
            raise StaleRecordError(f"Payment {payment.id} changed during reconciliation")

        logger.error(
            f"Second successful payment {payment.id} for already-paid business {business.id}; "
            "manual refund required",
            extra={**log_context, "business_id": str(business.id)},
        )
        return ReconciliationResult(ObservationOutcome.CONFLICT, payment=payment)

    def _settle(self, payment: Payment, business: Business, observation: StatusObservation) -> Order:
        """Side effects of the first SUCCEEDED observation."""
        self._save_business(business, business.mark_paid(payment))

        order = self._get_or_create_order(payment, business, observation)
        payment.metadata = {
            **payment.metadata,
            "orderId": str(order.id),
            "orderNumber": order.order_number,
        }

        NotificationService.create_notification(
            recipient=payment.user,
            notification_type=NotificationType.PAYMENT_SUCCEEDED,
            title="Payment Successful",
            body=(
                f'Your payment of {payment.amount_cents / 100:.2f} {payment.currency.upper()} '
                f'for "{business.name}" was successful. Order number: {order.order_number}. '
                "Your business is now awaiting approval."
            ),
            data={
                "payment_id": str(payment.id),
                "order_id": str(order.id),
                "business_id": str(business.id),
            },
            idempotency_key=f"payment-succeeded:{payment.id}",
        )
        return order

    def _get_or_create_order(
        self,
        payment: Payment,
        business: Business,
        observation: StatusObservation,
    ) -> Order:
        existing = Order.objects.filter(payment=payment).first()
        if existing is not None:
            return existing

        items = [
            {
                "name": LISTING_FEE_ITEM_NAME,
                "description": LISTING_FEE_ITEM_DESCRIPTION,
                "unit_amount_cents": payment.amount_cents,
                "quantity": 1,
            }
        ]
        subtotal, tax, total = compute_totals(items, settings.BUSINESS_LISTING_FEE_TAX_CENTS)

        return Order.objects.create(
            user=payment.user,
            business=business,
            payment=payment,
            items=items,
            subtotal_cents=subtotal,
            tax_cents=tax,
            total_cents=total,
            currency=payment.currency,
            status=OrderStatus.COMPLETED,
            billing_details=self._billing_snapshot(payment, observation),
            completed_at=timezone.now(),
        )

    @staticmethod
    def _billing_snapshot(payment: Payment, observation: StatusObservation) -> dict[str, Any]:
        details = observation.billing_details or {}
        if details.get("name") or details.get("email"):
            return details

        user = payment.user
        return {
            "name": user.get_full_name(),
            "email": user.email,
        }

    @staticmethod
    def _refresh_details(payment: Payment, observation: StatusObservation) -> None:
        """On a duplicate, merge Stripe-reported metadata; nothing else changes."""
        if not observation.metadata:
            return
        merged = {**payment.metadata, **observation.metadata}
        if merged != payment.metadata:
            payment.compare_and_swap(payment.version, metadata=merged, updated_at=timezone.now())


def get_reconciliation_service() -> ReconciliationService:
    """Build a ReconciliationService backed by Stripe."""
    return ReconciliationService(StripeAdapter.from_settings())
