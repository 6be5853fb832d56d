"""
Payment model for the business listing fee.

One Payment row tracks one gateway PaymentIntent. It is the single source
of truth for amount, currency and status of that attempt. Rows are only
mutated by payments.services.ReconciliationService and never deleted.

Usage:
    from payments.models import Payment
    from payments.state_machines import PaymentStatus

    payment = Payment.objects.create(
        user=owner,
        business=business,
        stripe_payment_intent_id="pi_xxx",
        stripe_customer_id="cus_xxx",
        amount_cents=9900,
        currency="usd",
    )

    # State transitions using django-fsm (in memory; the reconciliation
    # service persists them with a version compare-and-swap)
    payment.mark_succeeded()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import RETURN_VALUE, FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel
from payments.state_machines import IN_FLIGHT_STATUSES, TERMINAL_STATUSES, PaymentStatus


class Payment(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    One attempt to pay the listing fee for a business.

    State Flow:
        PENDING -> (in-flight states) -> SUCCEEDED | FAILED
        FAILED -> SUCCEEDED (card retried on the same intent)
        PENDING/in-flight/FAILED -> CANCELED

    Terminal states: SUCCEEDED, CANCELED

    Fields:
        user: Business owner paying the fee
        business: Listing the fee is for
        stripe_payment_intent_id: Gateway PaymentIntent ID (globally unique)
        stripe_customer_id: Gateway Customer ID
        amount_cents / currency: Fixed at creation, never mutated
        status: Current FSM state
        metadata: Free-form JSON (orderId, conflict flags, ...)
        failure_reason: Gateway error message for failed attempts
        *_at timestamps: When terminal-ish transitions happened
        version: Optimistic locking version (VersionedMixin)
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="User paying the listing fee",
    )

    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Business the listing fee is for",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )

    stripe_customer_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Stripe Customer ID (cus_xxx)",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    amount_cents = models.PositiveIntegerField(
        help_text="Amount in smallest currency unit (e.g., cents)",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    description = models.CharField(max_length=255, blank=True, default="")

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        help_text="Current payment status (managed by FSM)",
    )

    succeeded_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)

    # ==========================================================================
    # Metadata & Error Info
    # ==========================================================================

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON metadata (orderId, reconciliation flags)",
    )

    failure_reason = models.TextField(
        blank=True,
        default="",
        help_text="Gateway error message if payment failed",
    )

    # Refunds are issued manually in the Stripe dashboard and recorded here
    refunded_at = models.DateTimeField(null=True, blank=True)
    refund_reason = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "-created_at"], name="payment_user_idx"),
            models.Index(fields=["business", "status"], name="payment_business_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_cents__gt=0),
                name="payment_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency.upper()}"
        return f"Payment({self.stripe_payment_intent_id}, {self.status}, {amount_display})"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[*IN_FLIGHT_STATUSES, PaymentStatus.FAILED],
        target=RETURN_VALUE(*IN_FLIGHT_STATUSES),
    )
    def advance(self, new_status: str) -> str:
        """
        Move between in-flight states (processing, requires_action, ...).

        A failed attempt can re-enter these when the customer retries
        with another card on the same intent.
        """
        return new_status

    @transition(
        field=status,
        source=[*IN_FLIGHT_STATUSES, PaymentStatus.FAILED],
        target=PaymentStatus.SUCCEEDED,
    )
    def mark_succeeded(self) -> None:
        self.succeeded_at = timezone.now()
        self.failure_reason = ""

    @transition(
        field=status,
        source=IN_FLIGHT_STATUSES,
        target=PaymentStatus.FAILED,
    )
    def mark_failed(self, reason: str) -> None:
        self.failed_at = timezone.now()
        self.failure_reason = reason

    @transition(
        field=status,
        source=[*IN_FLIGHT_STATUSES, PaymentStatus.FAILED],
        target=PaymentStatus.CANCELED,
    )
    def mark_canceled(self) -> None:
        self.canceled_at = timezone.now()
