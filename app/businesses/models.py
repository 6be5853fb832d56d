"""
Business listing model.

The payment-related fields are the publication state that payment
reconciliation drives. They are only written through the methods on
Business so that the "never downgrade a paid business" rule lives in
one place.

Invariant (enforced by a database check constraint as well as by
BusinessService.approve):
    is_approved implies payment_status == paid
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class BusinessPaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"


class BusinessStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PUBLISHED = "published", "Published"
    ARCHIVED = "archived", "Archived"


class Business(UUIDPrimaryKeyMixin, BaseModel):
    """
    A business listing owned by a business user.

    Fields:
        owner: Business user who created the listing
        name / tagline / description / location: Listing content
        payment_status: Listing fee state, written by payment reconciliation
        payment: The payment that settled the listing fee (set once paid)
        is_approved / approved_at: Admin approval
        rejected_at / rejection_reason: Admin rejection
        status: Owner-controlled publication status
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="businesses",
    )
    name = models.CharField(max_length=100)
    tagline = models.CharField(max_length=150, blank=True, default="")
    description = models.TextField(max_length=1000, blank=True, default="")
    location = models.CharField(max_length=200, blank=True, default="")

    payment_status = models.CharField(
        max_length=20,
        choices=BusinessPaymentStatus.choices,
        default=BusinessPaymentStatus.PENDING,
        db_index=True,
    )
    payment = models.ForeignKey(
        "payments.Payment",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Payment that settled the listing fee",
    )

    is_approved = models.BooleanField(default=False, db_index=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, default="")

    status = models.CharField(
        max_length=20,
        choices=BusinessStatus.choices,
        default=BusinessStatus.DRAFT,
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "businesses"
        indexes = [
            models.Index(fields=["owner", "-created_at"], name="business_owner_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(is_approved=False)
                | models.Q(payment_status=BusinessPaymentStatus.PAID),
                name="business_approved_requires_paid",
            ),
        ]

    def __str__(self) -> str:
        return self.name

    @property
    def is_paid(self) -> bool:
        return self.payment_status == BusinessPaymentStatus.PAID

    # ------------------------------------------------------------------
    # Payment-driven transitions (called by payment reconciliation while
    # holding a row lock on this business)
    # ------------------------------------------------------------------

    def mark_paid(self, payment) -> list[str]:
        """Record the settling payment. Returns the changed field names."""
        self.payment_status = BusinessPaymentStatus.PAID
        self.payment = payment
        return ["payment_status", "payment"]

    def mark_payment_failed(self) -> list[str]:
        if self.is_paid:
            return []
        self.payment_status = BusinessPaymentStatus.FAILED
        return ["payment_status"]

    def reset_payment_pending(self) -> list[str]:
        if self.is_paid:
            return []
        self.payment_status = BusinessPaymentStatus.PENDING
        return ["payment_status"]

    # ------------------------------------------------------------------
    # Admin moderation
    # ------------------------------------------------------------------

    def approve(self) -> None:
        self.is_approved = True
        self.approved_at = timezone.now()
        self.rejected_at = None
        self.rejection_reason = ""

    def reject(self, reason: str) -> None:
        self.is_approved = False
        self.approved_at = None
        self.rejected_at = timezone.now()
        self.rejection_reason = reason
