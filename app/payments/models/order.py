"""
Order model: the commercial record of a completed listing-fee payment.

An Order is created by ReconciliationService exactly when a Payment first
reaches SUCCEEDED. The one-to-one link to Payment makes creation
re-entrant: a reconciliation retried after a partial failure finds the
existing order instead of creating a second one.
"""

from __future__ import annotations

import secrets

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import OrderStatus


def generate_order_number() -> str:
    """Human-readable order number: ORD-<YYYYMMDDHHMMSS>-<8 hex>."""
    return f"ORD-{timezone.now():%Y%m%d%H%M%S}-{secrets.token_hex(4).upper()}"


def compute_totals(items: list[dict], tax_cents: int = 0) -> tuple[int, int, int]:
    """
    Compute (subtotal, tax, total) from line items.

    Each item carries ``unit_amount_cents`` and ``quantity``.
    """
    subtotal = sum(int(item["unit_amount_cents"]) * int(item["quantity"]) for item in items)
    return subtotal, tax_cents, subtotal + tax_cents


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    Completed commercial transaction tied to one successful Payment.

    Fields:
        order_number: Unique human-readable identifier
        user / business: Owner and listing
        payment: The Payment that produced this order (one-to-one)
        items: Line items [{name, description, unit_amount_cents, quantity}]
        subtotal_cents / tax_cents / total_cents: Fixed at creation
        billing_details: Snapshot of the payer's billing details
        status: Order status (completed on creation)
    """

    order_number = models.CharField(
        max_length=40,
        unique=True,
        default=generate_order_number,
        editable=False,
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    business = models.ForeignKey(
        "businesses.Business",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    payment = models.OneToOneField(
        "payments.Payment",
        on_delete=models.PROTECT,
        related_name="order",
    )

    items = models.JSONField(default=list)
    subtotal_cents = models.PositiveIntegerField()
    tax_cents = models.PositiveIntegerField(default=0)
    total_cents = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default="usd")

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True,
    )

    billing_details = models.JSONField(default=dict, blank=True)

    completed_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "-created_at"], name="order_user_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_cents=models.F("subtotal_cents") + models.F("tax_cents")),
                name="order_total_equals_subtotal_plus_tax",
            ),
        ]

    def __str__(self) -> str:
        return f"Order({self.order_number}, {self.status})"
