"""
Payment domain models.

This module contains all payment-related models:
- Payment: One listing-fee PaymentIntent and its reconciled status
- Order: Commercial record created once per successful Payment
- WebhookEvent: Stripe webhook event tracking for idempotent processing
"""

from payments.models.order import Order, compute_totals, generate_order_number
from payments.models.payment import Payment
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "Order",
    "Payment",
    "WebhookEvent",
    "compute_totals",
    "generate_order_number",
]
