"""
Payments app configuration.

This app collects the business listing fee:
- Stripe PaymentIntent creation
- Status reconciliation from confirm calls, webhooks and polling
- Orders for settled payments
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
