"""
Webhook handling for payment events from Stripe.

Webhooks are verified, stored idempotently, and reconciled synchronously
so that a failure surfaces as a 5xx and Stripe retries the delivery.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""
