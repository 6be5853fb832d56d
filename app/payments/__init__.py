"""
Payments app: the business listing fee, collected with Stripe.

This app handles:
- PaymentIntent creation for a business (one settled payment per business)
- Status reconciliation from client confirmation, webhooks and polling
- Orders for settled payments
- Webhook event audit and idempotency

Related apps:
    - businesses: payment_status is written by reconciliation
    - notifications: payment outcome notifications

Usage:
    from payments.services import get_reconciliation_service

    service = get_reconciliation_service()
    result = service.request_payment_intent(request.user, business_id)
"""
