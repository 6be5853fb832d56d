"""
Tests for payments app.

This package contains test modules for:
- test_states.py: Stripe status mapping and transition rules
- test_models.py: Payment, Order, WebhookEvent model tests
- test_locks.py: Redis intent lock tests
- test_adapters.py: StripeAdapter tests
- test_reconciliation_service.py: ReconciliationService tests
- test_views.py: API endpoint tests
- test_webhooks.py: Webhook endpoint and handler tests
- test_integration.py: Pay-then-approve journeys through the API

Usage:
    pytest payments/tests/
    pytest payments/tests/test_reconciliation_service.py
"""
