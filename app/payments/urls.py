"""
URL configuration for the payments app.

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import path

from payments import views
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    path("create-intent/", views.CreatePaymentIntentView.as_view(), name="create_intent"),
    path("confirm/", views.ConfirmPaymentView.as_view(), name="confirm"),
    path("<uuid:payment_id>/status/", views.PaymentStatusView.as_view(), name="status"),
    path("history/", views.PaymentHistoryView.as_view(), name="history"),
    path("orders/", views.OrderListView.as_view(), name="order_list"),
    path("orders/<uuid:order_id>/", views.OrderDetailView.as_view(), name="order_detail"),
    # Webhook endpoints
    path("webhook/", stripe_webhook, name="webhook"),
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
]
