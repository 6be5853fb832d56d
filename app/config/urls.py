"""
URL configuration for the Django application.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/                  - JWT token endpoints
        token/                     - Obtain access/refresh pair
        token/refresh/             - Refresh access token
    /api/v1/businesses/            - Business listing endpoints
        (POST)                     - Create a draft business
        {id}/publish/              - Owner publishes the listing
    /api/v1/admin/businesses/      - Platform admin moderation
        {id}/approve/              - Approve (requires a paid listing fee)
        {id}/reject/               - Reject with reason
    /api/v1/payments/              - Payment endpoints
        create-intent/             - Request a listing-fee payment intent
        confirm/                   - Client-driven confirmation
        {id}/status/               - Poll payment status
        history/                   - Caller's payment history
        orders/                    - Caller's orders
        orders/{id}/               - Order detail
        webhooks/stripe/           - Stripe webhook endpoint (POST)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.views import health_check

# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("businesses/", include("businesses.urls")),
    path("admin/businesses/", include("businesses.admin_urls")),
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

admin.site.site_header = "Business Listing Admin"
admin.site.site_title = "Admin Portal"
admin.site.index_title = "Businesses, payments and orders"
