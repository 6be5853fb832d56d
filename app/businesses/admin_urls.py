"""
URL routing for platform admin moderation endpoints.

Mounted at /api/v1/admin/businesses/.
"""

from django.urls import path

from businesses.views import AdminBusinessApproveView, AdminBusinessRejectView

app_name = "admin_businesses"

urlpatterns = [
    path("<uuid:business_id>/approve/", AdminBusinessApproveView.as_view(), name="approve"),
    path("<uuid:business_id>/reject/", AdminBusinessRejectView.as_view(), name="reject"),
]
