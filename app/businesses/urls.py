"""
URL routing for business owner endpoints.

Mounted at /api/v1/businesses/.
"""

from django.urls import path

from businesses.views import BusinessCreateView, BusinessPublishView

app_name = "businesses"

urlpatterns = [
    path("", BusinessCreateView.as_view(), name="create"),
    path("<uuid:business_id>/publish/", BusinessPublishView.as_view(), name="publish"),
]
