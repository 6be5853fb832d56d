"""
Tests for business listing endpoints.
"""

import uuid

from businesses.models import Business


class TestBusinessCreateView:
    url = "/api/v1/businesses/"

    def test_business_user_creates_listing(self, authenticated_client_factory, business_user):
        client = authenticated_client_factory(business_user)

        response = client.post(self.url, {"name": "Corner Cafe", "location": "Lisbon"}, format="json")

        assert response.status_code == 201
        assert response.data["name"] == "Corner Cafe"
        assert response.data["payment_status"] == "pending"
        assert response.data["is_approved"] is False
        assert Business.objects.filter(owner=business_user).count() == 1

    def test_customer_is_forbidden(self, authenticated_client_factory, user):
        client = authenticated_client_factory(user)

        response = client.post(self.url, {"name": "Corner Cafe"}, format="json")

        assert response.status_code == 403

    def test_anonymous_is_unauthorized(self, api_client):
        response = api_client.post(self.url, {"name": "Corner Cafe"}, format="json")

        assert response.status_code == 401


class TestBusinessPublishView:
    def test_owner_publishes(self, authenticated_client_factory, business_user, business):
        client = authenticated_client_factory(business_user)

        response = client.post(f"/api/v1/businesses/{business.id}/publish/")

        assert response.status_code == 200
        assert response.data["status"] == "published"

    def test_other_owner_gets_404(self, authenticated_client_factory, user, business):
        client = authenticated_client_factory(user)

        response = client.post(f"/api/v1/businesses/{business.id}/publish/")

        assert response.status_code == 404


class TestAdminApproveView:
    def test_unpaid_business_is_refused(self, authenticated_client_factory, platform_admin, business):
        client = authenticated_client_factory(platform_admin)

        response = client.put(f"/api/v1/admin/businesses/{business.id}/approve/")

        assert response.status_code == 400
        assert response.data["error"] == "Business payment not completed"
        assert response.data["error_code"] == "PAYMENT_NOT_COMPLETED"
        assert response.data["success"] is False

    def test_paid_business_is_approved(self, authenticated_client_factory, platform_admin, paid_business):
        client = authenticated_client_factory(platform_admin)

        response = client.put(f"/api/v1/admin/businesses/{paid_business.id}/approve/")

        assert response.status_code == 200
        assert response.data["success"] is True
        assert response.data["message"] == "Business approved successfully"
        assert response.data["business"]["is_approved"] is True

    def test_unknown_business_returns_404(self, authenticated_client_factory, platform_admin):
        client = authenticated_client_factory(platform_admin)

        response = client.put(f"/api/v1/admin/businesses/{uuid.uuid4()}/approve/")

        assert response.status_code == 404

    def test_business_user_is_forbidden(self, authenticated_client_factory, business_user, paid_business):
        client = authenticated_client_factory(business_user)

        response = client.put(f"/api/v1/admin/businesses/{paid_business.id}/approve/")

        assert response.status_code == 403
        paid_business.refresh_from_db()
        assert paid_business.is_approved is False


class TestAdminRejectView:
    def test_rejects_with_reason(self, authenticated_client_factory, platform_admin, business):
        client = authenticated_client_factory(platform_admin)

        response = client.put(
            f"/api/v1/admin/businesses/{business.id}/reject/",
            {"reason": "Duplicate listing"},
            format="json",
        )

        assert response.status_code == 200
        assert response.data["message"] == "Business rejected successfully"
        assert response.data["business"]["rejection_reason"] == "Duplicate listing"

    def test_missing_reason_is_400(self, authenticated_client_factory, platform_admin, business):
        client = authenticated_client_factory(platform_admin)

        response = client.put(f"/api/v1/admin/businesses/{business.id}/reject/", {}, format="json")

        assert response.status_code == 400
