"""
Business service layer.

Services:
    BusinessService: Listing creation, owner publication, admin moderation

Approval gate:
    approve() locks the business row and re-reads payment_status before
    setting is_approved. Payment reconciliation takes the same row lock
    and never moves a paid business back to pending/failed, so an
    approval can never be committed against an unpaid listing. The
    database check constraint backs this up for writers that bypass
    the service.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from businesses.models import Business, BusinessStatus
from core.services import BaseService, ServiceResult
from notifications.models import NotificationType
from notifications.services import NotificationService

if TYPE_CHECKING:
    from authentication.models import User


class BusinessService(BaseService):
    """
    Business listing operations.

    Methods:
        create_business: Create a draft listing for a business user
        publish: Owner publishes their listing
        approve: Admin approval, gated on a paid listing fee
        reject: Admin rejection with a reason
    """

    @classmethod
    def create_business(
        cls,
        owner: User,
        name: str,
        tagline: str = "",
        description: str = "",
        location: str = "",
    ) -> ServiceResult[Business]:
        validation = cls.validate_required(name=name)
        if validation is not None:
            return validation

        business = Business.objects.create(
            owner=owner,
            name=name.strip(),
            tagline=tagline,
            description=description,
            location=location,
        )
        cls.get_logger().info(
            f"Created business {business.id} for owner {owner.id}",
            extra={"business_id": str(business.id), "owner_id": owner.id},
        )
        return ServiceResult.success(business)

    @classmethod
    def publish(cls, owner: User, business_id) -> ServiceResult[Business]:
        """
        Owner sets their listing to published.

        Error codes:
            BUSINESS_NOT_FOUND: Missing or owned by someone else
        """
        business = Business.objects.filter(id=business_id, owner=owner).first()
        if business is None:
            return ServiceResult.failure(
                "Business not found or unauthorized",
                error_code="BUSINESS_NOT_FOUND",
            )

        if business.status != BusinessStatus.PUBLISHED:
            business.status = BusinessStatus.PUBLISHED
            business.save(update_fields=["status", "updated_at"])
            cls.get_logger().info(f"Business {business.id} published by owner")

        return ServiceResult.success(business)

    @classmethod
    def approve(cls, business_id, admin: User) -> ServiceResult[Business]:
        """
        Approve a listing whose fee has been paid.

        Error codes:
            BUSINESS_NOT_FOUND: No such business
            PAYMENT_NOT_COMPLETED: payment_status is not paid
        """
        with cls.atomic():
            business = (
                Business.objects.select_for_update()
                .select_related("owner")
                .filter(id=business_id)
                .first()
            )
            if business is None:
                return ServiceResult.failure(
                    "Business not found",
                    error_code="BUSINESS_NOT_FOUND",
                )

            if not business.is_paid:
                cls.get_logger().info(
                    f"Approval of business {business.id} refused: payment not completed",
                    extra={"business_id": str(business.id), "payment_status": business.payment_status},
                )
                return ServiceResult.failure(
                    "Business payment not completed",
                    error_code="PAYMENT_NOT_COMPLETED",
                )

            business.approve()
            business.save(
                update_fields=[
                    "is_approved",
                    "approved_at",
                    "rejected_at",
                    "rejection_reason",
                    "updated_at",
                ]
            )

            NotificationService.create_notification(
                recipient=business.owner,
                notification_type=NotificationType.BUSINESS_APPROVED,
                title="Business Approved",
                body=(
                    f'Congratulations! Your business "{business.name}" has been '
                    "approved and is now live on our platform."
                ),
                data={"business_id": str(business.id)},
            )

        cls.get_logger().info(
            f"Business {business.id} approved by admin {admin.id}",
            extra={"business_id": str(business.id), "admin_id": admin.id},
        )
        return ServiceResult.success(business)

    @classmethod
    def reject(cls, business_id, admin: User, reason: str) -> ServiceResult[Business]:
        """
        Reject a listing.

        Error codes:
            VALIDATION_ERROR: Missing reason
            BUSINESS_NOT_FOUND: No such business
        """
        validation = cls.validate_required(reason=reason)
        if validation is not None:
            return validation

        with cls.atomic():
            business = (
                Business.objects.select_for_update()
                .select_related("owner")
                .filter(id=business_id)
                .first()
            )
            if business is None:
                return ServiceResult.failure(
                    "Business not found",
                    error_code="BUSINESS_NOT_FOUND",
                )

            business.reject(reason)
            business.save(
                update_fields=[
                    "is_approved",
                    "approved_at",
                    "rejected_at",
                    "rejection_reason",
                    "updated_at",
                ]
            )

            NotificationService.create_notification(
                recipient=business.owner,
                notification_type=NotificationType.BUSINESS_REJECTED,
                title="Business Application Rejected",
                body=(
                    f'Your business application for "{business.name}" has been '
                    f"rejected. Reason: {reason}"
                ),
                data={"business_id": str(business.id), "reason": reason},
            )

        cls.get_logger().info(
            f"Business {business.id} rejected by admin {admin.id}",
            extra={"business_id": str(business.id), "admin_id": admin.id},
        )
        return ServiceResult.success(business)
