"""
DRF views for business listings.

Endpoints:
    POST /api/v1/businesses/                           - Create a draft listing
    POST /api/v1/businesses/{id}/publish/              - Owner publishes listing
    PUT  /api/v1/admin/businesses/{id}/approve/        - Admin approval (requires paid fee)
    PUT  /api/v1/admin/businesses/{id}/reject/         - Admin rejection with reason
"""

from __future__ import annotations

import logging

from django.db import DatabaseError
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import IsBusinessUser, IsPlatformAdmin
from businesses.serializers import (
    BusinessCreateSerializer,
    BusinessRejectSerializer,
    BusinessSerializer,
)
from businesses.services import BusinessService

logger = logging.getLogger(__name__)


def _failure_response(result) -> Response:
    http_status = (
        status.HTTP_404_NOT_FOUND
        if result.error_code == "BUSINESS_NOT_FOUND"
        else status.HTTP_400_BAD_REQUEST
    )
    return Response(
        result.to_response(),
        status=http_status,
    )


def _server_error() -> Response:
    return Response(
        {"success": False, "message": "Server error"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class BusinessCreateView(APIView):
    """Create a draft business listing owned by the caller."""

    permission_classes = [IsAuthenticated, IsBusinessUser]

    @extend_schema(
        request=BusinessCreateSerializer,
        responses={201: BusinessSerializer},
        tags=["Businesses"],
    )
    def post(self, request):
        serializer = BusinessCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = BusinessService.create_business(owner=request.user, **serializer.validated_data)
        if not result.success:
            return _failure_response(result)

        return Response(BusinessSerializer(result.data).data, status=status.HTTP_201_CREATED)


class BusinessPublishView(APIView):
    """Owner publishes their listing."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=None,
        responses={200: BusinessSerializer, 404: OpenApiResponse(description="Not found")},
        tags=["Businesses"],
    )
    def post(self, request, business_id):
        result = BusinessService.publish(request.user, business_id)
        if not result.success:
            return _failure_response(result)
        return Response(BusinessSerializer(result.data).data)


class AdminBusinessApproveView(APIView):
    """Approve a listing. Refused unless the listing fee is paid."""

    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    @extend_schema(
        request=None,
        responses={
            200: BusinessSerializer,
            400: OpenApiResponse(description="Business payment not completed"),
            404: OpenApiResponse(description="Not found"),
        },
        tags=["Admin"],
    )
    def put(self, request, business_id):
        try:
            result = BusinessService.approve(business_id, admin=request.user)
        except DatabaseError:
            logger.error(f"Approve business {business_id} failed", exc_info=True)
            return _server_error()

        if not result.success:
            return _failure_response(result)

        return Response(
            {
                "success": True,
                "message": "Business approved successfully",
                "business": BusinessSerializer(result.data).data,
            }
        )


class AdminBusinessRejectView(APIView):
    """Reject a listing with a reason."""

    permission_classes = [IsAuthenticated, IsPlatformAdmin]

    @extend_schema(
        request=BusinessRejectSerializer,
        responses={200: BusinessSerializer, 404: OpenApiResponse(description="Not found")},
        tags=["Admin"],
    )
    def put(self, request, business_id):
        serializer = BusinessRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = BusinessService.reject(
                business_id,
                admin=request.user,
                reason=serializer.validated_data["reason"],
            )
        except DatabaseError:
            logger.error(f"Reject business {business_id} failed", exc_info=True)
            return _server_error()

        if not result.success:
            return _failure_response(result)

        return Response(
            {
                "success": True,
                "message": "Business rejected successfully",
                "business": BusinessSerializer(result.data).data,
            }
        )
