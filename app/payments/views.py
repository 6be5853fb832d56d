"""
DRF views for payments app.

Endpoints:
    POST /api/v1/payments/create-intent/        - Create listing-fee PaymentIntent
    POST /api/v1/payments/confirm/              - Reconcile after client confirmation
    GET  /api/v1/payments/{id}/status/          - Payment status (polls Stripe if open)
    GET  /api/v1/payments/history/              - Caller's payments
    GET  /api/v1/payments/orders/               - Caller's orders
    GET  /api/v1/payments/orders/{id}/          - One of the caller's orders
    POST /api/v1/payments/webhooks/stripe/      - Stripe webhook (payments.webhooks)

Security:
    - All endpoints require authentication except the webhook
    - Records owned by another user are reported as 404
    - Gateway and database failures return a generic 500 without detail
"""

from __future__ import annotations

import logging

from django.db import DatabaseError
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import IsBusinessUser
from payments.exceptions import GatewayError
from payments.models import Order, Payment
from payments.serializers import (
    ConfirmPaymentSerializer,
    CreatePaymentIntentSerializer,
    OrderSerializer,
    PaymentSerializer,
)
from payments.services import get_reconciliation_service

logger = logging.getLogger(__name__)


FAILURE_STATUS = {
    "BUSINESS_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PAYMENT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "LOCK_ACQUISITION_FAILED": status.HTTP_409_CONFLICT,
}


def _failure_response(result) -> Response:
    return Response(
        result.to_response(),
        status=FAILURE_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


def _server_error() -> Response:
    return Response(
        {"success": False, "message": "Server error"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class CreatePaymentIntentView(APIView):
    """
    Create a PaymentIntent for the listing fee of one of the caller's businesses.

    Returns the client secret for Stripe.js, or BUSINESS_ALREADY_PAID with
    200 if the fee has already been settled.
    """

    permission_classes = [IsAuthenticated, IsBusinessUser]

    @extend_schema(
        request=CreatePaymentIntentSerializer,
        responses={
            200: OpenApiResponse(description="Business already paid"),
            201: OpenApiResponse(description="Intent created"),
            404: OpenApiResponse(description="Business not found"),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = CreatePaymentIntentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        business_id = serializer.validated_data["business_id"]

        try:
            result = get_reconciliation_service().request_payment_intent(request.user, business_id)
        except (GatewayError, DatabaseError):
            logger.error(
                f"Create payment intent for business {business_id} failed",
                extra={"business_id": str(business_id), "user_id": request.user.id},
                exc_info=True,
            )
            return _server_error()

        if not result.success:
            return _failure_response(result)

        intent = result.data
        if intent.already_paid:
            return Response(
                {
                    "success": True,
                    "code": "BUSINESS_ALREADY_PAID",
                    "message": "Business listing fee has already been paid",
                    "payment_id": str(intent.payment.id) if intent.payment else None,
                }
            )

        payment = intent.payment
        return Response(
            {
                "success": True,
                "client_secret": intent.client_secret,
                "payment_id": str(payment.id),
                "payment_intent_id": payment.stripe_payment_intent_id,
                "amount": payment.amount_cents,
                "currency": payment.currency,
            },
            status=status.HTTP_201_CREATED,
        )


class ConfirmPaymentView(APIView):
    """Reconcile a payment with Stripe after client-side confirmation."""

    permission_classes = [IsAuthenticated, IsBusinessUser]

    @extend_schema(
        request=ConfirmPaymentSerializer,
        responses={200: PaymentSerializer, 404: OpenApiResponse(description="Payment not found")},
        tags=["Payments"],
    )
    def post(self, request):
        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment_intent_id = serializer.validated_data["payment_intent_id"]

        try:
            result = get_reconciliation_service().confirm_payment(request.user, payment_intent_id)
        except (GatewayError, DatabaseError):
            logger.error(
                f"Confirm payment {payment_intent_id} failed",
                extra={"payment_intent_id": payment_intent_id, "user_id": request.user.id},
                exc_info=True,
            )
            return _server_error()

        if not result.success:
            return _failure_response(result)

        reconciliation = result.data
        return Response(
            {
                "success": True,
                "status": reconciliation.payment.status,
                "payment": PaymentSerializer(reconciliation.payment).data,
                "order": OrderSerializer(reconciliation.order).data if reconciliation.order else None,
            }
        )


class PaymentStatusView(APIView):
    """Current status of one of the caller's payments."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        responses={200: PaymentSerializer, 404: OpenApiResponse(description="Payment not found")},
        tags=["Payments"],
    )
    def get(self, request, payment_id):
        try:
            result = get_reconciliation_service().get_status(payment_id, request.user)
        except DatabaseError:
            logger.error(f"Payment status {payment_id} failed", exc_info=True)
            return _server_error()

        if not result.success:
            return _failure_response(result)

        return Response(PaymentSerializer(result.data).data)


@extend_schema(tags=["Payments"])
class PaymentHistoryView(generics.ListAPIView):
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return Payment.objects.filter(user=self.request.user).order_by("-created_at")


@extend_schema(tags=["Orders"])
class OrderListView(generics.ListAPIView):
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return Order.objects.filter(user=self.request.user).order_by("-created_at")


@extend_schema(tags=["Orders"])
class OrderDetailView(generics.RetrieveAPIView):
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]
    lookup_url_kwarg = "order_id"

    def get_queryset(self):
        return Order.objects.filter(user=self.request.user)
