"""
DRF serializers for payments app.

This module provides serializers for:
- Payment intent creation and confirmation requests
- Payment status and history
- Orders

Usage:
    serializer = PaymentSerializer(payment)
    data = serializer.data
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import Order, Payment


class CreatePaymentIntentSerializer(serializers.Serializer):
    business_id = serializers.UUIDField()


class ConfirmPaymentSerializer(serializers.Serializer):
    payment_intent_id = serializers.CharField(max_length=255)


class PaymentSerializer(serializers.ModelSerializer):
    """
    Payment read representation.

    ``order_id`` is read from metadata, where reconciliation links the
    order once the payment succeeds.
    """

    business_id = serializers.UUIDField(read_only=True)
    order_id = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = [
            "id",
            "business_id",
            "stripe_payment_intent_id",
            "amount_cents",
            "currency",
            "description",
            "status",
            "failure_reason",
            "order_id",
            "succeeded_at",
            "failed_at",
            "canceled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_order_id(self, obj: Payment) -> str | None:
        return obj.metadata.get("orderId")


class OrderSerializer(serializers.ModelSerializer):
    business_id = serializers.UUIDField(read_only=True)
    payment_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "business_id",
            "payment_id",
            "items",
            "subtotal_cents",
            "tax_cents",
            "total_cents",
            "currency",
            "status",
            "billing_details",
            "completed_at",
            "created_at",
        ]
        read_only_fields = fields
