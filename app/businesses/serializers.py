"""
Serializers for business listing endpoints.
"""

from rest_framework import serializers

from businesses.models import Business


class BusinessSerializer(serializers.ModelSerializer):
    """Read representation including publication state."""

    owner_id = serializers.IntegerField(read_only=True)
    payment_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = Business
        fields = [
            "id",
            "owner_id",
            "name",
            "tagline",
            "description",
            "location",
            "payment_status",
            "payment_id",
            "is_approved",
            "approved_at",
            "rejected_at",
            "rejection_reason",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BusinessCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    tagline = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    description = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")
    location = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")


class BusinessRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(
        error_messages={
            "required": "Rejection reason is required",
            "blank": "Rejection reason is required",
        }
    )
