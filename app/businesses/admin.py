"""
Django admin configuration for businesses.

Payment and approval fields are read-only here: payment_status is owned
by payment reconciliation and approval goes through BusinessService so
that the paid-before-approved rule is enforced.
"""

from django.contrib import admin

from businesses.models import Business


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "owner",
        "payment_status",
        "is_approved",
        "status",
        "created_at",
    ]
    list_filter = ["payment_status", "is_approved", "status"]
    search_fields = ["name", "owner__email"]
    raw_id_fields = ["owner"]
    readonly_fields = [
        "id",
        "payment_status",
        "payment",
        "is_approved",
        "approved_at",
        "rejected_at",
        "rejection_reason",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
