"""
Payment admin configuration.

Payments and orders are ledgers: the admin is read-mostly. Status changes
happen through ReconciliationService, not here. Manual refunds are
recorded on the payment after they are issued in the Stripe dashboard.
"""

from django.contrib import admin

from payments.models import Order, Payment, WebhookEvent


class OrderInline(admin.StackedInline):
    model = Order
    extra = 0
    can_delete = False
    readonly_fields = [
        "order_number",
        "items",
        "subtotal_cents",
        "tax_cents",
        "total_cents",
        "currency",
        "status",
        "billing_details",
        "completed_at",
    ]
    fields = readonly_fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payment.

    Flagged reconciliation conflicts are visible in metadata
    ("reconciliationConflict").
    """

    list_display = [
        "id",
        "user",
        "business",
        "amount_display",
        "status",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = ["id", "stripe_payment_intent_id", "user__email", "business__name"]
    readonly_fields = [
        "id",
        "user",
        "business",
        "stripe_payment_intent_id",
        "stripe_customer_id",
        "amount_cents",
        "currency",
        "description",
        "status",
        "failure_reason",
        "metadata",
        "succeeded_at",
        "failed_at",
        "canceled_at",
        "version",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
    inlines = [OrderInline]

    fieldsets = (
        (None, {"fields": ("id", "user", "business", "description")}),
        ("Stripe", {"fields": ("stripe_payment_intent_id", "stripe_customer_id")}),
        ("Amount", {"fields": ("amount_cents", "currency")}),
        (
            "Status",
            {"fields": ("status", "failure_reason", "succeeded_at", "failed_at", "canceled_at")},
        ),
        ("Refund", {"fields": ("refunded_at", "refund_reason")}),
        ("Metadata", {"fields": ("metadata", "version"), "classes": ("collapse",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj: Payment) -> str:
        return f"{obj.amount_cents / 100:.2f} {obj.currency.upper()}"

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["order_number", "user", "business", "total_cents", "currency", "status", "created_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["order_number", "user__email", "business__name"]
    readonly_fields = [
        "id",
        "order_number",
        "user",
        "business",
        "payment",
        "items",
        "subtotal_cents",
        "tax_cents",
        "total_cents",
        "currency",
        "billing_details",
        "completed_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """Audit trail of Stripe webhook deliveries."""

    list_display = ["stripe_event_id", "event_type", "status", "retry_count", "created_at"]
    list_filter = ["status", "event_type"]
    search_fields = ["stripe_event_id"]
    readonly_fields = [
        "id",
        "stripe_event_id",
        "event_type",
        "payload",
        "status",
        "processed_at",
        "error_message",
        "retry_count",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False
