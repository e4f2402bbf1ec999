"""
Payment admin configuration.

Payments, subscriptions and webhook events are written by the service
layer and webhooks; the admin is for inspection only.
"""

from django.contrib import admin

from payments.models import (
    ConnectedAccount,
    Payment,
    Subscription,
    TransactionLogEntry,
    WebhookEvent,
)

__all__ = [
    "ConnectedAccountAdmin",
    "PaymentAdmin",
    "SubscriptionAdmin",
    "TransactionLogEntryAdmin",
    "WebhookEventAdmin",
]


class ReadOnlyAdminMixin:
    """Disable add, change and delete in the admin."""

    def has_add_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for Payment.

    State changes go through the escrow service and webhooks, not admin.
    """

    list_display = [
        "id",
        "job",
        "client",
        "freelancer",
        "amount_display",
        "status",
        "paid_at",
        "released_at",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = [
        "id",
        "stripe_payment_intent_id",
        "transfer_id",
        "client__email",
        "freelancer__email",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "job", "proposal", "client", "freelancer", "status")}),
        ("Amount", {"fields": ("amount", "amount_cents", "currency")}),
        (
            "Release",
            {"fields": ("transfer_id", "platform_fee_cents", "freelancer_amount_cents")},
        ),
        ("Stripe", {"fields": ("stripe_payment_intent_id",)}),
        ("Failure", {"fields": ("failure_reason",), "classes": ("collapse",)}),
        (
            "Timestamps",
            {"fields": ("paid_at", "released_at", "failed_at", "created_at", "updated_at")},
        ),
    )


@admin.register(ConnectedAccount)
class ConnectedAccountAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Visibility into Stripe Connect account status."""

    list_display = [
        "id",
        "user",
        "stripe_account_id",
        "status",
        "details_submitted",
        "payouts_enabled",
        "charges_enabled",
        "created_at",
    ]
    list_filter = ["status", "payouts_enabled", "charges_enabled"]
    search_fields = ["id", "stripe_account_id", "user__email"]
    ordering = ["-created_at"]


@admin.register(Subscription)
class SubscriptionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "id",
        "user",
        "tier",
        "status",
        "plan",
        "end_date",
        "cancel_at_period_end",
    ]
    list_filter = ["tier", "status", "plan", "cancel_at_period_end"]
    search_fields = ["user__email", "stripe_subscription_id", "stripe_customer_id"]
    ordering = ["-created_at"]


@admin.register(TransactionLogEntry)
class TransactionLogEntryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Append-only subscription billing log."""

    list_display = [
        "id",
        "user",
        "transaction_type",
        "amount_cents",
        "currency",
        "status",
        "created_at",
    ]
    list_filter = ["transaction_type", "status"]
    search_fields = ["user__email", "stripe_session_id", "stripe_invoice_id", "idempotency_key"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]


@admin.register(WebhookEvent)
class WebhookEventAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Provides visibility into webhook processing status.
    Webhook events are immutable once received.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "event_type",
        "status",
        "attempt_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "stripe_event_id", "event_type", "status")}),
        ("Processing", {"fields": ("processed_at", "attempt_count")}),
        ("Error Info", {"fields": ("error_message",), "classes": ("collapse",)}),
        ("Payload", {"fields": ("payload",), "classes": ("collapse",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )
