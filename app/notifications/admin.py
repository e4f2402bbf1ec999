"""
Django admin configuration for notifications.
"""

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("title", "recipient", "category", "is_read", "created_at")
    list_filter = ("category", "is_read")
    search_fields = ("title", "recipient__email", "idempotency_key")
    readonly_fields = ("idempotency_key", "data", "created_at", "updated_at")
