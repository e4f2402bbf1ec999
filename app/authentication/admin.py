"""
Django admin configuration for the User model.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from authentication.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin configuration for User model.

    Customized for email-based authentication. Earnings counters are
    maintained by the escrow release flow and shown read-only.
    """

    list_display = (
        "email",
        "user_type",
        "completed_jobs",
        "is_active",
        "is_staff",
        "date_joined",
    )
    list_filter = ("user_type", "is_active", "is_staff", "is_superuser")
    search_fields = ("email", "display_name", "stripe_customer_id")
    ordering = ("-date_joined",)
    readonly_fields = (
        "stripe_customer_id",
        "total_earnings_cents",
        "completed_jobs",
        "date_joined",
        "last_login",
    )

    fieldsets = (
        (None, {"fields": ("email", "password", "display_name", "user_type")}),
        (
            "Payments",
            {"fields": ("stripe_customer_id", "total_earnings_cents", "completed_jobs")},
        ),
        (
            "Status",
            {"fields": ("is_active", "is_staff", "is_superuser")},
        ),
        ("Permissions", {"fields": ("groups", "user_permissions")}),
        ("Important dates", {"fields": ("date_joined", "last_login")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "user_type", "password1", "password2"),
            },
        ),
    )
