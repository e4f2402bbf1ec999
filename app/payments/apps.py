"""
Payments app configuration.

This app provides escrow payments for jobs, Stripe Connect onboarding,
subscriptions, and Stripe webhook handling.
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
