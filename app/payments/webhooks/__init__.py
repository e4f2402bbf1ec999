"""
Webhook handling for payment events from Stripe.

Webhooks are verified, stored idempotently by event id, and applied
synchronously by the handler registered for their event type.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe-webhook"),
    ]
"""

from payments.webhooks.handlers import dispatch_webhook, register_handler
from payments.webhooks.views import process_webhook_event, stripe_webhook

__all__ = [
    "dispatch_webhook",
    "process_webhook_event",
    "register_handler",
    "stripe_webhook",
]
