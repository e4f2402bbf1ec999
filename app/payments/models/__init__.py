"""
Payment domain models.

This module contains all payment-related models:
- Payment: Escrowed funds for one job
- ConnectedAccount: Freelancer's Stripe Connect account
- Subscription: A user's recurring billing state
- TransactionLogEntry: Append-only audit of completed money movements
- WebhookEvent: Stripe webhook event tracking for idempotent processing
"""

from payments.models.connected_account import ConnectedAccount
from payments.models.payment import Payment
from payments.models.subscription import Subscription
from payments.models.transaction_log import TransactionLogEntry
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "ConnectedAccount",
    "Payment",
    "Subscription",
    "TransactionLogEntry",
    "WebhookEvent",
]
