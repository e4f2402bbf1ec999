"""
State machine enums for payment models.
"""

from payments.state_machines.states import (
    ACTIVE_PAYMENT_STATUSES,
    ConnectStatus,
    PaymentStatus,
    SubscriptionPlan,
    SubscriptionStatus,
    SubscriptionTier,
    TransactionType,
    WebhookEventStatus,
)

__all__ = [
    "ACTIVE_PAYMENT_STATUSES",
    "ConnectStatus",
    "PaymentStatus",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "SubscriptionTier",
    "TransactionType",
    "WebhookEventStatus",
]
