"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.
Payment.status is driven by django-fsm transitions; the others are plain
choice fields written by the webhook handlers and services.

State Machines Overview:

Payment States:
    pending → held_in_escrow → released
    held_in_escrow → refunded
    pending → failed

Subscription States:
    active → cancelled (customer.subscription.deleted)
    active → expired (period end passed, daily sweep)
    cancelled/expired → active (new checkout)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    States for the Payment (escrow) lifecycle.

    Terminal states: RELEASED, REFUNDED, FAILED
    Active (non-terminal) states: PENDING, HELD_IN_ESCROW

    Status only moves forward. HELD_IN_ESCROW is entered only on gateway
    confirmation (payment_intent.succeeded); RELEASED only through the
    explicit release action.
    """

    PENDING = "pending", "Pending"
    HELD_IN_ESCROW = "held_in_escrow", "Held in Escrow"
    RELEASED = "released", "Released"
    REFUNDED = "refunded", "Refunded"
    FAILED = "failed", "Failed"


ACTIVE_PAYMENT_STATUSES = (PaymentStatus.PENDING, PaymentStatus.HELD_IN_ESCROW)


class ConnectStatus(models.TextChoices):
    """
    Coarse status of a freelancer's Stripe Connect account.

    ACTIVE once the account holder submitted their details, RESTRICTED when
    Stripe reports a disabled reason, PENDING otherwise.
    """

    PENDING = "pending", "Pending"
    ACTIVE = "active", "Active"
    RESTRICTED = "restricted", "Restricted"


class SubscriptionTier(models.TextChoices):
    FREE = "free", "Free"
    MESSAGES = "messages", "Messages"
    PRO = "pro", "Pro"


class SubscriptionStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    CANCELLED = "cancelled", "Cancelled"
    EXPIRED = "expired", "Expired"


class SubscriptionPlan(models.TextChoices):
    """Billing interval, derived from the Stripe price id."""

    MONTHLY = "monthly", "Monthly"
    QUARTERLY = "quarterly", "Quarterly"
    YEARLY = "yearly", "Yearly"


class TransactionType(models.TextChoices):
    """Kinds of completed money movements in the transaction log."""

    SUBSCRIPTION = "subscription", "Subscription"
    RENEWAL = "renewal", "Subscription Renewal"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (redelivery retries it)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


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
