"""
Subscription model for recurring billing state.

Each user has at most one Subscription row. It mirrors the user's Stripe
subscription: which tier they paid for, on which plan, and until when.
Status only changes through webhooks and the daily expiry task; the
cancel endpoint only schedules cancellation at period end.

Usage:
    from payments.models import Subscription
    from payments.state_machines import SubscriptionPlan, SubscriptionTier

    subscription, _ = Subscription.objects.get_or_create(user=user)
    subscription.activate(
        stripe_subscription_id="sub_xxx",
        stripe_customer_id="cus_xxx",
        tier=SubscriptionTier.PRO,
        plan=SubscriptionPlan.MONTHLY,
        start_date=period_start,
        end_date=period_end,
    )
    subscription.save()
"""

from __future__ import annotations

from datetime import datetime

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import UUIDModel

from payments.state_machines import (
    SubscriptionPlan,
    SubscriptionStatus,
    SubscriptionTier,
)


class Subscription(UUIDModel):
    """
    A user's recurring subscription.

    Fields:
        user: OneToOne link to the subscriber
        stripe_subscription_id: Stripe Subscription ID (sub_xxx)
        stripe_customer_id: Stripe Customer ID (cus_xxx)
        tier: free / messages / pro
        paid_tier: Tier bought at checkout (kept while expired)
        status: active / cancelled / expired
        plan: monthly / quarterly / yearly
        start_date / end_date: Current paid period
        cancel_at_period_end: Whether cancellation is scheduled

    Note:
        end_date is always the end of the current paid period. The tier
        drops to free only on customer.subscription.deleted or when the
        expiry task finds the period over, never on cancel.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="subscription",
        help_text="Subscriber",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    stripe_subscription_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Subscription ID (sub_xxx)",
    )

    stripe_customer_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Stripe Customer ID (cus_xxx)",
    )

    # ==========================================================================
    # Plan & State
    # ==========================================================================

    tier = models.CharField(
        max_length=20,
        choices=SubscriptionTier.choices,
        default=SubscriptionTier.FREE,
        help_text="Feature tier the user has paid for",
    )

    paid_tier = models.CharField(
        max_length=20,
        choices=SubscriptionTier.choices,
        default=SubscriptionTier.PRO,
        help_text="Tier bought at checkout; restored when an expired subscription renews",
    )

    status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.ACTIVE,
        db_index=True,
        help_text="Subscription status as last reported by Stripe",
    )

    plan = models.CharField(
        max_length=20,
        choices=SubscriptionPlan.choices,
        default=SubscriptionPlan.MONTHLY,
        help_text="Billing plan",
    )

    # ==========================================================================
    # Billing Period
    # ==========================================================================

    start_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Start of current billing period",
    )

    end_date = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="End of current paid billing period",
    )

    cancel_at_period_end = models.BooleanField(
        default=False,
        help_text="Whether subscription will cancel at period end",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Subscription"
        verbose_name_plural = "Subscriptions"
        indexes = [
            models.Index(
                fields=["status", "end_date"],
                name="subscription_status_end_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Subscription({self.user_id}, {self.tier}, {self.status})"

    @property
    def is_pro(self) -> bool:
        """Whether the user currently has paid features."""
        return (
            self.status == SubscriptionStatus.ACTIVE
            and self.tier != SubscriptionTier.FREE
        )

    @property
    def is_lapsed(self) -> bool:
        """Active, but the paid period is over."""
        return (
            self.status == SubscriptionStatus.ACTIVE
            and self.end_date is not None
            and self.end_date <= timezone.now()
        )

    def activate(
        self,
        stripe_subscription_id: str,
        stripe_customer_id: str,
        tier: str,
        plan: str,
        start_date: datetime | None,
        end_date: datetime | None,
    ) -> None:
        """
        Record a completed checkout.

        Note: Does not save - caller must save after calling.
        """
        self.stripe_subscription_id = stripe_subscription_id
        self.stripe_customer_id = stripe_customer_id
        self.tier = tier
        self.paid_tier = tier
        self.plan = plan
        self.status = SubscriptionStatus.ACTIVE
        self.start_date = start_date
        self.end_date = end_date
        self.cancel_at_period_end = False

    def cancel(self) -> None:
        """
        Record that Stripe ended the subscription.

        Note: Does not save - caller must save after calling.
        """
        self.status = SubscriptionStatus.CANCELLED
        self.tier = SubscriptionTier.FREE

    def expire(self) -> None:
        """
        Record that the paid period ran out.

        Note: Does not save - caller must save after calling.
        """
        self.status = SubscriptionStatus.EXPIRED
        self.tier = SubscriptionTier.FREE

    def renew(self, end_date: datetime) -> None:
        """
        Record a paid renewal invoice covering a period ending at end_date.

        end_date only moves forward. An expired subscription (the expiry
        sweep ran before the invoice was paid) becomes active again with
        its paid tier; a cancelled one stays cancelled.

        Note: Does not save - caller must save after calling.
        """
        if self.end_date is not None and end_date <= self.end_date:
            return
        self.end_date = end_date
        if self.status == SubscriptionStatus.EXPIRED:
            self.status = SubscriptionStatus.ACTIVE
            self.tier = self.paid_tier
