"""
Subscription manager for paid tiers.

Users buy a tier through Stripe Checkout. The subscription row itself is
written by webhooks (see payments.webhooks.handlers); this service only
starts checkouts, schedules cancellation, and expires subscriptions whose
paid period ended without Stripe telling us.

Usage:
    from payments.services import SubscriptionManager

    manager = SubscriptionManager()
    checkout = manager.create_checkout(
        user=request.user,
        price_id=settings.STRIPE_MONTHLY_PRICE_ID,
        success_url="https://app.example.com/billing/success",
        cancel_url="https://app.example.com/billing",
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.exceptions import NotFoundError, ValidationError
from core.services import BaseService
from notifications.models import NotificationCategory
from notifications.services import NotificationService

from payments.adapters import StripeAdapter
from payments.exceptions import PaymentInternalError, StripeError
from payments.models import Subscription
from payments.state_machines import SubscriptionPlan, SubscriptionStatus, SubscriptionTier

if TYPE_CHECKING:
    from authentication.models import User


def configured_price_ids() -> dict[str, str]:
    """Map each configured Stripe price id to its plan."""
    prices = {
        settings.STRIPE_MONTHLY_PRICE_ID: SubscriptionPlan.MONTHLY,
        settings.STRIPE_QUARTERLY_PRICE_ID: SubscriptionPlan.QUARTERLY,
        settings.STRIPE_YEARLY_PRICE_ID: SubscriptionPlan.YEARLY,
    }
    return {price_id: plan for price_id, plan in prices.items() if price_id}


def plan_for_price(price_id: str | None) -> str:
    """Plan for a Stripe price id; unknown prices count as monthly."""
    return configured_price_ids().get(price_id or "", SubscriptionPlan.MONTHLY)


@dataclass
class CheckoutResult:
    url: str
    session_id: str


class SubscriptionManager(BaseService):
    """
    Service for subscription checkout, cancellation and expiry.

    Args:
        adapter: Stripe adapter (default: StripeAdapter.from_settings())
    """

    PAID_TIERS = (SubscriptionTier.MESSAGES, SubscriptionTier.PRO)

    def __init__(self, adapter: StripeAdapter | None = None):
        self._adapter = adapter

    @property
    def adapter(self) -> StripeAdapter:
        # expire_lapsed never talks to Stripe, so build lazily
        if self._adapter is None:
            self._adapter = StripeAdapter.from_settings()
        return self._adapter

    def create_checkout(
        self,
        user: User,
        price_id: str,
        success_url: str,
        cancel_url: str,
        tier: str = SubscriptionTier.PRO,
    ) -> CheckoutResult:
        """
        Start a subscription Checkout Session for the user.

        Creates the user's Stripe customer on first use and stores its id
        on the user.

        Raises:
            ValidationError: Unknown price id or unpaid tier
            PaymentInternalError: Stripe rejected the request
        """
        logger = self.get_logger()

        if price_id not in configured_price_ids():
            raise ValidationError(
                "Unknown subscription price",
                error_code="INVALID_PRICE",
                details={"price_id": price_id},
            )
        if tier not in self.PAID_TIERS:
            raise ValidationError(
                "Unknown subscription tier",
                error_code="INVALID_TIER",
                details={"tier": tier},
            )

        try:
            customer_id = self._ensure_customer(user)
            session = self.adapter.create_checkout_session(
                customer_id=customer_id,
                price_id=price_id,
                success_url=success_url,
                cancel_url=cancel_url,
                metadata={"user_id": str(user.pk), "tier": str(tier)},
            )
        except StripeError as e:
            raise PaymentInternalError.from_gateway(e) from e

        logger.info(
            "Subscription checkout created",
            extra={"user_id": str(user.pk), "session_id": session.id, "tier": tier},
        )
        return CheckoutResult(url=session.url, session_id=session.id)

    def _ensure_customer(self, user: User) -> str:
        if user.stripe_customer_id:
            return user.stripe_customer_id
        customer_id = self.adapter.create_customer(
            email=user.email,
            metadata={"user_id": str(user.pk)},
        )
        user.stripe_customer_id = customer_id
        user.save(update_fields=["stripe_customer_id", "updated_at"])
        return customer_id

    def cancel(self, user: User) -> datetime | None:
        """
        Schedule cancellation at the end of the current period.

        Tier and status stay as they are; customer.subscription.deleted
        drops the user to free when the period actually ends.

        Returns:
            End of the current paid period

        Raises:
            NotFoundError: User has no Stripe subscription
            PaymentInternalError: Stripe rejected the request
        """
        subscription = Subscription.objects.filter(user=user).first()
        if subscription is None or not subscription.stripe_subscription_id:
            raise NotFoundError(
                "No active subscription found",
                error_code="SUBSCRIPTION_NOT_FOUND",
            )

        try:
            remote = self.adapter.update_subscription(
                subscription.stripe_subscription_id,
                cancel_at_period_end=True,
            )
        except StripeError as e:
            raise PaymentInternalError.from_gateway(e) from e

        subscription.cancel_at_period_end = True
        if remote.current_period_end is not None:
            subscription.end_date = remote.current_period_end
        subscription.save(update_fields=["cancel_at_period_end", "end_date", "updated_at"])

        self.get_logger().info(
            "Subscription cancellation scheduled",
            extra={
                "user_id": str(user.pk),
                "stripe_subscription_id": subscription.stripe_subscription_id,
                "end_date": subscription.end_date.isoformat() if subscription.end_date else None,
            },
        )
        return subscription.end_date

    def expire_lapsed(self, now: datetime | None = None) -> int:
        """
        Expire active subscriptions whose paid period ended more than
        SUBSCRIPTION_EXPIRY_GRACE_HOURS ago.

        Each expired subscriber gets one "Subscription Expired"
        notification per lapsed period.

        Returns:
            Number of subscriptions expired
        """
        now = now or timezone.now()
        cutoff = now - timedelta(hours=settings.SUBSCRIPTION_EXPIRY_GRACE_HOURS)
        logger = self.get_logger()
        expired = 0

        lapsed_ids = list(
            Subscription.objects.filter(
                status=SubscriptionStatus.ACTIVE,
                end_date__lte=cutoff,
            ).values_list("id", flat=True)
        )

        for subscription_id in lapsed_ids:
            with transaction.atomic():
                subscription = (
                    Subscription.objects.select_for_update()
                    .filter(
                        id=subscription_id,
                        status=SubscriptionStatus.ACTIVE,
                        end_date__lte=cutoff,
                    )
                    .select_related("user")
                    .first()
                )
                if subscription is None:
                    continue

                subscription.expire()
                subscription.save(update_fields=["status", "tier", "updated_at"])

                NotificationService.create_notification(
                    recipient=subscription.user,
                    category=NotificationCategory.SYSTEM,
                    title="Subscription Expired",
                    body="Your subscription has expired. Renew to keep your paid features.",
                    data={"subscription_id": str(subscription.id)},
                    idempotency_key=(
                        f"subscription_expired:{subscription.id}:"
                        f"{subscription.end_date.isoformat()}"
                    ),
                )
            expired += 1

        logger.info("Lapsed subscriptions expired", extra={"count": expired})
        return expired
