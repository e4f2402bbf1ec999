"""
DRF serializers for payments app.

This module provides serializers for:
- Connect onboarding requests and responses
- Job escrow hold and release requests
- Payout and balance responses
- Subscription checkout requests

Related files:
    - services/: EscrowOrchestrator, ConnectService, SubscriptionManager
    - views.py: Payment API views

Usage:
    serializer = JobHoldSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    amount = serializer.validated_data["amount"]
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from payments.state_machines import SubscriptionTier


# =============================================================================
# Connect
# =============================================================================


class OnboardingResponseSerializer(serializers.Serializer):
    """Connected account id and Stripe-hosted onboarding URL."""

    account_id = serializers.CharField(read_only=True)
    onboarding_url = serializers.URLField(read_only=True)


class ConnectStatusSerializer(serializers.Serializer):
    status = serializers.CharField(read_only=True)
    details_submitted = serializers.BooleanField(read_only=True)
    charges_enabled = serializers.BooleanField(read_only=True)
    payouts_enabled = serializers.BooleanField(read_only=True)


class AccountLinkSerializer(serializers.Serializer):
    """
    Request for a fresh onboarding link.

    Both URLs default to the platform's profile page.
    """

    return_url = serializers.URLField(required=False)
    refresh_url = serializers.URLField(required=False)


class UrlResponseSerializer(serializers.Serializer):
    url = serializers.URLField(read_only=True)


# =============================================================================
# Escrow
# =============================================================================


class JobHoldSerializer(serializers.Serializer):
    """
    Request to pay for a job into escrow.

    Fields:
        proposal_id: Proposal being accepted
        amount: Amount in major units (e.g. "150.00")
    """

    proposal_id = serializers.UUIDField()
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.01"),
    )


class JobHoldResponseSerializer(serializers.Serializer):
    client_secret = serializers.CharField(read_only=True, allow_null=True)
    payment_hold_id = serializers.CharField(read_only=True)
    payment_id = serializers.UUIDField(read_only=True)


class ReleaseSerializer(serializers.Serializer):
    """Request to release a job's escrow to its freelancer."""

    freelancer_id = serializers.CharField(max_length=64)


class ReleaseResponseSerializer(serializers.Serializer):
    transfer_id = serializers.CharField(read_only=True)


# =============================================================================
# Connected Account Funds
# =============================================================================


class PayoutSerializer(serializers.Serializer):
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.01"),
    )


class PayoutResponseSerializer(serializers.Serializer):
    payout_id = serializers.CharField(read_only=True)


class BalanceSerializer(serializers.Serializer):
    """Connected balance in major units."""

    available = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    pending = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


# =============================================================================
# Subscriptions
# =============================================================================


class CheckoutSerializer(serializers.Serializer):
    """
    Request to start a subscription Checkout Session.

    Fields:
        price_id: Stripe price ID (must be one of the configured prices)
        success_url: Redirect URL after successful payment
        cancel_url: Redirect URL if the user abandons checkout
        tier: Paid tier to grant (default: pro)
    """

    price_id = serializers.CharField(max_length=255)
    success_url = serializers.URLField()
    cancel_url = serializers.URLField()
    tier = serializers.ChoiceField(
        choices=[SubscriptionTier.MESSAGES, SubscriptionTier.PRO],
        default=SubscriptionTier.PRO,
    )


class CancelSubscriptionResponseSerializer(serializers.Serializer):
    end_date = serializers.DateTimeField(read_only=True, allow_null=True)
