"""
ConnectedAccount model for Stripe Connect integration.

This model represents a freelancer's Stripe Express account, the
destination for escrow releases and payouts. Each freelancer has at most
one ConnectedAccount.

Usage:
    from payments.models import ConnectedAccount

    account = ConnectedAccount.objects.create(
        user=freelancer,
        stripe_account_id="acct_1234567890",
    )

    # Update after Stripe webhook or status check
    account.charges_enabled = True
    account.payouts_enabled = True
    account.details_submitted = True
    account.status = account.derive_status()
    account.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import UUIDModel

from payments.state_machines import ConnectStatus


class ConnectedAccount(UUIDModel):
    """
    A freelancer's Stripe Connect account.

    Fields:
        user: OneToOne link to the freelancer
        stripe_account_id: Unique Stripe Account ID (acct_xxx)
        status: pending / active / restricted
        charges_enabled: Whether Stripe has enabled charges
        payouts_enabled: Whether Stripe has enabled payouts
        details_submitted: Whether onboarding details were submitted

    Lifecycle:
        1. Created when the freelancer first requests onboarding (PENDING)
        2. Freelancer completes the Stripe-hosted onboarding form
        3. account.updated webhook or status check mirrors the flags
        4. ACTIVE once details are submitted, RESTRICTED if Stripe disables it

    Note:
        The user field uses PROTECT on_delete. Accounts are never
        deleted by the application.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="connected_account",
        help_text="Freelancer this connected account belongs to",
    )

    stripe_account_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe Account ID (acct_xxx)",
    )

    status = models.CharField(
        max_length=20,
        choices=ConnectStatus.choices,
        default=ConnectStatus.PENDING,
        db_index=True,
        help_text="Onboarding status derived from Stripe account flags",
    )

    charges_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled charges for this account",
    )

    payouts_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled payouts for this account",
    )

    details_submitted = models.BooleanField(
        default=False,
        help_text="Whether the account holder submitted onboarding details",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Connected Account"
        verbose_name_plural = "Connected Accounts"

    def __str__(self) -> str:
        """Return string representation with Stripe ID and status."""
        return f"ConnectedAccount({self.stripe_account_id}, {self.status})"

    def derive_status(self, disabled_reason: str | None = None) -> str:
        """
        Work out the onboarding status from the mirrored Stripe flags.

        Args:
            disabled_reason: Stripe's requirements.disabled_reason, if any

        Returns:
            ACTIVE if details were submitted, RESTRICTED if Stripe
            reported a disabled reason, otherwise PENDING
        """
        if self.details_submitted:
            return ConnectStatus.ACTIVE
        if disabled_reason:
            return ConnectStatus.RESTRICTED
        return ConnectStatus.PENDING

    @property
    def is_ready_for_payouts(self) -> bool:
        """Check if Stripe will accept transfers and payouts for the account."""
        return self.status == ConnectStatus.ACTIVE and self.payouts_enabled
