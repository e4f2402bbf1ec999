"""
Stripe Connect onboarding for freelancers.

Freelancers need an Express connected account before escrowed funds can
be released to them. This service creates the account, hands out
Stripe-hosted onboarding links, and mirrors the account's flags on demand.

Usage:
    from payments.services import ConnectService

    service = ConnectService()
    onboarding = service.create_connect_account(request.user)
    # redirect to onboarding.onboarding_url
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction

from core.exceptions import NotFoundError, PermissionDeniedError
from core.services import BaseService

from payments.adapters import ConnectedAccountResult, StripeAdapter
from payments.exceptions import PaymentInternalError, StripeError
from payments.models import ConnectedAccount

if TYPE_CHECKING:
    from authentication.models import User


@dataclass
class OnboardingResult:
    """Connected account id plus a fresh onboarding link."""

    account_id: str
    onboarding_url: str


@dataclass
class ConnectStatusResult:
    """Mirrored state of a connected account."""

    status: str
    details_submitted: bool
    charges_enabled: bool
    payouts_enabled: bool


class ConnectService(BaseService):
    """
    Service for connected account onboarding.

    Args:
        adapter: Stripe adapter (default: StripeAdapter.from_settings())

    Methods:
        create_connect_account: Create (or reuse) an account and link
        check_connect_status: Refresh and return an account's state
        create_account_link: Fresh onboarding link for an existing account
    """

    def __init__(self, adapter: StripeAdapter | None = None):
        self.adapter = adapter or StripeAdapter.from_settings()

    @staticmethod
    def default_return_urls() -> tuple[str, str]:
        """Refresh and return URLs for Stripe-hosted onboarding."""
        base = settings.PLATFORM_BASE_URL.rstrip("/")
        return (
            f"{base}/profile/edit?stripe_connect=refresh",
            f"{base}/profile/edit?stripe_connect=success",
        )

    def create_connect_account(self, user: User) -> OnboardingResult:
        """
        Create an Express account for the user, or reuse the existing one.

        Raises:
            PaymentInternalError: Stripe rejected the request
        """
        logger = self.get_logger()
        account = ConnectedAccount.objects.filter(user=user).first()

        if account is None:
            try:
                created = self.adapter.create_connected_account(
                    user_id=user.pk,
                    email=user.email,
                    country=settings.STRIPE_CONNECT_COUNTRY,
                )
            except StripeError as e:
                raise PaymentInternalError.from_gateway(e) from e

            with transaction.atomic():
                account, _ = ConnectedAccount.objects.get_or_create(
                    user=user,
                    defaults={"stripe_account_id": created.id},
                )
            logger.info(
                "Connected account created",
                extra={"user_id": str(user.pk), "stripe_account_id": account.stripe_account_id},
            )
        else:
            logger.info(
                "Reusing existing connected account",
                extra={"user_id": str(user.pk), "stripe_account_id": account.stripe_account_id},
            )

        refresh_url, return_url = self.default_return_urls()
        url = self._account_link(account.stripe_account_id, refresh_url, return_url)
        return OnboardingResult(account_id=account.stripe_account_id, onboarding_url=url)

    def check_connect_status(self, account_id: str, caller: User) -> ConnectStatusResult:
        """
        Fetch the account from Stripe and persist its flags and status.

        Raises:
            NotFoundError: No such account on the platform
            PermissionDeniedError: Account belongs to another user
            PaymentInternalError: Stripe rejected the request
        """
        account = ConnectedAccount.objects.filter(stripe_account_id=account_id).first()
        if account is None:
            raise NotFoundError(
                "Connected account not found", details={"account_id": account_id}
            )
        if account.user_id != caller.pk:
            raise PermissionDeniedError("Connected account belongs to another user")

        try:
            remote = self.adapter.retrieve_account(account_id)
        except StripeError as e:
            raise PaymentInternalError.from_gateway(e) from e

        apply_account_flags(account, remote)
        return ConnectStatusResult(
            status=account.status,
            details_submitted=account.details_submitted,
            charges_enabled=account.charges_enabled,
            payouts_enabled=account.payouts_enabled,
        )

    def create_account_link(
        self,
        user: User,
        return_url: str | None = None,
        refresh_url: str | None = None,
    ) -> str:
        """
        Fresh onboarding link for the user's existing account.

        Raises:
            NotFoundError: User has no connected account
        """
        account = ConnectedAccount.objects.filter(user=user).first()
        if account is None:
            raise NotFoundError(
                "No connected account found. Create one first.",
                error_code="CONNECT_ACCOUNT_NOT_FOUND",
            )
        default_refresh, default_return = self.default_return_urls()
        return self._account_link(
            account.stripe_account_id,
            refresh_url or default_refresh,
            return_url or default_return,
        )

    def _account_link(self, account_id: str, refresh_url: str, return_url: str) -> str:
        try:
            return self.adapter.create_account_link(
                account_id=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
            )
        except StripeError as e:
            raise PaymentInternalError.from_gateway(e) from e


def apply_account_flags(
    account: ConnectedAccount,
    remote: ConnectedAccountResult,
) -> ConnectedAccount:
    """Copy Stripe's account flags onto the local row and save it."""
    account.charges_enabled = remote.charges_enabled
    account.payouts_enabled = remote.payouts_enabled
    account.details_submitted = remote.details_submitted
    account.status = account.derive_status(remote.disabled_reason)
    account.save(
        update_fields=[
            "charges_enabled",
            "payouts_enabled",
            "details_submitted",
            "status",
            "updated_at",
        ]
    )
    return account
