"""
Stripe API adapter for escrow, Connect and subscription operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls go through an adapter instance
so error handling, timeouts, idempotency and logging are consistent, and
so services can be handed a test double instead.

Features:
- Explicit configuration: each instance owns a stripe.StripeClient with its
  own secret key and HTTP timeout (no global stripe.api_key or
  stripe.default_http_client)
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Idempotency keys on calls that move money
- No automatic retries; callers decide

Configuration (via settings, see StripeAdapter.from_settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_CURRENCY: Currency for holds, transfers and payouts (default: usd)

Usage:
    from payments.adapters import IdempotencyKeyGenerator, StripeAdapter

    adapter = StripeAdapter.from_settings()
    result = adapter.create_payment_intent(
        amount_cents=10000,
        metadata={"job_id": str(job.id), "type": "job_payment"},
        idempotency_key=IdempotencyKeyGenerator.generate("job_hold", job.id),
    )
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeSignatureError,
    StripeTimeoutError,
)

if TYPE_CHECKING:
    from collections.abc import Callable


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent operations.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status (requires_payment_method, succeeded, etc.)
        amount_cents: Amount in cents
        currency: Currency code
        client_secret: Secret for client-side confirmation
        metadata: Attached metadata
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    client_secret: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class TransferResult:
    """
    Result from Stripe Transfer operations.

    Attributes:
        id: Transfer ID (tr_xxx)
        amount_cents: Amount transferred in cents
        currency: Currency code
        destination_account: Destination Stripe account ID
        metadata: Attached metadata
    """

    id: str
    amount_cents: int
    currency: str
    destination_account: str
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class PayoutResult:
    """Result from a payout on a connected account."""

    id: str
    amount_cents: int
    currency: str
    status: str


@dataclass
class BalanceResult:
    """
    Connected account balance, summed across currencies.

    Attributes:
        available_cents: Funds that can be paid out now
        pending_cents: Funds not yet settled
    """

    available_cents: int
    pending_cents: int


@dataclass
class ConnectedAccountResult:
    """
    Result from Stripe Account operations.

    Attributes:
        id: Account ID (acct_xxx)
        charges_enabled / payouts_enabled / details_submitted: Stripe flags
        disabled_reason: requirements.disabled_reason, if Stripe set one
    """

    id: str
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False
    disabled_reason: str | None = None


@dataclass
class SubscriptionResult:
    """
    Result from Stripe Subscription operations.

    Attributes:
        id: Subscription ID (sub_xxx)
        customer_id: Customer ID (cus_xxx)
        status: Stripe subscription status
        price_id: Price of the first subscription item
        current_period_start / current_period_end: Current billing period
        cancel_at_period_end: Whether cancellation is scheduled
    """

    id: str
    customer_id: str
    status: str
    price_id: str | None = None
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False


@dataclass
class CheckoutSessionResult:
    """Result from creating a Stripe Checkout Session."""

    id: str
    url: str


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Keys are deterministic: the same operation on the same entity always
    yields the same key, so a repeated call is collapsed by Stripe into
    the original request.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="release_transfer",
            entity_id=payment.id,
        )
        # Result: "release_transfer:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        """
        Generate an idempotency key.

        Args:
            operation: The Stripe operation (job_hold, release_transfer, etc.)
            entity_id: The domain entity ID
            attempt: Attempt number (default: 1)

        Returns:
            Formatted idempotency key string
        """
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


def timestamp_to_datetime(value: int | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    Each instance owns its StripeClient, so two adapters with different
    keys or timeouts never share request settings.

    Args:
        secret_key: Stripe API secret key, sent with every request
        webhook_secret: Endpoint secret used to verify webhook signatures
        currency: Currency for holds, transfers and payouts
        timeout: HTTP timeout in seconds for this adapter's requests

    Usage:
        adapter = StripeAdapter.from_settings()
        adapter.create_transfer(amount_cents=9000, destination="acct_xxx", ...)
    """

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str = "",
        currency: str = "usd",
        timeout: int = 10,
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.currency = currency.lower()
        self.timeout = timeout
        self._client = stripe.StripeClient(
            secret_key,
            http_client=stripe.RequestsClient(timeout=timeout),
        )

    @classmethod
    def from_settings(cls) -> StripeAdapter:
        """Build an adapter from Django settings."""
        return cls(
            secret_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            currency=getattr(settings, "STRIPE_CURRENCY", "usd"),
            timeout=getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10),
        )

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    def _execute(
        self,
        call: Callable[..., Any],
        log_context: dict[str, Any],
        *args: Any,
        level: int = logging.INFO,
        params: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> Any:
        """
        Run one StripeClient service call with timing logs.

        Args:
            call: Bound service method, e.g. self._client.v1.transfers.create
            log_context: Fields attached to the start/finish log records
            *args: Positional ids the service method takes (retrieve/update)
            level: Log level for the start/finish records
            params: Request body
            options: Request options (idempotency_key, stripe_account)

        Raises:
            StripeError: Translated from any SDK exception
        """
        logger = self.get_logger()
        start_time = time.time()
        logger.log(level, "Starting Stripe operation", extra=log_context)

        try:
            result = call(*args, params=params or {}, options=options or {})
        except stripe.StripeError as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_stripe_error(e, log_context, duration_ms)
            raise  # Never reached, _handle_stripe_error always raises

        duration_ms = (time.time() - start_time) * 1000
        logger.log(
            level,
            "Stripe operation completed",
            extra={
                **log_context,
                "stripe_object_id": getattr(result, "id", None),
                "duration_ms": duration_ms,
            },
        )
        return result

    # =========================================================================
    # Connect Accounts
    # =========================================================================

    def create_connected_account(
        self,
        user_id: uuid.UUID | str,
        email: str,
        country: str = "US",
    ) -> ConnectedAccountResult:
        """
        Create an Express connected account for a freelancer.

        Requests card_payments and transfers capabilities and tags the
        account with the platform user id.
        """
        account = self._execute(
            self._client.v1.accounts.create,
            {"operation": "create_connected_account", "user_id": str(user_id)},
            params={
                "type": "express",
                "country": country,
                "email": email,
                "capabilities": {
                    "card_payments": {"requested": True},
                    "transfers": {"requested": True},
                },
                "metadata": {"user_id": str(user_id)},
            },
        )
        return self._account_result(account)

    def create_account_link(
        self,
        account_id: str,
        refresh_url: str,
        return_url: str,
    ) -> str:
        """
        Create a one-time onboarding link for a connected account.

        Returns:
            The hosted onboarding URL
        """
        link = self._execute(
            self._client.v1.account_links.create,
            {"operation": "create_account_link", "account_id": account_id},
            params={
                "account": account_id,
                "refresh_url": refresh_url,
                "return_url": return_url,
                "type": "account_onboarding",
            },
        )
        return link.url

    def retrieve_account(self, account_id: str) -> ConnectedAccountResult:
        """Retrieve a connected account's current flags."""
        account = self._execute(
            self._client.v1.accounts.retrieve,
            {"operation": "retrieve_account", "account_id": account_id},
            account_id,
            level=logging.DEBUG,
        )
        return self._account_result(account)

    @staticmethod
    def _account_result(account: Any) -> ConnectedAccountResult:
        requirements = getattr(account, "requirements", None)
        disabled_reason = (
            getattr(requirements, "disabled_reason", None) if requirements else None
        )
        return ConnectedAccountResult(
            id=account.id,
            charges_enabled=bool(getattr(account, "charges_enabled", False)),
            payouts_enabled=bool(getattr(account, "payouts_enabled", False)),
            details_submitted=bool(getattr(account, "details_submitted", False)),
            disabled_reason=disabled_reason,
        )

    # =========================================================================
    # Escrow Operations
    # =========================================================================

    def create_payment_intent(
        self,
        amount_cents: int,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> PaymentIntentResult:
        """
        Create an automatically captured PaymentIntent.

        Funds stay in the platform balance after capture; that balance is
        the escrow until release_to_freelancer transfers them.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
        """
        if amount_cents <= 0:
            raise ValueError("amount_cents must be positive")

        intent = self._execute(
            self._client.v1.payment_intents.create,
            {
                "operation": "create_payment_intent",
                "amount_cents": amount_cents,
                "currency": self.currency,
                "idempotency_key": idempotency_key,
            },
            params={
                "amount": amount_cents,
                "currency": self.currency,
                "capture_method": "automatic",
                "automatic_payment_methods": {"enabled": True},
                "metadata": metadata,
            },
            options={"idempotency_key": idempotency_key},
        )
        return self._intent_result(intent)

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        """Retrieve a PaymentIntent by ID."""
        intent = self._execute(
            self._client.v1.payment_intents.retrieve,
            {
                "operation": "retrieve_payment_intent",
                "payment_intent_id": payment_intent_id,
            },
            payment_intent_id,
            level=logging.DEBUG,
        )
        return self._intent_result(intent)

    @staticmethod
    def _intent_result(intent: Any) -> PaymentIntentResult:
        metadata = getattr(intent, "metadata", None)
        return PaymentIntentResult(
            id=intent.id,
            status=intent.status,
            amount_cents=intent.amount,
            currency=intent.currency,
            client_secret=getattr(intent, "client_secret", None),
            metadata=dict(metadata) if metadata else {},
        )

    def create_transfer(
        self,
        amount_cents: int,
        destination: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> TransferResult:
        """
        Transfer funds from the platform balance to a connected account.

        Raises:
            StripeInvalidAccountError: Invalid destination account
            StripeInsufficientFundsError: Insufficient platform balance
        """
        transfer = self._execute(
            self._client.v1.transfers.create,
            {
                "operation": "create_transfer",
                "amount_cents": amount_cents,
                "destination_account": destination,
                "idempotency_key": idempotency_key,
            },
            params={
                "amount": amount_cents,
                "currency": self.currency,
                "destination": destination,
                "metadata": metadata,
            },
            options={"idempotency_key": idempotency_key},
        )
        metadata_out = getattr(transfer, "metadata", None)
        return TransferResult(
            id=transfer.id,
            amount_cents=transfer.amount,
            currency=transfer.currency,
            destination_account=transfer.destination,
            metadata=dict(metadata_out) if metadata_out else {},
        )

    # =========================================================================
    # Connected Account Funds
    # =========================================================================

    def create_payout(
        self,
        account_id: str,
        amount_cents: int,
        metadata: dict[str, str] | None = None,
    ) -> PayoutResult:
        """Pay out from a connected account's balance to its bank account."""
        payout = self._execute(
            self._client.v1.payouts.create,
            {
                "operation": "create_payout",
                "account_id": account_id,
                "amount_cents": amount_cents,
            },
            params={
                "amount": amount_cents,
                "currency": self.currency,
                "metadata": metadata or {},
            },
            options={"stripe_account": account_id},
        )
        return PayoutResult(
            id=payout.id,
            amount_cents=payout.amount,
            currency=payout.currency,
            status=payout.status,
        )

    def get_balance(self, account_id: str) -> BalanceResult:
        """Sum a connected account's available and pending balances."""
        balance = self._execute(
            self._client.v1.balance.retrieve,
            {"operation": "get_balance", "account_id": account_id},
            level=logging.DEBUG,
            options={"stripe_account": account_id},
        )
        return BalanceResult(
            available_cents=sum(entry["amount"] for entry in balance["available"]),
            pending_cents=sum(entry["amount"] for entry in balance["pending"]),
        )

    # =========================================================================
    # Customers & Subscriptions
    # =========================================================================

    def create_customer(self, email: str, metadata: dict[str, str]) -> str:
        """
        Create a Stripe Customer.

        Returns:
            The customer ID (cus_xxx)
        """
        customer = self._execute(
            self._client.v1.customers.create,
            {"operation": "create_customer", "user_id": metadata.get("user_id")},
            params={"email": email, "metadata": metadata},
        )
        return customer.id

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutSessionResult:
        """Create a subscription-mode Checkout Session for one price."""
        session = self._execute(
            self._client.v1.checkout.sessions.create,
            {
                "operation": "create_checkout_session",
                "customer_id": customer_id,
                "price_id": price_id,
            },
            params={
                "customer": customer_id,
                "mode": "subscription",
                "line_items": [{"price": price_id, "quantity": 1}],
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": metadata,
                "subscription_data": {"metadata": metadata},
            },
        )
        return CheckoutSessionResult(id=session.id, url=session.url)

    def retrieve_subscription(self, subscription_id: str) -> SubscriptionResult:
        """Retrieve a subscription with its current billing period."""
        subscription = self._execute(
            self._client.v1.subscriptions.retrieve,
            {
                "operation": "retrieve_subscription",
                "subscription_id": subscription_id,
            },
            subscription_id,
            level=logging.DEBUG,
        )
        return self._subscription_result(subscription)

    def update_subscription(
        self,
        subscription_id: str,
        cancel_at_period_end: bool,
    ) -> SubscriptionResult:
        """Schedule (or unschedule) cancellation at the end of the period."""
        subscription = self._execute(
            self._client.v1.subscriptions.update,
            {
                "operation": "update_subscription",
                "subscription_id": subscription_id,
                "cancel_at_period_end": cancel_at_period_end,
            },
            subscription_id,
            params={"cancel_at_period_end": cancel_at_period_end},
        )
        return self._subscription_result(subscription)

    @staticmethod
    def _subscription_result(subscription: Any) -> SubscriptionResult:
        # Newer API versions report the billing period on the items only
        items = subscription["items"]["data"] if "items" in subscription else []
        first_item = items[0] if items else None

        period_start = getattr(subscription, "current_period_start", None)
        period_end = getattr(subscription, "current_period_end", None)
        if first_item is not None:
            period_start = period_start or getattr(first_item, "current_period_start", None)
            period_end = period_end or getattr(first_item, "current_period_end", None)

        price_id = None
        if first_item is not None and getattr(first_item, "price", None):
            price_id = first_item.price.id

        return SubscriptionResult(
            id=subscription.id,
            customer_id=subscription.customer,
            status=subscription.status,
            price_id=price_id,
            current_period_start=timestamp_to_datetime(period_start),
            current_period_end=timestamp_to_datetime(period_end),
            cancel_at_period_end=bool(
                getattr(subscription, "cancel_at_period_end", False)
            ),
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw webhook payload bytes
            signature: Stripe-Signature header value

        Returns:
            Parsed event data dict

        Raises:
            StripeSignatureError: Missing secret, bad signature or bad payload
        """
        if not self.webhook_secret:
            raise StripeSignatureError(
                "Webhook secret is not configured",
                stripe_code="webhook_secret_missing",
            )
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise StripeSignatureError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise StripeSignatureError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            ) from e
        return json.loads(payload)

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: stripe.StripeError,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        The gateway's own message and code are kept so callers can pass
        them on.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInsufficientFundsError: Insufficient funds
            StripeInvalidAccountError: Invalid Connect account
            StripeInvalidRequestError: Invalid request parameters
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: API unavailable or unexpected error
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}
        message = getattr(error, "user_message", None) or str(error)
        code = getattr(error, "code", None)

        if isinstance(error, stripe.CardError):
            # decline_code lives on the parsed error object, not the exception
            error_object = getattr(error, "error", None)
            decline_code = getattr(error_object, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            if decline_code == "insufficient_funds":
                raise StripeInsufficientFundsError(
                    message, stripe_code=code, decline_code=decline_code
                ) from error
            raise StripeCardDeclinedError(
                message, stripe_code=code, decline_code=decline_code
            ) from error

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": code},
            )
            if code == "balance_insufficient":
                raise StripeInsufficientFundsError(message, stripe_code=code) from error
            if "account" in str(error).lower():
                raise StripeInvalidAccountError(message, stripe_code=code) from error
            raise StripeInvalidRequestError(message, stripe_code=code) from error

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(message, stripe_code="rate_limit") from error

        if isinstance(error, stripe.APIConnectionError):
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            if "timed out" in str(error).lower():
                raise StripeTimeoutError(message, stripe_code="timeout") from error
            raise StripeAPIUnavailableError(
                message, stripe_code="api_connection_error"
            ) from error

        if isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeAPIUnavailableError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        logger.error(
            f"Stripe error: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise StripeAPIUnavailableError(message, stripe_code=code or "api_error") from error
