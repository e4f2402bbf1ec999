"""
Payment-specific exceptions for escrow, payout and subscription operations.

Exception Hierarchy (second base from core.exceptions in brackets):
    PaymentError (400)
    ├── PaymentNotFoundError - No payment in the required state (404)
    ├── PaymentInternalError [InternalError] - Gateway failure surfaced to caller (500)
    ├── TransactionLogImmutableError [ConflictError] - Audit log write attempt (409)
    └── StripeError [ExternalServiceError] - Any Stripe call failure (502)
        ├── StripeCardDeclinedError - Card declined
        ├── StripeInsufficientFundsError - Insufficient funds
        ├── StripeInvalidAccountError - Invalid connected account
        ├── StripeInvalidRequestError - Invalid request params
        ├── StripeRateLimitError - Rate limited (transient)
        ├── StripeAPIUnavailableError - API unavailable (transient)
        ├── StripeTimeoutError - Request timeout (transient)
        └── StripeSignatureError - Webhook signature rejected (400)

Usage:
    from payments.exceptions import PaymentInternalError, StripeError

    try:
        transfer = adapter.create_transfer(...)
    except StripeError as e:
        raise PaymentInternalError.from_gateway(e) from e
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    InternalError,
)

if TYPE_CHECKING:
    from typing import Any


class PaymentError(BaseApplicationError):
    """Base for errors raised by the escrow, payout and subscription services."""

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when no payment exists in the state an operation needs.

    Example:
        payment = Payment.objects.filter(job_id=job_id, status=HELD).first()
        if not payment:
            raise PaymentNotFoundError(
                "No payment held in escrow for this job",
                details={"job_id": str(job_id)},
            )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"
    status_code: int = 404


class PaymentInternalError(PaymentError, InternalError):
    """
    Raised when a gateway or store failure must reach the caller.

    The gateway's message is kept as the error message. Its codes go in
    details, with "retryable" telling the caller whether repeating the
    request later can succeed (nothing is retried automatically).
    """

    default_error_code: str = "INTERNAL_ERROR"
    status_code: int = 500

    @classmethod
    def from_gateway(cls, error: StripeError) -> PaymentInternalError:
        """Wrap a StripeError, keeping its message and codes."""
        details: dict[str, Any] = {"gateway_error_code": error.error_code,
            "retryable": error.is_retryable,
        }
        if error.stripe_code:
            details["stripe_code"] = error.stripe_code
        if error.decline_code:
            details["decline_code"] = error.decline_code
        return cls(error.message, details=details)


class TransactionLogImmutableError(PaymentError, ConflictError):
    """Raised when code tries to update or delete a transaction log entry."""

    default_error_code: str = "TRANSACTION_LOG_IMMUTABLE"
    status_code: int = 409


class StripeError(PaymentError, ExternalServiceError):
    """
    A Stripe call failed. Raised only by payments.adapters.

    stripe_code and decline_code are copied from the SDK error when Stripe
    sent them. is_retryable marks failures where repeating the same call
    later can succeed; the adapter itself never retries.
    """

    default_error_code: str = "STRIPE_ERROR"
    status_code: int = 502
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = dict(details or {})
        for key, value in (("stripe_code", stripe_code), ("decline_code", decline_code)):
            if value:
                details[key] = value
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


class StripeCardDeclinedError(StripeError):
    default_error_code: str = "CARD_DECLINED"


class StripeInsufficientFundsError(StripeError):
    """
    The card has insufficient funds, or (on transfers) the platform
    balance does not yet cover the release.
    """

    default_error_code: str = "INSUFFICIENT_FUNDS"


class StripeInvalidAccountError(StripeError):
    """The connected account is missing or cannot receive funds."""

    default_error_code: str = "INVALID_STRIPE_ACCOUNT"


class StripeInvalidRequestError(StripeError):
    default_error_code: str = "INVALID_STRIPE_REQUEST"


class StripeSignatureError(StripeError):
    """Stripe-Signature header did not match the payload."""

    default_error_code: str = "INVALID_SIGNATURE"
    status_code: int = 400


# Transient: the same call may succeed later.


class StripeRateLimitError(StripeError):
    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """Network failure, Stripe 5xx, or a rejected API key."""

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    No response within STRIPE_API_TIMEOUT_SECONDS. Stripe may still have
    applied the call; money-moving calls carry idempotency keys.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


__all__ = [
    "PaymentError",
    "PaymentInternalError",
    "PaymentNotFoundError",
    "TransactionLogImmutableError",
    "StripeAPIUnavailableError",
    "StripeCardDeclinedError",
    "StripeError",
    "StripeInsufficientFundsError",
    "StripeInvalidAccountError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeSignatureError",
    "StripeTimeoutError",
]
