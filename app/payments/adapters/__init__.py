"""
Payment adapters for external services.

All Stripe API calls go through a StripeAdapter instance so error
handling, timeouts, idempotency and logging stay consistent.

Usage:
    from payments.adapters import StripeAdapter

    adapter = StripeAdapter.from_settings()
    result = adapter.create_transfer(
        amount_cents=9000,
        destination="acct_xxx",
        metadata={"job_id": "..."},
        idempotency_key="release_transfer:...",
    )
"""

from payments.adapters.stripe_adapter import (
    BalanceResult,
    CheckoutSessionResult,
    ConnectedAccountResult,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    PayoutResult,
    StripeAdapter,
    SubscriptionResult,
    TransferResult,
)

__all__ = [
    "BalanceResult",
    "CheckoutSessionResult",
    "ConnectedAccountResult",
    "IdempotencyKeyGenerator",
    "PaymentIntentResult",
    "PayoutResult",
    "StripeAdapter",
    "SubscriptionResult",
    "TransferResult",
]
