"""
Payment services.

This module provides:
- EscrowOrchestrator: Job payment holds, releases, payouts and balances
- ConnectService: Freelancer Stripe Connect onboarding
- SubscriptionManager: Subscription checkout, cancellation and expiry

Usage:
    from payments.services import EscrowOrchestrator

    orchestrator = EscrowOrchestrator()
    result = orchestrator.release_to_freelancer(
        job_id=job.id,
        freelancer_id=freelancer.id,
        caller=request.user,
    )
"""

from payments.services.connect import (
    ConnectService,
    ConnectStatusResult,
    OnboardingResult,
    apply_account_flags,
)
from payments.services.escrow import (
    EscrowOrchestrator,
    FeeSplit,
    JobHoldResult,
    ReleaseResult,
    calculate_fee_split,
    split_amount_cents,
    to_cents,
)
from payments.services.subscription import (
    CheckoutResult,
    SubscriptionManager,
    plan_for_price,
)

__all__ = [
    "CheckoutResult",
    "ConnectService",
    "ConnectStatusResult",
    "EscrowOrchestrator",
    "FeeSplit",
    "JobHoldResult",
    "OnboardingResult",
    "ReleaseResult",
    "SubscriptionManager",
    "apply_account_flags",
    "calculate_fee_split",
    "plan_for_price",
    "split_amount_cents",
    "to_cents",
]
