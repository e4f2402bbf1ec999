"""
Escrow orchestrator for job payments.

This module provides the EscrowOrchestrator which takes a job's money from
the client into the platform's Stripe balance (the hold), and from there
to the freelancer's connected account (the release).

Money Flow:
    1. create_job_hold: PaymentIntent created, Payment row PENDING
    2. Client confirms the intent with the returned client_secret
    3. payment_intent.succeeded webhook: Payment HELD_IN_ESCROW
    4. release_to_freelancer: Transfer of amount minus platform fee,
       Payment RELEASED, job completed
    5. create_payout: freelancer moves their connected balance to a bank

Usage:
    from payments.services import EscrowOrchestrator

    orchestrator = EscrowOrchestrator()
    hold = orchestrator.create_job_hold(
        job_id=job.id,
        proposal_id=proposal.id,
        amount=Decimal("100.00"),
        caller=request.user,
    )
    # hold.client_secret goes to the client for confirmation
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F

from authentication.models import User
from core.exceptions import (
    FailedPreconditionError,
    NotFoundError,
    PermissionDeniedError,
    UnauthenticatedError,
    ValidationError,
)
from core.services import BaseService
from marketplace.models import Job, Proposal

from payments.adapters import (
    BalanceResult,
    IdempotencyKeyGenerator,
    PayoutResult,
    StripeAdapter,
)
from payments.exceptions import (
    PaymentInternalError,
    PaymentNotFoundError,
    StripeError,
)
from payments.models import ConnectedAccount, Payment
from payments.state_machines import ACTIVE_PAYMENT_STATUSES, PaymentStatus

if TYPE_CHECKING:
    from typing import Any


CENTS_PER_UNIT = Decimal("100")


# =============================================================================
# Fee Split
# =============================================================================


@dataclass(frozen=True)
class FeeSplit:
    """
    How a payment divides between the platform and the freelancer.

    Invariant: platform_fee_cents + freelancer_amount_cents == amount_cents
    """

    amount_cents: int
    platform_fee_cents: int
    freelancer_amount_cents: int


def to_cents(amount: Decimal | str | int) -> int:
    """Convert a major-unit amount to integer cents, rounding half up."""
    cents = Decimal(str(amount)) * CENTS_PER_UNIT
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def split_amount_cents(amount_cents: int, fee_rate: Decimal | str) -> FeeSplit:
    """
    Split an amount already in cents.

    The fee is rounded half up; the freelancer gets the remainder, so the
    two parts always add back to amount_cents.
    """
    fee = Decimal(amount_cents) * Decimal(str(fee_rate))
    platform_fee_cents = int(fee.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return FeeSplit(
        amount_cents=amount_cents,
        platform_fee_cents=platform_fee_cents,
        freelancer_amount_cents=amount_cents - platform_fee_cents,
    )


def calculate_fee_split(amount: Decimal | str, fee_rate: Decimal | str) -> FeeSplit:
    """
    Split a major-unit amount into platform fee and freelancer share.

    Example:
        calculate_fee_split(Decimal("9.99"), Decimal("0.10"))
        # FeeSplit(amount_cents=999, platform_fee_cents=100, freelancer_amount_cents=899)
    """
    return split_amount_cents(to_cents(amount), fee_rate)


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class JobHoldResult:
    """
    Result of create_job_hold.

    Attributes:
        client_secret: Secret the client uses to confirm the PaymentIntent
        payment_intent_id: Stripe PaymentIntent ID
        payment_id: Local Payment ID
    """

    client_secret: str | None
    payment_intent_id: str
    payment_id: uuid.UUID


@dataclass
class ReleaseResult:
    """
    Result of release_to_freelancer.

    already_released is True when the job had been released before and no
    new transfer was made.
    """

    transfer_id: str
    payment_id: uuid.UUID
    already_released: bool = False


def _require_caller(caller: Any) -> None:
    if caller is None or not getattr(caller, "is_authenticated", False):
        raise UnauthenticatedError("Authentication required")


# =============================================================================
# Orchestrator
# =============================================================================


class EscrowOrchestrator(BaseService):
    """
    Coordinates escrow holds, releases and freelancer payouts.

    Args:
        adapter: Stripe adapter (default: StripeAdapter.from_settings())
        fee_rate: Platform fee rate (default: settings.PLATFORM_FEE_RATE)

    Methods:
        create_job_hold: Start a client payment into escrow
        release_to_freelancer: Transfer held funds minus fee to the freelancer
        create_payout: Pay out a freelancer's connected balance
        get_balance: Read a freelancer's connected balance
    """

    def __init__(
        self,
        adapter: StripeAdapter | None = None,
        fee_rate: Decimal | str | None = None,
    ):
        self.adapter = adapter or StripeAdapter.from_settings()
        if fee_rate is None:
            fee_rate = settings.PLATFORM_FEE_RATE
        self.fee_rate = Decimal(str(fee_rate))

    # =========================================================================
    # Hold
    # =========================================================================

    def create_job_hold(
        self,
        job_id: uuid.UUID | str,
        proposal_id: uuid.UUID | str,
        amount: Decimal | str,
        caller: User | None,
    ) -> JobHoldResult:
        """
        Create a PaymentIntent for a job and record a pending Payment.

        The Payment stays PENDING until Stripe confirms the charge by
        webhook. A repeated call for the same job and amount while the
        payment is still pending returns the same intent.

        Raises:
            UnauthenticatedError: No caller
            ValidationError: Amount is not positive
            NotFoundError: Job or proposal missing
            PermissionDeniedError: Caller is not the job's client
            FailedPreconditionError: Job already paid, or pending at another amount
            PaymentInternalError: Stripe rejected the request
        """
        _require_caller(caller)
        logger = self.get_logger()

        amount = Decimal(str(amount))
        if amount <= 0:
            raise ValidationError(
                "Amount must be positive", details={"amount": str(amount)}
            )

        job = Job.objects.filter(pk=job_id).first()
        if job is None:
            raise NotFoundError("Job not found", details={"job_id": str(job_id)})

        proposal = Proposal.objects.filter(pk=proposal_id, job=job).first()
        if proposal is None:
            raise NotFoundError(
                "Proposal not found for this job",
                details={"job_id": str(job_id), "proposal_id": str(proposal_id)},
            )

        if job.client_id != caller.pk:
            raise PermissionDeniedError(
                "Only the job's client can pay for it",
                error_code="NOT_JOB_CLIENT",
            )

        amount_cents = to_cents(amount)

        existing = self._existing_payment(job, proposal, amount_cents)
        if existing is not None:
            return existing

        # Each new Payment for a job gets a fresh key, so a failed earlier
        # attempt does not collapse onto its dead PaymentIntent.
        attempt = Payment.objects.filter(job=job).count() + 1
        idempotency_key = IdempotencyKeyGenerator.generate(
            operation="job_hold",
            entity_id=f"{job.id}:{amount_cents}",
            attempt=attempt,
        )
        metadata = {
            "job_id": str(job.id),
            "proposal_id": str(proposal.id),
            "client_id": str(caller.pk),
            "freelancer_id": str(proposal.freelancer_id),
            "type": "job_payment",
        }

        try:
            intent = self.adapter.create_payment_intent(
                amount_cents=amount_cents,
                metadata=metadata,
                idempotency_key=idempotency_key,
            )
        except StripeError as e:
            logger.error(
                "Failed to create job payment intent",
                extra={"job_id": str(job.id), "error_code": e.error_code},
            )
            raise PaymentInternalError.from_gateway(e) from e

        try:
            with transaction.atomic():
                payment = Payment.objects.create(
                    job=job,
                    proposal=proposal,
                    client=caller,
                    freelancer_id=proposal.freelancer_id,
                    amount=amount,
                    amount_cents=amount_cents,
                    currency=self.adapter.currency,
                    stripe_payment_intent_id=intent.id,
                )
        except IntegrityError:
            # A concurrent request for the same job won the insert
            payment = Payment.objects.filter(stripe_payment_intent_id=intent.id).first()
            if payment is None:
                raise FailedPreconditionError(
                    "Another payment for this job is in progress",
                    error_code="PAYMENT_IN_PROGRESS",
                    details={"job_id": str(job.id)},
                )

        logger.info(
            "Job payment hold created",
            extra={
                "job_id": str(job.id),
                "payment_id": str(payment.id),
                "payment_intent_id": intent.id,
                "amount_cents": amount_cents,
            },
        )
        return JobHoldResult(
            client_secret=intent.client_secret,
            payment_intent_id=intent.id,
            payment_id=payment.id,
        )

    def _existing_payment(
        self, job: Job, proposal: Proposal, amount_cents: int
    ) -> JobHoldResult | None:
        """Reuse a matching pending payment, or refuse if the job is taken."""
        if Payment.objects.filter(job=job, status=PaymentStatus.RELEASED).exists():
            raise FailedPreconditionError(
                "Payment for this job was already released",
                error_code="PAYMENT_ALREADY_RELEASED",
                details={"job_id": str(job.id)},
            )

        active = Payment.objects.filter(
            job=job, status__in=ACTIVE_PAYMENT_STATUSES
        ).first()
        if active is None:
            return None

        if active.status == PaymentStatus.HELD_IN_ESCROW:
            raise FailedPreconditionError(
                "Payment for this job is already held in escrow",
                error_code="PAYMENT_ALREADY_HELD",
                details={"job_id": str(job.id), "payment_id": str(active.id)},
            )

        if active.amount_cents != amount_cents or active.proposal_id != proposal.id:
            raise FailedPreconditionError(
                "A pending payment for this job exists with different terms",
                error_code="PAYMENT_PENDING",
                details={"job_id": str(job.id), "payment_id": str(active.id)},
            )

        try:
            intent = self.adapter.retrieve_payment_intent(active.stripe_payment_intent_id)
        except StripeError as e:
            raise PaymentInternalError.from_gateway(e) from e

        self.get_logger().info(
            "Reusing pending job payment",
            extra={"job_id": str(job.id), "payment_id": str(active.id)},
        )
        return JobHoldResult(
            client_secret=intent.client_secret,
            payment_intent_id=intent.id,
            payment_id=active.id,
        )

    # =========================================================================
    # Release
    # =========================================================================

    def release_to_freelancer(
        self,
        job_id: uuid.UUID | str,
        freelancer_id: uuid.UUID | str,
        caller: User | None,
    ) -> ReleaseResult:
        """
        Transfer a job's escrowed funds, minus the platform fee, to the freelancer.

        Runs under row locks on the job and payment. A job that was already
        released returns the existing transfer instead of paying twice.
        Nothing is written if Stripe rejects the transfer.

        Raises:
            UnauthenticatedError: No caller
            NotFoundError: Job missing
            PermissionDeniedError: Caller is not the job's client or staff
            PaymentNotFoundError: No payment held for the job
            ValidationError: freelancer_id is not the payment's payee
            FailedPreconditionError: Freelancer has no connected account
            PaymentInternalError: Stripe rejected the transfer
        """
        _require_caller(caller)
        logger = self.get_logger()

        with transaction.atomic():
            job = Job.objects.select_for_update().filter(pk=job_id).first()
            if job is None:
                raise NotFoundError("Job not found", details={"job_id": str(job_id)})

            if job.client_id != caller.pk and not caller.is_staff:
                raise PermissionDeniedError(
                    "Only the job's client can release its payment",
                    error_code="NOT_JOB_CLIENT",
                )

            released = Payment.objects.filter(
                job=job, status=PaymentStatus.RELEASED
            ).first()
            if released is not None:
                logger.info(
                    "Payment already released, returning existing transfer",
                    extra={"job_id": str(job.id), "transfer_id": released.transfer_id},
                )
                return ReleaseResult(
                    transfer_id=released.transfer_id,
                    payment_id=released.id,
                    already_released=True,
                )

            payment = (
                Payment.objects.select_for_update()
                .filter(job=job, status=PaymentStatus.HELD_IN_ESCROW)
                .first()
            )
            if payment is None:
                raise PaymentNotFoundError(
                    "No payment held in escrow for this job",
                    details={"job_id": str(job.id)},
                )

            if str(payment.freelancer_id) != str(freelancer_id):
                raise ValidationError(
                    "Freelancer does not match the payment's payee",
                    error_code="FREELANCER_MISMATCH",
                    details={"freelancer_id": str(freelancer_id)},
                )

            account = ConnectedAccount.objects.filter(user_id=payment.freelancer_id).first()
            if account is None:
                raise FailedPreconditionError(
                    "Freelancer has not set up a payout account",
                    error_code="CONNECT_ACCOUNT_REQUIRED",
                    details={"freelancer_id": str(payment.freelancer_id)},
                )
            if not account.payouts_enabled:
                # Stripe enforces transfer eligibility
                logger.warning(
                    "Releasing to connected account without payouts enabled",
                    extra={
                        "payment_id": str(payment.id),
                        "stripe_account_id": account.stripe_account_id,
                    },
                )

            split = split_amount_cents(payment.amount_cents, self.fee_rate)

            try:
                transfer = self.adapter.create_transfer(
                    amount_cents=split.freelancer_amount_cents,
                    destination=account.stripe_account_id,
                    metadata={
                        "job_id": str(job.id),
                        "freelancer_id": str(payment.freelancer_id),
                        "payment_id": str(payment.id),
                    },
                    idempotency_key=IdempotencyKeyGenerator.generate(
                        operation="release_transfer",
                        entity_id=payment.id,
                    ),
                )
            except StripeError as e:
                logger.error(
                    "Escrow release transfer failed",
                    extra={"payment_id": str(payment.id), "error_code": e.error_code},
                )
                raise PaymentInternalError.from_gateway(e) from e

            payment.release(
                transfer_id=transfer.id,
                platform_fee_cents=split.platform_fee_cents,
                freelancer_amount_cents=split.freelancer_amount_cents,
            )
            payment.save()

            User.objects.filter(pk=payment.freelancer_id).update(
                total_earnings_cents=F("total_earnings_cents")
                + split.freelancer_amount_cents,
                completed_jobs=F("completed_jobs") + 1,
            )

            job.mark_paid_out()
            job.save(update_fields=["status", "payment_status", "completed_at", "updated_at"])

        logger.info(
            "Escrow released to freelancer",
            extra={
                "job_id": str(job.id),
                "payment_id": str(payment.id),
                "transfer_id": transfer.id,
                "platform_fee_cents": split.platform_fee_cents,
                "freelancer_amount_cents": split.freelancer_amount_cents,
            },
        )
        return ReleaseResult(transfer_id=transfer.id, payment_id=payment.id)

    # =========================================================================
    # Connected Account Funds
    # =========================================================================

    def create_payout(
        self,
        freelancer: User,
        amount: Decimal | str,
        caller: User | None,
    ) -> PayoutResult:
        """
        Pay out part of a freelancer's connected balance to their bank.

        Raises:
            UnauthenticatedError: No caller
            PermissionDeniedError: Caller is not the freelancer
            ValidationError: Amount is not positive
            FailedPreconditionError: Freelancer has no connected account
            PaymentInternalError: Stripe rejected the payout
        """
        _require_caller(caller)
        if caller.pk != freelancer.pk:
            raise PermissionDeniedError("Payouts can only be requested by the account owner")

        amount_cents = to_cents(amount)
        if amount_cents <= 0:
            raise ValidationError("Amount must be positive", details={"amount": str(amount)})

        account = self._connected_account(freelancer)
        try:
            payout = self.adapter.create_payout(
                account_id=account.stripe_account_id,
                amount_cents=amount_cents,
                metadata={"user_id": str(freelancer.pk)},
            )
        except StripeError as e:
            raise PaymentInternalError.from_gateway(e) from e

        self.get_logger().info(
            "Payout created",
            extra={
                "user_id": str(freelancer.pk),
                "payout_id": payout.id,
                "amount_cents": amount_cents,
            },
        )
        return payout

    def get_balance(self, freelancer: User) -> BalanceResult:
        """Connected balance for a freelancer; zero if they have no account."""
        account = ConnectedAccount.objects.filter(user=freelancer).first()
        if account is None:
            return BalanceResult(available_cents=0, pending_cents=0)
        try:
            return self.adapter.get_balance(account.stripe_account_id)
        except StripeError as e:
            raise PaymentInternalError.from_gateway(e) from e

    @staticmethod
    def _connected_account(user: User) -> ConnectedAccount:
        account = ConnectedAccount.objects.filter(user=user).first()
        if account is None:
            raise FailedPreconditionError(
                "No payout account found. Complete payout onboarding first.",
                error_code="CONNECT_ACCOUNT_REQUIRED",
                details={"user_id": str(user.pk)},
            )
        return account
