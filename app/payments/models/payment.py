"""
Payment model for escrowed job payments.

A Payment is one job's money on its way from the client to the
freelancer. It is created (pending) when the client starts paying, moves
to held_in_escrow only when Stripe confirms the charge via webhook, and to
released only when the client releases funds to the freelancer's
connected account.

Usage:
    from payments.models import Payment
    from payments.state_machines import PaymentStatus

    payment = Payment.objects.create(
        job=job,
        proposal=proposal,
        client=job.client,
        freelancer=proposal.freelancer,
        amount=Decimal("100.00"),
        amount_cents=10000,
        stripe_payment_intent_id="pi_xxx",
    )

    # State transitions using django-fsm
    payment.mark_held()  # pending -> held_in_escrow
    payment.save()
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from core.models import UUIDModel

from payments.state_machines import ACTIVE_PAYMENT_STATUSES, PaymentStatus


class Payment(ConcurrentTransitionMixin, UUIDModel):
    """
    Escrowed payment for a single job.

    Uses django-fsm for the status machine. ConcurrentTransitionMixin
    turns every status write into "UPDATE ... WHERE status = <status when
    loaded>", so two processes racing on the same row cannot both apply a
    transition; the loser gets django_fsm.ConcurrentTransition.

    State Flow:
        PENDING -> HELD_IN_ESCROW -> RELEASED
        HELD_IN_ESCROW -> REFUNDED
        PENDING -> FAILED

    Fields:
        job / proposal: What is being paid for
        client / freelancer: Payer and payee
        amount: Amount in major currency units, as entered by the client
        amount_cents: The same amount in minor units, computed once
        currency: ISO 4217 currency code
        status: Current FSM state (protected, transitions only)
        stripe_payment_intent_id: Stripe PaymentIntent ID
        platform_fee_cents / freelancer_amount_cents: Fee split, set on release
        transfer_id: Stripe Transfer ID, set on release
        paid_at / released_at / failed_at: Transition timestamps
        failure_reason: Why the payment failed

    Constraints:
        - At most one pending/held payment per job
        - On release, platform fee + freelancer amount == amount_cents
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    job = models.ForeignKey(
        "marketplace.Job",
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Job this payment is for",
    )

    proposal = models.ForeignKey(
        "marketplace.Proposal",
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Proposal being paid for",
    )

    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments_made",
        help_text="Client paying into escrow",
    )

    freelancer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments_received",
        help_text="Freelancer the funds will be released to",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Payment amount in major currency units",
    )

    amount_cents = models.PositiveBigIntegerField(
        help_text="Payment amount in smallest currency unit (e.g., cents)",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the payment (managed by FSM)",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )

    transfer_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Transfer ID (tr_xxx), set when funds are released",
    )

    # ==========================================================================
    # Fee Split
    # ==========================================================================

    platform_fee_cents = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Platform fee kept on release, in cents",
    )

    freelancer_amount_cents = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Amount transferred to the freelancer on release, in cents",
    )

    # ==========================================================================
    # State Timestamps
    # ==========================================================================

    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When Stripe confirmed the charge and funds entered escrow",
    )

    released_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When funds were released to the freelancer",
    )

    failed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payment failed",
    )

    failure_reason = models.TextField(
        null=True,
        blank=True,
        help_text="Detailed reason if payment failed",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(
                fields=["job", "status"],
                name="payment_job_status_idx",
            ),
            models.Index(
                fields=["freelancer", "status"],
                name="payment_freelancer_status_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount_cents__gt=0),
                name="payment_amount_positive",
            ),
            models.UniqueConstraint(
                fields=["job"],
                condition=Q(status__in=ACTIVE_PAYMENT_STATUSES),
                name="payment_one_active_per_job",
            ),
            models.CheckConstraint(
                condition=(
                    ~Q(status=PaymentStatus.RELEASED)
                    | Q(
                        amount_cents=F("platform_fee_cents")
                        + F("freelancer_amount_cents")
                    )
                ),
                name="payment_release_split_sums_to_amount",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation with ID, status, and amount."""
        return f"Payment({self.id}, {self.status}, {self.amount_display})"

    @property
    def amount_display(self) -> str:
        return f"{self.amount_cents / 100:.2f} {self.currency.upper()}"

    @property
    def is_active(self) -> bool:
        """Pending or held payments still block a new payment for the job."""
        return self.status in ACTIVE_PAYMENT_STATUSES

    @property
    def platform_fee(self) -> Decimal | None:
        if self.platform_fee_cents is None:
            return None
        return Decimal(self.platform_fee_cents) / 100

    @property
    def freelancer_amount(self) -> Decimal | None:
        if self.freelancer_amount_cents is None:
            return None
        return Decimal(self.freelancer_amount_cents) / 100

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.HELD_IN_ESCROW,
    )
    def mark_held(self):
        """
        Record that Stripe captured the client's money into escrow.

        Transition: PENDING -> HELD_IN_ESCROW

        Only the payment_intent.succeeded webhook calls this.
        """
        self.paid_at = timezone.now()

    @transition(
        field=status,
        source=PaymentStatus.HELD_IN_ESCROW,
        target=PaymentStatus.RELEASED,
    )
    def release(
        self,
        transfer_id: str,
        platform_fee_cents: int,
        freelancer_amount_cents: int,
    ):
        """
        Record the transfer of escrowed funds to the freelancer.

        Transition: HELD_IN_ESCROW -> RELEASED

        Args:
            transfer_id: Stripe Transfer ID returned by the gateway
            platform_fee_cents: Fee kept by the platform
            freelancer_amount_cents: Amount transferred

        Raises:
            ValueError: If the split does not add up to amount_cents
        """
        if platform_fee_cents + freelancer_amount_cents != self.amount_cents:
            raise ValueError(
                f"Fee split {platform_fee_cents} + {freelancer_amount_cents} "
                f"does not equal amount {self.amount_cents}"
            )
        self.transfer_id = transfer_id
        self.platform_fee_cents = platform_fee_cents
        self.freelancer_amount_cents = freelancer_amount_cents
        self.released_at = timezone.now()

    @transition(
        field=status,
        source=PaymentStatus.HELD_IN_ESCROW,
        target=PaymentStatus.REFUNDED,
    )
    def refund(self):
        """
        Mark escrowed funds as returned to the client.

        Transition: HELD_IN_ESCROW -> REFUNDED
        """
        pass

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.FAILED,
    )
    def fail(self, reason: str | None = None):
        """
        Mark a pending payment as failed.

        Transition: PENDING -> FAILED
        """
        self.failed_at = timezone.now()
        self.failure_reason = reason
