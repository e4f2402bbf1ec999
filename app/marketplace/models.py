"""
Job and Proposal models.

Usage:
    from marketplace.models import Job, Proposal

    job = Job.objects.create(client=client, title="Logo design", budget="250.00")
    proposal = Proposal.objects.create(job=job, freelancer=freelancer, amount="200.00")

    # Applied by the payment webhook once the client's money is held
    proposal.accept()
    job.assign(proposal)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import UUIDModel


class JobStatus(models.TextChoices):
    """Work lifecycle of a job."""

    OPEN = "open", "Open"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class JobPaymentStatus(models.TextChoices):
    """Where the client's money for a job currently sits."""

    UNPAID = "unpaid", "Unpaid"
    ESCROW = "escrow", "In Escrow"
    RELEASED = "released", "Released"


class ProposalStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"


class Job(UUIDModel):
    """
    A piece of work posted by a client.

    Fields:
        client: User who posted the job and pays for it
        title / description: What needs doing
        budget: Client's budget in major currency units
        status: Work lifecycle (open -> in_progress -> completed)
        payment_status: unpaid -> escrow -> released
        assigned_freelancer / assigned_proposal: Set when payment is held
        completed_at: When escrow was released for this job
    """

    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="posted_jobs",
        help_text="Client who posted and pays for this job",
    )

    title = models.CharField(
        max_length=200,
        help_text="Short job title",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="Job description",
    )

    budget = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Client budget in major currency units",
    )

    status = models.CharField(
        max_length=20,
        choices=JobStatus.choices,
        default=JobStatus.OPEN,
        db_index=True,
        help_text="Work lifecycle status",
    )

    payment_status = models.CharField(
        max_length=20,
        choices=JobPaymentStatus.choices,
        default=JobPaymentStatus.UNPAID,
        db_index=True,
        help_text="Escrow status of the client's payment",
    )

    assigned_freelancer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="assigned_jobs",
        help_text="Freelancer whose proposal was paid for",
    )

    assigned_proposal = models.ForeignKey(
        "marketplace.Proposal",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Proposal that was accepted when payment was held",
    )

    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When funds for this job were released",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["client", "status"],
                name="job_client_status_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Job({self.title}, {self.status}, {self.payment_status})"

    def assign(self, proposal: Proposal) -> None:
        """
        Start work on the job with the paid-for proposal.

        Note: Does not save - caller must save after calling.
        """
        self.status = JobStatus.IN_PROGRESS
        self.payment_status = JobPaymentStatus.ESCROW
        self.assigned_freelancer_id = proposal.freelancer_id
        self.assigned_proposal = proposal

    def mark_paid_out(self) -> None:
        """
        Record that escrowed funds went to the freelancer.

        Note: Does not save - caller must save after calling.
        """
        self.status = JobStatus.COMPLETED
        self.payment_status = JobPaymentStatus.RELEASED
        self.completed_at = timezone.now()


class Proposal(UUIDModel):
    """
    A freelancer's offer to do a job for an amount.

    Fields:
        job: Job this proposal is for
        freelancer: User offering the work
        amount: Offered price in major currency units
        cover_letter: Free-form pitch
        status: pending -> accepted / rejected
        accepted_at: When the client's payment for it was held
    """

    job = models.ForeignKey(
        Job,
        on_delete=models.CASCADE,
        related_name="proposals",
        help_text="Job this proposal is for",
    )

    freelancer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="proposals",
        help_text="Freelancer offering to do the job",
    )

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Offered price in major currency units",
    )

    cover_letter = models.TextField(
        blank=True,
        default="",
        help_text="Freelancer's pitch",
    )

    status = models.CharField(
        max_length=20,
        choices=ProposalStatus.choices,
        default=ProposalStatus.PENDING,
        db_index=True,
        help_text="Proposal status",
    )

    accepted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the proposal was accepted",
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["job", "freelancer"],
                name="proposal_one_per_freelancer_per_job",
            ),
        ]

    def __str__(self) -> str:
        return f"Proposal({self.freelancer_id} -> {self.job_id}, {self.status})"

    def accept(self) -> None:
        """
        Mark the proposal accepted. Keeps the first acceptance time.

        Note: Does not save - caller must save after calling.
        """
        self.status = ProposalStatus.ACCEPTED
        if self.accepted_at is None:
            self.accepted_at = timezone.now()
