"""
Notification models.

- NotificationCategory: Coarse grouping used for filtering and display
- Notification: Individual notification sent to a user

Notes:
    - Rows keep integer keys; nothing outside this app references them
    - Title and body are stored rendered so later copy changes do not
      rewrite history
    - idempotency_key is unique when set, so event-driven producers
      (payment webhooks, scheduled jobs) can retry without duplicates

Usage:
    from notifications.models import Notification, NotificationCategory

    Notification.objects.create(
        recipient=freelancer,
        category=NotificationCategory.PROPOSAL,
        title="Proposal Accepted!",
        body="Your proposal has been accepted.",
        data={"job_id": str(job.id)},
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class NotificationCategory(models.TextChoices):
    """Categories for grouping notifications."""

    PROPOSAL = "proposal", "Proposal"
    PAYMENT = "payment", "Payment"
    SYSTEM = "system", "System"


class Notification(BaseModel):
    """An in-app message addressed to one user."""

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        db_index=True,
        help_text="User the notification is addressed to",
    )

    category = models.CharField(
        max_length=20,
        choices=NotificationCategory.choices,
        default=NotificationCategory.SYSTEM,
        help_text="Grouping used by the client to filter and pick an icon",
    )

    title = models.CharField(
        max_length=500,
        help_text="Title as shown to the recipient",
    )

    body = models.TextField(
        blank=True,
        default="",
        help_text="Body text as shown to the recipient",
    )

    data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Ids of the related job, proposal or payment",
    )

    action_url = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="In-app path opened when the notification is tapped",
    )

    is_read = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Set once the recipient has opened the notification",
    )

    idempotency_key = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Producer-chosen key; a second create with the same key is a no-op",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["recipient", "is_read", "-created_at"],
                name="notif_recipient_unread_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["idempotency_key"],
                name="notif_idempotency_key_unique",
                condition=models.Q(idempotency_key__isnull=False),
            ),
        ]

    def __str__(self) -> str:
        return f"{self.category}: {self.title}"
