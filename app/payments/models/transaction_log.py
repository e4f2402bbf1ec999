"""
TransactionLogEntry model: append-only audit of completed money movements.

Entries are immutable once created. Webhook handlers write them with an
idempotency key derived from the Stripe object (checkout session or
invoice id), so redelivered events never add a second row.

Usage:
    from payments.models import TransactionLogEntry
    from payments.state_machines import TransactionType

    entry, created = TransactionLogEntry.record(
        idempotency_key="checkout:cs_123",
        user=user,
        transaction_type=TransactionType.SUBSCRIPTION,
        amount_cents=999,
        currency="usd",
        stripe_session_id="cs_123",
        description="Pro subscription (monthly)",
    )
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.db import IntegrityError, models, transaction

from payments.exceptions import TransactionLogImmutableError
from payments.state_machines import TransactionType


class TransactionLogEntry(models.Model):
    """
    One completed money movement.

    Fields:
        created_at: When the entry was recorded
        user: User the money came from (null if the user is unknown)
        transaction_type: subscription or renewal
        amount_cents: Amount paid in cents
        currency: ISO 4217 currency code
        status: Always "completed"; failed payments are not logged
        stripe_session_id / stripe_invoice_id: Source Stripe object
        description: Human-readable description
        idempotency_key: Unique key to prevent duplicate entries

    Constraints:
        - idempotency_key must be unique
        - Rows cannot be updated or deleted through the ORM
    """

    STATUS_COMPLETED = "completed"

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this entry was recorded",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
        help_text="User who paid",
    )

    transaction_type = models.CharField(
        max_length=20,
        choices=TransactionType.choices,
        help_text="Category of this entry",
    )

    amount_cents = models.PositiveBigIntegerField(
        help_text="Amount in cents",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code",
    )

    status = models.CharField(
        max_length=20,
        default=STATUS_COMPLETED,
        help_text="Outcome of the money movement",
    )

    stripe_session_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe Checkout Session ID (cs_xxx)",
    )

    stripe_invoice_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe Invoice ID (in_xxx)",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="Human-readable description of this entry",
    )

    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Unique key to prevent duplicate entries",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Transaction Log Entry"
        verbose_name_plural = "Transaction Log"
        indexes = [
            models.Index(
                fields=["user", "created_at"],
                name="txlog_user_created_idx",
            ),
            models.Index(
                fields=["transaction_type"],
                name="txlog_type_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_transaction_type_display()}: {self.amount_cents} cents"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise TransactionLogImmutableError(
                message="Transaction log entries cannot be modified",
                details={"entry_id": str(self.pk)},
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise TransactionLogImmutableError(
            message="Transaction log entries cannot be deleted",
            details={"entry_id": str(self.pk)},
        )

    @classmethod
    def record(cls, idempotency_key: str, **fields) -> tuple[TransactionLogEntry, bool]:
        """
        Append an entry unless one with this key already exists.

        Returns:
            Tuple of (entry, created)
        """
        existing = cls.objects.filter(idempotency_key=idempotency_key).first()
        if existing is not None:
            return existing, False
        try:
            with transaction.atomic():
                entry = cls(idempotency_key=idempotency_key, **fields)
                entry.save()
        except IntegrityError:
            # Concurrent insert with the same key
            return cls.objects.get(idempotency_key=idempotency_key), False
        return entry, True
