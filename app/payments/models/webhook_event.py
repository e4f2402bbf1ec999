"""
Stripe webhook deliveries, one row per Stripe event id.

Stripe delivers at least once and may redeliver an event that was already
applied. The unique stripe_event_id lets the intake view tell a redelivery
of an applied event (acknowledge, do nothing) from a retry of a failed one
(apply again).

Usage:
    event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event["id"],
        defaults={"event_type": stripe_event["type"], "payload": stripe_event},
    )
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import UUIDModel

from payments.state_machines import WebhookEventStatus


class WebhookEvent(UUIDModel):
    """
    Lifecycle:
        PENDING -> PROCESSING -> PROCESSED
                             \\-> FAILED -> PROCESSING (on redelivery)

    The mark_* helpers only mutate the instance; the intake view saves
    them with explicit update_fields.
    """

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe event id (evt_...), one row per event",
    )
    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type, e.g. payment_intent.succeeded",
    )
    payload = models.JSONField(
        help_text="Verified event body as delivered",
    )

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
        help_text="Where the event is in its handling lifecycle",
    )
    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set when a handler applied the event",
    )
    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Error message from the last failed attempt",
    )
    attempt_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="How many times a handler has been run for this event",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(
                fields=["status", "created_at"],
                name="webhook_status_created_idx",
            ),
            models.Index(
                fields=["event_type", "created_at"],
                name="webhook_type_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.event_type} {self.stripe_event_id} [{self.status}]"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def is_failed(self) -> bool:
        return self.status == WebhookEventStatus.FAILED

    def mark_processing(self) -> None:
        self.attempt_count += 1
        self.status = WebhookEventStatus.PROCESSING

    def mark_processed(self) -> None:
        self.status, self.processed_at = WebhookEventStatus.PROCESSED, timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status, self.error_message = WebhookEventStatus.FAILED, error_message

    def get_object(self) -> dict:
        """The event's data.object, or {} when the payload has none."""
        data = self.payload.get("data") if isinstance(self.payload, dict) else None
        obj = data.get("object") if isinstance(data, dict) else None
        return obj if isinstance(obj, dict) else {}

    def get_object_id(self) -> str | None:
        return self.get_object().get("id")
