"""
Abstract base models shared by the domain apps.

Base Classes:
    BaseModel: created_at / updated_at timestamps, newest first
    UUIDModel: BaseModel with a random UUID primary key

Payment, account and job ids are sent to Stripe as metadata and feed
idempotency keys, so domain rows use UUIDModel; ids are known before
insert and cannot be enumerated.

Usage:
    from core.models import UUIDModel

    class Job(UUIDModel):
        title = models.CharField(max_length=200)
"""

from __future__ import annotations

import uuid

from django.db import models


class BaseModel(models.Model):
    """
    Abstract model with creation and modification timestamps.

    Fields:
        created_at: Set on insert (indexed, used for default ordering)
        updated_at: Refreshed on every save; include it in update_fields
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]


class UUIDModel(BaseModel):
    """Timestamped model keyed by a UUID4 generated in Python."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta(BaseModel.Meta):
        abstract = True
