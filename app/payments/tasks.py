"""
Celery tasks for payment housekeeping.

This module provides periodic tasks for:
- Expiring subscriptions whose paid period ended
- Cleaning up old processed webhook events

Both are scheduled by django-celery-beat (see migration 0002).

Usage:
    from payments.tasks import expire_lapsed_subscriptions

    expire_lapsed_subscriptions.delay()
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.utils import timezone

from payments.models import WebhookEvent
from payments.services import SubscriptionManager
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

PROCESSED_WEBHOOK_RETENTION_DAYS = 90


# =============================================================================
# Subscription Tasks
# =============================================================================


@shared_task
def expire_lapsed_subscriptions() -> dict:
    """
    Periodic task to expire subscriptions past their end date.

    Catches subscriptions whose customer.subscription.deleted webhook
    never arrived.

    Returns:
        Dict with count of subscriptions expired
    """
    expired_count = SubscriptionManager().expire_lapsed()

    if expired_count > 0:
        logger.info(
            f"Expired {expired_count} lapsed subscriptions",
            extra={"expired_count": expired_count},
        )

    return {"expired_count": expired_count}


# =============================================================================
# Webhook Tasks
# =============================================================================


@shared_task
def cleanup_old_webhooks(days: int = PROCESSED_WEBHOOK_RETENTION_DAYS) -> dict:
    """
    Periodic task to clean up old processed webhook events.

    Failed events are kept for debugging.

    Args:
        days: Delete processed webhooks older than this many days

    Returns:
        Dict with count of webhooks deleted
    """
    cutoff = timezone.now() - timedelta(days=days)

    deleted_count, _ = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSED,
        processed_at__lt=cutoff,
    ).delete()

    if deleted_count > 0:
        logger.info(
            f"Deleted {deleted_count} old webhook events",
            extra={
                "deleted_count": deleted_count,
                "cutoff_date": cutoff.isoformat(),
            },
        )

    return {"deleted_count": deleted_count}
