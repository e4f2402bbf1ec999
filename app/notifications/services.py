"""
Notification service layer.

Services:
    NotificationService: Idempotent creation of in-app notifications

Design Principles:
    - Expected outcomes (duplicates) return ServiceResult, not exceptions
    - Producers that may run more than once pass an idempotency_key

Usage:
    from notifications.services import NotificationService

    result = NotificationService.create_notification(
        recipient=freelancer,
        category=NotificationCategory.PROPOSAL,
        title="Proposal Accepted!",
        body="Your proposal has been accepted and the client has made the payment.",
        data={"job_id": str(job.id)},
        idempotency_key=f"proposal_accepted:{payment.id}",
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import transaction

from core.services import BaseService, ServiceResult

from notifications.models import Notification, NotificationCategory

if TYPE_CHECKING:
    from authentication.models import User


class NotificationService(BaseService):
    """
    Service for notification operations.

    Methods:
        create_notification: Create a notification (idempotent when keyed)
    """

    @classmethod
    def create_notification(
        cls,
        recipient: User,
        title: str,
        body: str = "",
        category: str = NotificationCategory.SYSTEM,
        data: dict | None = None,
        action_url: str = "",
        idempotency_key: str | None = None,
    ) -> ServiceResult[Notification]:
        """
        Create a new notification for a user.

        When idempotency_key is given and a notification with that key
        exists, nothing is created and the result carries the existing
        record with error_code DUPLICATE.

        Returns:
            ServiceResult with the created Notification

        Error codes:
            DUPLICATE: Notification with this idempotency_key already exists
        """
        logger = cls.get_logger()

        if idempotency_key:
            with transaction.atomic():
                notification, created = Notification.objects.get_or_create(
                    idempotency_key=idempotency_key,
                    defaults={
                        "recipient": recipient,
                        "category": category,
                        "title": title,
                        "body": body,
                        "data": data or {},
                        "action_url": action_url,
                    },
                )
            if not created:
                logger.info(
                    "Duplicate notification prevented",
                    extra={"idempotency_key": idempotency_key},
                )
                return ServiceResult(
                    success=False,
                    data=notification,
                    error="Notification already exists",
                    error_code="DUPLICATE",
                )
        else:
            notification = Notification.objects.create(
                recipient=recipient,
                category=category,
                title=title,
                body=body,
                data=data or {},
                action_url=action_url,
            )

        logger.info(
            "Notification created",
            extra={
                "notification_id": notification.id,
                "recipient_id": recipient.pk,
                "category": category,
            },
        )
        return ServiceResult.success(notification)

