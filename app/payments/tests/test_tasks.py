"""
Tests for payment Celery tasks.

Tasks are called directly; CELERY_TASK_ALWAYS_EAGER makes .delay()
synchronous as well.
"""

from datetime import timedelta
from importlib import import_module

from django.apps import apps as django_apps
from django.utils import timezone
from django_celery_beat.models import PeriodicTask

from payments.models import WebhookEvent
from payments.state_machines import SubscriptionStatus, WebhookEventStatus
from payments.tasks import cleanup_old_webhooks, expire_lapsed_subscriptions
from payments.tests.factories import SubscriptionFactory, WebhookEventFactory

create_periodic_tasks = import_module(
    "payments.migrations.0002_add_subscription_schedules"
).create_periodic_tasks


class TestExpireLapsedSubscriptions:
    """Tests for expire_lapsed_subscriptions."""

    def test_expires_and_reports_count(self, db):
        lapsed = SubscriptionFactory(end_date=timezone.now() - timedelta(days=2))
        SubscriptionFactory()

        result = expire_lapsed_subscriptions()

        assert result == {"expired_count": 1}
        lapsed.refresh_from_db()
        assert lapsed.status == SubscriptionStatus.EXPIRED

    def test_nothing_to_do(self, db):
        assert expire_lapsed_subscriptions.delay().get() == {"expired_count": 0}


class TestCleanupOldWebhooks:
    """Tests for cleanup_old_webhooks."""

    def test_deletes_old_processed_events_only(self, db):
        old_processed = WebhookEventFactory(
            status=WebhookEventStatus.PROCESSED,
            processed_at=timezone.now() - timedelta(days=120),
        )
        recent_processed = WebhookEventFactory(
            status=WebhookEventStatus.PROCESSED,
            processed_at=timezone.now() - timedelta(days=5),
        )
        old_failed = WebhookEventFactory(status=WebhookEventStatus.FAILED)

        result = cleanup_old_webhooks()

        assert result == {"deleted_count": 1}
        assert not WebhookEvent.objects.filter(pk=old_processed.pk).exists()
        assert WebhookEvent.objects.filter(pk=recent_processed.pk).exists()
        assert WebhookEvent.objects.filter(pk=old_failed.pk).exists()

    def test_custom_retention(self, db):
        WebhookEventFactory(
            status=WebhookEventStatus.PROCESSED,
            processed_at=timezone.now() - timedelta(days=10),
        )

        assert cleanup_old_webhooks(days=30) == {"deleted_count": 0}
        assert cleanup_old_webhooks(days=7) == {"deleted_count": 1}


class TestBeatSchedules:
    """Tests for the data migration that schedules the tasks."""

    def test_creates_schedules_once(self, db):
        create_periodic_tasks(django_apps, None)
        create_periodic_tasks(django_apps, None)

        expire = PeriodicTask.objects.get(task="payments.tasks.expire_lapsed_subscriptions")
        assert expire.crontab.hour == "0"
        assert expire.crontab.minute == "0"
        assert expire.enabled is True
        assert PeriodicTask.objects.filter(task="payments.tasks.cleanup_old_webhooks").count() == 1
