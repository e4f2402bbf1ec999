"""
Add celery-beat schedules for subscription expiry and webhook cleanup.

This migration creates the periodic task schedules for:
- expire_lapsed_subscriptions: daily at 00:00 UTC, drops lapsed
  subscribers to the free tier
- cleanup_old_webhooks: weekly, deletes processed webhook events
  older than the retention window
"""

from django.db import migrations

EXPIRE_TASK_NAME = "Expire Lapsed Subscriptions"
CLEANUP_TASK_NAME = "Clean Up Processed Webhook Events"


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for payments housekeeping."""
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # Daily at midnight UTC
    daily, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="0",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
        timezone="UTC",
    )

    # Sundays at 03:00 UTC
    weekly, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="3",
        day_of_week="0",
        day_of_month="*",
        month_of_year="*",
        timezone="UTC",
    )

    PeriodicTask.objects.get_or_create(
        name=EXPIRE_TASK_NAME,
        defaults={
            "task": "payments.tasks.expire_lapsed_subscriptions",
            "crontab": daily,
            "enabled": True,
            "description": (
                "Expires active subscriptions whose paid period has ended "
                "and notifies the subscriber."
            ),
        },
    )

    PeriodicTask.objects.get_or_create(
        name=CLEANUP_TASK_NAME,
        defaults={
            "task": "payments.tasks.cleanup_old_webhooks",
            "crontab": weekly,
            "enabled": True,
            "description": "Deletes processed webhook events older than 90 days.",
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[EXPIRE_TASK_NAME, CLEANUP_TASK_NAME],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
