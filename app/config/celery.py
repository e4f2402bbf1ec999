"""
Celery configuration for the marketplace payments project.

Celery runs the periodic housekeeping for payments:
- payments.tasks.expire_lapsed_subscriptions (daily)
- payments.tasks.cleanup_old_webhooks (weekly)

Schedules live in the database (django-celery-beat DatabaseScheduler) and
are created by payments migration 0002. Redis is both broker and result
backend; tests run tasks eagerly (CELERY_TASK_ALWAYS_EAGER).

Usage:
    celery -A config worker -l info
    celery -A config beat -l info
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
