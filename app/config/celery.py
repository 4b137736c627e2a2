"""
Celery configuration for the Django application.

Celery runs the queue-layer work the request path deliberately avoids:
- Re-dispatching webhook events whose processing failed
- Pruning old webhook ledger rows

This configuration uses Redis as both the message broker and result backend.
Tasks are auto-discovered from all installed Django apps, and periodic tasks
come from CELERY_BEAT_SCHEDULE in settings.

Usage:
    from payments.tasks import retry_failed_webhook_events

    retry_failed_webhook_events.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
