"""
Celery configuration for the marketplace chat backend.

Celery runs the periodic housekeeping jobs of the chat system, such as
sweeping users whose WebSocket presence lapsed without a clean disconnect.
Schedules are stored in the database by django-celery-beat.

This configuration uses Redis as both the message broker and result backend.
Tasks are auto-discovered from all installed Django apps.

Usage:
    from celery import shared_task

    @shared_task
    def sweep_stale_presence():
        ...

    sweep_stale_presence.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings should be prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
