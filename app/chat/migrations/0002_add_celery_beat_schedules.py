"""
Add Celery Beat schedule for chat presence maintenance.

This migration creates a periodic task that clears the online flag of users
whose WebSocket connections went away without a clean disconnect (worker
restarts, dropped networks).
"""

from django.db import migrations

PRESENCE_SWEEP_TASK_NAME = "Chat: Sweep Stale Presence"


def create_periodic_tasks(apps, schema_editor):
    """Create periodic tasks for chat maintenance."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule_1min, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=PRESENCE_SWEEP_TASK_NAME,
        defaults={
            "task": "chat.tasks.sweep_stale_presence",
            "interval": schedule_1min,
            "enabled": True,
            "description": (
                "Marks users offline when they are still flagged online but "
                "have not been seen within PRESENCE_STALE_AFTER_SECONDS."
            ),
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    """Remove chat periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    PeriodicTask.objects.filter(name=PRESENCE_SWEEP_TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("chat", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
