"""
Celery tasks for chat app.

This module defines background tasks for:
- Presence maintenance (sweeping users stuck online)

Related files:
    - services.py: PresenceService
    - migrations/0002_add_celery_beat_schedules.py: Beat schedule

Usage:
    from chat.tasks import sweep_stale_presence

    sweep_stale_presence.delay()
"""

import logging

from celery import shared_task

from chat.services import PresenceService

logger = logging.getLogger(__name__)


@shared_task
def sweep_stale_presence(stale_after_seconds: int | None = None) -> int:
    """
    Mark users offline whose connections vanished without a disconnect.

    Args:
        stale_after_seconds: Override for settings.PRESENCE_STALE_AFTER_SECONDS

    Returns:
        Number of users marked offline
    """
    result = PresenceService.sweep_stale(stale_after_seconds)
    logger.info(f"Presence sweep marked {result.data} users offline")
    return result.data
