"""Celery tasks for notification housekeeping.

Tasks:
- reminder_sweep_task: purge old notifications and send reminders

Example Celery Beat schedule configuration:
    from celery.schedules import crontab

    celery_app.conf.beat_schedule = {
        'notification-reminder-sweep': {
            'task': 'notifications.reminder_sweep',
            'schedule': crontab(hour=6, minute=0),
        },
    }
"""

import logging
from dataclasses import asdict
from typing import Any, Dict

from celery import shared_task

from ..database import SessionLocal
from .dispatcher import get_email_sender
from .reminders import run_notification_sweep

logger = logging.getLogger(__name__)


@shared_task(name="notifications.reminder_sweep", bind=True)
def reminder_sweep_task(self) -> Dict[str, Any]:
    """Run the notification sweep once.

    Returns:
        Dict with status and the counts from SweepResult
    """
    logger.info("Notification sweep task started")

    db = SessionLocal()
    try:
        result = run_notification_sweep(db, get_email_sender())
        return {'status': 'completed', **asdict(result)}

    except Exception as e:
        db.rollback()
        logger.error(
            "Notification sweep task failed",
            exc_info=True,
        )
        return {
            'status': 'failed',
            'error': str(e),
        }

    finally:
        db.close()
