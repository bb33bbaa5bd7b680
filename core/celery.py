"""
Celery configuration for the Farm Worker Housing Management System.

Tasks to run in background:
- Room occupancy reconciliation (on demand)
- Daily occupancy drift report (read-only, logs discrepancies)
"""
import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'core.settings')

app = Celery('core')

# Load config from Django settings with CELERY_ prefix
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks in all installed apps
app.autodiscover_tasks()


# =============================================================================
# CELERY BEAT SCHEDULE - Periodic Tasks
# =============================================================================
app.conf.beat_schedule = {
    # Report stored room counters that disagree with worker assignments (run at 2 AM).
    # Corrections stay manual: see farms.tasks.sync_room_occupancy.
    'report-occupancy-drift': {
        'task': 'farms.tasks.report_occupancy_drift',
        'schedule': crontab(hour=2, minute=0),
    },
}

app.conf.update(
    result_expires=3600,  # 1 hour

    # Task time limits
    task_time_limit=300,  # 5 minutes hard limit
    task_soft_time_limit=240,  # 4 minutes soft limit

    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    task_serializer='json',
    result_serializer='json',
    accept_content=['json'],

    timezone=os.getenv('TIME_ZONE', 'Africa/Casablanca'),
    enable_utc=True,
)
