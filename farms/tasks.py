"""
Farms Celery tasks for the Farm Worker Housing Management System.

Background tasks for room occupancy bookkeeping.
"""
from celery import shared_task
from django.db import DatabaseError
from django.utils import timezone
import logging

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def sync_room_occupancy(self, farm_id: str = None):
    """
    Recompute room occupancy counters from worker assignments.

    Queued by POST /api/rooms/sync-occupancy/?background=true.

    Usage:
        from farms.tasks import sync_room_occupancy
        sync_room_occupancy.delay(farm_id=str(farm.id))
    """
    from farms.services import RoomOccupancySyncService

    logger.info(f"Starting room occupancy sync (farm={farm_id or 'all'})...")

    try:
        return RoomOccupancySyncService(farm_id).sync()
    except DatabaseError as e:
        logger.warning(f"Room occupancy sync failed, retrying: {e}")
        raise self.retry(exc=e)


@shared_task
def report_occupancy_drift():
    """
    Log rooms whose stored counters disagree with worker assignments.

    Scheduled via Celery Beat to run daily at 2 AM. Read-only: corrections
    are only made by sync_room_occupancy when somebody asks for it.
    """
    from farms.models import Room, Worker
    from farms.services import get_occupancy_summary

    summary = get_occupancy_summary(
        Worker.objects.only('id', 'farm_id', 'room_number', 'sex', 'status'),
        Room.objects.all(),
    )

    if summary['rooms_out_of_sync'] or summary['orphaned_assignments']:
        logger.warning(
            f"Occupancy drift: {summary['rooms_out_of_sync']} of {summary['total_rooms']} rooms out of sync, "
            f"{len(summary['orphaned_assignments'])} assignments to unknown rooms"
        )
    else:
        logger.info(f"Occupancy drift check: all {summary['total_rooms']} rooms in sync")

    return {
        'timestamp': timezone.now().isoformat(),
        'rooms_out_of_sync': summary['rooms_out_of_sync'],
        'orphaned_assignments': len(summary['orphaned_assignments']),
        'over_capacity_rooms': len(summary['over_capacity_rooms']),
    }
