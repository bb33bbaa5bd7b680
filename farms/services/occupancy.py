"""
Room Occupancy Service

Keeps the denormalized Room counters (current_occupancy, occupant_ids)
in line with the worker records:
- get_occupancy_summary: read-only drift report, no writes
- RoomOccupancySyncService.sync: idempotent batch recompute of the counters

A worker occupies a place in a room when it is active and its
(farm, room_number, sex) matches the room's (farm, number, gender_restriction).
"""

import logging
from collections import defaultdict
from typing import Dict, Any, Iterable, List, Optional, Tuple

from django.db import transaction
from django.utils import timezone

from farms.models import Room, Worker, WorkerStatus

logger = logging.getLogger(__name__)

OccupancyKey = Tuple[str, str, str]


def occupancy_key(farm_id, room_number, sex) -> OccupancyKey:
    """Key identifying one gendered room of one farm."""
    return (str(farm_id), str(room_number).strip(), sex)


def room_key(room) -> OccupancyKey:
    return occupancy_key(room.farm_id, room.number, room.gender_restriction)


def expected_occupants(workers: Iterable) -> Dict[OccupancyKey, List[str]]:
    """
    Group active, housed workers by the room they should occupy.

    Returns:
        {occupancy key: sorted list of worker ids}
    """
    occupants = defaultdict(list)
    for worker in workers:
        if worker.status != WorkerStatus.ACTIVE or not worker.room_number:
            continue
        occupants[occupancy_key(worker.farm_id, worker.room_number, worker.sex)].append(str(worker.id))
    return {key: sorted(ids) for key, ids in occupants.items()}


def get_occupancy_summary(workers: Iterable, rooms: Iterable) -> Dict[str, Any]:
    """
    Compare stored room counters against worker assignments.

    Args:
        workers: Worker instances (any status)
        rooms: Room instances

    Returns:
        Dict with per-room discrepancies, assignments pointing at rooms that
        do not exist, and over-capacity rooms
    """
    expected = expected_occupants(workers)
    rooms = list(rooms)

    known_keys = set()
    discrepancies = []
    over_capacity = []
    stored_total = 0

    for room in rooms:
        key = room_key(room)
        known_keys.add(key)
        actual = len(expected.get(key, []))
        stored_total += room.current_occupancy

        if room.current_occupancy != actual:
            discrepancies.append({
                'room_id': str(room.id),
                'farm_id': str(room.farm_id),
                'number': room.number,
                'gender_restriction': room.gender_restriction,
                'stored_occupancy': room.current_occupancy,
                'actual_occupancy': actual,
                'difference': actual - room.current_occupancy,
            })
        if actual > room.total_capacity:
            over_capacity.append({
                'room_id': str(room.id),
                'farm_id': str(room.farm_id),
                'number': room.number,
                'total_capacity': room.total_capacity,
                'actual_occupancy': actual,
            })

    orphaned = [
        {
            'farm_id': farm_id,
            'room_number': number,
            'sex': sex,
            'worker_ids': ids,
        }
        for (farm_id, number, sex), ids in expected.items()
        if (farm_id, number, sex) not in known_keys
    ]

    return {
        'total_rooms': len(rooms),
        'rooms_in_sync': len(rooms) - len(discrepancies),
        'rooms_out_of_sync': len(discrepancies),
        'stored_occupied_places': stored_total,
        'derived_occupied_places': sum(len(ids) for key, ids in expected.items() if key in known_keys),
        'discrepancies': discrepancies,
        'orphaned_assignments': orphaned,
        'over_capacity_rooms': over_capacity,
    }


class RoomOccupancySyncService:
    """
    Recompute Room.current_occupancy and Room.occupant_ids from workers.

    Usage:
        from farms.services import RoomOccupancySyncService

        result = RoomOccupancySyncService().sync()              # every farm
        result = RoomOccupancySyncService(farm_id).sync()       # one farm
        result = RoomOccupancySyncService(farm_id).sync(['12']) # some rooms

    Running sync twice in a row leaves the second run with nothing to update.
    """

    def __init__(self, farm_id=None):
        self.farm_id = farm_id

    def _rooms(self, room_numbers: Optional[Iterable[str]]):
        queryset = Room.objects.select_for_update()
        if self.farm_id:
            queryset = queryset.filter(farm_id=self.farm_id)
        if room_numbers is not None:
            queryset = queryset.filter(number__in=[str(n).strip() for n in room_numbers if n])
        return queryset.order_by('farm_id', 'number', 'gender_restriction')

    def _housed_workers(self, room_numbers: Optional[Iterable[str]]):
        queryset = Worker.objects.filter(status=WorkerStatus.ACTIVE).exclude(room_number='')
        if self.farm_id:
            queryset = queryset.filter(farm_id=self.farm_id)
        if room_numbers is not None:
            queryset = queryset.filter(room_number__in=[str(n).strip() for n in room_numbers if n])
        return queryset.only('id', 'farm_id', 'room_number', 'sex', 'status')

    @transaction.atomic
    def sync(self, room_numbers: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """
        Rewrite the counters of every room in scope.

        Args:
            room_numbers: Restrict the recompute to these room numbers

        Returns:
            Dict with rooms checked, rooms updated and the per-room changes
        """
        if room_numbers is not None:
            room_numbers = list(room_numbers)

        rooms = list(self._rooms(room_numbers))
        expected = expected_occupants(self._housed_workers(room_numbers))
        now = timezone.now()

        changes = []
        to_update = []
        for room in rooms:
            occupant_ids = expected.get(room_key(room), [])
            if room.current_occupancy == len(occupant_ids) and list(room.occupant_ids or []) == occupant_ids:
                continue

            changes.append({
                'room_id': str(room.id),
                'farm_id': str(room.farm_id),
                'number': room.number,
                'gender_restriction': room.gender_restriction,
                'previous_occupancy': room.current_occupancy,
                'current_occupancy': len(occupant_ids),
            })
            room.current_occupancy = len(occupant_ids)
            room.occupant_ids = occupant_ids
            room.updated_at = now
            to_update.append(room)

        if to_update:
            Room.objects.bulk_update(to_update, ['current_occupancy', 'occupant_ids', 'updated_at'])

        scope = self.farm_id or 'all'
        if changes:
            logger.info(f"Occupancy sync for farm {scope}: updated {len(changes)} of {len(rooms)} rooms")
        else:
            logger.debug(f"Occupancy sync for farm {scope}: {len(rooms)} rooms already in sync")

        return {
            'status': 'success',
            'farm': str(scope),
            'rooms_checked': len(rooms),
            'rooms_updated': len(changes),
            'changes': changes,
            'synced_at': now.isoformat(),
        }
