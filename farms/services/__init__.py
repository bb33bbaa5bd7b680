"""
Farm Services

Service layer for room occupancy bookkeeping.
"""

from .occupancy import (
    RoomOccupancySyncService,
    get_occupancy_summary,
    expected_occupants,
    occupancy_key,
)

__all__ = [
    'RoomOccupancySyncService',
    'get_occupancy_summary',
    'expected_occupants',
    'occupancy_key',
]
