"""
Housing Analytics Service

Glue between the database and the pure statistics engine:
1. Scope resolution - which farm(s) the caller may see
2. Collection loading - farms, workers and rooms, each with its own error channel
3. Snapshot assembly - engine output plus scope and data-quality metadata

The privilege check always runs before anything is loaded.
"""

import logging
from datetime import date
from typing import Dict, Any, Optional

from django.db import DatabaseError
from django.utils import timezone

from accounts.policies import FarmPolicy
from farms.models import Farm, Room, Worker
from .housing_statistics import TimeRange, compute_housing_statistics

logger = logging.getLogger(__name__)

ALL_FARMS = 'all'


class PrivilegeViolation(Exception):
    """Raised when a caller requests a farm scope its role does not cover."""
    pass


class InputUnavailable(Exception):
    """Raised when one source collection cannot be loaded."""

    def __init__(self, collection: str, message: str):
        self.collection = collection
        self.message = message
        super().__init__(f"{collection} unavailable: {message}")


class HousingAnalyticsService:
    """
    Statistics for the farms a user is allowed to see.

    Usage:
        from dashboards.services.housing_analytics import HousingAnalyticsService

        service = HousingAnalyticsService(request.user)

        # Snapshot for the caller's default scope, last 30 days
        snapshot = service.get_statistics()

        # Specific month across every farm (super admins only)
        snapshot = service.get_statistics(farm='all', time_range='specific_month', month=3, year=2024)
    """

    def __init__(self, user):
        self.user = user
        self.input_errors: Dict[str, str] = {}

    # =========================================================================
    # SCOPE
    # =========================================================================

    def resolve_scope(self, farm: Optional[str] = None) -> str:
        """
        Resolve the requested farm into the scope the user gets.

        Args:
            farm: Farm id, 'all', or None for the user's default scope

        Returns:
            'all' or a farm id string

        Raises:
            PrivilegeViolation: Non super admin asking for all farms or another farm
        """
        requested = str(farm) if farm not in (None, '') else None

        if FarmPolicy.is_super_admin(self.user):
            return requested or ALL_FARMS

        own_farm_id = FarmPolicy.get_user_farm_id(self.user)
        if own_farm_id is None:
            raise PrivilegeViolation('Your account is not assigned to a farm.')
        if requested == ALL_FARMS:
            raise PrivilegeViolation('Only super administrators can view statistics for all farms.')
        if requested is not None and requested != str(own_farm_id):
            raise PrivilegeViolation('You can only view statistics for your own farm.')
        return str(own_farm_id)

    # =========================================================================
    # COLLECTIONS
    # =========================================================================

    def _fetch(self, name: str, queryset) -> list:
        try:
            return list(queryset)
        except DatabaseError as e:
            raise InputUnavailable(name, str(e)) from e

    def load_collections(self, scope: str) -> Dict[str, list]:
        """
        Load farms, workers and rooms for a resolved scope.

        A collection that fails to load is replaced by an empty list and
        recorded in self.input_errors; the others are still returned.
        """
        self.input_errors = {}

        querysets = {
            'farms': Farm.objects.all(),
            'workers': Worker.objects.all(),
            'rooms': Room.objects.all(),
        }
        if scope != ALL_FARMS:
            querysets['farms'] = querysets['farms'].filter(pk=scope)
            querysets['workers'] = querysets['workers'].filter(farm_id=scope)
            querysets['rooms'] = querysets['rooms'].filter(farm_id=scope)

        collections = {}
        for name, queryset in querysets.items():
            try:
                collections[name] = self._fetch(name, queryset)
            except InputUnavailable as e:
                logger.warning(f"Statistics input degraded for scope {scope}: {e}")
                self.input_errors[name] = e.message
                collections[name] = []
        return collections

    def _data_quality(self) -> Dict[str, Any]:
        unavailable = sorted(self.input_errors)
        return {
            'complete': not unavailable,
            'unavailable': unavailable,
            'errors': dict(self.input_errors),
            # Capacity figures mix workers and rooms; either missing makes them meaningless
            'capacity_trusted': not ({'workers', 'rooms'} & set(unavailable)),
            'retryable': bool(unavailable),
        }

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    def get_report_context(self, farm: Optional[str] = None, time_range=TimeRange.MONTH,
                           month: Optional[int] = None, year: Optional[int] = None,
                           today: Optional[date] = None) -> Dict[str, Any]:
        """
        Snapshot plus the raw collections it was computed from.

        Returns:
            {'scope', 'snapshot', 'farms', 'workers', 'rooms'}
        """
        scope = self.resolve_scope(farm)
        collections = self.load_collections(scope)

        snapshot = compute_housing_statistics(
            collections['workers'],
            collections['rooms'],
            time_range=time_range,
            month=month,
            year=year,
            today=today,
        )

        farm_name = None
        if scope != ALL_FARMS:
            farm_name = next((f.name for f in collections['farms'] if str(f.id) == scope), None)

        snapshot['scope'] = {'farm': scope, 'farm_name': farm_name}
        snapshot['data_quality'] = self._data_quality()
        snapshot['generated_at'] = timezone.now().isoformat()

        return {
            'scope': scope,
            'snapshot': snapshot,
            **collections,
        }

    def get_statistics(self, farm: Optional[str] = None, time_range=TimeRange.MONTH,
                       month: Optional[int] = None, year: Optional[int] = None,
                       today: Optional[date] = None) -> Dict[str, Any]:
        """Statistics snapshot for the requested scope and period."""
        return self.get_report_context(farm, time_range, month, year, today)['snapshot']
