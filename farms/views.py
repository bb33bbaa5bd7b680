"""
Views for farms, rooms and workers.

Handles:
- CRUD for farms (super admins), rooms and workers (farm admins)
- Worker exit recording (workers are never deleted)
- On-demand room occupancy reconciliation and drift summary
"""

import logging

from django.db.models import Count, Q
from rest_framework import viewsets, status, permissions
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from accounts.policies import FarmPolicy
from dashboards.services.housing_statistics import compute_farm_comparison
from .models import Farm, Room, Worker, WorkerStatus
from .serializers import (
    FarmSerializer,
    RoomSerializer,
    WorkerSerializer,
    WorkerListSerializer,
    WorkerExitSerializer,
)
from .services import RoomOccupancySyncService, get_occupancy_summary
from .tasks import sync_room_occupancy

logger = logging.getLogger(__name__)


class IsSuperAdminOrReadOnly(permissions.BasePermission):
    """Any authenticated user may read; only super admins may write."""

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return FarmPolicy.can_manage_farms(request.user)


class IsHousingStaffOrReadOnly(permissions.BasePermission):
    """Farm users read their farm; admins also write to it; super admins do anything."""

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return FarmPolicy.has_write_access(request.user)

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return FarmPolicy.can_view(request.user, obj.farm_id)
        return FarmPolicy.can_edit(request.user, obj.farm_id)


def refresh_room_occupancy(farm_id, *room_numbers):
    """Recompute the counters of the given rooms after a worker write."""
    numbers = [number for number in room_numbers if number]
    if numbers:
        RoomOccupancySyncService(farm_id).sync(numbers)


class FarmViewSet(viewsets.ModelViewSet):
    """
    ViewSet for farms.

    Endpoints:
    - GET /api/farms/ - List farms (own farm for non super admins)
    - POST /api/farms/ - Create farm (super admin)
    - GET /api/farms/{id}/ - Farm detail
    - PATCH /api/farms/{id}/ - Update farm (super admin)
    - DELETE /api/farms/{id}/ - Delete farm without workers (super admin)
    - GET /api/farms/{id}/summary/ - Worker, room and occupancy card figures
    """

    serializer_class = FarmSerializer
    permission_classes = [IsSuperAdminOrReadOnly]
    lookup_field = 'id'
    search_fields = ['name']
    ordering_fields = ['name', 'created_at']

    def get_queryset(self):
        queryset = Farm.objects.annotate(
            rooms_count=Count('rooms', distinct=True),
            active_workers_count=Count(
                'workers',
                filter=Q(workers__status=WorkerStatus.ACTIVE),
                distinct=True
            ),
        )
        return FarmPolicy.scope_queryset(self.request.user, queryset, farm_field='pk').order_by('name')

    def perform_destroy(self, instance):
        if instance.workers.exists():
            raise ValidationError(
                'Cannot delete a farm that has worker records. '
                'Workers are kept for reporting; archive the farm instead.'
            )
        logger.info(f"Farm {instance.id} ({instance.name}) deleted by {self.request.user.id}")
        instance.delete()

    @action(detail=True, methods=['get'])
    def summary(self, request, id=None):
        """Card figures for one farm, derived from its workers and rooms."""
        farm = self.get_object()
        row = compute_farm_comparison(
            [farm],
            Worker.objects.filter(farm=farm),
            Room.objects.filter(farm=farm),
        )[0]
        return Response(row)


class RoomViewSet(viewsets.ModelViewSet):
    """
    ViewSet for rooms.

    Endpoints:
    - GET /api/rooms/ - List rooms (?farm=, ?gender_restriction=)
    - POST /api/rooms/ - Create room
    - GET /api/rooms/{id}/ - Room detail
    - PATCH /api/rooms/{id}/ - Update room
    - DELETE /api/rooms/{id}/ - Delete empty room
    - POST /api/rooms/sync-occupancy/ - Recompute occupancy counters (?farm=, ?background=true)
    - GET /api/rooms/occupancy-summary/ - Stored counters vs worker assignments (?farm=)
    """

    serializer_class = RoomSerializer
    permission_classes = [IsHousingStaffOrReadOnly]
    lookup_field = 'id'
    filterset_fields = ['farm', 'gender_restriction']
    search_fields = ['number']
    ordering_fields = ['number', 'total_capacity', 'current_occupancy']

    def get_queryset(self):
        queryset = Room.objects.select_related('farm')
        return FarmPolicy.scope_queryset(self.request.user, queryset)

    def perform_create(self, serializer):
        farm = serializer.validated_data['farm']
        if not FarmPolicy.can_edit(self.request.user, farm.id):
            raise PermissionDenied('You can only add rooms to your own farm.')
        room = serializer.save()
        # Pick up workers already pointing at this room number
        refresh_room_occupancy(room.farm_id, room.number)

    def perform_update(self, serializer):
        farm = serializer.validated_data.get('farm', serializer.instance.farm)
        if not FarmPolicy.can_edit(self.request.user, farm.id):
            raise PermissionDenied('You can only move rooms to your own farm.')
        room = serializer.save()
        refresh_room_occupancy(room.farm_id, room.number)

    def perform_destroy(self, instance):
        housed = Worker.objects.filter(
            farm_id=instance.farm_id,
            room_number=instance.number,
            sex=instance.gender_restriction,
            status=WorkerStatus.ACTIVE,
        ).exists()
        if housed:
            raise ValidationError('Cannot delete a room that still houses active workers.')
        instance.delete()

    def _resolve_farm_scope(self, request):
        """
        Farm id to reconcile, or None for every farm (super admins only).
        """
        user = request.user
        farm_id = request.query_params.get('farm') or request.data.get('farm')

        if FarmPolicy.is_super_admin(user):
            return None if farm_id in (None, '', 'all') else farm_id

        own_farm_id = FarmPolicy.get_user_farm_id(user)
        if own_farm_id is None:
            raise PermissionDenied('Your account is not assigned to a farm.')
        if farm_id not in (None, '') and str(farm_id) != str(own_farm_id):
            raise PermissionDenied('You can only access your own farm.')
        return str(own_farm_id)

    @action(detail=False, methods=['post'], url_path='sync-occupancy')
    def sync_occupancy(self, request):
        """Recompute room counters from worker assignments, inline or in Celery."""
        farm_id = self._resolve_farm_scope(request)

        background = str(request.query_params.get('background', '')).lower() in ('1', 'true', 'yes')
        if background:
            task = sync_room_occupancy.delay(farm_id=farm_id)
            logger.info(f"Occupancy sync queued by {request.user.id} (farm={farm_id or 'all'}, task={task.id})")
            return Response({
                'status': 'queued',
                'task_id': task.id,
                'farm': farm_id or 'all',
            }, status=status.HTTP_202_ACCEPTED)

        result = RoomOccupancySyncService(farm_id).sync()
        logger.info(
            f"Occupancy sync run by {request.user.id} (farm={farm_id or 'all'}): "
            f"{result['rooms_updated']} rooms updated"
        )
        return Response(result)

    @action(detail=False, methods=['get'], url_path='occupancy-summary')
    def occupancy_summary(self, request):
        """Report drift between stored counters and worker assignments."""
        farm_id = self._resolve_farm_scope(request)

        workers = Worker.objects.only('id', 'farm_id', 'room_number', 'sex', 'status')
        rooms = Room.objects.all()
        if farm_id:
            workers = workers.filter(farm_id=farm_id)
            rooms = rooms.filter(farm_id=farm_id)

        summary = get_occupancy_summary(workers, rooms)
        summary['farm'] = farm_id or 'all'
        return Response(summary)


class WorkerViewSet(viewsets.ModelViewSet):
    """
    ViewSet for workers.

    Endpoints:
    - GET /api/workers/ - List workers (?farm=, ?status=, ?sex=, ?room_number=, ?search=)
    - POST /api/workers/ - Hire worker
    - GET /api/workers/{id}/ - Worker detail
    - PATCH /api/workers/{id}/ - Update worker
    - DELETE /api/workers/{id}/ - Rejected, workers are never deleted
    - POST /api/workers/{id}/exit/ - Record departure (status becomes inactive)
    """

    permission_classes = [IsHousingStaffOrReadOnly]
    lookup_field = 'id'
    filterset_fields = ['farm', 'status', 'sex', 'room_number', 'sector']
    search_fields = ['name', 'first_name', 'national_id']
    ordering_fields = ['name', 'entry_date', 'exit_date', 'age']

    def get_queryset(self):
        queryset = Worker.objects.select_related('farm')
        return FarmPolicy.scope_queryset(self.request.user, queryset)

    def get_serializer_class(self):
        if self.action == 'list':
            return WorkerListSerializer
        if self.action == 'exit':
            return WorkerExitSerializer
        return WorkerSerializer

    def perform_create(self, serializer):
        farm = serializer.validated_data['farm']
        if not FarmPolicy.can_edit(self.request.user, farm.id):
            raise PermissionDenied('You can only hire workers for your own farm.')
        worker = serializer.save()
        logger.info(f"Worker {worker.id} hired on farm {worker.farm_id}")
        refresh_room_occupancy(worker.farm_id, worker.room_number)

    def perform_update(self, serializer):
        previous_farm_id = serializer.instance.farm_id
        previous_room = serializer.instance.room_number

        farm = serializer.validated_data.get('farm', serializer.instance.farm)
        if not FarmPolicy.can_edit(self.request.user, farm.id):
            raise PermissionDenied('You can only move workers to your own farm.')

        worker = serializer.save()
        if previous_farm_id != worker.farm_id:
            refresh_room_occupancy(previous_farm_id, previous_room)
            refresh_room_occupancy(worker.farm_id, worker.room_number)
        else:
            refresh_room_occupancy(worker.farm_id, previous_room, worker.room_number)

    def perform_destroy(self, instance):
        raise ValidationError(
            'Workers cannot be deleted. '
            'Record a departure with POST /api/workers/{id}/exit/ instead.'
        )

    @action(detail=True, methods=['post'])
    def exit(self, request, id=None):
        """Record a worker's departure."""
        worker = self.get_object()
        serializer = WorkerExitSerializer(data=request.data, context={'worker': worker})
        serializer.is_valid(raise_exception=True)

        worker.status = WorkerStatus.INACTIVE
        worker.exit_date = serializer.validated_data['exit_date']
        worker.exit_reason = serializer.validated_data.get('exit_reason', '')
        worker.save(update_fields=['status', 'exit_date', 'exit_reason', 'updated_at'])

        logger.info(f"Worker {worker.id} left farm {worker.farm_id} on {worker.exit_date}")
        refresh_room_occupancy(worker.farm_id, worker.room_number)

        return Response(WorkerSerializer(worker).data)
