"""
Serializers for farms, rooms and workers.

Handles:
- Farm CRUD with room/worker counts
- Room CRUD (occupancy counters are read-only)
- Worker hire/update with room assignment checks
- Worker exit (status flips to inactive)
"""

from django.utils import timezone
from rest_framework import serializers

from .models import Farm, Room, Worker, Gender, WorkerStatus


class FarmSerializer(serializers.ModelSerializer):
    """Farm with headline counts (annotated by FarmViewSet)."""

    rooms_count = serializers.IntegerField(read_only=True, default=0)
    active_workers_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Farm
        fields = [
            'id',
            'name',
            'admins',
            'rooms_count',
            'active_workers_count',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class RoomSerializer(serializers.ModelSerializer):
    """Room; the occupancy counters are maintained by the occupancy service."""

    farm_name = serializers.CharField(source='farm.name', read_only=True)
    gender_restriction_display = serializers.CharField(
        source='get_gender_restriction_display',
        read_only=True
    )
    available_places = serializers.IntegerField(read_only=True)
    is_full = serializers.BooleanField(read_only=True)

    class Meta:
        model = Room
        fields = [
            'id',
            'farm',
            'farm_name',
            'number',
            'gender_restriction',
            'gender_restriction_display',
            'total_capacity',
            'current_occupancy',
            'occupant_ids',
            'available_places',
            'is_full',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id',
            'current_occupancy',
            'occupant_ids',
            'created_at',
            'updated_at',
        ]

    def validate(self, attrs):
        instance = self.instance
        farm = attrs.get('farm', getattr(instance, 'farm', None))
        number = attrs.get('number', getattr(instance, 'number', None))
        gender = attrs.get('gender_restriction', getattr(instance, 'gender_restriction', None))
        capacity = attrs.get('total_capacity', getattr(instance, 'total_capacity', None))

        duplicates = Room.objects.filter(farm=farm, number=number, gender_restriction=gender)
        if instance is not None:
            duplicates = duplicates.exclude(pk=instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError({
                'number': f"Room {number} ({gender}) already exists on this farm."
            })

        if instance is not None:
            housed = Worker.objects.filter(
                farm=instance.farm,
                room_number=instance.number,
                sex=instance.gender_restriction,
                status=WorkerStatus.ACTIVE,
            ).count()
            moved = (farm != instance.farm or number != instance.number
                     or gender != instance.gender_restriction)
            if housed and moved:
                raise serializers.ValidationError(
                    f"Room {instance.number} still houses {housed} active worker(s); "
                    "reassign them before renumbering or moving the room."
                )
            if capacity is not None and capacity < housed:
                raise serializers.ValidationError({
                    'total_capacity': f"Capacity cannot be lower than the {housed} worker(s) housed here."
                })

        return attrs


class WorkerSerializer(serializers.ModelSerializer):
    """Worker detail / create / update."""

    full_name = serializers.CharField(read_only=True)
    farm_name = serializers.CharField(source='farm.name', read_only=True)
    sex_display = serializers.CharField(source='get_sex_display', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Worker
        fields = [
            'id',
            'farm',
            'farm_name',
            'name',
            'first_name',
            'full_name',
            'national_id',
            'phone',
            'sex',
            'sex_display',
            'age',
            'year_of_birth',
            'room_number',
            'sector',
            'entry_date',
            'exit_date',
            'exit_reason',
            'status',
            'status_display',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
        # Uniqueness of national_id per farm is checked in validate()
        validators = []

    def _value(self, attrs, field):
        if field in attrs:
            return attrs[field]
        return getattr(self.instance, field, None)

    def validate(self, attrs):
        farm = self._value(attrs, 'farm')
        status = self._value(attrs, 'status') or WorkerStatus.ACTIVE
        entry_date = self._value(attrs, 'entry_date')
        exit_date = self._value(attrs, 'exit_date')
        exit_reason = self._value(attrs, 'exit_reason')
        national_id = self._value(attrs, 'national_id')

        if exit_date and entry_date and exit_date < entry_date:
            raise serializers.ValidationError({'exit_date': 'Exit date cannot be before the entry date.'})

        if status == WorkerStatus.INACTIVE and not exit_date:
            raise serializers.ValidationError({'exit_date': 'An inactive worker must have an exit date.'})

        if status == WorkerStatus.ACTIVE and (exit_date or exit_reason):
            raise serializers.ValidationError({
                'status': 'Active workers cannot carry an exit date or reason; use the exit action instead.'
            })

        duplicates = Worker.objects.filter(farm=farm, national_id=national_id)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if national_id and duplicates.exists():
            raise serializers.ValidationError({
                'national_id': 'A worker with this national id already exists on this farm.'
            })

        if status == WorkerStatus.ACTIVE:
            self._validate_room_assignment(
                farm,
                self._value(attrs, 'room_number'),
                self._value(attrs, 'sex'),
            )

        return attrs

    def _validate_room_assignment(self, farm, room_number, sex):
        """Room must exist for the worker's sex and still have a free bed."""
        if not room_number:
            return

        room = Room.objects.filter(farm=farm, number=room_number, gender_restriction=sex).first()
        if room is None:
            label = Gender(sex).label.lower() if sex in Gender.values else sex
            raise serializers.ValidationError({
                'room_number': f"No {label} room {room_number} on this farm."
            })

        housed = Worker.objects.filter(
            farm=farm, room_number=room_number, sex=sex, status=WorkerStatus.ACTIVE
        )
        if self.instance is not None:
            housed = housed.exclude(pk=self.instance.pk)
        if housed.count() >= room.total_capacity:
            raise serializers.ValidationError({
                'room_number': f"Room {room_number} is full ({room.total_capacity} places)."
            })


class WorkerListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for worker lists."""

    full_name = serializers.CharField(read_only=True)
    sex_display = serializers.CharField(source='get_sex_display', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Worker
        fields = [
            'id',
            'farm',
            'full_name',
            'national_id',
            'sex',
            'sex_display',
            'age',
            'room_number',
            'sector',
            'entry_date',
            'exit_date',
            'status',
            'status_display',
        ]


class WorkerExitSerializer(serializers.Serializer):
    """Record a worker's departure."""

    exit_date = serializers.DateField(required=False)
    exit_reason = serializers.CharField(max_length=100, required=False, allow_blank=True)

    def validate(self, attrs):
        worker = self.context['worker']
        if worker.status == WorkerStatus.INACTIVE:
            raise serializers.ValidationError('This worker has already left.')

        attrs.setdefault('exit_date', timezone.localdate())
        if attrs['exit_date'] < worker.entry_date:
            raise serializers.ValidationError({'exit_date': 'Exit date cannot be before the entry date.'})
        return attrs
