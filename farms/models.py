"""
Farm Housing Models

- Farm: the tenant; every room and worker belongs to exactly one farm
- Room: housing unit with a gender restriction and a fixed capacity
- Worker: farm worker, hired (active) and eventually exited (inactive)

Room.current_occupancy and Room.occupant_ids are denormalized counters.
They are rewritten by farms.services.occupancy and may drift from the
worker records between reconciliations; statistics always derive
occupancy from workers.
"""

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone
from phonenumber_field.modelfields import PhoneNumberField
import uuid


class Gender(models.TextChoices):
    MALE = 'male', 'Male'
    FEMALE = 'female', 'Female'


class WorkerStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    INACTIVE = 'inactive', 'Inactive'


# =============================================================================
# FARM MODEL
# =============================================================================

class Farm(models.Model):
    """A farm housing its workers in rooms."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=200, unique=True)

    admins = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name='administered_farms',
        help_text="Administrators responsible for this farm"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'farms'
        ordering = ['name']

    def __str__(self):
        return self.name


# =============================================================================
# ROOM MODEL
# =============================================================================

class Room(models.Model):
    """Housing room; a room number may exist once per gender within a farm."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    farm = models.ForeignKey(
        Farm,
        on_delete=models.CASCADE,
        related_name='rooms',
        help_text="Farm this room belongs to"
    )

    number = models.CharField(max_length=20, help_text="Room number as written on the door")
    gender_restriction = models.CharField(
        max_length=10,
        choices=Gender.choices,
        help_text="Only workers of this sex may be housed here"
    )
    total_capacity = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Number of beds"
    )

    # Denormalized, maintained by farms.services.occupancy
    current_occupancy = models.PositiveIntegerField(default=0)
    occupant_ids = models.JSONField(
        default=list,
        blank=True,
        help_text="Ids of the active workers housed here at the last recompute"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'rooms'
        ordering = ['farm__name', 'number', 'gender_restriction']
        constraints = [
            models.UniqueConstraint(
                fields=['farm', 'number', 'gender_restriction'],
                name='unique_room_per_farm_and_gender'
            ),
        ]

    def __str__(self):
        return f"{self.farm.name} - Room {self.number} ({self.get_gender_restriction_display()})"

    @property
    def available_places(self):
        return max(self.total_capacity - self.current_occupancy, 0)

    @property
    def is_full(self):
        return self.current_occupancy >= self.total_capacity


# =============================================================================
# WORKER MODEL
# =============================================================================

class Worker(models.Model):
    """
    Farm worker.

    Workers are never deleted: a departure sets status to inactive and
    records the exit date and (optionally) the reason.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    farm = models.ForeignKey(
        Farm,
        on_delete=models.PROTECT,
        related_name='workers',
        help_text="Farm employing this worker"
    )

    # Identity
    name = models.CharField(max_length=150, help_text="Family name")
    first_name = models.CharField(max_length=150, blank=True)
    national_id = models.CharField(max_length=30, help_text="National identity card number")
    phone = PhoneNumberField(region='MA', blank=True)
    sex = models.CharField(max_length=10, choices=Gender.choices)
    age = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(14), MaxValueValidator(100)],
        help_text="Derived from year_of_birth when left empty"
    )
    year_of_birth = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1900), MaxValueValidator(2100)]
    )

    # Housing & assignment
    room_number = models.CharField(
        max_length=20,
        blank=True,
        help_text="Number of the room the worker sleeps in (matched with the worker's sex)"
    )
    sector = models.CharField(max_length=100, blank=True, help_text="Work sector / team")

    # Lifecycle
    entry_date = models.DateField(db_index=True)
    exit_date = models.DateField(null=True, blank=True, db_index=True)
    exit_reason = models.CharField(max_length=100, blank=True)
    status = models.CharField(
        max_length=10,
        choices=WorkerStatus.choices,
        default=WorkerStatus.ACTIVE,
        db_index=True
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'workers'
        ordering = ['name', 'first_name']
        constraints = [
            models.UniqueConstraint(
                fields=['farm', 'national_id'],
                name='unique_worker_national_id_per_farm'
            ),
        ]
        indexes = [
            models.Index(fields=['farm', 'status'], name='workers_farm_status_idx'),
            models.Index(fields=['farm', 'room_number', 'sex'], name='workers_farm_room_sex_idx'),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.national_id})"

    @property
    def full_name(self):
        return f"{self.first_name} {self.name}".strip()

    @property
    def is_active(self):
        return self.status == WorkerStatus.ACTIVE

    def clean(self):
        if self.exit_date and self.entry_date and self.exit_date < self.entry_date:
            raise ValidationError({'exit_date': 'Exit date cannot be before the entry date.'})
        if self.status == WorkerStatus.INACTIVE and not self.exit_date:
            raise ValidationError({'exit_date': 'An inactive worker must have an exit date.'})

    def save(self, *args, **kwargs):
        if self.age is None and self.year_of_birth:
            self.age = timezone.localdate().year - self.year_of_birth
        super().save(*args, **kwargs)
