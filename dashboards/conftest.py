"""
Shared pytest fixtures for dashboards tests.
"""
from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from farms.models import Farm, Room, Worker, Gender, WorkerStatus

User = get_user_model()


@pytest.fixture(autouse=True)
def clear_cache():
    """Clear cache before and after each test to prevent pollution."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """API client for making requests."""
    return APIClient()


@pytest.fixture
def farm(db):
    return Farm.objects.create(name='Ferme Atlas')


@pytest.fixture
def other_farm(db):
    return Farm.objects.create(name='Ferme Souss')


@pytest.fixture
def super_admin(db):
    return User.objects.create_user(
        username='super_admin',
        email='super@housing.test',
        password='testpass123',
        role='SUPER_ADMIN'
    )


@pytest.fixture
def farm_admin(db, farm):
    return User.objects.create_user(
        username='farm_admin',
        email='admin@housing.test',
        password='testpass123',
        role='ADMIN',
        farm=farm
    )


@pytest.fixture
def farm_user(db, farm):
    return User.objects.create_user(
        username='farm_user',
        email='user@housing.test',
        password='testpass123',
        role='USER',
        farm=farm
    )


@pytest.fixture
def housed_farms(farm, other_farm):
    """Two farms with rooms, active workers and one departure."""
    today = timezone.localdate()

    Room.objects.create(farm=farm, number='1', gender_restriction=Gender.MALE, total_capacity=4)
    Room.objects.create(farm=farm, number='2', gender_restriction=Gender.FEMALE, total_capacity=2)
    Room.objects.create(farm=other_farm, number='1', gender_restriction=Gender.MALE, total_capacity=2)

    Worker.objects.create(
        farm=farm, name='Alaoui', first_name='Said', national_id='A100', sex=Gender.MALE,
        age=28, room_number='1', entry_date=today - timedelta(days=3)
    )
    Worker.objects.create(
        farm=farm, name='Bennani', first_name='Omar', national_id='A101', sex=Gender.MALE,
        age=44, room_number='1', entry_date=today - timedelta(days=200)
    )
    Worker.objects.create(
        farm=farm, name='Chraibi', first_name='Salma', national_id='A102', sex=Gender.FEMALE,
        age=22, room_number='2', entry_date=today - timedelta(days=90)
    )
    Worker.objects.create(
        farm=farm, name='Daoudi', first_name='Nadia', national_id='A103', sex=Gender.FEMALE,
        age=31, status=WorkerStatus.INACTIVE, entry_date=today - timedelta(days=120),
        exit_date=today - timedelta(days=5), exit_reason='end_of_contract'
    )
    Worker.objects.create(
        farm=other_farm, name='Idrissi', first_name='Karim', national_id='B200', sex=Gender.MALE,
        age=37, room_number='1', entry_date=today - timedelta(days=40)
    )
    return farm, other_farm
