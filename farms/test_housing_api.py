"""
Tests for the farm, room and worker endpoints.
Tests role permissions, farm scoping and housing validation rules.
"""
import pytest
from datetime import date, timedelta
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework import status

from farms.models import Farm, Room, Worker, Gender, WorkerStatus

User = get_user_model()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def farm(db):
    return Farm.objects.create(name='Ferme Atlas')


@pytest.fixture
def other_farm(db):
    return Farm.objects.create(name='Ferme Souss')


@pytest.fixture
def super_admin(db):
    return User.objects.create_user(username='super_admin', password='testpass123', role='SUPER_ADMIN')


@pytest.fixture
def farm_admin(farm):
    return User.objects.create_user(username='farm_admin', password='testpass123', role='ADMIN', farm=farm)


@pytest.fixture
def farm_user(farm):
    return User.objects.create_user(username='farm_user', password='testpass123', role='USER', farm=farm)


@pytest.fixture
def male_room(farm):
    return Room.objects.create(farm=farm, number='1', gender_restriction=Gender.MALE, total_capacity=2)


def worker_payload(farm, **overrides):
    payload = {
        'farm': str(farm.id),
        'name': 'Alaoui',
        'first_name': 'Said',
        'national_id': 'AB123456',
        'sex': Gender.MALE,
        'age': 29,
        'room_number': '1',
        'sector': 'Greenhouse',
        'entry_date': '2024-03-01',
    }
    payload.update(overrides)
    return payload


@pytest.mark.django_db
class TestFarmEndpoints:
    """Farms are managed by super admins."""

    def test_super_admin_creates_farm(self, api_client, super_admin):
        api_client.force_authenticate(user=super_admin)

        response = api_client.post('/api/farms/', {'name': 'Ferme Draa'}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert Farm.objects.filter(name='Ferme Draa').exists()

    def test_farm_admin_cannot_create_farm(self, api_client, farm_admin):
        api_client.force_authenticate(user=farm_admin)

        response = api_client.post('/api/farms/', {'name': 'Ferme Draa'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_farm_list_is_scoped(self, api_client, farm_admin, farm, other_farm):
        api_client.force_authenticate(user=farm_admin)

        response = api_client.get('/api/farms/')

        assert response.status_code == status.HTTP_200_OK
        assert [f['id'] for f in response.data['results']] == [str(farm.id)]

    def test_farm_with_workers_cannot_be_deleted(self, api_client, super_admin, farm, male_room):
        Worker.objects.create(farm=farm, name='A', national_id='X1', sex=Gender.MALE, entry_date=date(2024, 1, 1))
        api_client.force_authenticate(user=super_admin)

        response = api_client.delete(f'/api/farms/{farm.id}/')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert Farm.objects.filter(pk=farm.pk).exists()

    def test_farm_summary(self, api_client, farm_user, farm, male_room):
        Worker.objects.create(
            farm=farm, name='A', national_id='X1', sex=Gender.MALE, room_number='1', entry_date=date(2024, 1, 1)
        )
        api_client.force_authenticate(user=farm_user)

        response = api_client.get(f'/api/farms/{farm.id}/summary/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['active_workers'] == 1
        assert response.data['occupancy_rate'] == 50
        assert response.data['available_places'] == 1


@pytest.mark.django_db
class TestRoomEndpoints:
    """Room CRUD and validation."""

    def test_admin_creates_room(self, api_client, farm_admin, farm):
        api_client.force_authenticate(user=farm_admin)

        response = api_client.post('/api/rooms/', {
            'farm': str(farm.id), 'number': '12', 'gender_restriction': Gender.FEMALE, 'total_capacity': 6,
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['current_occupancy'] == 0

    def test_same_number_allowed_for_other_gender(self, api_client, farm_admin, farm, male_room):
        api_client.force_authenticate(user=farm_admin)

        response = api_client.post('/api/rooms/', {
            'farm': str(farm.id), 'number': '1', 'gender_restriction': Gender.FEMALE, 'total_capacity': 2,
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED

    def test_duplicate_room_rejected(self, api_client, farm_admin, farm, male_room):
        api_client.force_authenticate(user=farm_admin)

        response = api_client.post('/api/rooms/', {
            'farm': str(farm.id), 'number': '1', 'gender_restriction': Gender.MALE, 'total_capacity': 3,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_admin_cannot_add_room_to_other_farm(self, api_client, farm_admin, other_farm):
        api_client.force_authenticate(user=farm_admin)

        response = api_client.post('/api/rooms/', {
            'farm': str(other_farm.id), 'number': '5', 'gender_restriction': Gender.MALE, 'total_capacity': 3,
        }, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_farm_user_is_read_only(self, api_client, farm_user, farm, male_room):
        api_client.force_authenticate(user=farm_user)

        assert api_client.get('/api/rooms/').status_code == status.HTTP_200_OK
        response = api_client.patch(f'/api/rooms/{male_room.id}/', {'total_capacity': 5}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_other_farm_rooms_hidden(self, api_client, farm_admin, other_farm):
        room = Room.objects.create(farm=other_farm, number='1', gender_restriction=Gender.MALE, total_capacity=2)
        api_client.force_authenticate(user=farm_admin)

        response = api_client.get(f'/api/rooms/{room.id}/')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_capacity_below_housed_workers_rejected(self, api_client, farm_admin, farm, male_room):
        api_client.force_authenticate(user=farm_admin)
        api_client.post('/api/workers/', worker_payload(farm), format='json')
        api_client.post('/api/workers/', worker_payload(farm, national_id='AB999'), format='json')

        response = api_client.patch(f'/api/rooms/{male_room.id}/', {'total_capacity': 1}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_housed_room_cannot_be_deleted(self, api_client, farm_admin, farm, male_room):
        api_client.force_authenticate(user=farm_admin)
        api_client.post('/api/workers/', worker_payload(farm), format='json')

        response = api_client.delete(f'/api/rooms/{male_room.id}/')

        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestWorkerEndpoints:
    """Worker hire, update, exit."""

    def test_hire_updates_room_counter(self, api_client, farm_admin, farm, male_room):
        api_client.force_authenticate(user=farm_admin)

        response = api_client.post('/api/workers/', worker_payload(farm), format='json')

        assert response.status_code == status.HTTP_201_CREATED
        male_room.refresh_from_db()
        assert male_room.current_occupancy == 1
        assert male_room.occupant_ids == [response.data['id']]

    def test_room_must_match_sex(self, api_client, farm_admin, farm, male_room):
        api_client.force_authenticate(user=farm_admin)

        response = api_client.post('/api/workers/', worker_payload(farm, sex=Gender.FEMALE), format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'room_number' in response.data

    def test_full_room_rejected(self, api_client, farm_admin, farm, male_room):
        api_client.force_authenticate(user=farm_admin)
        for national_id in ('N1', 'N2'):
            api_client.post('/api/workers/', worker_payload(farm, national_id=national_id), format='json')

        response = api_client.post('/api/workers/', worker_payload(farm, national_id='N3'), format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_duplicate_national_id_rejected(self, api_client, farm_admin, farm, male_room):
        api_client.force_authenticate(user=farm_admin)
        api_client.post('/api/workers/', worker_payload(farm), format='json')

        response = api_client.post('/api/workers/', worker_payload(farm, room_number=''), format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'national_id' in response.data

    def test_age_derived_from_year_of_birth(self, api_client, farm_admin, farm):
        api_client.force_authenticate(user=farm_admin)
        year = timezone.localdate().year - 30

        response = api_client.post(
            '/api/workers/',
            worker_payload(farm, age=None, year_of_birth=year, room_number=''),
            format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['age'] == 30

    def test_moving_worker_refreshes_both_rooms(self, api_client, farm_admin, farm, male_room):
        second = Room.objects.create(farm=farm, number='2', gender_restriction=Gender.MALE, total_capacity=2)
        api_client.force_authenticate(user=farm_admin)
        worker_id = api_client.post('/api/workers/', worker_payload(farm), format='json').data['id']

        response = api_client.patch(f'/api/workers/{worker_id}/', {'room_number': '2'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        male_room.refresh_from_db()
        second.refresh_from_db()
        assert male_room.current_occupancy == 0
        assert second.current_occupancy == 1

    def test_exit_frees_the_bed(self, api_client, farm_admin, farm, male_room):
        api_client.force_authenticate(user=farm_admin)
        worker_id = api_client.post('/api/workers/', worker_payload(farm), format='json').data['id']

        response = api_client.post(f'/api/workers/{worker_id}/exit/', {
            'exit_date': '2024-05-01', 'exit_reason': 'end_of_contract',
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == WorkerStatus.INACTIVE
        male_room.refresh_from_db()
        assert male_room.current_occupancy == 0

    def test_exit_twice_rejected(self, api_client, farm_admin, farm, male_room):
        api_client.force_authenticate(user=farm_admin)
        worker_id = api_client.post('/api/workers/', worker_payload(farm), format='json').data['id']
        api_client.post(f'/api/workers/{worker_id}/exit/', {}, format='json')

        response = api_client.post(f'/api/workers/{worker_id}/exit/', {}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_exit_before_entry_rejected(self, api_client, farm_admin, farm, male_room):
        api_client.force_authenticate(user=farm_admin)
        worker_id = api_client.post('/api/workers/', worker_payload(farm), format='json').data['id']

        response = api_client.post(f'/api/workers/{worker_id}/exit/', {
            'exit_date': (date(2024, 3, 1) - timedelta(days=1)).isoformat(),
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_workers_are_never_deleted(self, api_client, farm_admin, farm, male_room):
        api_client.force_authenticate(user=farm_admin)
        worker_id = api_client.post('/api/workers/', worker_payload(farm), format='json').data['id']

        response = api_client.delete(f'/api/workers/{worker_id}/')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert Worker.objects.filter(pk=worker_id).exists()

    def test_list_filters_by_status(self, api_client, farm_user, farm):
        Worker.objects.create(farm=farm, name='A', national_id='X1', sex=Gender.MALE, entry_date=date(2024, 1, 1))
        Worker.objects.create(
            farm=farm, name='B', national_id='X2', sex=Gender.MALE, entry_date=date(2024, 1, 1),
            status=WorkerStatus.INACTIVE, exit_date=date(2024, 2, 1)
        )
        api_client.force_authenticate(user=farm_user)

        response = api_client.get('/api/workers/', {'status': 'inactive'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['full_name'] == 'B'
