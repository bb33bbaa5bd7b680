"""
End-to-end housing lifecycle.

Hire workers into rooms, record departures, reconcile counters and check that
the statistics endpoint follows every step.
"""

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from farms.models import Farm, Room


class HousingLifecycleTest(TestCase):
    """A farm admin runs one farm from empty to first departure."""

    def setUp(self):
        self.client = APIClient()
        self.farm = Farm.objects.create(name='Ferme Atlas')
        self.admin = User.objects.create_user(
            username='farm_admin',
            email='admin@housing.test',
            password='testpass123',
            role='ADMIN',
            farm=self.farm
        )
        self.client.force_authenticate(user=self.admin)
        self.today = timezone.localdate()

    def create_room(self, number, gender, capacity):
        response = self.client.post('/api/rooms/', {
            'farm': str(self.farm.id),
            'number': number,
            'gender_restriction': gender,
            'total_capacity': capacity,
        }, format='json')
        self.assertEqual(response.status_code, 201, response.data)
        return response.data['id']

    def hire(self, national_id, sex, room_number, age=30):
        response = self.client.post('/api/workers/', {
            'farm': str(self.farm.id),
            'name': f'Worker {national_id}',
            'national_id': national_id,
            'sex': sex,
            'age': age,
            'room_number': room_number,
            'entry_date': self.today.isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, 201, response.data)
        return response.data['id']

    def statistics(self, **params):
        response = self.client.get('/api/statistics/', params)
        self.assertEqual(response.status_code, 200, response.data)
        return response.data

    def test_lifecycle(self):
        # Empty farm
        stats = self.statistics()
        self.assertEqual(stats['workforce']['total_workers'], 0)
        self.assertEqual(stats['capacity']['occupancy_rate'], 0)

        # Rooms and workers
        male_room = self.create_room('1', 'male', 2)
        self.create_room('1', 'female', 2)
        first = self.hire('M1', 'male', '1', age=24)
        self.hire('M2', 'male', '1', age=40)
        self.hire('F1', 'female', '1', age=33)

        stats = self.statistics(time_range='week')
        self.assertEqual(stats['workforce']['total_workers'], 3)
        self.assertEqual(stats['capacity']['occupied_places'], 3)
        self.assertEqual(stats['capacity']['occupancy_rate'], 75.0)
        self.assertEqual(stats['movements']['recent_arrivals'], 3)
        self.assertEqual(stats['age']['age_distribution']['18-25'], 1)
        self.assertEqual(Room.objects.get(pk=male_room).current_occupancy, 2)

        # A full room turns the next hire away
        response = self.client.post('/api/workers/', {
            'farm': str(self.farm.id),
            'name': 'Worker M3',
            'national_id': 'M3',
            'sex': 'male',
            'room_number': '1',
            'entry_date': self.today.isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, 400)

        # Departure
        response = self.client.post(f'/api/workers/{first}/exit/', {'exit_reason': 'resignation'}, format='json')
        self.assertEqual(response.status_code, 200, response.data)

        stats = self.statistics(time_range='week')
        self.assertEqual(stats['workforce']['total_workers'], 2)
        self.assertEqual(stats['movements']['recent_exits'], 1)
        self.assertEqual(stats['exits']['top_exit_reason'], 'resignation')
        self.assertEqual(stats['performance']['turnover_rate'], 33.33)
        self.assertEqual(stats['performance']['retention_rate'], 66.67)
        self.assertEqual(Room.objects.get(pk=male_room).current_occupancy, 1)

        # Counters already follow the worker records
        summary = self.client.get('/api/rooms/occupancy-summary/').data
        self.assertEqual(summary['rooms_out_of_sync'], 0)

        # Report for the farm
        response = self.client.get('/api/statistics/export/pdf/', {'time_range': 'week'})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_counter_drift_is_repaired_on_demand(self):
        room_id = self.create_room('7', 'male', 3)
        self.hire('M1', 'male', '7')
        Room.objects.filter(pk=room_id).update(current_occupancy=3, occupant_ids=[])

        summary = self.client.get('/api/rooms/occupancy-summary/').data
        self.assertEqual(summary['rooms_out_of_sync'], 1)

        result = self.client.post('/api/rooms/sync-occupancy/').data
        self.assertEqual(result['rooms_updated'], 1)

        room = Room.objects.get(pk=room_id)
        self.assertEqual(room.current_occupancy, 1)
        self.assertEqual(len(room.occupant_ids), 1)
