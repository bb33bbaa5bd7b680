"""
Tests for the housing statistics and export endpoints.
Tests scope enforcement, parameter validation, degraded inputs and exports.
"""
import uuid
from unittest import mock

import pytest
from rest_framework import status

from dashboards.services.housing_analytics import HousingAnalyticsService, InputUnavailable

STATISTICS_URL = '/api/statistics/'
PDF_URL = '/api/statistics/export/pdf/'
WORKERS_XLSX_URL = '/api/statistics/export/workers/'
ROOMS_XLSX_URL = '/api/statistics/export/rooms/'
XLSX = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


@pytest.mark.django_db
class TestStatisticsScope:
    """Who may see which farm."""

    def test_requires_authentication(self, api_client):
        response = api_client.get(STATISTICS_URL)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_farm_user_gets_own_farm_by_default(self, api_client, farm_user, housed_farms):
        farm, _ = housed_farms
        api_client.force_authenticate(user=farm_user)

        response = api_client.get(STATISTICS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['scope']['farm'] == str(farm.id)
        assert response.data['scope']['farm_name'] == 'Ferme Atlas'
        assert response.data['workforce']['total_workers'] == 3
        assert response.data['capacity']['total_capacity'] == 6
        assert response.data['capacity']['occupied_places'] == 3
        assert response.data['capacity']['occupancy_rate'] == 50.0
        assert response.data['movements']['recent_arrivals'] == 1
        assert response.data['movements']['recent_exits'] == 1
        assert response.data['data_quality']['complete'] is True

    def test_farm_admin_cannot_request_all_farms(self, api_client, farm_admin, housed_farms):
        api_client.force_authenticate(user=farm_admin)

        response = api_client.get(STATISTICS_URL, {'farm': 'all'})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'PRIVILEGE_VIOLATION'

    def test_farm_admin_cannot_request_other_farm(self, api_client, farm_admin, housed_farms):
        _, other_farm = housed_farms
        api_client.force_authenticate(user=farm_admin)

        response = api_client.get(STATISTICS_URL, {'farm': str(other_farm.id)})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_privilege_check_runs_before_loading(self, api_client, farm_user, housed_farms):
        api_client.force_authenticate(user=farm_user)

        with mock.patch.object(HousingAnalyticsService, 'load_collections') as load:
            response = api_client.get(STATISTICS_URL, {'farm': 'all'})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        load.assert_not_called()

    def test_user_without_farm_is_refused(self, api_client, django_user_model):
        user = django_user_model.objects.create_user(username='drifter', password='testpass123', role='USER')
        api_client.force_authenticate(user=user)

        response = api_client.get(STATISTICS_URL)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_super_admin_sees_all_farms(self, api_client, super_admin, housed_farms):
        api_client.force_authenticate(user=super_admin)

        response = api_client.get(STATISTICS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['scope']['farm'] == 'all'
        assert response.data['workforce']['total_workers'] == 4
        assert response.data['capacity']['total_capacity'] == 8

    def test_super_admin_can_pick_a_farm(self, api_client, super_admin, housed_farms):
        _, other_farm = housed_farms
        api_client.force_authenticate(user=super_admin)

        response = api_client.get(STATISTICS_URL, {'farm': str(other_farm.id)})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['workforce']['total_workers'] == 1


@pytest.mark.django_db
class TestStatisticsParameters:
    """Query parameter validation."""

    @pytest.fixture(autouse=True)
    def authenticate(self, api_client, super_admin):
        api_client.force_authenticate(user=super_admin)

    def test_unknown_time_range(self, api_client):
        response = api_client.get(STATISTICS_URL, {'time_range': 'fortnight'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_specific_month_needs_month_and_year(self, api_client):
        response = api_client.get(STATISTICS_URL, {'time_range': 'specific_month', 'year': 2024})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'month' in response.data

    def test_month_out_of_range(self, api_client):
        response = api_client.get(
            STATISTICS_URL, {'time_range': 'specific_month', 'month': 13, 'year': 2024}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_malformed_farm_id(self, api_client):
        response = api_client.get(STATISTICS_URL, {'farm': 'not-a-farm'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_specific_year(self, api_client, housed_farms):
        response = api_client.get(STATISTICS_URL, {'time_range': 'specific_year', 'year': 1999})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['period']['label'] == '1999'
        assert response.data['workforce']['total_workers'] == 0


@pytest.mark.django_db
class TestDegradedInputs:
    """A collection that cannot be loaded does not break the endpoint."""

    def test_rooms_unavailable(self, api_client, farm_user, housed_farms):
        api_client.force_authenticate(user=farm_user)
        real_fetch = HousingAnalyticsService._fetch

        def fetch(service, name, queryset):
            if name == 'rooms':
                raise InputUnavailable('rooms', 'connection reset')
            return real_fetch(service, name, queryset)

        with mock.patch.object(HousingAnalyticsService, '_fetch', fetch):
            response = api_client.get(STATISTICS_URL)

        assert response.status_code == status.HTTP_200_OK
        quality = response.data['data_quality']
        assert quality['complete'] is False
        assert quality['unavailable'] == ['rooms']
        assert quality['capacity_trusted'] is False
        assert quality['retryable'] is True
        assert response.data['capacity']['total_capacity'] == 0
        assert response.data['capacity']['occupancy_rate'] == 0
        assert response.data['workforce']['total_workers'] == 3

    def test_pdf_waits_for_farms(self, api_client, farm_admin, housed_farms):
        api_client.force_authenticate(user=farm_admin)
        real_fetch = HousingAnalyticsService._fetch

        def fetch(service, name, queryset):
            if name == 'farms':
                raise InputUnavailable('farms', 'connection reset')
            return real_fetch(service, name, queryset)

        with mock.patch.object(HousingAnalyticsService, '_fetch', fetch):
            response = api_client.get(PDF_URL)

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.data['code'] == 'INPUT_UNAVAILABLE'
        assert response.data['retryable'] is True


@pytest.mark.django_db
class TestExports:
    """PDF and Excel downloads."""

    def test_pdf_for_own_farm(self, api_client, farm_admin, housed_farms):
        farm, _ = housed_farms
        api_client.force_authenticate(user=farm_admin)

        response = api_client.get(PDF_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == 'application/pdf'
        assert f'housing_statistics_{farm.id}_' in response['Content-Disposition']
        assert response.content.startswith(b'%PDF')

    def test_pdf_for_all_farms(self, api_client, super_admin, housed_farms):
        api_client.force_authenticate(user=super_admin)

        response = api_client.get(PDF_URL, {'farm': 'all', 'time_range': 'quarter'})

        assert response.status_code == status.HTTP_200_OK
        assert 'housing_statistics_all_farms_' in response['Content-Disposition']

    def test_pdf_for_unknown_farm(self, api_client, super_admin, housed_farms):
        api_client.force_authenticate(user=super_admin)

        response = api_client.get(PDF_URL, {'farm': str(uuid.uuid4())})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'FARM_NOT_FOUND'

    def test_pdf_all_farms_refused_for_admin(self, api_client, farm_admin, housed_farms):
        api_client.force_authenticate(user=farm_admin)

        response = api_client.get(PDF_URL, {'farm': 'all'})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_workers_workbook(self, api_client, farm_user, housed_farms):
        api_client.force_authenticate(user=farm_user)

        response = api_client.get(WORKERS_XLSX_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == XLSX
        assert 'attachment; filename="workers_' in response['Content-Disposition']

    def test_workers_workbook_unknown_status(self, api_client, farm_user, housed_farms):
        api_client.force_authenticate(user=farm_user)

        response = api_client.get(WORKERS_XLSX_URL, {'status': 'retired'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'INVALID_STATUS'

    def test_workers_workbook_by_status(self, api_client, farm_user, housed_farms):
        api_client.force_authenticate(user=farm_user)

        response = api_client.get(WORKERS_XLSX_URL, {'status': 'inactive'})

        assert response.status_code == status.HTTP_200_OK

    def test_rooms_workbook_refused_for_other_farm(self, api_client, farm_user, housed_farms):
        _, other_farm = housed_farms
        api_client.force_authenticate(user=farm_user)

        response = api_client.get(ROOMS_XLSX_URL, {'farm': str(other_farm.id)})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_rooms_workbook_for_super_admin(self, api_client, super_admin, housed_farms):
        api_client.force_authenticate(user=super_admin)

        response = api_client.get(ROOMS_XLSX_URL)

        assert response.status_code == status.HTTP_200_OK
        assert 'rooms_all_farms_' in response['Content-Disposition']
