"""
Housing Statistics Views

Endpoints:
- GET /api/statistics/ - Statistics snapshot for a farm or all farms

Query Parameters:
    farm (str): Farm id or 'all' (super admins only). Defaults to the caller's scope.
    time_range (str): week | month | quarter | year | specific_month | specific_year
    month (int): 1-12, required for specific_month
    year (int): required for specific_month and specific_year
"""

import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .services.housing_analytics import HousingAnalyticsService, PrivilegeViolation
from .statistics_serializers import StatisticsFilterSerializer

logger = logging.getLogger(__name__)


def privilege_violation_response(user, error):
    logger.warning(f"Statistics scope refused for user {user.id}: {error}")
    return Response(
        {'error': str(error), 'code': 'PRIVILEGE_VIOLATION'},
        status=status.HTTP_403_FORBIDDEN
    )


class BaseStatisticsView(APIView):
    """Base class for statistics views"""
    permission_classes = [IsAuthenticated]

    def get_service(self, request):
        return HousingAnalyticsService(request.user)

    def get_filters(self, request):
        """Validated query parameters; raises a 400 ValidationError on bad input."""
        serializer = StatisticsFilterSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data


class HousingStatisticsView(BaseStatisticsView):
    """
    GET /api/statistics/

    Returns the snapshot sections (workforce, rooms, capacity, movements, age,
    exits, performance, indicators, period) plus scope and data_quality.
    A collection that failed to load still yields a 200; data_quality tells
    the client which figures are missing and whether to retry.
    """

    def get(self, request):
        filters = self.get_filters(request)
        service = self.get_service(request)

        try:
            snapshot = service.get_statistics(
                farm=filters['farm'],
                time_range=filters['time_range'],
                month=filters['month'],
                year=filters['year'],
            )
        except PrivilegeViolation as e:
            return privilege_violation_response(request.user, e)

        if not snapshot['data_quality']['complete']:
            logger.warning(
                f"Statistics served with missing inputs {snapshot['data_quality']['unavailable']} "
                f"for scope {snapshot['scope']['farm']}"
            )
        return Response(snapshot)
