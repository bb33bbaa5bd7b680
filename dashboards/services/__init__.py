"""
Dashboard services module
"""

from .housing_statistics import (
    TimeRange,
    compute_housing_statistics,
    compute_farm_comparison,
    describe_period,
)
from .housing_analytics import (
    HousingAnalyticsService,
    PrivilegeViolation,
    InputUnavailable,
    ALL_FARMS,
)
from .housing_reports import (
    StatisticsReportRenderer,
    RenderFailure,
    build_workers_workbook,
    build_rooms_workbook,
)

__all__ = [
    'TimeRange',
    'compute_housing_statistics',
    'compute_farm_comparison',
    'describe_period',
    'HousingAnalyticsService',
    'PrivilegeViolation',
    'InputUnavailable',
    'ALL_FARMS',
    'StatisticsReportRenderer',
    'RenderFailure',
    'build_workers_workbook',
    'build_rooms_workbook',
]
