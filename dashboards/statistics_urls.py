"""
Statistics URL Routes

All endpoints require authentication. Non super admins are limited to their own farm.
"""

from django.urls import path

from .statistics_views import HousingStatisticsView
from .statistics_exports import (
    ExportStatisticsPDFView,
    ExportWorkersExcelView,
    ExportRoomsExcelView,
)

app_name = 'statistics'

urlpatterns = [
    path('', HousingStatisticsView.as_view(), name='overview'),

    # Exports
    path('export/pdf/', ExportStatisticsPDFView.as_view(), name='export-pdf'),
    path('export/workers/', ExportWorkersExcelView.as_view(), name='export-workers'),
    path('export/rooms/', ExportRoomsExcelView.as_view(), name='export-rooms'),
]
