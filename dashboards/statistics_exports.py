"""
Statistics Export Views

Generates the PDF statistics report and the Excel worker and room lists.
"""

import logging

from django.http import HttpResponse
from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response

from farms.models import Farm, Room, Worker, WorkerStatus
from .services.housing_analytics import ALL_FARMS, PrivilegeViolation
from .services.housing_reports import (
    StatisticsReportRenderer,
    RenderFailure,
    build_workers_workbook,
    build_rooms_workbook,
    workbook_to_bytes,
)
from .statistics_views import BaseStatisticsView, privilege_violation_response

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


class ExportStatisticsPDFView(BaseStatisticsView):
    """
    GET /api/statistics/export/pdf/

    Same query parameters as /api/statistics/. Adds a per-farm comparison
    page when the scope is every farm.
    """

    def get(self, request):
        filters = self.get_filters(request)
        service = self.get_service(request)

        try:
            context = service.get_report_context(
                farm=filters['farm'],
                time_range=filters['time_range'],
                month=filters['month'],
                year=filters['year'],
            )
        except PrivilegeViolation as e:
            return privilege_violation_response(request.user, e)

        # Without the farms collection a farm report cannot be told apart from a missing farm
        quality = context['snapshot']['data_quality']
        if 'farms' in quality['unavailable']:
            logger.warning(f"Statistics PDF deferred, farms unavailable for scope {context['scope']}")
            return Response(
                {
                    'error': 'Farm data is temporarily unavailable. Please retry.',
                    'code': 'INPUT_UNAVAILABLE',
                    'retryable': True,
                },
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )

        renderer = StatisticsReportRenderer(
            context['snapshot'],
            farms=context['farms'],
            workers=context['workers'],
            rooms=context['rooms'],
            scope=context['scope'],
        )
        try:
            pdf_bytes = renderer.render()
        except RenderFailure as e:
            logger.error(f"Statistics PDF not rendered: {e}")
            return Response(
                {'error': str(e), 'code': 'FARM_NOT_FOUND'},
                status=status.HTTP_404_NOT_FOUND
            )

        response = HttpResponse(pdf_bytes, content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="{renderer.get_filename()}"'
        return response


class BaseListExportView(BaseStatisticsView):
    """Excel list exports scoped like the statistics endpoint."""

    def get_scope(self, request):
        return self.get_service(request).resolve_scope(self.get_filters(request)['farm'])

    def get_filename(self, prefix, scope):
        stamp = timezone.localdate().strftime('%Y-%m-%d')
        label = 'all_farms' if scope == ALL_FARMS else scope
        return f"{prefix}_{label}_{stamp}.xlsx"

    def xlsx_response(self, wb, filename):
        response = HttpResponse(workbook_to_bytes(wb), content_type=XLSX_CONTENT_TYPE)
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response


class ExportWorkersExcelView(BaseListExportView):
    """
    GET /api/statistics/export/workers/

    Optional ?status=active|inactive narrows the list.
    """

    def get(self, request):
        try:
            scope = self.get_scope(request)
        except PrivilegeViolation as e:
            return privilege_violation_response(request.user, e)

        workers = Worker.objects.order_by('name', 'first_name')
        if scope != ALL_FARMS:
            workers = workers.filter(farm_id=scope)
        worker_status = request.query_params.get('status')
        if worker_status:
            if worker_status not in WorkerStatus.values:
                return Response(
                    {'error': f"Unknown status '{worker_status}'.", 'code': 'INVALID_STATUS'},
                    status=status.HTTP_400_BAD_REQUEST
                )
            workers = workers.filter(status=worker_status)

        wb = build_workers_workbook(workers)
        return self.xlsx_response(wb, self.get_filename('workers', scope))


class ExportRoomsExcelView(BaseListExportView):
    """GET /api/statistics/export/rooms/"""

    def get(self, request):
        try:
            scope = self.get_scope(request)
        except PrivilegeViolation as e:
            return privilege_violation_response(request.user, e)

        rooms = Room.objects.order_by('farm__name', 'number')
        farms = Farm.objects.all()
        if scope != ALL_FARMS:
            rooms = rooms.filter(farm_id=scope)
            farms = farms.filter(pk=scope)

        wb = build_rooms_workbook(rooms, farms)
        return self.xlsx_response(wb, self.get_filename('rooms', scope))
