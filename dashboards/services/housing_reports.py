"""
Housing Report Rendering

Serializes statistics into documents:
- StatisticsReportRenderer: A4 PDF statistics report (reportlab)
- build_workers_workbook / build_rooms_workbook: flat Excel lists (openpyxl)

Renderers only read the snapshot they are given.
"""

import io
import logging
from datetime import datetime
from functools import partial
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.utils import timezone

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.pdfgen import canvas as pdf_canvas
from reportlab.platypus import (
    SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer,
    PageBreak, CondPageBreak, HRFlowable
)

from .housing_analytics import ALL_FARMS
from .housing_statistics import compute_farm_comparison, format_exit_reason

logger = logging.getLogger(__name__)

# Start a new page when less than this much vertical space is left before a section
SECTION_BREAK_THRESHOLD = 8 * cm

EXIT_PLACEHOLDER = 'No exits recorded for the selected period.'
DEFAULT_ATTRIBUTION = 'Report generated by the Farm Worker Housing Management System'

BRAND_COLOR = colors.HexColor('#2E7D32')
KPI_HEADER_COLOR = colors.HexColor('#3B82F6')
DEMOGRAPHICS_HEADER_COLOR = colors.HexColor('#8B4513')
OCCUPANCY_HEADER_COLOR = colors.HexColor('#22C55E')
EXIT_HEADER_COLOR = colors.HexColor('#EF4444')
FARM_HEADER_COLOR = colors.HexColor('#A855F7')


class RenderFailure(Exception):
    """Raised when a report cannot be produced; no partial document is returned."""
    pass


# =============================================================================
# STATUS LABELS
# =============================================================================

def workforce_status(total_workers: int) -> str:
    return 'Active' if total_workers > 0 else 'Inactive'


def occupancy_status(indicators: Dict[str, Any]) -> str:
    if indicators.get('is_high_occupancy'):
        return 'High'
    if indicators.get('is_low_occupancy'):
        return 'Low'
    return 'Optimal'


def arrivals_status(indicators: Dict[str, Any]) -> str:
    return 'Growth' if indicators.get('has_recent_growth') else 'Stable'


def exits_status(recent_exits: int, recent_arrivals: int) -> str:
    return 'High' if recent_exits > recent_arrivals else 'Normal'


def retention_status(retention_rate: float) -> str:
    if retention_rate > 85:
        return 'Excellent'
    if retention_rate > 70:
        return 'Good'
    return 'Needs improvement'


def stay_status(average_stay_days: int) -> str:
    return 'Long' if average_stay_days > 30 else 'Short'


def _share(count: int, total: int) -> str:
    """Whole-number percentage as printed in the report tables."""
    return f"{round(count / total * 100) if total else 0}%"


# =============================================================================
# PDF
# =============================================================================

class NumberedCanvas(pdf_canvas.Canvas):
    """
    Canvas that defers page output until the total page count is known,
    then stamps 'Page i of N' and the attribution line on every page.
    """

    def __init__(self, *args, attribution: str = DEFAULT_ATTRIBUTION, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []
        self._attribution = attribution

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total_pages = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total_pages)
            super().showPage()
        super().save()

    def _draw_footer(self, total_pages: int):
        width = self._pagesize[0]
        footer_y = 1 * cm

        self.saveState()
        self.setStrokeColor(colors.grey)
        self.setLineWidth(0.5)
        self.line(1.5 * cm, footer_y + 0.5 * cm, width - 1.5 * cm, footer_y + 0.5 * cm)

        self.setFont('Helvetica', 8)
        self.setFillColor(colors.grey)
        self.drawString(1.5 * cm, footer_y, self._attribution)
        self.drawRightString(width - 1.5 * cm, footer_y, f"Page {self._pageNumber} of {total_pages}")
        self.restoreState()


class StatisticsReportRenderer:
    """
    Render a statistics snapshot as a PDF report.

    Usage:
        renderer = StatisticsReportRenderer(
            snapshot,
            farms=farms,
            workers=workers,
            rooms=rooms,
            scope='all',          # or a farm id
        )
        pdf_bytes = renderer.render()
        filename = renderer.get_filename()

    The per-farm comparison page is only added for the 'all' scope and is
    recomputed from the raw workers and rooms rather than taken from the snapshot.
    """

    def __init__(self, snapshot: Dict[str, Any], farms: Iterable, workers: Iterable = (),
                 rooms: Iterable = (), scope: str = ALL_FARMS,
                 generated_at: Optional[datetime] = None, attribution: Optional[str] = None):
        self.snapshot = snapshot
        self.farms = list(farms)
        self.workers = list(workers)
        self.rooms = list(rooms)
        self.scope = str(scope)
        self.generated_at = generated_at or timezone.localtime()
        self.attribution = attribution or getattr(settings, 'REPORT_ATTRIBUTION', DEFAULT_ATTRIBUTION)

        styles = getSampleStyleSheet()
        self.styles = styles
        self.title_style = ParagraphStyle(
            'ReportTitle',
            parent=styles['Heading1'],
            fontSize=18,
            alignment=TA_CENTER,
            spaceAfter=12
        )
        self.subtitle_style = ParagraphStyle(
            'ReportSubtitle',
            parent=styles['Normal'],
            fontSize=10,
            alignment=TA_CENTER,
            textColor=colors.grey
        )
        self.heading_style = ParagraphStyle(
            'SectionHeading',
            parent=styles['Heading2'],
            fontSize=14,
            textColor=BRAND_COLOR,
            spaceAfter=10,
            spaceBefore=15
        )
        self.bullet_style = ParagraphStyle(
            'SummaryBullet',
            parent=styles['Normal'],
            fontSize=10,
            leftIndent=10,
            spaceAfter=4
        )
        self.note_style = ParagraphStyle(
            'Note',
            parent=styles['Italic'],
            fontSize=10
        )

    @property
    def is_all_farms(self) -> bool:
        return self.scope == ALL_FARMS

    def get_farm(self):
        """
        Resolve the report's farm.

        Raises:
            RenderFailure: The farm id is not in the farm collection
        """
        if self.is_all_farms:
            return None
        farm = next((f for f in self.farms if str(f.id) == self.scope), None)
        if farm is None:
            raise RenderFailure(f"Farm {self.scope} not found; cannot render its report.")
        return farm

    def get_filename(self) -> str:
        stamp = self.generated_at.strftime('%Y-%m-%d')
        if self.is_all_farms:
            return f"housing_statistics_all_farms_{stamp}.pdf"
        return f"housing_statistics_{self.scope}_{stamp}.pdf"

    def _table(self, data: List[List[str]], col_widths: List[float], header_color, striped: bool = False) -> Table:
        table = Table(data, colWidths=col_widths, repeatRows=1)
        commands = [
            ('BACKGROUND', (0, 0), (-1, 0), header_color),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
            ('TOPPADDING', (0, 0), (-1, -1), 6),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ]
        if striped:
            commands.append(('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#F3F4F6')]))
        table.setStyle(TableStyle(commands))
        return table

    # -------------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------------

    def _title_block(self, farm) -> list:
        period = self.snapshot.get('period', {})
        title = 'Complete Statistics Report' if farm is None else f"Statistics Report - {farm.name}"
        elements = [
            Paragraph(title, self.title_style),
            Paragraph(
                f"Generated on {self.generated_at.strftime('%d/%m/%Y at %H:%M')}",
                self.subtitle_style
            ),
            Paragraph(f"Period: {period.get('label', '')}", self.subtitle_style),
        ]

        quality = self.snapshot.get('data_quality') or {}
        if quality and not quality.get('complete', True):
            missing = ', '.join(quality.get('unavailable', []))
            elements.append(Spacer(1, 6))
            elements.append(Paragraph(
                f"Some data could not be loaded ({missing}); figures may be incomplete.",
                self.note_style
            ))

        elements.append(Spacer(1, 12))
        elements.append(HRFlowable(width="100%", thickness=1, color=BRAND_COLOR))
        return elements

    def _executive_summary(self) -> list:
        workforce = self.snapshot['workforce']
        capacity = self.snapshot['capacity']
        movements = self.snapshot['movements']
        exits = self.snapshot['exits']

        lines = [
            f"{workforce['total_workers']} active workers in the system",
            f"Occupancy rate: {capacity['occupancy_rate']}% "
            f"({capacity['occupied_places']}/{capacity['total_capacity']} places)",
            f"{capacity['available_places']} places available",
            f"Average worker age: {self.snapshot['age']['average_age']} years",
            f"Retention rate: {self.snapshot['performance']['retention_rate']}%",
            f"{movements['recent_arrivals']} new arrivals and {movements['recent_exits']} exits",
            f"Main exit reason: {exits['top_exit_reason'] or 'None'} ({exits['top_exit_reason_count']} cases)",
        ]

        elements = [Paragraph('Executive Summary', self.heading_style)]
        elements.extend(Paragraph(f"• {line}", self.bullet_style) for line in lines)
        return elements

    def _kpi_table(self) -> list:
        workforce = self.snapshot['workforce']
        capacity = self.snapshot['capacity']
        movements = self.snapshot['movements']
        indicators = self.snapshot['indicators']
        retention = self.snapshot['performance']['retention_rate']
        stay = self.snapshot['exits']['average_stay_days']

        data = [
            ['Indicator', 'Value', 'Status'],
            ['Active Workers', str(workforce['total_workers']), workforce_status(workforce['total_workers'])],
            ['Occupancy Rate', f"{capacity['occupancy_rate']}%", occupancy_status(indicators)],
            ['New Arrivals', str(movements['recent_arrivals']), arrivals_status(indicators)],
            ['Exits', str(movements['recent_exits']),
             exits_status(movements['recent_exits'], movements['recent_arrivals'])],
            ['Retention Rate', f"{retention}%", retention_status(retention)],
            ['Average Stay', f"{stay} days", stay_status(stay)],
        ]
        return [
            Paragraph('Key Performance Indicators', self.heading_style),
            self._table(data, [7 * cm, 5 * cm, 5 * cm], KPI_HEADER_COLOR, striped=True),
        ]

    def _demographics(self) -> list:
        workforce = self.snapshot['workforce']
        total = workforce['total_workers']

        gender_data = [
            ['Gender', 'Count', 'Percentage'],
            ['Men', str(workforce['male_workers']), _share(workforce['male_workers'], total)],
            ['Women', str(workforce['female_workers']), _share(workforce['female_workers'], total)],
        ]
        age_data = [['Age Range', 'Count', 'Percentage']]
        for label, count in self.snapshot['age']['age_distribution'].items():
            age_data.append([f"{label} years", str(count), _share(count, total)])

        return [
            Paragraph('Demographics', self.heading_style),
            self._table(gender_data, [5 * cm, 4 * cm, 4 * cm], DEMOGRAPHICS_HEADER_COLOR),
            Spacer(1, 10),
            self._table(age_data, [5 * cm, 4 * cm, 4 * cm], DEMOGRAPHICS_HEADER_COLOR),
        ]

    def _occupancy(self) -> list:
        rooms = self.snapshot['rooms']
        capacity = self.snapshot['capacity']
        data = [
            ['Metric', 'Value'],
            ['Total Rooms', str(rooms['total_rooms'])],
            ['Occupied Rooms', str(rooms['occupied_rooms'])],
            ['Empty Rooms', str(rooms['empty_rooms'])],
            ['Full Rooms', str(rooms['full_rooms'])],
            ['Total Capacity', str(capacity['total_capacity'])],
            ['Occupied Places', str(capacity['occupied_places'])],
            ['Available Places', str(capacity['available_places'])],
            ['Utilization Rate', f"{capacity['utilization_rate']}%"],
        ]
        return [
            Paragraph('Occupancy Analysis', self.heading_style),
            self._table(data, [8 * cm, 6 * cm], OCCUPANCY_HEADER_COLOR, striped=True),
        ]

    def _exit_analysis(self) -> list:
        exits = self.snapshot['exits']
        elements = [Paragraph('Exit Analysis', self.heading_style)]

        if not exits['exit_reasons']:
            elements.append(Paragraph(EXIT_PLACEHOLDER, self.note_style))
            return elements

        total = exits['total_exited_workers']
        # sorted() is stable: equal counts keep their first-seen order
        ranked = sorted(exits['exit_reasons'].items(), key=lambda item: -item[1])
        data = [['Exit Reason', 'Count', 'Percentage']]
        for reason, count in ranked:
            data.append([format_exit_reason(reason), str(count), _share(count, total)])

        elements.append(self._table(data, [8 * cm, 3 * cm, 3 * cm], EXIT_HEADER_COLOR))
        return elements

    def _farm_comparison(self) -> list:
        rows = compute_farm_comparison(self.farms, self.workers, self.rooms)
        data = [['Farm', 'Workers', 'Rooms', 'Occupancy', 'Free Places']]
        for row in rows:
            data.append([
                row['farm_name'],
                str(row['active_workers']),
                str(row['total_rooms']),
                f"{row['occupancy_rate']}%",
                str(row['available_places']),
            ])
        return [
            PageBreak(),
            Paragraph('Performance by Farm', self.heading_style),
            self._table(data, [6 * cm, 2.5 * cm, 2.5 * cm, 3 * cm, 3 * cm], FARM_HEADER_COLOR, striped=True),
        ]

    def build_elements(self) -> list:
        """
        Assemble the report flowables in their fixed order.

        Raises:
            RenderFailure: Farm-scoped report for an unknown farm
        """
        farm = self.get_farm()

        elements = self._title_block(farm)
        elements.extend(self._executive_summary())
        for section in (self._kpi_table, self._demographics, self._occupancy, self._exit_analysis):
            elements.append(CondPageBreak(SECTION_BREAK_THRESHOLD))
            elements.extend(section())

        if self.is_all_farms:
            elements.extend(self._farm_comparison())
        return elements

    def render(self) -> bytes:
        """
        Render the report.

        Returns:
            PDF document bytes

        Raises:
            RenderFailure: Farm-scoped report for an unknown farm
        """
        elements = self.build_elements()

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=1.5 * cm,
            leftMargin=1.5 * cm,
            topMargin=1.5 * cm,
            bottomMargin=2 * cm,
            title=self.get_filename(),
            author=self.attribution,
        )
        try:
            doc.build(elements, canvasmaker=partial(NumberedCanvas, attribution=self.attribution))
        except Exception:
            logger.exception(f"Error generating statistics PDF for scope {self.scope}")
            raise

        pdf_bytes = buffer.getvalue()
        buffer.close()
        logger.info(f"Generated statistics PDF for scope {self.scope} ({len(pdf_bytes)} bytes)")
        return pdf_bytes


# =============================================================================
# EXCEL
# =============================================================================

WORKER_COLUMNS = ['Name', 'First Name', 'Age', 'Sex', 'Status', 'Room', 'Entry Date']
ROOM_COLUMNS = ['Number', 'Gender', 'Capacity', 'Occupancy', 'Farm']


def _write_sheet(ws, title: str, columns: List[str], rows: Iterable[list], widths: List[int]):
    """Header row in the report palette, then one row per record."""
    header_font = Font(bold=True, size=12, color='FFFFFF')
    header_fill = PatternFill(start_color='2E7D32', end_color='2E7D32', fill_type='solid')
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    ws.title = title
    for col, header in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.border = thin_border
        cell.alignment = Alignment(horizontal='center')

    for row_idx, values in enumerate(rows, start=2):
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row_idx, column=col, value=value)
            cell.border = thin_border
            if hasattr(value, 'strftime'):
                cell.number_format = 'DD/MM/YYYY'

    for col, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(col)].width = width
    ws.freeze_panes = 'A2'


def build_workers_workbook(workers: Iterable) -> Workbook:
    """Flat worker list: Name, First Name, Age, Sex, Status, Room, Entry Date."""
    rows = (
        [
            w.name,
            w.first_name,
            w.age,
            w.get_sex_display(),
            w.get_status_display(),
            w.room_number,
            w.entry_date,
        ]
        for w in workers
    )
    wb = Workbook()
    _write_sheet(wb.active, 'Workers', WORKER_COLUMNS, rows, [22, 22, 8, 10, 12, 10, 14])
    return wb


def build_rooms_workbook(rooms: Iterable, farms: Iterable = ()) -> Workbook:
    """Flat room list: Number, Gender, Capacity, Occupancy, Farm (name, else id)."""
    farm_names = {str(f.id): f.name for f in farms}
    rows = (
        [
            r.number,
            r.get_gender_restriction_display(),
            r.total_capacity,
            r.current_occupancy,
            farm_names.get(str(r.farm_id), str(r.farm_id)),
        ]
        for r in rooms
    )
    wb = Workbook()
    _write_sheet(wb.active, 'Rooms', ROOM_COLUMNS, rows, [10, 10, 10, 12, 30])
    return wb


def workbook_to_bytes(wb: Workbook) -> bytes:
    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()
