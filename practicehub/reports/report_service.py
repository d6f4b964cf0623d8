"""Report Service - loads a tenant's rows and runs the report aggregations."""

import logging
from datetime import datetime
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill

from clients.repositories import ClientRepository, EntityRepository, SetupRepository
from core.auth.repositories import UserRepository
from tasks.repositories import TaskRepository, TaskStatusRepository
from . import analytics
from .filters import ReportFilters

logger = logging.getLogger('practicehub.reports')

REPORTS = (
    'risk-assessment',
    'compliance-overview',
    'team-efficiency',
    'task-performance',
    'jurisdiction-analysis',
)

# report name -> (sheet title, key of the tabular part, [(header, field), ...])
EXPORT_TABLES = {
    'risk-assessment': ('Risks', 'compliance_risks', [
        ('Task', 'id'), ('Details', 'task_details'), ('Client', 'client_name'),
        ('Entity', 'entity_name'), ('Deadline', 'compliance_deadline'),
        ('Risk Score', 'risk_score'), ('Risk Level', 'risk_level'),
    ]),
    'compliance-overview': ('Entities at Risk', 'entities_at_risk', [
        ('Entity', 'entity_name'), ('Client', 'client_name'), ('Jurisdiction', 'jurisdiction'),
        ('Tasks', 'total_tasks'), ('Overdue', 'overdue_count'), ('Risk Level', 'risk_level'),
    ]),
    'team-efficiency': ('Team', 'team_members', [
        ('Name', 'name'), ('Tasks', 'total_tasks'), ('Completed', 'completed_tasks'),
        ('Pending', 'pending_tasks'), ('Overdue', 'overdue_tasks'),
        ('Completion %', 'completion_rate'), ('Avg Days', 'avg_completion_days'),
        ('Efficiency', 'efficiency_score'), ('Productivity', 'productivity_score'),
        ('Rating', 'performance_rating'), ('Workload', 'workload'),
    ]),
    'task-performance': ('By Status', 'by_status', [
        ('Status', 'name'), ('Tasks', 'value'),
    ]),
    'jurisdiction-analysis': ('Jurisdictions', 'jurisdictions', [
        ('Jurisdiction', 'name'), ('Country', 'country'), ('Entities', 'entity_count'),
        ('Tasks', 'total_tasks'), ('Completed', 'completed_tasks'), ('Overdue', 'overdue_tasks'),
        ('Compliance %', 'compliance_rate'), ('Risk Level', 'risk_level'),
    ]),
}

HEADER_COLOR = '1F4E79'


class UnknownReportError(Exception):
    status_code = 404

    def __init__(self, name):
        super().__init__(f'Unknown report: {name}')


class ReportService:

    def __init__(self):
        self._task_repo = TaskRepository()
        self._status_repo = TaskStatusRepository()
        self._client_repo = ClientRepository()
        self._entity_repo = EntityRepository()
        self._setup_repo = SetupRepository()
        self._user_repo = UserRepository()

    def build(self, name, tenant_id, filters: ReportFilters = None, now=None):
        """Run report `name` for a tenant. Raises UnknownReportError for other names."""
        if name not in REPORTS:
            raise UnknownReportError(name)
        filters = filters or ReportFilters()
        now = now or datetime.now()

        statuses = self._status_repo.list(tenant_id)
        lookups = analytics.build_lookups(
            clients=self._client_repo.list(tenant_id),
            entities=self._entity_repo.list(tenant_id),
            countries=self._setup_repo.list(tenant_id, 'countries'),
            jurisdictions=self._setup_repo.list(tenant_id, 'tax_jurisdictions'),
        )
        tasks = analytics.filter_tasks(self._task_repo.list_all(tenant_id), filters, lookups, now)
        logger.debug(f'Report {name} for tenant {tenant_id}: {len(tasks)} tasks after filters')

        if name == 'risk-assessment':
            return analytics.risk_assessment(tasks, statuses, lookups, now, filters.risk_level)
        if name == 'compliance-overview':
            return analytics.compliance_overview(tasks, statuses, lookups, now)
        if name == 'team-efficiency':
            users = self._user_repo.list_for_tenant(tenant_id)
            return analytics.team_efficiency(tasks, statuses, users, now)
        if name == 'task-performance':
            return analytics.task_performance(tasks, statuses, now)
        return analytics.jurisdiction_analysis(tasks, statuses, lookups, now)

    def export_xlsx(self, report_name, rows):
        """Write the tabular part of a report to an .xlsx workbook and return its bytes."""
        if report_name not in EXPORT_TABLES:
            raise UnknownReportError(report_name)
        title, _, columns = EXPORT_TABLES[report_name]

        wb = Workbook()
        ws = wb.active
        ws.title = title

        header_fill = PatternFill(start_color=HEADER_COLOR, end_color=HEADER_COLOR, fill_type='solid')
        header_font = Font(bold=True, color='FFFFFF')
        for col, (header, _) in enumerate(columns, 1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = Alignment(horizontal='center')

        for row_idx, row in enumerate(rows, 2):
            for col, (_, field) in enumerate(columns, 1):
                ws.cell(row=row_idx, column=col, value=row.get(field))

        for col in ws.columns:
            width = max(len(str(cell.value)) if cell.value is not None else 0 for cell in col)
            ws.column_dimensions[col[0].column_letter].width = min(width + 2, 50)

        buffer = BytesIO()
        wb.save(buffer)
        return buffer.getvalue()

    def export_rows(self, report_name, result):
        """The rows of `result` that export_xlsx writes."""
        return result.get(EXPORT_TABLES[report_name][1]) or []
