"""Report routes: JSON by default, ?format=xlsx for a download."""
from flask import Response, jsonify, request
from flask_login import current_user

from . import reports_bp
from .filters import ReportFilters
from .report_service import ReportService
from core.roles.decorators import require_permission
from core.utils.api_helpers import handle_api_errors

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

_report_service = ReportService()


@reports_bp.route('/api/v1/reports/<name>', methods=['GET'])
@require_permission('reports', 'read')
@handle_api_errors
def api_report(name):
    filters = ReportFilters.from_args(request.args)
    result = _report_service.build(name, current_user.tenant_id, filters)

    if request.args.get('format') == 'xlsx':
        content = _report_service.export_xlsx(name, _report_service.export_rows(name, result))
        return Response(
            content,
            mimetype=XLSX_MIMETYPE,
            headers={'Content-Disposition': f'attachment; filename={name}.xlsx'},
        )
    return jsonify({'success': True, 'report': name, 'data': result})
