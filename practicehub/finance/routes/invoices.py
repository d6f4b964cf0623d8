"""Invoice routes."""
from flask import jsonify, request
from flask_login import current_user

from finance import finance_bp
from finance.exceptions import MissingAccountsError
from finance.repositories import InvoiceRepository, PaymentRepository
from finance.services import InvoiceService
from core.auth.audit import log_event
from core.roles.decorators import require_permission
from core.services.base import UserContext
from core.utils.api_helpers import error_response, get_json_or_error, handle_api_errors

_invoice_repo = InvoiceRepository()
_payment_repo = PaymentRepository()
_invoice_service = InvoiceService()


@finance_bp.route('/api/v1/finance/invoices', methods=['GET'])
@require_permission('finance', 'read')
def api_list_invoices():
    invoices = _invoice_repo.list(
        current_user.tenant_id,
        status=request.args.get('status'),
        client_id=request.args.get('client_id', type=int),
        date_from=request.args.get('date_from'),
        date_to=request.args.get('date_to'),
        search=request.args.get('search'),
    )
    return jsonify({'success': True, 'invoices': invoices})


@finance_bp.route('/api/v1/finance/invoices/<int:invoice_id>', methods=['GET'])
@require_permission('finance', 'read')
def api_get_invoice(invoice_id):
    invoice = _invoice_repo.get(current_user.tenant_id, invoice_id)
    if not invoice:
        return error_response('Invoice not found', 404)
    invoice['lines'] = _invoice_repo.get_lines(current_user.tenant_id, invoice_id)
    invoice['payments'] = _payment_repo.list(current_user.tenant_id, invoice_id)
    return jsonify({'success': True, 'invoice': invoice})


@finance_bp.route('/api/v1/finance/invoices', methods=['POST'])
@require_permission('finance', 'create')
@handle_api_errors
def api_create_invoice():
    data, error = get_json_or_error()
    if error:
        return error
    invoice = _invoice_service.create_invoice(data, UserContext.from_user(current_user, request.remote_addr))
    log_event('invoice_created', f"Created invoice {invoice['invoice_number']}", 'invoice', invoice['id'])
    return jsonify({'success': True, 'invoice': invoice}), 201


@finance_bp.route('/api/v1/finance/invoices/<int:invoice_id>', methods=['PUT'])
@require_permission('finance', 'update')
@handle_api_errors
def api_update_invoice(invoice_id):
    data, error = get_json_or_error()
    if error:
        return error
    invoice = _invoice_service.update_invoice(
        invoice_id, data, UserContext.from_user(current_user, request.remote_addr))
    log_event('invoice_updated', f"Updated invoice {invoice['invoice_number']}", 'invoice', invoice_id)
    return jsonify({'success': True, 'invoice': invoice})


@finance_bp.route('/api/v1/finance/invoices/<int:invoice_id>/status', methods=['PUT'])
@require_permission('finance', 'update')
@handle_api_errors
def api_change_invoice_status(invoice_id):
    """Body: {"status": "approved", "create_client_account": true, "income_account_id": 7}"""
    data, error = get_json_or_error()
    if error:
        return error
    if not data.get('status'):
        return error_response('status is required')
    try:
        invoice = _invoice_service.change_status(
            invoice_id, data['status'], UserContext.from_user(current_user, request.remote_addr),
            create_client_account=bool(data.get('create_client_account')),
            income_account_id=data.get('income_account_id'))
    except MissingAccountsError as e:
        return jsonify({'success': False, 'error': str(e), 'missing_accounts': e.missing}), 400
    log_event('invoice_status_changed', f"Invoice {invoice['invoice_number']} -> {data['status']}",
              'invoice', invoice_id)
    return jsonify({'success': True, 'invoice': invoice})


@finance_bp.route('/api/v1/finance/invoices/<int:invoice_id>', methods=['DELETE'])
@require_permission('finance', 'delete')
@handle_api_errors
def api_delete_invoice(invoice_id):
    _invoice_service.delete_invoice(invoice_id, UserContext.from_user(current_user, request.remote_addr))
    log_event('invoice_deleted', f'Deleted invoice {invoice_id}', 'invoice', invoice_id)
    return jsonify({'success': True})
