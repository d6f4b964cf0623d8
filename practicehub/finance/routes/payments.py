"""Payment routes."""
from flask import jsonify, request
from flask_login import current_user

from finance import finance_bp
from finance.repositories import PaymentRepository
from finance.services import PaymentService
from core.auth.audit import log_event
from core.roles.decorators import require_permission
from core.services.base import UserContext
from core.utils.api_helpers import get_json_or_error, handle_api_errors

_payment_repo = PaymentRepository()
_payment_service = PaymentService()


@finance_bp.route('/api/v1/finance/payments', methods=['GET'])
@require_permission('finance', 'read')
def api_list_payments():
    payments = _payment_repo.list(current_user.tenant_id, request.args.get('invoice_id', type=int))
    return jsonify({'success': True, 'payments': payments})


@finance_bp.route('/api/v1/finance/payments', methods=['POST'])
@require_permission('finance', 'create')
@handle_api_errors
def api_record_payment():
    data, error = get_json_or_error()
    if error:
        return error
    result = _payment_service.record_payment(data, UserContext.from_user(current_user, request.remote_addr))
    log_event('payment_recorded', f"Payment {result['payment']['amount']} on invoice {data.get('invoice_id')}",
              'invoice', data.get('invoice_id'))
    return jsonify({'success': True, **result}), 201
