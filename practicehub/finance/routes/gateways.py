"""Payment gateway routes. Secrets never leave the server unmasked."""
from flask import jsonify
from flask_login import current_user

from finance import finance_bp
from finance.services import GatewayService
from core.auth.audit import log_event
from core.roles.decorators import require_permission
from core.utils.api_helpers import get_json_or_error, handle_api_errors

_gateway_service = GatewayService()


@finance_bp.route('/api/v1/finance/payment-gateways', methods=['GET'])
@require_permission('payment-gateways', 'read')
@handle_api_errors
def api_list_gateways():
    return jsonify({'success': True, 'gateways': _gateway_service.list_gateways(current_user.tenant_id)})


@finance_bp.route('/api/v1/finance/payment-gateways/<int:gateway_id>', methods=['GET'])
@require_permission('payment-gateways', 'read')
@handle_api_errors
def api_get_gateway(gateway_id):
    return jsonify({'success': True, 'gateway': _gateway_service.get_gateway(current_user.tenant_id, gateway_id)})


@finance_bp.route('/api/v1/finance/payment-gateways', methods=['POST'])
@require_permission('payment-gateways', 'create')
@handle_api_errors
def api_create_gateway():
    data, error = get_json_or_error()
    if error:
        return error
    gateway = _gateway_service.create_gateway(current_user.tenant_id, data)
    log_event('gateway_created', f"Configured {gateway['gateway_type']} gateway", 'payment_gateway', gateway['id'])
    return jsonify({'success': True, 'gateway': gateway}), 201


@finance_bp.route('/api/v1/finance/payment-gateways/<int:gateway_id>', methods=['PUT'])
@require_permission('payment-gateways', 'update')
@handle_api_errors
def api_update_gateway(gateway_id):
    data, error = get_json_or_error()
    if error:
        return error
    gateway = _gateway_service.update_gateway(current_user.tenant_id, gateway_id, data)
    log_event('gateway_updated', f"Updated {gateway['gateway_type']} gateway", 'payment_gateway', gateway_id)
    return jsonify({'success': True, 'gateway': gateway})


@finance_bp.route('/api/v1/finance/payment-gateways/<int:gateway_id>', methods=['DELETE'])
@require_permission('payment-gateways', 'delete')
@handle_api_errors
def api_delete_gateway(gateway_id):
    _gateway_service.delete_gateway(current_user.tenant_id, gateway_id)
    log_event('gateway_deleted', f'Deleted gateway {gateway_id}', 'payment_gateway', gateway_id)
    return jsonify({'success': True})


@finance_bp.route('/api/v1/finance/payment-gateways/<gateway_type>/test', methods=['POST'])
@require_permission('payment-gateways', 'read')
@handle_api_errors
def api_test_gateway(gateway_type):
    result = _gateway_service.test_connection(current_user.tenant_id, gateway_type)
    return jsonify({'success': True, 'result': result})
