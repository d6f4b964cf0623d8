"""Tenant profile and settings routes."""
from flask import jsonify
from flask_login import login_required, current_user

from . import tenants_bp
from .repositories import TenantRepository, TenantSettingsRepository
from core.utils.api_helpers import admin_required, get_json_or_error, safe_error_response

_tenant_repo = TenantRepository()
_settings_repo = TenantSettingsRepository()


@tenants_bp.route('/api/v1/tenant', methods=['GET'])
@login_required
def api_get_tenant():
    tenant = _tenant_repo.get_by_id(current_user.tenant_id)
    if not tenant:
        return jsonify({'success': False, 'error': 'Tenant not found'}), 404
    return jsonify({'success': True, 'tenant': tenant})


@tenants_bp.route('/api/v1/tenant', methods=['PUT'])
@login_required
@admin_required
def api_update_tenant():
    data, error = get_json_or_error()
    if error:
        return error
    try:
        _tenant_repo.update(current_user.tenant_id, **{k: v for k, v in data.items() if k == 'name'})
        return jsonify({'success': True, 'tenant': _tenant_repo.get_by_id(current_user.tenant_id)})
    except Exception as e:
        return safe_error_response(e)


@tenants_bp.route('/api/v1/tenant/settings', methods=['GET'])
@login_required
def api_get_settings():
    return jsonify({'success': True, 'settings': _settings_repo.get_all(current_user.tenant_id)})


@tenants_bp.route('/api/v1/tenant/settings', methods=['PUT'])
@login_required
@admin_required
def api_save_settings():
    """Upsert any number of settings: {"recurring_task_lead_days": 21, ...}."""
    data, error = get_json_or_error()
    if error:
        return error
    if not isinstance(data, dict) or not data:
        return jsonify({'success': False, 'error': 'Expected an object of settings'}), 400

    lead_days = data.get('recurring_task_lead_days')
    if lead_days is not None:
        try:
            if int(lead_days) < 0:
                raise ValueError
        except (TypeError, ValueError):
            return jsonify({'success': False, 'error': 'recurring_task_lead_days must be a non-negative integer'}), 400

    try:
        _settings_repo.set_many(current_user.tenant_id, data)
        return jsonify({'success': True, 'settings': _settings_repo.get_all(current_user.tenant_id)})
    except Exception as e:
        return safe_error_response(e)
