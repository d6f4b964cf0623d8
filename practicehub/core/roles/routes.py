"""Role and permission routes (tenant admins only)."""
from flask import jsonify
from flask_login import login_required, current_user

from . import roles_bp
from .repositories import RoleRepository, PermissionRepository
from core.utils.api_helpers import admin_required, get_json_or_error, safe_error_response

_role_repo = RoleRepository()
_perm_repo = PermissionRepository()


@roles_bp.route('/api/v1/roles', methods=['GET'])
@login_required
def api_get_roles():
    """List roles with their permissions as 'resource.action' strings."""
    roles = _role_repo.get_all(current_user.tenant_id)
    for role in roles:
        role['permissions'] = sorted(
            f'{r}.{a}' for r, a in _perm_repo.get_role_permissions(role['id']))
    return jsonify({'success': True, 'roles': roles})


@roles_bp.route('/api/v1/permissions', methods=['GET'])
@login_required
def api_get_permission_catalog():
    return jsonify({'success': True, 'permissions': _perm_repo.get_catalog()})


@roles_bp.route('/api/v1/roles', methods=['POST'])
@login_required
@admin_required
def api_create_role():
    data, error = get_json_or_error()
    if error:
        return error
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'success': False, 'error': 'Role name is required'}), 400
    try:
        role_id = _role_repo.save(current_user.tenant_id, name, data.get('description'))
        if data.get('permissions'):
            _perm_repo.set_role_permissions(role_id, data['permissions'])
        return jsonify({'success': True, 'id': role_id}), 201
    except Exception as e:
        return safe_error_response(e)


@roles_bp.route('/api/v1/roles/<int:role_id>', methods=['PUT'])
@login_required
@admin_required
def api_update_role(role_id):
    data, error = get_json_or_error()
    if error:
        return error
    if not _role_repo.get(current_user.tenant_id, role_id):
        return jsonify({'success': False, 'error': 'Role not found'}), 404
    try:
        _role_repo.update(current_user.tenant_id, role_id, **data)
        if 'permissions' in data:
            _perm_repo.set_role_permissions(role_id, data['permissions'] or [])
        return jsonify({'success': True})
    except Exception as e:
        return safe_error_response(e)


@roles_bp.route('/api/v1/roles/<int:role_id>', methods=['DELETE'])
@login_required
@admin_required
def api_delete_role(role_id):
    if _role_repo.delete(current_user.tenant_id, role_id):
        return jsonify({'success': True})
    return jsonify({'success': False, 'error': 'Role not found'}), 404


@roles_bp.route('/api/v1/users/<int:user_id>/permissions', methods=['PUT'])
@login_required
@admin_required
def api_set_user_permission(user_id):
    """Body: {"resource": "finance", "action": "delete", "granted": false}; granted=null clears."""
    data, error = get_json_or_error()
    if error:
        return error
    from core.auth.repositories import UserRepository
    user = UserRepository().get_by_id(user_id)
    if not user or user['tenant_id'] != current_user.tenant_id:
        return jsonify({'success': False, 'error': 'User not found'}), 404
    resource, action = data.get('resource'), data.get('action')
    if not resource or not action:
        return jsonify({'success': False, 'error': 'resource and action are required'}), 400
    _perm_repo.set_user_override(user_id, resource, action, data.get('granted'))
    return jsonify({'success': True})
